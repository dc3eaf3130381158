"""Alert media (audio recording) storage."""

import abc
import asyncio
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from alertroute.config import settings
from alertroute.logging_config import get_logger

logger = get_logger(__name__)


class MediaUploadError(Exception):
    """Error storing an alert recording."""


@dataclass(frozen=True)
class MediaUpload:
    """An uploaded recording attached to a new alert."""

    data: bytes
    content_type: str = "audio/m4a"


class MediaStorage(abc.ABC):
    """Destination for alert recordings."""

    @abc.abstractmethod
    async def store(self, owner_id: uuid.UUID, media: MediaUpload) -> str:
        """Store a recording and return its public URL.

        Raises:
            MediaUploadError: If the recording cannot be stored.
        """

    @abc.abstractmethod
    async def delete(self, url: str) -> None:
        """Remove a recording previously returned by ``store``, if present."""


class LocalMediaStorage(MediaStorage):
    """Writes recordings to a directory served under ``base_url``."""

    def __init__(
        self,
        root: str | Path | None = None,
        base_url: str | None = None,
        max_bytes: int | None = None,
    ) -> None:
        self._root = Path(root or settings.media_storage_path)
        self._base_url = (base_url or settings.media_base_url).rstrip("/")
        self._max_bytes = max_bytes or settings.media_max_bytes

    async def store(self, owner_id: uuid.UUID, media: MediaUpload) -> str:
        if not media.data:
            raise MediaUploadError("Recording is empty")
        if len(media.data) > self._max_bytes:
            raise MediaUploadError(
                f"Recording exceeds {self._max_bytes} bytes ({len(media.data)})"
            )

        timestamp_ms = int(datetime.now(UTC).timestamp() * 1000)
        file_name = f"{owner_id}_{timestamp_ms}.m4a"
        path = self._root / file_name

        try:
            await asyncio.to_thread(self._write, path, media.data)
        except OSError as e:
            raise MediaUploadError(f"Failed to write recording: {e}") from e

        logger.debug(
            "Stored alert recording",
            owner_id=str(owner_id),
            file_name=file_name,
            size_bytes=len(media.data),
        )
        return f"{self._base_url}/{file_name}"

    async def delete(self, url: str) -> None:
        path = self._root / url.rsplit("/", 1)[-1]
        await asyncio.to_thread(path.unlink, missing_ok=True)
        logger.debug("Removed alert recording", file_name=path.name)

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
