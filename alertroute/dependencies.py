"""FastAPI dependencies for the dispatch engine and store.

The engine is created lazily, once per process, so its escalation timers
live in a single scheduler shared by every request.
"""

from collections.abc import AsyncGenerator
from typing import Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from alertroute.database import get_db
from alertroute.services.dispatch import DispatchEngine, build_dispatch_engine
from alertroute.stores.base import DispatchStore
from alertroute.stores.sql import SqlDispatchStore, sql_store_session

_dispatch_engine: Optional[DispatchEngine] = None


def get_dispatch_engine() -> DispatchEngine:
    """Get or create the process-wide dispatch engine."""
    global _dispatch_engine
    if _dispatch_engine is None:
        _dispatch_engine = build_dispatch_engine(sql_store_session)
    return _dispatch_engine


def reset_dispatch_engine() -> None:
    """Stop the engine's timers and forget it."""
    global _dispatch_engine
    if _dispatch_engine is not None:
        _dispatch_engine.escalation.shutdown()
        _dispatch_engine = None


async def get_store(
    db: AsyncSession = Depends(get_db),
) -> AsyncGenerator[DispatchStore, None]:
    """Request-scoped store on the request's database session."""
    yield SqlDispatchStore(db)
