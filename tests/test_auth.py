"""Tests for token handling and role checks."""

import uuid
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException
from jose import jwt

from alertroute.config import settings
from alertroute.core.auth import (
    Principal,
    PrincipalRole,
    RoleChecker,
    get_current_principal,
)
from alertroute.core.security import TokenData, create_access_token, decode_access_token


def request_with(headers: dict[str, str]) -> MagicMock:
    request = MagicMock()
    request.headers = headers
    request.client.host = "127.0.0.1"
    request.url.path = "/api/test"
    request.method = "GET"
    return request


class TestTokens:
    def test_round_trip(self):
        subject = uuid.uuid4()

        payload = decode_access_token(create_access_token(subject, "responder"))

        data = TokenData(payload)
        assert data.subject_id == subject
        assert data.role == "responder"

    def test_expired_token_rejected(self):
        token = create_access_token(uuid.uuid4(), "requester", timedelta(seconds=-1))
        assert decode_access_token(token) is None

    def test_wrong_secret_rejected(self):
        token = jwt.encode(
            {"sub": str(uuid.uuid4()), "role": "requester", "type": "access"},
            "some-other-secret",
            algorithm=settings.jwt_algorithm,
        )
        assert decode_access_token(token) is None

    def test_non_access_token_rejected(self):
        token = jwt.encode(
            {"sub": str(uuid.uuid4()), "role": "requester", "type": "refresh"},
            settings.secret_key,
            algorithm=settings.jwt_algorithm,
        )
        assert decode_access_token(token) is None


class TestGetCurrentPrincipal:
    async def test_valid_bearer(self):
        subject = uuid.uuid4()
        token = create_access_token(subject, "requester")

        principal = await get_current_principal(
            request_with({"Authorization": f"Bearer {token}"})
        )

        assert principal == Principal(id=subject, role=PrincipalRole.REQUESTER)

    async def test_missing_header(self):
        with pytest.raises(HTTPException) as exc_info:
            await get_current_principal(request_with({}))
        assert exc_info.value.status_code == 401

    async def test_unknown_role(self):
        token = create_access_token(uuid.uuid4(), "admin")

        with pytest.raises(HTTPException) as exc_info:
            await get_current_principal(
                request_with({"Authorization": f"Bearer {token}"})
            )
        assert exc_info.value.status_code == 401


class TestRoleChecker:
    async def test_allows_matching_role(self):
        principal = Principal(id=uuid.uuid4(), role=PrincipalRole.RESPONDER)
        checker = RoleChecker([PrincipalRole.RESPONDER])

        assert await checker(request_with({}), principal) is principal

    async def test_rejects_other_role(self):
        principal = Principal(id=uuid.uuid4(), role=PrincipalRole.REQUESTER)
        checker = RoleChecker([PrincipalRole.RESPONDER])

        with pytest.raises(HTTPException) as exc_info:
            await checker(request_with({}), principal)
        assert exc_info.value.status_code == 403
