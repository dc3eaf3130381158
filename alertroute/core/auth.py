"""Authentication and role-checking dependencies.

Every request carries a Bearer JWT that resolves to a ``Principal``:
an identity plus one of two roles, requester or responder.
"""

import enum
import uuid
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from alertroute.core.security import TokenData, decode_access_token
from alertroute.logging_config import get_logger

logger = get_logger(__name__)


class PrincipalRole(str, enum.Enum):
    """Roles recognised by the dispatch API.

    - REQUESTER: end user who raises alerts
    - RESPONDER: organization dispatched to alerts
    """

    REQUESTER = "requester"
    RESPONDER = "responder"


@dataclass(frozen=True)
class Principal:
    """Verified identity of the caller."""

    id: uuid.UUID
    role: PrincipalRole


async def get_current_principal(request: Request) -> Principal:
    """Extract and validate the caller from the Authorization header.

    Raises:
        HTTPException 401: If no valid credentials are found
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )

    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise credentials_exception

    payload = decode_access_token(auth_header[7:])
    if payload is None:
        raise credentials_exception

    try:
        token_data = TokenData(payload)
        role = PrincipalRole(token_data.role)
    except (KeyError, TypeError, ValueError):
        raise credentials_exception

    return Principal(id=token_data.subject_id, role=role)


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


class RoleChecker:
    """Dependency that verifies the caller has one of the allowed roles.

    Usage:
        @router.get("/responders/alerts")
        async def list_alerts(principal: ResponderPrincipal):
            ...
    """

    def __init__(self, allowed_roles: list[PrincipalRole]):
        self.allowed_roles = allowed_roles

    async def __call__(
        self,
        request: Request,
        principal: CurrentPrincipal,
    ) -> Principal:
        """Return the principal, or raise 403 if its role is not allowed."""
        if principal.role not in self.allowed_roles:
            client_ip = request.client.host if request.client else "unknown"
            logger.warning(
                "Unauthorized access attempt",
                principal_id=str(principal.id),
                principal_role=principal.role.value,
                required_roles=[r.value for r in self.allowed_roles],
                path=request.url.path,
                method=request.method,
                client_ip=client_ip,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You don't have permission to access this resource",
            )
        return principal


def require_roles(*roles: PrincipalRole) -> RoleChecker:
    """Create a role checker dependency for the specified roles."""
    return RoleChecker(list(roles))


require_requester = require_roles(PrincipalRole.REQUESTER)
require_responder = require_roles(PrincipalRole.RESPONDER)

RequesterPrincipal = Annotated[Principal, Depends(require_requester)]
ResponderPrincipal = Annotated[Principal, Depends(require_responder)]
