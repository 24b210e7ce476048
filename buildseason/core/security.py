from __future__ import annotations

import hmac
from dataclasses import dataclass
from typing import Iterable, Literal

from fastapi import Header, HTTPException
from pydantic import BaseModel

from buildseason.core.config import get_settings
from buildseason.core.errors import AuthorizationError

TeamRole = Literal["admin", "mentor", "student"]
TEAM_ROLES: tuple[str, ...] = ("admin", "mentor", "student")
ELEVATED_ROLES = frozenset({"admin", "mentor"})


class Caller(BaseModel):
    user_id: str


@dataclass(frozen=True)
class TeamContext:
    """Who is calling, for which team, with what role. Built per request."""

    team_id: str
    caller_id: str
    caller_role: str

    @property
    def is_elevated(self) -> bool:
        return self.caller_role in ELEVATED_ROLES


def _auth_error(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


def _extract_api_key(authorization: str | None, x_api_key: str | None) -> str | None:
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise _auth_error("invalid authorization header")
        return token.strip()
    if x_api_key and x_api_key.strip():
        return x_api_key.strip()
    return None


def get_caller(
    authorization: str | None = Header(default=None),
    x_api_key: str | None = Header(default=None),
    x_user_id: str | None = Header(default=None),
) -> Caller:
    settings = get_settings()
    if settings.auth_enabled:
        api_key = _extract_api_key(authorization, x_api_key)
        if not api_key:
            raise _auth_error("missing api key")
        if not hmac.compare_digest(api_key.encode("utf-8"), settings.gateway_api_key.encode("utf-8")):
            raise _auth_error("invalid api key")

    if not x_user_id or not x_user_id.strip():
        raise _auth_error("missing caller identity")
    return Caller(user_id=x_user_id.strip())


def require_roles(ctx: TeamContext, allowed: Iterable[str], detail: str = "insufficient role") -> None:
    if ctx.caller_role not in set(allowed):
        raise AuthorizationError(detail)


def require_elevated(ctx: TeamContext, action: str) -> None:
    require_roles(ctx, ELEVATED_ROLES, detail=f"{action} requires admin or mentor role")
