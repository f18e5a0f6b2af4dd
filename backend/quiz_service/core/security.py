from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass

import httpx
from fastapi import Depends, HTTPException, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from quiz_service.core.config import settings

log = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    user_id: int
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class TokenRejected(Exception):
    pass


class AuthClient:
    """Delegates token verification to the auth service's ``/verify`` endpoint."""

    def __init__(self, *, base_url: str | None = None, timeout: float | None = None, transport: httpx.BaseTransport | None = None):
        self.base_url = str(base_url if base_url is not None else settings.auth_base_url).rstrip("/")
        self.timeout = float(timeout if timeout is not None else settings.auth_timeout_seconds)
        self._transport = transport

    def verify_token(self, token: str) -> CurrentUser:
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                r = client.post(
                    self.base_url + "/verify",
                    json={"token": token},
                    headers={"Authorization": f"Bearer {token}"},
                )
        except httpx.HTTPError as e:
            log.error("auth service unreachable: %s", type(e).__name__)
            raise TokenRejected("auth service unreachable") from e

        if r.status_code != 200:
            raise TokenRejected(f"auth service returned {r.status_code}")

        try:
            data = r.json()
            return CurrentUser(user_id=int(data["user_id"]), role=str(data.get("role") or "user"))
        except (ValueError, KeyError, TypeError) as e:
            raise TokenRejected("malformed verify response") from e


def decode_jwt(token: str) -> CurrentUser:
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise TokenRejected("invalid token") from e

    try:
        user_id = int(str(payload.get("sub")))
    except (TypeError, ValueError) as e:
        raise TokenRejected("invalid subject") from e
    return CurrentUser(user_id=user_id, role=str(payload.get("role") or "user"))


def verify_token(token: str) -> CurrentUser:
    if (settings.auth_verify_mode or "").strip().lower() == "jwt":
        return decode_jwt(token)
    return AuthClient().verify_token(token)


def get_current_user(request: Request, token: str | None = Depends(oauth2_scheme)) -> CurrentUser:
    if not token:
        token = request.cookies.get("access_token")
    if not token:
        raise HTTPException(status_code=401, detail="not authenticated")

    try:
        user = verify_token(token)
    except TokenRejected as e:
        raise HTTPException(status_code=401, detail="invalid token") from e

    request.state.user_id = str(user.user_id)
    return user


def require_roles(*roles: str):
    def _dep(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.is_admin:
            return user
        if user.role not in roles:
            raise HTTPException(status_code=403, detail="forbidden")
        return user

    return _dep


def require_internal_api_key(request: Request) -> None:
    expected = str(settings.internal_api_key or "").strip()
    if not expected:
        raise HTTPException(status_code=404, detail="not found")

    provided = str(request.headers.get("x-api-key") or "").strip()
    if not provided or not hmac.compare_digest(provided, expected):
        raise HTTPException(status_code=401, detail="invalid api key")
