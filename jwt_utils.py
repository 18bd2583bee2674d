"""Emisión y verificación de tokens JWT firmados (HS256)."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt

from exceptions import TokenExpired, TokenInvalid

LOGGER = logging.getLogger(__name__)

ALGORITHM = "HS256"


class TokenService:
    """Tokens sin estado ligados a un nombre de usuario."""

    def __init__(self, secret: str, lifetime: timedelta) -> None:
        if not secret:
            raise ValueError("Falta el secreto de firma JWT")
        self._secret = secret
        self.lifetime = lifetime

    def issue(self, subject: str, *, now: Optional[datetime] = None) -> str:
        if not subject:
            raise ValueError("El token necesita un sujeto")
        issued_at = now or datetime.now(timezone.utc)
        claims = {
            "sub": subject,
            "iat": issued_at,
            "exp": issued_at + self.lifetime,
        }
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> str:
        claims = self._decode(token)
        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            raise TokenInvalid("El token JWT no contiene usuario")
        return subject

    def is_valid(self, token: str, user: Any) -> bool:
        try:
            subject = self.verify(token)
        except (TokenExpired, TokenInvalid):
            return False
        return subject == getattr(user, "username", None)

    def _decode(self, token: str) -> dict:
        if not token:
            raise TokenInvalid("Falta el token JWT")
        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpired() from exc
        except jwt.InvalidTokenError as exc:
            raise TokenInvalid(f"El token JWT no es válido: {exc}") from exc
