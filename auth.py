"""Autenticación por credenciales, registro y limitación de intentos de login."""

import hmac
import logging
import re
from typing import Any, Dict, MutableMapping, Optional

from crypto_utils import hash_password, verify_password
from exceptions import (
    AuthenticationFailed,
    InvalidPassword,
    TooManyAttempts,
    Unauthorized,
    UserAlreadyExists,
    ValidationError,
)
from models import Role, User

LOGGER = logging.getLogger(__name__)

FAILED_ATTEMPTS_KEY = "failedAttempts"

_UPPER_RE = re.compile(r"[A-Z]")
_DIGIT_RE = re.compile(r"\d")
_SPECIAL_RE = re.compile(r"[^A-Za-z0-9]")


def parse_role(raw: Any) -> Role:
    value = str(raw or "").strip().lower()
    for role in Role:
        if role.value.lower() == value:
            return role
    raise ValidationError("Error: El rol proporcionado no es válido.")


def check_password_policy(password: str) -> None:
    if (
        not password
        or len(password) < 8
        or not _UPPER_RE.search(password)
        or not _DIGIT_RE.search(password)
        or not _SPECIAL_RE.search(password)
    ):
        raise InvalidPassword()


class LoginThrottle:
    """Contador de intentos fallidos guardado en la sesión del cliente HTTP."""

    def __init__(self, max_attempts: int = 5) -> None:
        self.max_attempts = max_attempts

    def attempts(self, session: MutableMapping[str, Any]) -> int:
        return int(session.get(FAILED_ATTEMPTS_KEY, 0) or 0)

    def ensure_allowed(self, session: MutableMapping[str, Any]) -> None:
        if self.attempts(session) >= self.max_attempts:
            raise TooManyAttempts()

    def register_failure(self, session: MutableMapping[str, Any]) -> int:
        attempts = self.attempts(session) + 1
        session[FAILED_ATTEMPTS_KEY] = attempts
        return attempts

    def reset(self, session: MutableMapping[str, Any]) -> None:
        session[FAILED_ATTEMPTS_KEY] = 0


class AuthService:
    def __init__(self, store, token_service, throttle: LoginThrottle, registration_secret: Optional[str]) -> None:
        self.store = store
        self.token_service = token_service
        self.throttle = throttle
        self._registration_secret = registration_secret or ""

    def login(self, username: str, password: str, session: MutableMapping[str, Any]) -> str:
        """Comprueba las credenciales y emite un token; el bloqueo se mira antes que la contraseña."""
        try:
            self.throttle.ensure_allowed(session)
        except TooManyAttempts:
            LOGGER.warning("Login bloqueado para %r tras demasiados intentos", username)
            raise

        user = self.store.get_user(username) if username else None
        if user is None or not verify_password(password or "", user.password_hash):
            attempts = self.throttle.register_failure(session)
            LOGGER.info("Login fallido para %r (intento %s)", username, attempts)
            raise AuthenticationFailed()

        self.throttle.reset(session)
        LOGGER.info("Login correcto para %s", user.username)
        return self.token_service.issue(user.username)

    def check_secret(self, secret_key: str) -> None:
        """Sin secreto configurado el registro queda deshabilitado."""
        if not self._registration_secret or not hmac.compare_digest(
            (secret_key or "").encode("utf-8"), self._registration_secret.encode("utf-8")
        ):
            LOGGER.warning("Registro rechazado: clave secreta incorrecta")
            raise Unauthorized()

    def register(
        self,
        secret_key: str,
        username: str,
        password: str,
        profile: Dict[str, str],
        role: Any,
    ) -> str:
        self.check_secret(secret_key)
        check_password_policy(password)
        parsed_role = parse_role(role)
        if self.store.user_exists(username):
            raise UserAlreadyExists()
        if self.store.user_email_exists(profile["email"]):
            raise UserAlreadyExists("El email ya está registrado")

        user = User(
            username=username,
            nombre=profile["nombre"],
            apellidos=profile["apellidos"],
            email=profile["email"],
            password_hash=hash_password(password),
            role=parsed_role,
        )
        self.store.create_user(user)
        LOGGER.info("Usuario %s registrado con rol %s", username, parsed_role.value)
        return self.token_service.issue(user.username)
