"""Aplicación Flask de Gestor Banco."""

import logging
import os
import secrets
from datetime import timedelta
from types import SimpleNamespace
from typing import Any, List, Mapping, Optional

from dotenv import load_dotenv
from flask import Flask, Response, g, jsonify, redirect, request
from marshmallow import Schema, ValidationError as SchemaValidationError
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from api import register_apis
from auth import AuthService, LoginThrottle
from clientes import ClienteService
from crypto_utils import DecryptionError, UrlCipher
from exceptions import GestorBancoError, StorageError, TokenExpired, TokenInvalid, Unauthorized, ValidationError
from jwt_utils import TokenService
from ledger import Ledger
from models import Role, User, db
from store import SqlStore


load_dotenv()

LOGGER = logging.getLogger("gestor_banco")
LOGGER.addHandler(logging.NullHandler())


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() not in {"0", "false", "off", "no"}


APP_SECRET = os.getenv("APP_SECRET_KEY") or secrets.token_hex(32)
JWT_SECRET = os.getenv("JWT_SECRET_KEY") or secrets.token_hex(32)
JWT_EXPIRATION_MS = int(os.getenv("JWT_EXPIRATION_MS", str(1000 * 60 * 24)))
JWT_COOKIE_NAME = "jwt"
JWT_COOKIE_SECURE = _env_flag("JWT_COOKIE_SECURE", True)
REGISTRATION_SECRET = os.getenv("REGISTRATION_SECRET", "").strip()
URL_CIPHER_KEY = os.getenv("URL_CIPHER_KEY") or secrets.token_hex(16)
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///gestor_banco.db")
LOGIN_MAX_ATTEMPTS = int(os.getenv("LOGIN_MAX_ATTEMPTS", "5"))
LEDGER_MAX_RETRIES = int(os.getenv("LEDGER_MAX_RETRIES", "3"))

PUBLIC_PATHS = frozenset({"/", "/showLogin", "/actlogin", "/logout", "/register-secret"})
UNAUTHORIZED_MESSAGE = "No estás autorizado para acceder a este recurso."
MIN_TOKEN_LIFETIME = timedelta(minutes=1)


app = Flask(__name__)
app.secret_key = APP_SECRET
app.config.update(
    SQLALCHEMY_DATABASE_URI=DATABASE_URL,
    SESSION_COOKIE_HTTPONLY=True,
    SESSION_COOKIE_SAMESITE="Lax",
)
db.init_app(app)

with app.app_context():
    db.create_all()


def _apply_logging_configuration() -> None:
    level = logging.DEBUG if app.debug else logging.INFO
    logging.basicConfig(level=level)
    app.logger.setLevel(level)
    logging.getLogger("werkzeug").setLevel(level)


_apply_logging_configuration()


store = SqlStore(db)
token_service = TokenService(JWT_SECRET, timedelta(milliseconds=JWT_EXPIRATION_MS))
url_cipher = UrlCipher(URL_CIPHER_KEY)
login_throttle = LoginThrottle(LOGIN_MAX_ATTEMPTS)
auth_service = AuthService(store, token_service, login_throttle, REGISTRATION_SECRET)
ledger = Ledger(store, max_retries=LEDGER_MAX_RETRIES)
cliente_service = ClienteService(store)


def _warn_short_token_lifetime(lifetime: timedelta) -> bool:
    if lifetime >= MIN_TOKEN_LIFETIME:
        return False
    LOGGER.warning(
        "La vida de los tokens JWT es de solo %s s; las sesiones caducarán casi de inmediato",
        lifetime.total_seconds(),
    )
    return True


_warn_short_token_lifetime(token_service.lifetime)

if not REGISTRATION_SECRET:
    LOGGER.info("REGISTRATION_SECRET no definido: el registro de usuarios está deshabilitado")


class ApiContext(SimpleNamespace):
    """Dependencias y utilidades compartidas con los blueprints."""


# Respuestas ---------------------------------------------------------------
def _error(message: str, status: int = 400):
    return jsonify({"error": message}), status


def _error_page(mensaje: str, detalle: str = "", status: int = 400):
    return jsonify({"mensaje": mensaje, "detalle": detalle, "ruta": request.path}), status


def _text(message: str, status: int = 200) -> Response:
    return Response(message, status=status, mimetype="text/plain")


def _unauthorized_response():
    return _error(UNAUTHORIZED_MESSAGE, 401)


def _validation_error_message(error: SchemaValidationError) -> str:
    messages: List[str] = []
    for field, issues in error.messages.items():
        label = field if field != "_schema" else "Solicitud"
        if isinstance(issues, dict):
            issues = [str(issue) for issue in issues.values()]
        for issue in issues:
            messages.append(f"{label}: {issue}")
    return "; ".join(messages) or "Datos de entrada no válidos"


def _load(schema: Schema, source: Mapping[str, Any]) -> dict:
    try:
        return schema.load(dict(source))
    except SchemaValidationError as exc:
        raise ValidationError(_validation_error_message(exc)) from exc


def _load_form(schema: Schema) -> dict:
    return _load(schema, request.form.to_dict())


def _load_args(schema: Schema) -> dict:
    return _load(schema, request.args.to_dict())


def _decrypt(value: str) -> str:
    try:
        return url_cipher.decrypt(value)
    except DecryptionError as exc:
        raise ValidationError("Identificador cifrado no válido") from exc


def _decrypt_param(name: str) -> str:
    return _decrypt(request.args.get(name, ""))


# Identidad ---------------------------------------------------------------
def _current_user() -> Optional[User]:
    return g.get("current_user")


def _require_role(role: Role) -> User:
    user = _current_user()
    if user is None or user.role != role:
        LOGGER.warning("Acceso denegado a %s para %s", request.path, getattr(user, "username", None))
        raise Unauthorized()
    return user


def _set_jwt_cookie(response: Response, token: str) -> Response:
    response.set_cookie(JWT_COOKIE_NAME, token, httponly=True, secure=JWT_COOKIE_SECURE, path="/")
    return response


def _clear_jwt_cookie(response: Response) -> Response:
    response.delete_cookie(JWT_COOKIE_NAME, path="/", secure=JWT_COOKIE_SECURE, httponly=True)
    return response


def _resolve_identity(token: str) -> User:
    username = token_service.verify(token)
    user = store.get_user(username)
    if user is None:
        raise TokenInvalid("El usuario del token no existe")
    if not token_service.is_valid(token, user):
        raise TokenInvalid()
    return user


@app.before_request
def _authenticate_request():
    g.current_user = None
    public = request.path in PUBLIC_PATHS
    token = request.cookies.get(JWT_COOKIE_NAME)
    if token:
        try:
            g.current_user = _resolve_identity(token)
        except (TokenExpired, TokenInvalid) as exc:
            LOGGER.warning("Token rechazado desde %s: %s", request.remote_addr, exc)
            if not public:
                return _unauthorized_response()
        except Exception:
            LOGGER.exception("Fallo inesperado validando el token desde %s", request.remote_addr)
            if not public:
                return _unauthorized_response()
    if g.current_user is None and not public:
        return _unauthorized_response()
    return None


@app.after_request
def _add_same_site(response: Response) -> Response:
    cookies = response.headers.getlist("Set-Cookie")
    if not cookies:
        return response
    rewritten = []
    for cookie in cookies:
        if cookie.startswith(f"{JWT_COOKIE_NAME}=") and "samesite" not in cookie.lower():
            cookie = f"{cookie}; SameSite=Lax"
        rewritten.append(cookie)
    response.headers.setlist("Set-Cookie", rewritten)
    return response


def _register_api_blueprints() -> None:
    ctx = ApiContext(
        store=store,
        ledger=ledger,
        auth_service=auth_service,
        cliente_service=cliente_service,
        url_cipher=url_cipher,
        error_page=_error_page,
        text=_text,
        load_form=_load_form,
        load_args=_load_args,
        decrypt=_decrypt,
        decrypt_param=_decrypt_param,
        current_user=_current_user,
        require_role=_require_role,
        set_jwt_cookie=_set_jwt_cookie,
        clear_jwt_cookie=_clear_jwt_cookie,
    )
    register_apis(app, ctx)


_register_api_blueprints()


@app.get("/")
def root() -> Any:
    return redirect("/showLogin")


@app.get("/index")
def index() -> Any:
    user = _current_user()
    return jsonify(
        {
            "vista": "index",
            "usuario": user.username,
            "nombre": user.nombre,
            "rol": user.role.value,
        }
    )


@app.errorhandler(GestorBancoError)
def _handle_domain_error(exc: GestorBancoError) -> Any:
    return _error_page(exc.message, type(exc).__name__, exc.status_code)


@app.errorhandler(SQLAlchemyError)
def _handle_storage_error(exc: SQLAlchemyError) -> Any:
    db.session.rollback()
    LOGGER.error("Error de base de datos en %s: %s", request.path, exc)
    return _error_page(StorageError.default_message, "", StorageError.status_code)


@app.errorhandler(Exception)
def _handle_unexpected_error(exc: Exception) -> Any:
    if isinstance(exc, HTTPException):
        return exc
    LOGGER.exception("Error inesperado en %s", request.path)
    return _error_page("Se ha producido un error inesperado.", "", 500)


if __name__ == "__main__":
    port = int(os.getenv("PORT", "8000"))
    app.debug = _env_flag("FLASK_DEBUG", False)
    _apply_logging_configuration()
    app.run(host="0.0.0.0", port=port)
