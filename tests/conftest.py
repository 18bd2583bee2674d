from pathlib import Path
import os
import sys

import pytest


MODULE_ROOT = Path(__file__).resolve().parents[1]
if str(MODULE_ROOT) not in sys.path:
    sys.path.insert(0, str(MODULE_ROOT))

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["APP_SECRET_KEY"] = "test-app-secret"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-0123456789abcdef0123456789"
os.environ["REGISTRATION_SECRET"] = "clave-de-registro"
os.environ["URL_CIPHER_KEY"] = "0123456789abcdef0123456789abcdef"
for _name in ("JWT_EXPIRATION_MS", "LOGIN_MAX_ATTEMPTS", "LEDGER_MAX_RETRIES", "JWT_COOKIE_SECURE"):
    os.environ.pop(_name, None)

sys.modules.pop("server", None)
import server
from crypto_utils import hash_password
from models import Role, User, db


CLIENTE_BASE = {
    "nif": "12345678Z",
    "nombre": "Lucía",
    "apellidos": "Martín Ruiz",
    "anyo_nacimiento": 1985,
    "direccion": "Calle Mayor 1, Madrid",
    "email": "lucia@example.com",
    "numero_contacto": "600123456",
}


@pytest.fixture(autouse=True)
def clean_database():
    """Each test starts from an empty schema."""
    with server.app.app_context():
        db.drop_all()
        db.create_all()
    yield
    with server.app.app_context():
        db.session.remove()


@pytest.fixture()
def app_ctx():
    with server.app.app_context():
        yield


@pytest.fixture()
def client():
    """Flask test client with testing configuration enabled."""
    server.app.config.update({"TESTING": True})
    with server.app.test_client() as test_client:
        yield test_client


@pytest.fixture()
def make_user():
    def _make(username: str = "gestor", password: str = "Secreta1!", role: Role = Role.USER):
        with server.app.app_context():
            db.session.add(
                User(
                    username=username,
                    nombre="Ana",
                    apellidos="García",
                    email=f"{username}@example.com",
                    password_hash=hash_password(password),
                    role=role,
                )
            )
            db.session.commit()
        return username, password

    return _make


@pytest.fixture()
def login_as(client, make_user):
    """Creates a user and stores a valid jwt cookie in the test client."""

    def _login(role: Role = Role.USER) -> str:
        username, _ = make_user(username=role.value.lower(), role=role)
        token = server.token_service.issue(username)
        client.set_cookie("jwt", token)
        return token

    return _login


@pytest.fixture()
def cliente_data():
    def _data(**overrides):
        data = dict(CLIENTE_BASE)
        data.update(overrides)
        return data

    return _data


@pytest.fixture()
def make_cliente(cliente_data):
    def _make(**overrides) -> str:
        with server.app.app_context():
            cliente = server.cliente_service.create(cliente_data(**overrides))
            return cliente.nif

    return _make
