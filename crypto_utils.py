"""Cifrado de identificadores para URLs y hashing de contraseñas."""

from __future__ import annotations

import base64
import binascii
import os
from typing import Union

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

_NONCE_LEN = 12
_VALID_KEY_LENGTHS = (16, 24, 32)

_PASSWORD_HASHER = PasswordHasher()


class CryptoError(Exception):
    """Errores criptográficos genéricos."""


class DecryptionError(CryptoError):
    """El identificador cifrado no pudo descifrarse."""


class UrlCipher:
    """Cifrado simétrico reversible de identificadores (IBAN, NIF) para URLs.

    Solo ofusca: un identificador descifrado nunca prueba autorización.
    """

    def __init__(self, key: Union[str, bytes]) -> None:
        if isinstance(key, str):
            key = key.encode("utf-8")
        if len(key) not in _VALID_KEY_LENGTHS:
            raise ValueError("La clave de cifrado debe tener 16, 24 o 32 bytes")
        self._aes = AESGCM(key)

    def encrypt(self, plaintext: str) -> str:
        if not isinstance(plaintext, str):
            raise TypeError("Solo se pueden cifrar cadenas de texto")
        nonce = os.urandom(_NONCE_LEN)
        ciphertext = self._aes.encrypt(nonce, plaintext.encode("utf-8"), None)
        return _encode_b64url(nonce + ciphertext)

    def decrypt(self, token: str) -> str:
        if not isinstance(token, str) or not token:
            raise DecryptionError("Identificador cifrado vacío")
        try:
            raw = _decode_b64url(token)
        except ValueError as exc:
            raise DecryptionError("Identificador cifrado dañado") from exc
        if len(raw) <= _NONCE_LEN:
            raise DecryptionError("Identificador cifrado incompleto")
        nonce, ciphertext = raw[:_NONCE_LEN], raw[_NONCE_LEN:]
        try:
            plaintext = self._aes.decrypt(nonce, ciphertext, None)
        except InvalidTag as exc:
            raise DecryptionError("Descifrado fallido") from exc
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:  # pragma: no cover - GCM authenticates the payload
            raise DecryptionError("Descifrado fallido") from exc


def hash_password(password: str) -> str:
    if not isinstance(password, str) or not password:
        raise ValueError("Falta la contraseña")
    return _PASSWORD_HASHER.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return _PASSWORD_HASHER.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def _encode_b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii")


def _decode_b64url(value: str) -> bytes:
    try:
        return base64.urlsafe_b64decode(value.encode("ascii"))
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise ValueError("Datos Base64 no válidos") from exc
