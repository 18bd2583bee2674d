"""Generación y validación de IBAN (ISO 13616-1, mod 97)."""

import re
import secrets
from typing import Any

from exceptions import InvalidIban

IBAN_MIN_LENGTH = 15
IBAN_MAX_LENGTH = 34

_IBAN_RE = re.compile(r"^[A-Z]{2}[0-9]{2}[A-Z0-9]+$")


def _iban_mod_97(sequence: str) -> int:
    remainder = 0
    for char in sequence:
        if "0" <= char <= "9":
            remainder = (remainder * 10 + int(char)) % 97
        else:
            remainder = (remainder * 100 + (ord(char.upper()) - 55)) % 97
    return remainder


def _letter_value(char: str) -> int:
    return ord(char) - ord("A") + 10


def _transliterate(sequence: str) -> str:
    return "".join(str(_letter_value(c)) if c.isalpha() else c for c in sequence)


def compute_check_digits(country_code: str, bban: str) -> str:
    numeric = _transliterate(f"{bban}{country_code.upper()}00")
    return f"{98 - int(numeric) % 97:02d}"


def generate_iban(country_code: str = "ES", bank_code_length: int = 8, account_number_length: int = 12) -> str:
    if len(country_code) != 2 or not (country_code.isascii() and country_code.isalpha()):
        raise ValueError("El código de país debe tener dos letras")
    country_code = country_code.upper()
    bank_code = "".join(str(secrets.randbelow(10)) for _ in range(bank_code_length))
    account_number = "".join(str(secrets.randbelow(10)) for _ in range(account_number_length))
    check_digits = compute_check_digits(country_code, f"{bank_code}{account_number}")
    return f"{country_code}{check_digits}{bank_code}{account_number}"


def normalize_iban(raw: str) -> str:
    return re.sub(r"\s+", "", raw).upper()


def validate_iban(iban: Any) -> bool:
    if not isinstance(iban, str):
        return False
    iban = normalize_iban(iban)
    if len(iban) < IBAN_MIN_LENGTH or len(iban) > IBAN_MAX_LENGTH:
        return False
    if not _IBAN_RE.match(iban):
        return False
    return _iban_mod_97(iban[4:] + iban[:4]) == 1


def clean_iban(raw: Any) -> str:
    if not validate_iban(raw):
        raise InvalidIban()
    return normalize_iban(raw)
