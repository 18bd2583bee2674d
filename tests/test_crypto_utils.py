import pytest

from crypto_utils import DecryptionError, UrlCipher, hash_password, verify_password


KEY = "0123456789abcdef"


def test_url_cipher_roundtrip():
    cipher = UrlCipher(KEY)
    token = cipher.encrypt("ES9121000418450200051332")
    assert cipher.decrypt(token) == "ES9121000418450200051332"


def test_url_cipher_output_is_url_safe_and_randomized():
    cipher = UrlCipher(KEY)
    first = cipher.encrypt("12345678Z")
    second = cipher.encrypt("12345678Z")
    assert first != second
    assert "+" not in first and "/" not in first
    assert cipher.decrypt(first) == cipher.decrypt(second) == "12345678Z"


def test_url_cipher_rejects_tampered_token():
    cipher = UrlCipher(KEY)
    token = cipher.encrypt("12345678Z")
    tampered = token[:-4] + ("AAAA" if not token.endswith("AAAA") else "BBBB")
    with pytest.raises(DecryptionError):
        cipher.decrypt(tampered)


@pytest.mark.parametrize("garbage", ["", "abc", "%%%not-base64%%%", "AAAA"])
def test_url_cipher_rejects_garbage(garbage):
    with pytest.raises(DecryptionError):
        UrlCipher(KEY).decrypt(garbage)


def test_url_cipher_rejects_foreign_key():
    token = UrlCipher(KEY).encrypt("12345678Z")
    with pytest.raises(DecryptionError):
        UrlCipher("fedcba9876543210").decrypt(token)


def test_url_cipher_requires_aes_key_length():
    with pytest.raises(ValueError):
        UrlCipher("corta")


def test_password_hash_roundtrip():
    password_hash = hash_password("Secreta1!")
    assert password_hash != "Secreta1!"
    assert verify_password("Secreta1!", password_hash)
    assert not verify_password("Secreta2!", password_hash)
    assert not verify_password("Secreta1!", "no-es-un-hash")
