"""Application secret generation."""

import base64
import secrets

from appinit.constants import SECRET_DISPLAY_LENGTH

_CIPHER_KEY_BYTES = {
    "aes-128-cbc": 16,
    "aes-128-gcm": 16,
    "aes-256-cbc": 32,
    "aes-256-gcm": 32,
}


def generate_app_key(cipher: str = "AES-256-CBC") -> str:
    size = _CIPHER_KEY_BYTES.get(cipher.lower(), 32)
    return "base64:" + base64.b64encode(secrets.token_bytes(size)).decode("ascii")


def truncate_secret(value: str, limit: int = SECRET_DISPLAY_LENGTH) -> str:
    if len(value) <= limit:
        return value
    return f"{value[:limit]}..."
