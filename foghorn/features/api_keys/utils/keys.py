import hashlib
import secrets
from typing import NamedTuple

API_KEY_PREFIX = "fh_"
API_KEY_BYTES = 32
DISPLAY_PREFIX_LENGTH = 8


class GeneratedApiKey(NamedTuple):
    key: str
    key_hash: str
    key_prefix: str


def hash_api_key(key: str) -> str:
    """Hex SHA-256 of the full key; only this is stored."""
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def generate_api_key() -> GeneratedApiKey:
    key = f"{API_KEY_PREFIX}{secrets.token_urlsafe(API_KEY_BYTES)}"
    return GeneratedApiKey(key=key, key_hash=hash_api_key(key), key_prefix=key[:DISPLAY_PREFIX_LENGTH])


def is_api_key(token: str) -> bool:
    return token.startswith(API_KEY_PREFIX)
