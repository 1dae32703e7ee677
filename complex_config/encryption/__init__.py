"""Encryption — key discovery and envelope encryption of configuration files.

Security Note (Threat Model):
    Decrypted configuration lives in process memory as plain settings for
    the lifetime of the cache. Anyone able to read process memory or the
    key files can recover it; protecting those is out of scope.
"""

from .crypto import EnvelopeCipher, KEY_SIZE, IV_SIZE, TAG_SIZE
from .keys import (
    KeySource,
    KeyResolver,
    new_key,
    valid_key,
    is_hex_key,
    key_to_bytes,
)

__all__ = [
    "EnvelopeCipher",
    "KEY_SIZE",
    "IV_SIZE",
    "TAG_SIZE",
    "KeySource",
    "KeyResolver",
    "new_key",
    "valid_key",
    "is_hex_key",
    "key_to_bytes",
]
