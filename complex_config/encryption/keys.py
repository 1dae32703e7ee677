"""
Key Sources — discovery of the hex key used for encrypted configuration.

A key is 32 hex characters (16 bytes). Candidate sources are tried in a
fixed order and the first one producing non-empty key material wins:

    1. key set explicitly on the provider
    2. ``<config>.yml.key`` sibling file of the requested configuration
    3. ``COMPLEX_CONFIG_KEY`` environment variable
    4. ``RAILS_MASTER_KEY`` environment variable
    5. master key file (default ``<config_dir>/master.key``)

Security Note:
    Never log key material. Only log which kind of source supplied a key.
"""
import os
import re
import secrets
import logging
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, model_validator

from ..conf import KEY_ENV_VARS, KEY_SUFFIX
from ..exceptions import EncryptionKeyInvalid
from .crypto import EnvelopeCipher, KEY_SIZE

logger = logging.getLogger("complex_config")

_HEX_KEY_PATTERN = re.compile(r'\A[0-9a-fA-F]{%d}\Z' % (KEY_SIZE * 2))


def new_key() -> str:
    """Generate a random 16-byte key and return it as 32 hex characters."""
    return secrets.token_hex(KEY_SIZE)


def is_hex_key(value: str) -> bool:
    """Return True if ``value`` looks like a 32 hex character key."""
    return bool(_HEX_KEY_PATTERN.match(value or ''))


def key_to_bytes(key: str) -> bytes:
    """Decode hex key material into raw bytes.

    Raises:
        EncryptionKeyInvalid: If ``key`` is not valid hex.
    """
    try:
        return bytes.fromhex(key)
    except (TypeError, ValueError):
        raise EncryptionKeyInvalid(
            "encryption key has to be a hex string"
        ) from None


def valid_key(key: str) -> Union[EnvelopeCipher, bool]:
    """Return a cipher for ``key`` when it is usable, else False."""
    try:
        return EnvelopeCipher(key_to_bytes(key))
    except EncryptionKeyInvalid:
        return False


def _read_key_file(path: str) -> Optional[str]:
    try:
        with open(path, 'r', encoding='utf-8') as fp:
            return fp.read()
    except (FileNotFoundError, NotADirectoryError):
        return None


class KeySource(BaseModel):
    """A single origin a hex key may be read from.

    Exactly one of ``var``, ``env_var``, ``pathname`` or
    ``master_key_pathname`` may be set; an instance with none set never
    yields a key.
    """

    pathname: Optional[str] = None
    env_var: Optional[str] = None
    var: Optional[str] = None
    master_key_pathname: Optional[str] = None

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def stringify_paths(cls, data):
        if isinstance(data, dict):
            data = dict(data)
            for field in ('pathname', 'master_key_pathname'):
                if isinstance(data.get(field), Path):
                    data[field] = str(data[field])
        return data

    @model_validator(mode="after")
    def validate_single_setting(self) -> "KeySource":
        """Ensure at most one discriminant is set."""
        settings = [
            self.pathname, self.env_var, self.var, self.master_key_pathname
        ]
        if sum(setting is not None for setting in settings) > 1:
            raise ValueError('only one setting at most possible')
        return self

    @property
    def kind(self) -> str:
        if self.var is not None:
            return 'var'
        if self.env_var is not None:
            return f'env:{self.env_var}'
        if self.master_key_pathname is not None:
            return 'master_key'
        if self.pathname is not None:
            return 'key_file'
        return 'none'

    @property
    def master_key(self) -> bool:
        return self.master_key_pathname is not None

    @property
    def key(self) -> Optional[str]:
        """Hex key material of this source, or None if it has none."""
        if self.var is not None:
            value = self.var
        elif self.env_var is not None:
            value = os.environ.get(self.env_var)
        elif self.master_key_pathname is not None:
            value = _read_key_file(self.master_key_pathname)
        elif self.pathname is not None:
            value = _read_key_file(self.pathname + KEY_SUFFIX)
        else:
            value = None
        if value is None:
            return None
        return value.rstrip() or None

    @property
    def key_bytes(self) -> Optional[bytes]:
        key = self.key
        if key is None:
            return None
        return key_to_bytes(key)


class KeyResolver:
    """Find a usable key from the ordered list of candidate sources.

    Args:
        key: Key set explicitly in process, tried first.
        master_key_path: Location of the master key file, tried last.
    """

    def __init__(
        self,
        key: Optional[str] = None,
        master_key_path: Optional[Union[str, Path]] = None,
    ):
        self.key = key
        self.master_key_path = master_key_path

    def sources(self, pathname: Optional[Union[str, Path]] = None) -> list[KeySource]:
        """Candidate sources in priority order for configuration ``pathname``."""
        sources = [
            KeySource(var=self.key),
            KeySource(pathname=pathname),
        ]
        sources.extend(KeySource(env_var=name) for name in KEY_ENV_VARS)
        sources.append(KeySource(master_key_pathname=self.master_key_path))
        return sources

    def resolve(self, pathname: Optional[Union[str, Path]] = None) -> Optional[KeySource]:
        """Return the first source producing key material, or None."""
        for source in self.sources(pathname):
            if source.key is not None:
                logger.debug(
                    "Encryption key for %s supplied by %s", pathname, source.kind
                )
                return source
        return None
