"""
Envelope Cipher — authenticated encryption of configuration payloads.

Envelope format (ASCII)::

    base64(ciphertext) -- base64(iv) -- base64(tag)

joined by the literal separator ``--`` (no spaces), always in that order.
AES-128-GCM with empty associated data and a fresh random 96-bit IV per
encryption.

Security Note:
    Never log plaintext, ciphertext or key values. Every decryption
    failure collapses into ``DecryptionFailed`` without saying which
    check rejected the input.
"""
import os
import base64
import binascii
import logging

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..exceptions import EncryptionKeyInvalid, DecryptionFailed

logger = logging.getLogger("complex_config")

KEY_SIZE = 16  # AES-128
IV_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16  # GCM tag
SEPARATOR = '--'


def _encode(data: bytes) -> str:
    return base64.b64encode(data).decode('ascii')


def _decode(segment: str) -> bytes:
    return base64.b64decode(segment.strip(), validate=True)


class EnvelopeCipher:
    """AES-128-GCM encryption of opaque payloads into envelope strings.

    Args:
        key: Raw 16-byte key.

    Raises:
        EncryptionKeyInvalid: If ``key`` is not exactly 16 bytes.
    """

    def __init__(self, key: bytes):
        if not isinstance(key, (bytes, bytearray)) or len(key) != KEY_SIZE:
            raise EncryptionKeyInvalid(
                f"encryption key must be {KEY_SIZE} bytes"
            )
        self._aead = AESGCM(bytes(key))

    def encrypt(self, plaintext: bytes) -> str:
        """Encrypt ``plaintext`` into an envelope string.

        Args:
            plaintext: Data to encrypt, ``str`` is encoded as UTF-8.

        Returns:
            The envelope ``ciphertext--iv--tag``.
        """
        if isinstance(plaintext, str):
            plaintext = plaintext.encode('utf-8')
        iv = os.urandom(IV_SIZE)
        sealed = self._aead.encrypt(iv, plaintext, b'')
        ciphertext, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
        return SEPARATOR.join(_encode(part) for part in (ciphertext, iv, tag))

    def decrypt(self, envelope: str) -> bytes:
        """Recover the plaintext bytes of an envelope string.

        Args:
            envelope: String produced by :meth:`encrypt`.

        Returns:
            Decrypted plaintext bytes, verbatim.

        Raises:
            DecryptionFailed: If the envelope is malformed, the tag is not
                16 bytes, or authentication fails (wrong key, tampering).
        """
        if isinstance(envelope, bytes):
            envelope = envelope.decode('ascii', errors='replace')
        segments = envelope.strip().split(SEPARATOR)
        if len(segments) != 3:
            raise DecryptionFailed("decryption failed with this key")
        try:
            ciphertext, iv, tag = (_decode(segment) for segment in segments)
        except (binascii.Error, ValueError):
            raise DecryptionFailed("decryption failed with this key") from None
        if len(tag) != TAG_SIZE or len(iv) != IV_SIZE:
            raise DecryptionFailed("decryption failed with this key")
        try:
            return self._aead.decrypt(iv, ciphertext + tag, b'')
        except InvalidTag:
            raise DecryptionFailed("decryption failed with this key") from None
