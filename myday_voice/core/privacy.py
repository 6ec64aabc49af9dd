"""Transcript codecs for at-rest storage of command logs.

Two codecs exist:
- ``Base64Codec``: reversible encoding only. Keeps transcripts out of casual
  view but offers no confidentiality, so it reports ``encrypted = False``.
- ``FernetCodec``: authenticated encryption with a key derived per user
  (HKDF-SHA256 over a configured secret, user id as context), so one
  user's key never decrypts another user's transcripts.
"""

from __future__ import annotations

import base64
import binascii
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

if TYPE_CHECKING:
    from ..config import AppConfig

logger = logging.getLogger(__name__)

HKDF_SALT = b"myday-voice-transcripts"


class TranscriptDecodeError(Exception):
    """A stored transcript could not be decoded with the configured codec."""

    pass


class TranscriptCodec(ABC):
    """Encode transcripts for storage and decode them for display."""

    encrypted: bool = False

    @abstractmethod
    def encode(self, text: str, user_id: str) -> str:
        """Encode a transcript for the given user."""

    @abstractmethod
    def decode(self, token: str, user_id: str) -> str:
        """Decode a stored transcript.

        Raises:
            TranscriptDecodeError: If the token is not valid for this codec/user
        """


class Base64Codec(TranscriptCodec):
    """Reversible base64 obfuscation (not encryption)."""

    encrypted = False

    def encode(self, text: str, user_id: str) -> str:
        return base64.b64encode(text.encode("utf-8")).decode("ascii")

    def decode(self, token: str, user_id: str) -> str:
        try:
            return base64.b64decode(token.encode("ascii"), validate=True).decode("utf-8")
        except (binascii.Error, UnicodeError, ValueError) as e:
            raise TranscriptDecodeError(f"Invalid base64 transcript: {e}") from e


class FernetCodec(TranscriptCodec):
    """Per-user authenticated encryption.

    Example:
        >>> codec = FernetCodec("correct horse battery staple")
        >>> token = codec.encode("call mom", "user-1")
        >>> codec.decode(token, "user-1")
        'call mom'
    """

    encrypted = True

    def __init__(self, secret: str | bytes) -> None:
        if not secret:
            raise ValueError("FernetCodec requires a non-empty secret")
        self._secret = secret.encode("utf-8") if isinstance(secret, str) else secret
        self._fernets: dict[str, Fernet] = {}

    def _fernet(self, user_id: str) -> Fernet:
        """Get (and cache) the Fernet instance for a user."""
        if user_id not in self._fernets:
            hkdf = HKDF(
                algorithm=hashes.SHA256(),
                length=32,
                salt=HKDF_SALT,
                info=user_id.encode("utf-8"),
            )
            key = base64.urlsafe_b64encode(hkdf.derive(self._secret))
            self._fernets[user_id] = Fernet(key)
        return self._fernets[user_id]

    def encode(self, text: str, user_id: str) -> str:
        return self._fernet(user_id).encrypt(text.encode("utf-8")).decode("ascii")

    def decode(self, token: str, user_id: str) -> str:
        try:
            return self._fernet(user_id).decrypt(token.encode("ascii")).decode("utf-8")
        except (InvalidToken, UnicodeError, ValueError) as e:
            raise TranscriptDecodeError("Transcript could not be decrypted for this user") from e


def codec_for(config: "AppConfig") -> TranscriptCodec:
    """Pick the codec for a configuration.

    Args:
        config: Application configuration

    Returns:
        FernetCodec when a transcript secret is configured, else Base64Codec
    """
    secret = config.transcript_secret
    if secret is not None and secret.get_secret_value():
        return FernetCodec(secret.get_secret_value())
    logger.debug("No transcript secret configured, using base64 obfuscation")
    return Base64Codec()
