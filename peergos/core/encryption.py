"""Fernet encryption for storage payloads written with ``encrypted=True``.

Key material comes from ``settings.ENCRYPTION_KEY``: either a Fernet key or a
raw 32-character secret, which is base64-encoded on load. Without a key the
helpers pass payloads through unchanged so a development session works
without key management; ``ProdSettings`` refuses to start without one.
"""
from __future__ import annotations

import base64
import logging
from functools import lru_cache

from cryptography.fernet import Fernet, InvalidToken

from peergos.core.config import settings

logger = logging.getLogger(__name__)


def _normalise_key(raw: str) -> str:
    if len(raw) == 32:
        return base64.urlsafe_b64encode(raw.encode()).decode()
    return raw


@lru_cache
def _get_cipher() -> Fernet | None:
    raw = settings.ENCRYPTION_KEY
    if not raw:
        return None
    try:
        return Fernet(_normalise_key(raw))
    except (ValueError, TypeError):
        logger.warning("ENCRYPTION_KEY is not a valid Fernet key; payloads stored unencrypted")
        return None


def encryption_enabled() -> bool:
    return _get_cipher() is not None


def encrypt_payload(payload: str) -> str:
    cipher = _get_cipher()
    if cipher is None:
        return payload
    return cipher.encrypt(payload.encode()).decode()


def decrypt_payload(token: str) -> str | None:
    """Plaintext for ``token``.

    Returns None when a key is configured and ``token`` was not sealed with
    it (rotated key, plaintext written before encryption was enabled).
    """
    cipher = _get_cipher()
    if cipher is None:
        return token
    try:
        return cipher.decrypt(token.encode()).decode()
    except InvalidToken:
        logger.warning("Stored payload could not be decrypted with the configured key")
        return None
