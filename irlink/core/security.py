"""
Credential helpers: client secret masking and at-rest token encryption.
"""

from __future__ import annotations

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken


def mask_secret(secret: str, client_id: str) -> str:
    """Return base64(SHA-256(secret + normalized client id)).

    The client id is trimmed and lowercased before concatenation; the secret is
    used verbatim. iRacing expects this value instead of the raw secret in every
    token request.
    """
    if not secret or not client_id:
        raise ValueError("Missing client secret or client ID for masking.")
    normalized_id = client_id.strip().lower()
    digest = hashlib.sha256(f"{secret}{normalized_id}".encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


class TokenCipherService:
    """Encrypt and decrypt bearer tokens using a Fernet key derived from a secret."""

    def __init__(self, *, secret: str) -> None:
        if not secret:
            raise ValueError("Token encryption secret must be provided.")
        digest = hashlib.sha256(secret.encode("utf-8")).digest()
        self._fernet = Fernet(base64.urlsafe_b64encode(digest))

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        try:
            plaintext = self._fernet.decrypt(ciphertext.encode("utf-8"))
        except InvalidToken as exc:
            raise ValueError(
                "Failed to decrypt stored token; was TOKEN_ENCRYPTION_SECRET changed?"
            ) from exc
        return plaintext.decode("utf-8")


__all__ = ["TokenCipherService", "mask_secret"]
