"""Credential encryption for integration credentials and key material (Fernet)."""

import base64
import json
from typing import Any, cast

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from app.core.config import Settings
from app.domain.exceptions import CredentialException

DECRYPTION_ERROR_MSG = "Failed to decrypt credentials - invalid or corrupted data"


class CredentialEncryptor:
    """Encrypt/decrypt stored credentials using Fernet (key derived from app secret)."""

    def __init__(self, settings: Settings) -> None:
        self._fernet = Fernet(self._derive_key(settings))

    @staticmethod
    def _derive_key(settings: Settings) -> bytes:
        """Derive 32-byte key from secret_key + encryption_salt via PBKDF2-HMAC-SHA256."""
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=settings.encryption_salt.get_secret_value().encode(),
            iterations=100_000,
        )
        derived = kdf.derive(settings.secret_key.get_secret_value().encode())
        return base64.urlsafe_b64encode(derived)

    def encrypt(self, credentials: dict[str, Any]) -> str:
        """Encrypt credentials dict to a string safe for storage."""
        json_str = json.dumps(credentials)
        return self._fernet.encrypt(json_str.encode()).decode()

    def decrypt(self, encrypted_str: str) -> dict[str, Any]:
        """Decrypt stored string back to credentials dict.

        Raises:
            CredentialException: If invalid or not valid JSON.
        """
        try:
            result = json.loads(self._fernet.decrypt(encrypted_str.encode()).decode())
        except InvalidToken as e:
            raise CredentialException(DECRYPTION_ERROR_MSG) from e
        except json.JSONDecodeError as e:
            raise CredentialException("Decrypted credentials are not valid JSON") from e
        if not isinstance(result, dict):
            raise CredentialException("Decrypted credentials must be a dictionary")
        return cast(dict[str, Any], result)

    def encrypt_text(self, value: str) -> str:
        return self._fernet.encrypt(value.encode()).decode()

    def decrypt_text(self, encrypted_str: str) -> str:
        try:
            return self._fernet.decrypt(encrypted_str.encode()).decode()
        except InvalidToken as e:
            raise CredentialException(DECRYPTION_ERROR_MSG) from e
