"""At-rest encryption for TOTP secrets.

Key rotation:
  - Ciphertexts are stored with a version prefix: ``v{n}:<base64ciphertext>``
  - New writes always use ENCRYPTION_CURRENT_VERSION and MASTER_ENCRYPTION_KEY
  - Rows written under the previous key are decrypted via ENCRYPTION_KEY_V1
  - Values with no prefix are decrypted with the current key

Rotation procedure:
  1. Generate a new Fernet key:
       python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"
  2. Move current MASTER_ENCRYPTION_KEY to ENCRYPTION_KEY_V1
  3. Set MASTER_ENCRYPTION_KEY = <new key>
  4. Increment ENCRYPTION_CURRENT_VERSION (e.g. 1 to 2)
  5. Deploy; secrets written under V1 still decrypt, new setups use V2
"""

import base64
import binascii
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from mfa_guard.config import settings
from mfa_guard.core.exceptions import SecretDecryptionError


def _load_fernet(key: str | bytes, setting_name: str) -> Fernet:
    if isinstance(key, str):
        key = key.encode()
    try:
        return Fernet(key)
    except (ValueError, binascii.Error) as e:
        raise ValueError(f"Invalid {setting_name} format. Must be a valid Fernet key: {e}")


class EncryptionService:
    """Encrypts and decrypts TOTP secrets with versioned Fernet keys."""

    def __init__(
        self,
        master_key: Optional[str] = None,
        current_version: Optional[int] = None,
        previous_key: Optional[str] = None,
    ):
        """Build the key map from explicit arguments, falling back to settings."""
        master_key = master_key or settings.MASTER_ENCRYPTION_KEY
        if not master_key:
            raise ValueError("MASTER_ENCRYPTION_KEY must be set in environment")

        self._current_version = current_version or settings.ENCRYPTION_CURRENT_VERSION
        self._keys: dict[int, Fernet] = {
            self._current_version: _load_fernet(master_key, "MASTER_ENCRYPTION_KEY")
        }

        previous_key = previous_key if previous_key is not None else settings.ENCRYPTION_KEY_V1
        if previous_key and self._current_version != 1:
            self._keys[1] = _load_fernet(previous_key, "ENCRYPTION_KEY_V1")

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt a secret and return a versioned ciphertext string.

        Format: ``v{version}:<base64(fernet_ciphertext)>``
        """
        if not plaintext:
            raise ValueError("Plaintext cannot be empty")

        fernet = self._keys[self._current_version]
        encrypted_bytes = fernet.encrypt(plaintext.encode())
        ciphertext = base64.b64encode(encrypted_bytes).decode("utf-8")
        return f"v{self._current_version}:{ciphertext}"

    def decrypt(self, ciphertext: str) -> str:
        """
        Decrypt a versioned (or legacy unprefixed) ciphertext string.

        Raises:
            SecretDecryptionError: If the value is empty, malformed, uses an
                unknown key version, or fails authentication
        """
        if not ciphertext or not isinstance(ciphertext, str):
            raise SecretDecryptionError("Ciphertext cannot be empty")

        version, payload = self._split_version(ciphertext)

        fernet = self._keys.get(version)
        if fernet is None:
            raise SecretDecryptionError(
                f"No decryption key configured for version {version}. "
                f"Check ENCRYPTION_KEY_V{version} in your environment."
            )

        try:
            encrypted_bytes = base64.b64decode(payload.encode("utf-8"), validate=True)
            return fernet.decrypt(encrypted_bytes).decode()
        except (InvalidToken, binascii.Error, ValueError) as e:
            raise SecretDecryptionError(
                f"Failed to decrypt secret (version {version}): {type(e).__name__}"
            ) from e

    def _split_version(self, ciphertext: str) -> tuple[int, str]:
        if ciphertext.startswith("v") and ":" in ciphertext:
            prefix, rest = ciphertext.split(":", 1)
            try:
                return int(prefix[1:]), rest
            except ValueError:
                pass
        return self._current_version, ciphertext


# Singleton instance
_encryption_service = None


def get_encryption_service() -> EncryptionService:
    """Get or create the encryption service singleton."""
    global _encryption_service
    if _encryption_service is None:
        _encryption_service = EncryptionService()
    return _encryption_service
