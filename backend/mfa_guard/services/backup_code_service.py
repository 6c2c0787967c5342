"""Single-use backup codes for two-factor recovery."""

import json
import secrets
import string
from typing import List, Optional, Sequence, Tuple

from mfa_guard.core.exceptions import BackupCodeStorageError
from mfa_guard.services.ports import PasswordHasher

BACKUP_CODE_ALPHABET = string.ascii_letters + string.digits
DEFAULT_CODE_COUNT = 10
DEFAULT_CODE_LENGTH = 10


class BackupCodeService:
    """Generates, stores and redeems hashed backup codes.

    Codes are hashed with the same salted hasher as passwords, so matching
    has to go through ``PasswordHasher.verify`` one digest at a time.
    """

    def __init__(self, hasher: PasswordHasher):
        self._hasher = hasher

    def generate_codes(
        self,
        count: int = DEFAULT_CODE_COUNT,
        length: int = DEFAULT_CODE_LENGTH,
    ) -> Tuple[List[str], List[str]]:
        """
        Generate a batch of backup codes.

        Args:
            count: Number of codes to generate
            length: Characters per code

        Returns:
            Tuple of (plaintext codes to show once, digests to persist)
        """
        if count < 1 or length < 1:
            raise ValueError("Backup code count and length must be at least 1")

        plain_codes = [
            "".join(secrets.choice(BACKUP_CODE_ALPHABET) for _ in range(length))
            for _ in range(count)
        ]
        hashes = [self._hasher.hash(code) for code in plain_codes]
        return plain_codes, hashes

    def consume(self, submitted: str, stored_hashes: Sequence[str]) -> Tuple[List[str], bool]:
        """
        Redeem ``submitted`` against the stored digests.

        Returns:
            Tuple of (remaining digests, matched). On a match exactly one
            digest is removed; otherwise the digests come back unchanged.
        """
        remaining = list(stored_hashes)
        submitted = (submitted or "").strip()
        if not submitted:
            return remaining, False

        for i, digest in enumerate(remaining):
            if self._hasher.verify(digest, submitted):
                del remaining[i]
                return remaining, True
        return remaining, False

    @staticmethod
    def serialize(hashes: Sequence[str]) -> Optional[str]:
        """Encode digests for the ``totp_backup_codes`` column; empty becomes NULL."""
        if not hashes:
            return None
        return json.dumps(list(hashes))

    @staticmethod
    def deserialize(blob: Optional[str]) -> List[str]:
        """Decode the ``totp_backup_codes`` column."""
        if not blob:
            return []
        try:
            hashes = json.loads(blob)
        except json.JSONDecodeError as e:
            raise BackupCodeStorageError() from e
        if not isinstance(hashes, list) or not all(isinstance(h, str) for h in hashes):
            raise BackupCodeStorageError()
        return [h for h in hashes if h]
