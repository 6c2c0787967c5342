"""Collaborator interfaces for the two-factor authentication flows.

Flows receive these through their constructors; production wiring lives in
``mfa_guard.dependencies`` and tests pass fakes or fast implementations.
"""

from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable
from uuid import UUID

if TYPE_CHECKING:
    from mfa_guard.models.user import User


@runtime_checkable
class UserStore(Protocol):
    """Persistent user store.

    ``save`` must persist the MFA columns and fail with
    ``ConcurrentUpdateError`` when the row changed since it was read.
    """

    async def get_by_id(self, user_id: UUID) -> Optional["User"]:
        ...

    async def get_by_email(self, email: str) -> Optional["User"]:
        ...

    async def save(self, user: "User") -> None:
        ...

    async def record_login(self, user_id: UUID) -> None:
        ...


@runtime_checkable
class SecretCodec(Protocol):
    """Symmetric encryption of the TOTP secret at rest.

    ``decrypt`` raises ``SecretDecryptionError`` on corrupt input or wrong key.
    """

    def encrypt(self, plaintext: str) -> str:
        ...

    def decrypt(self, ciphertext: str) -> str:
        ...


@runtime_checkable
class PasswordHasher(Protocol):
    def hash(self, plaintext: str) -> str:
        ...

    def verify(self, digest: str, plaintext: str) -> bool:
        ...


@runtime_checkable
class SessionIssuer(Protocol):
    """Turns a verified identity into an opaque bearer credential."""

    def issue(self, user: "User") -> str:
        ...


@runtime_checkable
class ProvisioningRenderer(Protocol):
    """Renders a provisioning URI into something a user can scan."""

    def render(self, provisioning_uri: str) -> str:
        ...
