"""The authenticated actor of a request."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from worktrack.database.models.user import Role, User


@dataclass(frozen=True)
class Principal:
    """Identity and role of the caller.

    Attributes:
        id: User id.
        role: Fixed role of the user.
        active: Whether the account is active.
        name: Display name, used in notification messages.
    """

    id: UUID
    role: Role
    active: bool = True
    name: str = ""

    @classmethod
    def from_user(cls, user: User) -> Principal:
        return cls(id=user.id, role=user.role, active=user.is_active, name=user.name)

    @property
    def is_admin(self) -> bool:
        return self.role is Role.admin
