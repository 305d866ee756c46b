"""
Principal Value Object

The authenticated actor performing an operation.
"""

from dataclasses import dataclass

from constants import Role


@dataclass(frozen=True)
class Principal:
    """
    Immutable identity handed to the access guard.

    Built from a User row once per request; carries only the fields that
    authorization decisions depend on.
    """

    id: str
    organization: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @classmethod
    def from_user(cls, user) -> "Principal":
        """Create a Principal from a User model instance."""
        return cls(id=user.id, organization=user.organization, role=Role(user.role))
