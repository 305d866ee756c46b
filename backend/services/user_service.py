"""
User Service

Organization-scoped user administration. Only admins may list users or
change roles, and never across organizations.
"""

import logging
from typing import List

from sqlalchemy.orm import Session

from constants import Role
from domain.value_objects import Principal
from exceptions import PermissionDeniedError, UserNotFoundError, ValidationError
from models import User
from repositories import UserRepository

logger = logging.getLogger(__name__)


class UserService:

    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository(db)

    def _require_admin(self, principal: Principal, operation: str):
        if not principal.is_admin:
            raise PermissionDeniedError("Admin access required", operation=operation)

    def list_users(self, principal: Principal) -> List[User]:
        self._require_admin(principal, "list_users")
        return self.user_repo.list_for_organization(principal.organization)

    def change_role(self, principal: Principal, user_id: str, role: str) -> User:
        """
        Set the role of a user in the admin's organization.

        Raises:
            PermissionDeniedError: If the principal is not an admin
            ValidationError: If the role is unknown
            UserNotFoundError: If no such user exists in the organization
        """
        self._require_admin(principal, "change_role")

        try:
            new_role = Role(role)
        except ValueError:
            raise ValidationError("Invalid role", {"role": role})

        user = self.user_repo.get_in_organization(user_id, principal.organization)
        if user is None:
            raise UserNotFoundError(user_id)

        old_role = user.role
        user.role = new_role.value
        self.user_repo.commit("change user role")
        self.user_repo.refresh(user)
        logger.info(f"User {user.id} role changed {old_role} -> {new_role.value} by {principal.id}")
        return user
