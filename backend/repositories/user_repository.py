"""
User repository for tenant user lookups.
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from models import User as UserModel
from .base_repository import BaseRepository


class UserRepository(BaseRepository[UserModel]):
    """Repository for User model operations."""

    def __init__(self, db: Session):
        super().__init__(db, UserModel)

    def list_for_organization(self, organization: str) -> List[UserModel]:
        return self.db.query(self.model).filter(
            self.model.organization == organization
        ).order_by(self.model.created_at.asc()).all()

    def get_in_organization(self, user_id: str, organization: str) -> Optional[UserModel]:
        """
        Get a user only if it belongs to the given organization.

        Users of other organizations are indistinguishable from missing ones.
        """
        return self.db.query(self.model).filter(
            self.model.id == user_id,
            self.model.organization == organization,
        ).first()
