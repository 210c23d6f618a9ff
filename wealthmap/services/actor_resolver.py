import logging
from datetime import datetime
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wealthmap.core.clock import utcnow, to_timestamp
from wealthmap.core.exceptions import (
    AccountDeactivatedException,
    StalePasswordException,
    UnauthorizedException,
)
from wealthmap.core.security import decode_jwt
from wealthmap.models.actor import Actor
from wealthmap.models.company_policy import CompanyPolicy
from wealthmap.models.user import User
from wealthmap.policy.permissions import effective_permissions
from wealthmap.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


class ActorResolver:
    """
    Turns a session token into an Actor.

    Flow:
    1. Validate JWT (signature, exp, sub)
    2. Load the User and its Company
    3. Reject inactive users/companies and tokens predating a password change
    4. Compute effective permissions and return the immutable Actor
    5. Touch last_active_at (best effort)
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock
        self.user_repo = UserRepository(db)

    def resolve(self, token: str | None) -> Actor:
        """
        Raises:
            UnauthorizedException: token missing/invalid/expired or user unknown
            AccountDeactivatedException: user or company inactive
            StalePasswordException: token issued before the last password change
        """
        actor, _ = self.resolve_with_user(token)
        return actor

    def resolve_with_user(self, token: str | None) -> tuple[Actor, User]:
        if not token:
            raise UnauthorizedException("Authentication required")

        payload = decode_jwt(token)

        try:
            user_id = int(payload["sub"])
        except (TypeError, ValueError):
            raise UnauthorizedException("Token has an invalid user identifier")

        user = self.user_repo.get_by_id(user_id)
        if user is None:
            raise UnauthorizedException("User no longer exists")

        company = user.company
        if not user.is_active or company is None or not company.is_active:
            raise AccountDeactivatedException(
                "Account is deactivated. Please contact your administrator."
            )

        if user.password_changed_at is not None:
            issued_at = payload.get("iat")
            if issued_at is None or int(issued_at) < to_timestamp(user.password_changed_at):
                raise StalePasswordException("Password recently changed. Please log in again.")

        policy = CompanyPolicy.from_company(company)
        actor = Actor(
            user_id=user.id,
            role=user.role,
            company_id=user.company_id,
            permissions=effective_permissions(user.role, user.permission_overrides, policy),
            mfa_verified=bool(payload.get("mfa", False)),
            is_active=user.is_active,
            company_active=company.is_active,
            email=user.email,
        )

        self._touch(user)
        return actor, user

    def _touch(self, user: User) -> None:
        try:
            user.last_active_at = self.clock()
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.warning("Could not update last_active_at for user %s", user.id, exc_info=True)
