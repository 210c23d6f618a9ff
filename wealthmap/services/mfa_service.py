import logging

from sqlalchemy.orm import Session

from wealthmap.core.exceptions import ForbiddenException, ValidationException
from wealthmap.core.security import generate_mfa_secret, mfa_provisioning_uri, verify_mfa_code
from wealthmap.models.activity_log import ActivityType
from wealthmap.models.company_policy import CompanyPolicy
from wealthmap.models.user import User
from wealthmap.repositories.user_repository import UserRepository
from wealthmap.services.activity_recorder import ActivityRecorder
from wealthmap.services.auth_service import issue_token

logger = logging.getLogger(__name__)


class MfaService:
    """
    TOTP enrolment for the authenticated user.

    setup -> enable (first code verified) -> login requires a code.
    These endpoints bypass the MFA rule of the policy evaluator so that users
    of a company requiring MFA can enrol.
    """

    def __init__(self, db: Session, recorder: ActivityRecorder | None = None):
        self.db = db
        self.recorder = recorder
        self.user_repo = UserRepository(db)

    def setup(self, user: User) -> tuple[str, str]:
        """
        Generate a new secret (not active until enabled).

        Returns:
            Tuple of (secret, provisioning URI)
        """
        if user.mfa_enabled:
            raise ValidationException("MFA is already enabled")
        user.mfa_secret = generate_mfa_secret()
        self.user_repo.update(user)
        return user.mfa_secret, mfa_provisioning_uri(user.mfa_secret, user.email)

    def enable(self, user: User, code: str) -> str:
        """
        Activate MFA after verifying a first code.

        Returns:
            A fresh access token marked as MFA-verified
        """
        if user.mfa_enabled:
            raise ValidationException("MFA is already enabled")
        if not user.mfa_secret:
            raise ValidationException("Run MFA setup first")
        if not verify_mfa_code(user.mfa_secret, code):
            raise ValidationException("Invalid MFA code", reason="invalid_mfa_code")

        user.mfa_enabled = True
        self.user_repo.update(user)
        logger.info("MFA enabled for user %s", user.id)
        self._record(user, ActivityType.USER_MFA_ENABLED)
        return issue_token(user, mfa_verified=True)

    def disable(self, user: User, code: str, policy: CompanyPolicy) -> None:
        if policy.require_mfa:
            raise ForbiddenException("Your company requires MFA", reason="mfa_required")
        if not user.mfa_enabled:
            raise ValidationException("MFA is not enabled")
        if not verify_mfa_code(user.mfa_secret or "", code):
            raise ValidationException("Invalid MFA code", reason="invalid_mfa_code")

        user.mfa_enabled = False
        user.mfa_secret = None
        self.user_repo.update(user)
        logger.info("MFA disabled for user %s", user.id)
        self._record(user, ActivityType.USER_MFA_DISABLED)

    def _record(self, user: User, activity: ActivityType) -> None:
        if self.recorder:
            self.recorder.record(user.id, user.company_id, activity.value, {})
