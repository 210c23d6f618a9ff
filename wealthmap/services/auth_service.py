import logging
import re

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from wealthmap.config import settings
from wealthmap.core.clock import utcnow
from wealthmap.core.exceptions import (
    AccountDeactivatedException,
    UnauthorizedException,
    ValidationException,
)
from wealthmap.core.security import (
    create_access_token,
    hash_password,
    verify_mfa_code,
    verify_password,
)
from wealthmap.models.activity_log import ActivityType
from wealthmap.models.actor import Actor
from wealthmap.models.company import Company
from wealthmap.models.role import UserRole
from wealthmap.models.user import User
from wealthmap.repositories.company_repository import CompanyRepository
from wealthmap.repositories.user_repository import UserRepository
from wealthmap.schemas.auth_schemas import CompanyRegistration, LoginRequest, PasswordChange
from wealthmap.services.activity_recorder import ActivityRecorder

logger = logging.getLogger(__name__)


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "company"


def build_user(
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    role: UserRole,
    company_id: int,
) -> User:
    """New User with its password hashed; nothing is persisted."""
    return User(
        email=email.strip().lower(),
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        role=role,
        company_id=company_id,
        is_active=True,
        permission_overrides={},
    )


def issue_token(user: User, mfa_verified: bool = False) -> str:
    return create_access_token(
        user_id=user.id,
        company_id=user.company_id,
        role=user.role.value,
        mfa_verified=mfa_verified,
    )


class AuthService:
    """Company registration, login and password management"""

    def __init__(self, db: Session, recorder: ActivityRecorder | None = None):
        self.db = db
        self.recorder = recorder
        self.company_repo = CompanyRepository(db)
        self.user_repo = UserRepository(db)

    def _unique_slug(self, name: str) -> str:
        base = slugify(name)
        slug, counter = base, 1
        while self.company_repo.get_by_slug(slug) is not None:
            counter += 1
            slug = f"{base}-{counter}"
        return slug

    def register_company(self, data: CompanyRegistration) -> tuple[Company, User, str]:
        """
        Create a company and its first admin in one transaction.

        Returns:
            Tuple of (company, admin user, access token)

        Raises:
            ValidationException: If the admin email is already registered
        """
        if self.user_repo.get_by_email(data.admin_email) is not None:
            raise ValidationException("Email already registered")

        company = Company(
            name=data.company_name,
            slug=self._unique_slug(data.company_name),
            industry=data.industry,
            phone=data.phone,
            website=data.website,
            street=data.street,
            city=data.city,
            state=data.state,
            zip_code=data.zip_code,
            country=data.country,
            is_active=True,
            invitation_expire_days=settings.DEFAULT_INVITATION_EXPIRE_DAYS,
        )
        try:
            self.company_repo.add(company)
            admin = self.user_repo.add(
                build_user(
                    email=data.admin_email,
                    password=data.admin_password,
                    first_name=data.admin_first_name,
                    last_name=data.admin_last_name,
                    role=UserRole.ADMIN,
                    company_id=company.id,
                )
            )
            company.admin_user_id = admin.id
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ValidationException("Company or email already registered")

        self.db.refresh(company)
        self.db.refresh(admin)
        logger.info("Registered company %s (id=%s)", company.slug, company.id)
        if self.recorder:
            self.recorder.record(
                admin.id,
                company.id,
                ActivityType.COMPANY_REGISTRATION.value,
                {"company_name": company.name},
            )
        return company, admin, issue_token(admin)

    def login(self, data: LoginRequest) -> tuple[User, str]:
        """
        Verify credentials (and the TOTP code when MFA is enabled).

        Raises:
            UnauthorizedException: Bad credentials or missing/invalid MFA code
            AccountDeactivatedException: User or company inactive
        """
        user = self.user_repo.get_by_email(data.email)
        if user is None:
            logger.info("Login attempt for unknown email")
            raise UnauthorizedException("Invalid email or password")

        if not verify_password(data.password, user.password_hash):
            logger.info("Failed login for user %s", user.id)
            self._record(user, ActivityType.FAILED_LOGIN_ATTEMPT, {"reason": "bad_password"})
            raise UnauthorizedException("Invalid email or password")

        if not user.is_active or not user.company.is_active:
            raise AccountDeactivatedException(
                "Account is deactivated. Please contact your administrator."
            )

        mfa_verified = False
        if user.mfa_enabled:
            if not data.mfa_code:
                raise UnauthorizedException("MFA code required", reason="mfa_code_required")
            if not verify_mfa_code(user.mfa_secret or "", data.mfa_code):
                self._record(user, ActivityType.FAILED_LOGIN_ATTEMPT, {"reason": "bad_mfa_code"})
                raise UnauthorizedException("Invalid MFA code", reason="invalid_mfa_code")
            mfa_verified = True

        user.last_login_at = utcnow()
        self.user_repo.update(user)
        self._record(user, ActivityType.USER_LOGIN, {"mfa": mfa_verified})
        return user, issue_token(user, mfa_verified=mfa_verified)

    def change_password(self, user: User, actor: Actor, data: PasswordChange) -> str:
        """
        Replace the password and return a fresh token.

        Tokens issued before the change stop resolving (stale password).
        """
        if not verify_password(data.current_password, user.password_hash):
            raise ValidationException("Current password is incorrect", reason="invalid_password")
        if data.current_password == data.new_password:
            raise ValidationException("New password must differ from the current one")

        user.password_hash = hash_password(data.new_password)
        user.password_changed_at = utcnow()
        self.user_repo.update(user)
        self._record(user, ActivityType.USER_PASSWORD_CHANGE, {})
        return issue_token(user, mfa_verified=actor.mfa_verified)

    def _record(self, user: User, activity: ActivityType, details: dict) -> None:
        if self.recorder:
            self.recorder.record(user.id, user.company_id, activity.value, details)
