"""Actor context for request authorization."""

from dataclasses import dataclass, field

from wealthmap.models.role import UserRole
from wealthmap.policy.permissions import Permission


@dataclass(frozen=True)
class Actor:
    """
    The authenticated identity making a request.

    Immutable snapshot produced by the actor resolver from a session token and
    the current User/Company rows. Used throughout the application for
    permission checks and tenant isolation.

    Attributes:
        user_id: The authenticated user's ID
        role: The user's role within their company
        company_id: The tenant the user belongs to
        permissions: Effective permissions (role ∩ overrides ∩ company policy)
        mfa_verified: Whether a TOTP code was verified for this session
        is_active: User account status at resolution time
        company_active: Company account status at resolution time
        email: The user's email, for display and logging
    """

    user_id: int
    role: UserRole
    company_id: int
    permissions: frozenset[Permission] = field(default_factory=frozenset)
    mfa_verified: bool = False
    is_active: bool = True
    company_active: bool = True
    email: str = ""

    def has_permission(self, permission: Permission) -> bool:
        return permission in self.permissions

    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def is_admin_or_manager(self) -> bool:
        return self.role in (UserRole.ADMIN, UserRole.MANAGER)

    def __repr__(self) -> str:
        return f"<Actor(user_id={self.user_id}, company_id={self.company_id}, role={self.role.value})>"
