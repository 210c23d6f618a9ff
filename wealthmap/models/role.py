"""User role enum for role-based access control."""

from enum import Enum as PyEnum


class UserRole(str, PyEnum):
    """
    Company-scoped user roles.

    Role gates:
    - ADMIN - Manage company profile, data-access policy, employees, usage stats
    - MANAGER - Invite users, view employee list
    - ANALYST - Full data access within company policy, export
    - USER - Same data access as ANALYST (default for self-registered staff)
    - VIEWER - Property browsing only

    Named permissions per role live in wealthmap.policy.permissions.
    """

    ADMIN = "admin"
    MANAGER = "manager"
    ANALYST = "analyst"
    VIEWER = "viewer"
    USER = "user"


# Roles an invitation may assign
INVITABLE_ROLES = (UserRole.VIEWER, UserRole.ANALYST, UserRole.MANAGER, UserRole.ADMIN)
