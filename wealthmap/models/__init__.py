# Import every mapped class so relationship() strings resolve and
# Base.metadata is complete wherever the models package is imported.
from wealthmap.models.base import Base
from wealthmap.models.company import Company
from wealthmap.models.user import User
from wealthmap.models.invitation import Invitation, InvitationStatus
from wealthmap.models.activity_log import ActivityLog, ActivityType
from wealthmap.models.property import Property, PropertyOwnership, PropertyTransaction
from wealthmap.models.owner import Owner
from wealthmap.models.profile import Bookmark, SavedSearch

__all__ = [
    "Base",
    "Company",
    "User",
    "Invitation",
    "InvitationStatus",
    "ActivityLog",
    "ActivityType",
    "Property",
    "PropertyOwnership",
    "PropertyTransaction",
    "Owner",
    "Bookmark",
    "SavedSearch",
]
