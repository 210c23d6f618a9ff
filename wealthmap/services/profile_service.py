import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from wealthmap.core.exceptions import NotFoundException, ValidationException
from wealthmap.models.activity_log import ActivityType
from wealthmap.models.actor import Actor
from wealthmap.models.company_policy import CompanyPolicy
from wealthmap.models.profile import Bookmark, SavedSearch
from wealthmap.models.user import User
from wealthmap.policy.actions import Action, ActionKind
from wealthmap.policy.evaluator import PolicyEvaluator
from wealthmap.policy.scope import RawQuery, scope
from wealthmap.repositories.profile_repository import ProfileRepository
from wealthmap.repositories.property_repository import PropertyRepository
from wealthmap.repositories.user_repository import UserRepository
from wealthmap.schemas.profile_schemas import ProfileUpdate, SavedSearchCreate
from wealthmap.services.activity_recorder import ActivityRecorder

logger = logging.getLogger(__name__)


class ProfileService:
    """The authenticated user's own profile, bookmarks and saved searches"""

    def __init__(
        self,
        db: Session,
        evaluator: PolicyEvaluator | None = None,
        recorder: ActivityRecorder | None = None,
    ):
        self.db = db
        self.evaluator = evaluator
        self.recorder = recorder
        self.user_repo = UserRepository(db)
        self.profile_repo = ProfileRepository(db)
        self.property_repo = PropertyRepository(db)

    def update_profile(self, user: User, update: ProfileUpdate) -> User:
        for key, value in update.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(user, key, value)
        return self.user_repo.update(user)

    def accept_terms(self, user: User) -> User:
        user.accepted_terms = True
        return self.user_repo.update(user)

    def complete_onboarding(self, user: User) -> User:
        user.completed_onboarding = True
        return self.user_repo.update(user)

    def list_bookmarks(self, actor: Actor) -> list[Bookmark]:
        return self.profile_repo.get_bookmarks(actor.user_id)

    def add_bookmark(self, property_id: int, actor: Actor, policy: CompanyPolicy) -> Bookmark:
        """
        Bookmark a property visible to the actor.

        Raises:
            NotFoundException: Property unknown or outside the company's policy
            ValidationException: Already bookmarked
        """
        self.evaluator.require(
            actor,
            Action(ActionKind.VIEW_PROPERTY, actor.company_id, "property", property_id),
            policy,
        )
        if not self.property_repo.is_visible(property_id, scope(actor, policy, RawQuery())):
            raise NotFoundException(f"Property {property_id} not found")
        if self.profile_repo.get_bookmark(actor.user_id, property_id) is not None:
            raise ValidationException("Property already bookmarked")

        try:
            bookmark = self.profile_repo.create(
                Bookmark(user_id=actor.user_id, property_id=property_id)
            )
        except IntegrityError:
            self.db.rollback()
            raise ValidationException("Property already bookmarked")

        self._record(actor, ActivityType.PROPERTY_BOOKMARK, {"property_id": property_id})
        return bookmark

    def remove_bookmark(self, property_id: int, actor: Actor) -> None:
        bookmark = self.profile_repo.get_bookmark(actor.user_id, property_id)
        if bookmark is None:
            raise NotFoundException(f"Bookmark for property {property_id} not found")
        self.profile_repo.delete(bookmark)
        self._record(actor, ActivityType.PROPERTY_UNBOOKMARK, {"property_id": property_id})

    def list_saved_searches(self, actor: Actor) -> list[SavedSearch]:
        return self.profile_repo.get_saved_searches(actor.user_id)

    def create_saved_search(self, data: SavedSearchCreate, actor: Actor) -> SavedSearch:
        filters = data.filters.model_dump(mode="json", exclude_none=True)
        if data.query:
            filters["query"] = data.query
        return self.profile_repo.create(
            SavedSearch(user_id=actor.user_id, name=data.name, filters=filters)
        )

    def delete_saved_search(self, search_id: int, actor: Actor) -> None:
        saved = self.profile_repo.get_saved_search(search_id, actor.user_id)
        if saved is None:
            raise NotFoundException(f"Saved search {search_id} not found")
        self.profile_repo.delete(saved)

    def _record(self, actor: Actor, activity: ActivityType, details: dict) -> None:
        if self.recorder:
            self.recorder.record(actor.user_id, actor.company_id, activity.value, details)
