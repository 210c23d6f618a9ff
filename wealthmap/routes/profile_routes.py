from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from wealthmap.database import get_db
from wealthmap.dependencies import (
    get_activity_recorder,
    get_company_policy,
    get_current_actor,
    get_current_user,
    get_policy_evaluator,
)
from wealthmap.models.actor import Actor
from wealthmap.models.company_policy import CompanyPolicy
from wealthmap.models.profile import Bookmark
from wealthmap.models.user import User
from wealthmap.policy.evaluator import PolicyEvaluator
from wealthmap.schemas.profile_schemas import (
    BookmarkCreate,
    BookmarkResponse,
    ProfileResponse,
    ProfileUpdate,
    SavedSearchCreate,
    SavedSearchResponse,
)
from wealthmap.services.activity_recorder import ActivityRecorder
from wealthmap.services.profile_service import ProfileService

router = APIRouter()


def _bookmark(bookmark: Bookmark) -> dict:
    return {
        "id": bookmark.id,
        "property_id": bookmark.property_id,
        "street": bookmark.property.street,
        "city": bookmark.property.city,
        "state": bookmark.property.state,
        "created_at": bookmark.created_at,
    }


@router.get("", response_model=ProfileResponse)
def get_profile(user: User = Depends(get_current_user)):
    return user


@router.put("", response_model=ProfileResponse)
def update_profile(
    profile_update: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    service = ProfileService(db)
    return service.update_profile(user, profile_update)


@router.post("/accept-terms", response_model=ProfileResponse)
def accept_terms(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    service = ProfileService(db)
    return service.accept_terms(user)


@router.post("/complete-onboarding", response_model=ProfileResponse)
def complete_onboarding(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    service = ProfileService(db)
    return service.complete_onboarding(user)


@router.get("/bookmarks", response_model=list[BookmarkResponse])
def list_bookmarks(actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)):
    service = ProfileService(db)
    return [_bookmark(b) for b in service.list_bookmarks(actor)]


@router.post("/bookmarks", response_model=BookmarkResponse, status_code=status.HTTP_201_CREATED)
def add_bookmark(
    bookmark_data: BookmarkCreate,
    actor: Actor = Depends(get_current_actor),
    policy: CompanyPolicy = Depends(get_company_policy),
    evaluator: PolicyEvaluator = Depends(get_policy_evaluator),
    recorder: ActivityRecorder = Depends(get_activity_recorder),
    db: Session = Depends(get_db),
):
    """
    Bookmark a property.

    - 404 if the property is outside the company's policy
    - 400 if already bookmarked
    """
    service = ProfileService(db, evaluator, recorder)
    return _bookmark(service.add_bookmark(bookmark_data.property_id, actor, policy))


@router.delete("/bookmarks/{property_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_bookmark(
    property_id: int,
    actor: Actor = Depends(get_current_actor),
    recorder: ActivityRecorder = Depends(get_activity_recorder),
    db: Session = Depends(get_db),
):
    service = ProfileService(db, recorder=recorder)
    service.remove_bookmark(property_id, actor)


@router.get("/saved-searches", response_model=list[SavedSearchResponse])
def list_saved_searches(actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)):
    service = ProfileService(db)
    return service.list_saved_searches(actor)


@router.post(
    "/saved-searches", response_model=SavedSearchResponse, status_code=status.HTTP_201_CREATED
)
def create_saved_search(
    search_data: SavedSearchCreate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    service = ProfileService(db)
    return service.create_saved_search(search_data, actor)


@router.delete("/saved-searches/{search_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_saved_search(
    search_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    service = ProfileService(db)
    service.delete_saved_search(search_id, actor)
