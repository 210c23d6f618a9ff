from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from wealthmap.database import get_db
from wealthmap.dependencies import get_company_policy, get_current_actor, get_policy_evaluator
from wealthmap.models.actor import Actor
from wealthmap.models.company_policy import CompanyPolicy
from wealthmap.policy.evaluator import PolicyEvaluator
from wealthmap.schemas.property_schemas import (
    OwnerDetailResponse,
    PropertyFilters,
    PropertyListResponse,
)
from wealthmap.services.property_service import PropertyService

router = APIRouter()


@router.get("/{owner_id}", response_model=OwnerDetailResponse)
def get_owner(
    owner_id: int,
    include_wealth_data: bool = Query(True),
    actor: Actor = Depends(get_current_actor),
    policy: CompanyPolicy = Depends(get_company_policy),
    evaluator: PolicyEvaluator = Depends(get_policy_evaluator),
    db: Session = Depends(get_db),
):
    """
    Owner details.

    - 404 unless the owner holds at least one property visible to the company
    - Wealth fields are null without wealth data access
    """
    service = PropertyService(db, evaluator)
    return service.get_owner(owner_id, actor, policy, include_wealth_data=include_wealth_data)


@router.get("/{owner_id}/properties", response_model=PropertyListResponse)
def get_owner_properties(
    owner_id: int,
    include_wealth_data: bool = Query(True),
    actor: Actor = Depends(get_current_actor),
    policy: CompanyPolicy = Depends(get_company_policy),
    evaluator: PolicyEvaluator = Depends(get_policy_evaluator),
    db: Session = Depends(get_db),
):
    """Properties currently held by the owner that the company can see."""
    service = PropertyService(db, evaluator)
    raw = PropertyFilters().to_raw_query(include_wealth_data=include_wealth_data)
    return service.get_owner_properties(owner_id, raw, actor, policy)
