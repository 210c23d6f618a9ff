from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from wealthmap.database import get_db
from wealthmap.dependencies import (
    get_company_policy,
    get_current_actor,
    get_policy_evaluator,
    get_property_filters,
)
from wealthmap.models.actor import Actor
from wealthmap.models.company_policy import CompanyPolicy
from wealthmap.policy.evaluator import PolicyEvaluator
from wealthmap.schemas.property_schemas import (
    PropertyDetailResponse,
    PropertyFilters,
    PropertyListResponse,
    PropertyStatsResponse,
    TransactionResponse,
)
from wealthmap.services.property_service import PropertyService

router = APIRouter()


@router.get("", response_model=PropertyListResponse)
def list_properties(
    filters: PropertyFilters = Depends(get_property_filters),
    include_owner_info: bool = Query(True),
    include_wealth_data: bool = Query(True),
    limit: int = Query(10, ge=1, le=100, description="Max results"),
    offset: int = Query(0, ge=0, description="Skip N results"),
    actor: Actor = Depends(get_current_actor),
    policy: CompanyPolicy = Depends(get_company_policy),
    evaluator: PolicyEvaluator = Depends(get_policy_evaluator),
    db: Session = Depends(get_db),
):
    """
    List properties visible under the company's data-access policy.

    - Filters outside the policy are narrowed, not rejected
    - Wealth data the caller may not see is left out and listed in omitted_fields
    - Sorted by estimated value, highest first
    """
    service = PropertyService(db, evaluator)
    raw = filters.to_raw_query(
        include_owner_info=include_owner_info, include_wealth_data=include_wealth_data
    )
    return service.list_properties(raw, actor, policy, limit=limit, offset=offset)


@router.get("/by-location", response_model=PropertyListResponse)
def properties_by_location(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    radius: float = Query(5.0, gt=0, le=500, description="Radius in kilometres"),
    filters: PropertyFilters = Depends(get_property_filters),
    include_owner_info: bool = Query(True),
    include_wealth_data: bool = Query(True),
    limit: int = Query(50, ge=1, le=500, description="Max results"),
    actor: Actor = Depends(get_current_actor),
    policy: CompanyPolicy = Depends(get_company_policy),
    evaluator: PolicyEvaluator = Depends(get_policy_evaluator),
    db: Session = Depends(get_db),
):
    """Visible properties within a radius of a point, nearest first."""
    service = PropertyService(db, evaluator)
    raw = filters.to_raw_query(
        include_owner_info=include_owner_info, include_wealth_data=include_wealth_data
    )
    return service.by_location(latitude, longitude, radius, raw, actor, policy, limit=limit)


@router.get("/stats", response_model=PropertyStatsResponse)
def property_stats(
    filters: PropertyFilters = Depends(get_property_filters),
    actor: Actor = Depends(get_current_actor),
    policy: CompanyPolicy = Depends(get_company_policy),
    evaluator: PolicyEvaluator = Depends(get_policy_evaluator),
    db: Session = Depends(get_db),
):
    """
    Counts by type and state, average estimated value and value ranges.

    Aggregates only over properties visible under the company's policy.
    """
    service = PropertyService(db, evaluator)
    return service.stats(filters.to_raw_query(include_owner_info=False), actor, policy)


@router.get("/{property_id}", response_model=PropertyDetailResponse)
def get_property(
    property_id: int,
    include_owner_info: bool = Query(True),
    include_wealth_data: bool = Query(True),
    include_transactions: bool = Query(False),
    actor: Actor = Depends(get_current_actor),
    policy: CompanyPolicy = Depends(get_company_policy),
    evaluator: PolicyEvaluator = Depends(get_policy_evaluator),
    db: Session = Depends(get_db),
):
    """
    Property details.

    - 404 if the property does not exist or is outside the company's policy
    - Transactions are included only with ownership history access
    """
    service = PropertyService(db, evaluator)
    raw = PropertyFilters().to_raw_query(
        include_owner_info=include_owner_info,
        include_wealth_data=include_wealth_data,
        include_transactions=include_transactions,
    )
    return service.get_property(property_id, raw, actor, policy)


@router.get("/{property_id}/transactions", response_model=list[TransactionResponse])
def get_property_transactions(
    property_id: int,
    actor: Actor = Depends(get_current_actor),
    policy: CompanyPolicy = Depends(get_company_policy),
    evaluator: PolicyEvaluator = Depends(get_policy_evaluator),
    db: Session = Depends(get_db),
):
    """
    Ownership history of a property, newest first.

    - **Requires the view_ownership_history permission**
    """
    service = PropertyService(db, evaluator)
    return service.get_transactions(property_id, actor, policy)
