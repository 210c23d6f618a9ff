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
    OwnerListResponse,
    PropertyFilters,
    PropertyListResponse,
    Suggestion,
    SuggestionType,
)
from wealthmap.services.search_service import SearchService

router = APIRouter()


@router.get("/properties", response_model=PropertyListResponse)
def search_properties(
    query: str | None = Query(None, max_length=255, description="Address or description text"),
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
    """Text search over property addresses and descriptions (partial, case-insensitive)."""
    service = SearchService(db, evaluator)
    raw = filters.to_raw_query(
        text=query,
        include_owner_info=include_owner_info,
        include_wealth_data=include_wealth_data,
    )
    return service.search_properties(raw, actor, policy, limit=limit, offset=offset)


@router.get("/owners", response_model=OwnerListResponse)
def search_owners(
    query: str | None = Query(None, max_length=255, description="Owner name or location"),
    filters: PropertyFilters = Depends(get_property_filters),
    include_wealth_data: bool = Query(True),
    limit: int = Query(10, ge=1, le=100, description="Max results"),
    offset: int = Query(0, ge=0, description="Skip N results"),
    actor: Actor = Depends(get_current_actor),
    policy: CompanyPolicy = Depends(get_company_policy),
    evaluator: PolicyEvaluator = Depends(get_policy_evaluator),
    db: Session = Depends(get_db),
):
    """
    Search owners of properties visible to the company.

    - Net-worth filters apply only with wealth data access
    """
    service = SearchService(db, evaluator)
    raw = filters.to_raw_query(text=query, include_wealth_data=include_wealth_data)
    return service.search_owners(raw, actor, policy, limit=limit, offset=offset)


@router.get("/autocomplete", response_model=list[Suggestion])
def autocomplete(
    query: str | None = Query(None, max_length=255, description="Partial text, 2+ characters"),
    type: SuggestionType = Query(SuggestionType.ALL, description="property, owner, city or all"),
    actor: Actor = Depends(get_current_actor),
    policy: CompanyPolicy = Depends(get_company_policy),
    evaluator: PolicyEvaluator = Depends(get_policy_evaluator),
    db: Session = Depends(get_db),
):
    """
    Search-box suggestions.

    - Fewer than 2 characters returns an empty list
    - Only properties, owners and cities visible to the company are suggested
    """
    service = SearchService(db, evaluator)
    return service.autocomplete(query, type, actor, policy)
