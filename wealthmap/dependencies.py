from fastapi import Depends, Query, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session, sessionmaker

from wealthmap.core.exceptions import NotFoundException
from wealthmap.database import get_db, get_session_factory
from wealthmap.models.actor import Actor
from wealthmap.models.company_policy import CompanyPolicy
from wealthmap.models.owner import OwnerType
from wealthmap.models.property import PropertyType
from wealthmap.models.user import User
from wealthmap.policy.evaluator import PolicyEvaluator
from wealthmap.repositories.company_repository import CompanyRepository
from wealthmap.repositories.user_repository import UserRepository
from wealthmap.schemas.property_schemas import PropertyFilters
from wealthmap.services.activity_recorder import ActivityRecorder
from wealthmap.services.actor_resolver import ActorResolver

# auto_error=False so a missing header surfaces as our 401, not FastAPI's 403
security = HTTPBearer(auto_error=False)


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> Actor:
    """
    FastAPI dependency resolving the bearer token into an Actor.

    Flow:
    1. Extract token from Authorization: Bearer <token>
    2. Validate JWT using SECRET_KEY
    3. Load user and company, reject inactive accounts and stale tokens
    4. Return the immutable Actor for use in endpoints

    Raises:
        UnauthorizedException: Missing, invalid or stale token (401)
        AccountDeactivatedException: Inactive user or company (403)
    """
    token = credentials.credentials if credentials else None
    return ActorResolver(db).resolve(token)


async def get_current_user(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> User:
    """The actor's User row, for endpoints acting on the user's own record."""
    user = UserRepository(db).get_by_id(actor.user_id)
    if user is None:
        raise NotFoundException("User not found")
    return user


async def get_company_policy(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> CompanyPolicy:
    company = CompanyRepository(db).get_by_id(actor.company_id)
    if company is None:
        raise NotFoundException("Company not found")
    return CompanyPolicy.from_company(company)


async def get_activity_recorder(
    request: Request,
    session_factory: sessionmaker = Depends(get_session_factory),
) -> ActivityRecorder:
    return ActivityRecorder(
        session_factory,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


async def get_policy_evaluator(
    recorder: ActivityRecorder = Depends(get_activity_recorder),
) -> PolicyEvaluator:
    return PolicyEvaluator(recorder)


async def get_property_filters(
    property_type: list[PropertyType] | None = Query(None, description="Repeat to pass several"),
    property_sub_type: str | None = Query(None, max_length=50),
    min_value: float | None = Query(None, ge=0),
    max_value: float | None = Query(None, ge=0),
    min_net_worth: float | None = Query(None, ge=0),
    max_net_worth: float | None = Query(None, ge=0),
    min_size: float | None = Query(None, ge=0),
    max_size: float | None = Query(None, ge=0),
    year_built_min: int | None = Query(None, ge=1600, le=2100),
    year_built_max: int | None = Query(None, ge=1600, le=2100),
    state: str | None = Query(None, max_length=50),
    city: str | None = Query(None, max_length=100),
    zip_code: str | None = Query(None, max_length=20),
    country: str | None = Query(None, max_length=100),
    owner_type: OwnerType | None = Query(None),
) -> PropertyFilters:
    """Property filters from query parameters."""
    return PropertyFilters(
        property_types=property_type,
        property_sub_type=property_sub_type,
        min_value=min_value,
        max_value=max_value,
        min_net_worth=min_net_worth,
        max_net_worth=max_net_worth,
        min_size=min_size,
        max_size=max_size,
        year_built_min=year_built_min,
        year_built_max=year_built_max,
        state=state,
        city=city,
        zip_code=zip_code,
        country=country,
        owner_type=owner_type,
    )
