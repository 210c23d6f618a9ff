from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from wealthmap.database import get_db
from wealthmap.dependencies import get_company_policy, get_current_actor, get_policy_evaluator
from wealthmap.models.actor import Actor
from wealthmap.models.company_policy import CompanyPolicy
from wealthmap.policy.evaluator import PolicyEvaluator
from wealthmap.schemas.company_schemas import (
    ActivityListResponse,
    CompanyResponse,
    CompanyUpdate,
    DataAccessSettings,
    DataAccessUpdate,
    EmployeeResponse,
    EmployeeUpdate,
    UsageStats,
)
from wealthmap.services.company_service import CompanyService

router = APIRouter()


@router.get("/me", response_model=CompanyResponse)
def get_company(
    actor: Actor = Depends(get_current_actor),
    evaluator: PolicyEvaluator = Depends(get_policy_evaluator),
    db: Session = Depends(get_db),
):
    """Current user's company profile. Available to all members."""
    service = CompanyService(db, evaluator)
    return service.get_company(actor)


@router.patch("/me", response_model=CompanyResponse)
def update_company(
    company_update: CompanyUpdate,
    actor: Actor = Depends(get_current_actor),
    policy: CompanyPolicy = Depends(get_company_policy),
    evaluator: PolicyEvaluator = Depends(get_policy_evaluator),
    db: Session = Depends(get_db),
):
    """
    Update company profile.

    - **Requires ADMIN role**
    """
    service = CompanyService(db, evaluator)
    return service.update_company(company_update, actor, policy)


@router.get("/me/data-access", response_model=DataAccessSettings)
def get_data_access(
    actor: Actor = Depends(get_current_actor),
    evaluator: PolicyEvaluator = Depends(get_policy_evaluator),
    db: Session = Depends(get_db),
):
    """Company data-access policy. Readable by all members."""
    service = CompanyService(db, evaluator)
    return service.get_data_access(actor)


@router.put("/me/data-access", response_model=DataAccessSettings)
def update_data_access(
    data_access: DataAccessUpdate,
    actor: Actor = Depends(get_current_actor),
    policy: CompanyPolicy = Depends(get_company_policy),
    evaluator: PolicyEvaluator = Depends(get_policy_evaluator),
    db: Session = Depends(get_db),
):
    """
    Update the company data-access policy.

    - **Requires ADMIN role**
    - Omitted fields are left unchanged
    """
    service = CompanyService(db, evaluator)
    return service.update_data_access(data_access, actor, policy)


@router.get("/me/employees", response_model=list[EmployeeResponse])
def list_employees(
    actor: Actor = Depends(get_current_actor),
    policy: CompanyPolicy = Depends(get_company_policy),
    evaluator: PolicyEvaluator = Depends(get_policy_evaluator),
    db: Session = Depends(get_db),
):
    """
    List company employees.

    - **Requires ADMIN or MANAGER role**
    """
    service = CompanyService(db, evaluator)
    return service.list_employees(actor, policy)


@router.patch("/me/employees/{user_id}", response_model=EmployeeResponse)
def update_employee(
    user_id: int,
    employee_update: EmployeeUpdate,
    actor: Actor = Depends(get_current_actor),
    policy: CompanyPolicy = Depends(get_company_policy),
    evaluator: PolicyEvaluator = Depends(get_policy_evaluator),
    db: Session = Depends(get_db),
):
    """
    Change an employee's role, status or permission overrides.

    - **Requires ADMIN role**
    - Admins cannot demote or deactivate themselves
    - Users of other companies are forbidden
    """
    service = CompanyService(db, evaluator)
    return service.update_employee(user_id, employee_update, actor, policy)


@router.get("/me/usage-stats", response_model=UsageStats)
def usage_stats(
    actor: Actor = Depends(get_current_actor),
    policy: CompanyPolicy = Depends(get_company_policy),
    evaluator: PolicyEvaluator = Depends(get_policy_evaluator),
    db: Session = Depends(get_db),
):
    """
    Usage statistics for the company.

    - **Requires ADMIN role**
    """
    service = CompanyService(db, evaluator)
    return service.usage_stats(actor, policy)


@router.get("/me/activity", response_model=ActivityListResponse)
def list_activity(
    action: str | None = Query(None, description="Filter by action"),
    user_id: int | None = Query(None, description="Filter by user"),
    limit: int = Query(100, ge=1, le=1000, description="Max results"),
    offset: int = Query(0, ge=0, description="Skip N results"),
    actor: Actor = Depends(get_current_actor),
    policy: CompanyPolicy = Depends(get_company_policy),
    evaluator: PolicyEvaluator = Depends(get_policy_evaluator),
    db: Session = Depends(get_db),
):
    """
    Company activity log, newest first.

    - **Requires ADMIN role**
    """
    service = CompanyService(db, evaluator)
    activities, total = service.activity(
        actor, policy, action=action, user_id=user_id, limit=limit, offset=offset
    )
    return {"activities": activities, "total": total}
