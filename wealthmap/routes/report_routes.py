from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from wealthmap.database import get_db
from wealthmap.dependencies import (
    get_activity_recorder,
    get_company_policy,
    get_current_actor,
    get_policy_evaluator,
)
from wealthmap.models.actor import Actor
from wealthmap.models.company_policy import CompanyPolicy
from wealthmap.policy.evaluator import PolicyEvaluator
from wealthmap.schemas.report_schemas import (
    ExportHistoryResponse,
    OwnerReportRequest,
    OwnerReportResponse,
    PropertyReportRequest,
    PropertyReportResponse,
    ReportFormat,
    WealthAnalysisRequest,
    WealthAnalysisResponse,
)
from wealthmap.services.activity_recorder import ActivityRecorder
from wealthmap.services.report_service import ReportService

router = APIRouter()


def _csv_response(report: dict, name: str) -> Response:
    filename = f"{name}-{report['generated_at']:%Y%m%d%H%M%S}.csv"
    return Response(
        content=report["content"],
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "X-Exports-Remaining": str(report["exports_remaining"]),
        },
    )


@router.post(
    "/property",
    response_model=PropertyReportResponse,
    responses={200: {"content": {"text/csv": {}}}},
)
def generate_property_report(
    report_request: PropertyReportRequest,
    actor: Actor = Depends(get_current_actor),
    policy: CompanyPolicy = Depends(get_company_policy),
    evaluator: PolicyEvaluator = Depends(get_policy_evaluator),
    recorder: ActivityRecorder = Depends(get_activity_recorder),
    db: Session = Depends(get_db),
):
    """
    Export properties as JSON or CSV.

    - **Requires the export_data permission** (company export_enabled)
    - Counts against the company's max_exports_per_month
    - Rows and columns are narrowed by the data-access policy
    """
    service = ReportService(db, evaluator, recorder)
    report = service.generate_property_report(report_request, actor, policy)
    if report_request.format == ReportFormat.CSV:
        return _csv_response(report, "property-report")
    return report


@router.post(
    "/owner",
    response_model=OwnerReportResponse,
    responses={200: {"content": {"text/csv": {}}}},
)
def generate_owner_report(
    report_request: OwnerReportRequest,
    actor: Actor = Depends(get_current_actor),
    policy: CompanyPolicy = Depends(get_company_policy),
    evaluator: PolicyEvaluator = Depends(get_policy_evaluator),
    recorder: ActivityRecorder = Depends(get_activity_recorder),
    db: Session = Depends(get_db),
):
    """
    Export one owner and the visible properties they currently own.

    - **Requires export_data and view_wealth_data**
    - 404 if the owner owns nothing the company can see
    """
    service = ReportService(db, evaluator, recorder)
    report = service.generate_owner_report(report_request, actor, policy)
    if report_request.format == ReportFormat.CSV:
        return _csv_response(report, "owner-report")
    return report


@router.post(
    "/wealth-analysis",
    response_model=WealthAnalysisResponse,
    responses={200: {"content": {"text/csv": {}}}},
)
def generate_wealth_analysis(
    report_request: WealthAnalysisRequest,
    actor: Actor = Depends(get_current_actor),
    policy: CompanyPolicy = Depends(get_company_policy),
    evaluator: PolicyEvaluator = Depends(get_policy_evaluator),
    recorder: ActivityRecorder = Depends(get_activity_recorder),
    db: Session = Depends(get_db),
):
    """
    Net-worth statistics and tier distribution of owners.

    - **Requires export_data and view_wealth_data**
    - Only owners of properties visible to the company are analysed
    - CSV returns the owner rows; statistics are JSON only
    """
    service = ReportService(db, evaluator, recorder)
    report = service.generate_wealth_analysis(report_request, actor, policy)
    if report_request.format == ReportFormat.CSV:
        return _csv_response(report, "wealth-analysis")
    return report


@router.get("/export-history", response_model=ExportHistoryResponse)
def export_history(
    limit: int = Query(50, ge=1, le=500, description="Max results"),
    offset: int = Query(0, ge=0, description="Skip N results"),
    actor: Actor = Depends(get_current_actor),
    policy: CompanyPolicy = Depends(get_company_policy),
    evaluator: PolicyEvaluator = Depends(get_policy_evaluator),
    db: Session = Depends(get_db),
):
    """
    Past exports, newest first.

    Admins see the whole company's exports, everyone else their own.
    """
    service = ReportService(db, evaluator)
    exports, total = service.export_history(actor, policy, limit=limit, offset=offset)
    return {
        "exports": exports,
        "total": total,
        "exports_this_month": service.exports_this_month(actor.company_id),
        "max_exports_per_month": policy.max_exports_per_month,
    }
