import csv
import io
import logging
from collections import Counter
from statistics import mean, median

from sqlalchemy.orm import Session

from wealthmap.core.clock import utcnow
from wealthmap.core.exceptions import ForbiddenException, NotFoundException
from wealthmap.models.activity_log import ActivityLog, ActivityType
from wealthmap.models.actor import Actor
from wealthmap.models.company_policy import CompanyPolicy
from wealthmap.models.owner import WEALTH_FIELDS, Owner
from wealthmap.policy.actions import Action, ActionKind
from wealthmap.policy.evaluator import PolicyEvaluator
from wealthmap.policy.scope import RawQuery, scope
from wealthmap.repositories.activity_log_repository import ActivityLogRepository
from wealthmap.repositories.owner_repository import OwnerRepository
from wealthmap.repositories.property_repository import PropertyRepository
from wealthmap.schemas.report_schemas import (
    OwnerReportRequest,
    PropertyReportRequest,
    ReportFormat,
    WealthAnalysisRequest,
)
from wealthmap.services.activity_recorder import ActivityRecorder
from wealthmap.services.company_service import month_start
from wealthmap.services.property_service import serialize_owner, serialize_property

logger = logging.getLogger(__name__)

MAX_REPORT_ROWS = 1000

_CSV_COLUMNS = (
    "id",
    "street",
    "city",
    "state",
    "zip_code",
    "country",
    "property_type",
    "property_sub_type",
    "building_size",
    "lot_size",
    "bedrooms",
    "bathrooms",
    "year_built",
    "estimated_value",
    "assessed_value",
    "last_sale_price",
    "last_sale_date",
)

_OWNER_CSV_COLUMNS = ("id", "name", "owner_type", "city", "state") + WEALTH_FIELDS


def _csv_value(value) -> str:
    if value is None:
        return ""
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)


def render_csv(rows: list[dict], include_owners: bool, include_wealth: bool) -> str:
    """One line per property; multiple owners are joined with '; '."""
    header = list(_CSV_COLUMNS)
    if include_owners:
        header += ["owner_names", "owner_types"]
        if include_wealth:
            header += [f"owner_{name}" for name in WEALTH_FIELDS]

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(header)
    for row in rows:
        line = [_csv_value(row.get(column)) for column in _CSV_COLUMNS]
        if include_owners:
            owners = [entry["owner"] for entry in row.get("owners", [])]
            line.append("; ".join(owner["name"] for owner in owners))
            line.append("; ".join(_csv_value(owner["owner_type"]) for owner in owners))
            if include_wealth:
                for name in WEALTH_FIELDS:
                    line.append("; ".join(_csv_value(owner.get(name)) for owner in owners))
        writer.writerow(line)
    return buffer.getvalue()


def render_owner_csv(owner: dict, properties: list[dict]) -> str:
    """Owner columns repeated on every property line; one owner-only line when there are none."""
    header = [f"owner_{name}" for name in _OWNER_CSV_COLUMNS]
    header += [f"property_{name}" for name in _CSV_COLUMNS]

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(header)
    owner_line = [_csv_value(owner.get(name)) for name in _OWNER_CSV_COLUMNS]
    for row in properties or [{}]:
        writer.writerow(owner_line + [_csv_value(row.get(column)) for column in _CSV_COLUMNS])
    return buffer.getvalue()


def render_owners_csv(owners: list[dict]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(_OWNER_CSV_COLUMNS)
    for owner in owners:
        writer.writerow([_csv_value(owner.get(name)) for name in _OWNER_CSV_COLUMNS])
    return buffer.getvalue()


def wealth_statistics(owners: list[Owner]) -> dict:
    """
    Net-worth summary with tier and owner-type distributions.

    Owners without a tier count as unknown; owners without a net worth are
    left out of the net-worth figures.
    """
    net_worths = [
        owner.estimated_net_worth for owner in owners if owner.estimated_net_worth is not None
    ]
    return {
        "total_owners": len(owners),
        "total_net_worth": float(sum(net_worths)),
        "average_net_worth": float(mean(net_worths)) if net_worths else 0.0,
        "median_net_worth": float(median(net_worths)) if net_worths else 0.0,
        "tier_distribution": dict(Counter(owner.wealth_tier or "unknown" for owner in owners)),
        "owner_type_distribution": dict(Counter(owner.owner_type.value for owner in owners)),
    }


class ReportService:
    """
    Property, owner and wealth exports.

    Every report counts against the company's monthly export quota and is
    recorded as a property_export activity with its report_type.
    """

    def __init__(
        self,
        db: Session,
        evaluator: PolicyEvaluator,
        recorder: ActivityRecorder | None = None,
    ):
        self.db = db
        self.evaluator = evaluator
        self.recorder = recorder
        self.property_repo = PropertyRepository(db)
        self.owner_repo = OwnerRepository(db)
        self.activity_repo = ActivityLogRepository(db)

    def exports_this_month(self, company_id: int) -> int:
        return self.activity_repo.count_actions(
            company_id, ActivityType.PROPERTY_EXPORT.value, since=month_start()
        )

    def _authorize_export(
        self,
        actor: Actor,
        policy: CompanyPolicy,
        report_type: str,
        report_format: ReportFormat,
        needs_wealth_data: bool = False,
    ) -> int:
        """
        Check permissions and quota for one export.

        Returns:
            Exports remaining after this one

        Raises:
            ForbiddenException: Export or wealth data not permitted, or quota reached
        """
        self.evaluator.require(
            actor,
            Action(ActionKind.EXPORT_DATA, actor.company_id, "report"),
            policy,
            details={"format": report_format.value, "report_type": report_type},
        )
        if needs_wealth_data:
            self.evaluator.require(
                actor,
                Action(ActionKind.VIEW_WEALTH_DATA, actor.company_id, "report"),
                policy,
                details={"report_type": report_type},
            )

        used = self.exports_this_month(actor.company_id)
        if used >= policy.max_exports_per_month:
            logger.info("Export quota reached for company %s (%d)", actor.company_id, used)
            raise ForbiddenException(
                "Monthly export limit reached", reason="export_quota_exceeded"
            )
        return max(policy.max_exports_per_month - used - 1, 0)

    def _record_export(self, actor: Actor, details: dict) -> None:
        if self.recorder:
            self.recorder.record(
                actor.user_id, actor.company_id, ActivityType.PROPERTY_EXPORT.value, details
            )

    def generate_property_report(
        self, request: PropertyReportRequest, actor: Actor, policy: CompanyPolicy
    ) -> dict:
        """
        Build a property export.

        Returns:
            Dict with the serialized rows plus, for CSV, the rendered content

        Raises:
            ForbiddenException: Export not permitted or monthly quota reached
        """
        remaining = self._authorize_export(actor, policy, "property", request.format)

        raw = request.filters.to_raw_query(
            include_owner_info=request.include_owner_info,
            include_wealth_data=request.include_wealth_data,
            include_transactions=request.include_transactions,
        )
        scoped = scope(actor, policy, raw)
        if request.property_ids:
            properties = self.property_repo.find_by_ids(request.property_ids, scoped)
        else:
            properties, _ = self.property_repo.find(scoped, limit=MAX_REPORT_ROWS, offset=0)
        rows = [serialize_property(p, scoped) for p in properties]

        self._record_export(
            actor,
            {
                "report_type": "property",
                "format": request.format.value,
                "count": len(rows),
                "property_ids": [row["id"] for row in rows],
                "omitted_fields": list(scoped.omitted_fields),
            },
        )

        report = {
            "generated_at": utcnow(),
            "count": len(rows),
            "properties": rows,
            "omitted_fields": list(scoped.omitted_fields),
            "exports_remaining": remaining,
        }
        if request.format == ReportFormat.CSV:
            report["content"] = render_csv(
                rows, scoped.include_owner_info, scoped.include_wealth_data
            )
        return report

    def generate_owner_report(
        self, request: OwnerReportRequest, actor: Actor, policy: CompanyPolicy
    ) -> dict:
        """
        Export one owner with their wealth data.

        Raises:
            ForbiddenException: Export or wealth data not permitted, or quota reached
            NotFoundException: Owner unknown or not visible to the company
        """
        remaining = self._authorize_export(
            actor, policy, "owner", request.format, needs_wealth_data=True
        )

        # Property rows carry no owner block, the owner is reported once
        property_scope = scope(actor, policy, RawQuery(include_owner_info=False))
        owner = None
        if not property_scope.empty:
            owner = self.owner_repo.get_visible(
                request.owner_id, self.property_repo.visible_ids(property_scope)
            )
        if owner is None:
            raise NotFoundException(f"Owner {request.owner_id} not found")

        owner_data = serialize_owner(owner, scope(actor, policy, RawQuery()))
        properties = []
        if request.include_properties:
            properties = [
                serialize_property(p, property_scope)
                for p in self.property_repo.get_by_owner(owner.id, property_scope)
            ]

        self._record_export(
            actor,
            {
                "report_type": "owner",
                "format": request.format.value,
                "owner_id": owner.id,
                "count": len(properties),
                "property_ids": [row["id"] for row in properties],
            },
        )

        report = {
            "generated_at": utcnow(),
            "owner": owner_data,
            "properties": properties,
            "exports_remaining": remaining,
        }
        if request.format == ReportFormat.CSV:
            report["content"] = render_owner_csv(owner_data, properties)
        return report

    def generate_wealth_analysis(
        self, request: WealthAnalysisRequest, actor: Actor, policy: CompanyPolicy
    ) -> dict:
        """
        Wealth statistics over owners of properties the company can see.

        Net-worth bounds are clamped to the company's value thresholds.

        Raises:
            ForbiddenException: Export or wealth data not permitted, or quota reached
        """
        remaining = self._authorize_export(
            actor, policy, "wealth_analysis", request.format, needs_wealth_data=True
        )

        filters = request.filters
        scoped = scope(
            actor,
            policy,
            RawQuery(
                min_net_worth=filters.min_net_worth,
                max_net_worth=filters.max_net_worth,
                owner_type=filters.owner_type.value if filters.owner_type else None,
            ),
        )
        visibility = scope(actor, policy, RawQuery(include_owner_info=False))
        owners = []
        if not visibility.empty:
            owners = self.owner_repo.find_by_wealth(
                scoped,
                self.property_repo.visible_ids(visibility),
                wealth_tier=filters.wealth_tier,
                city=filters.city,
                state=filters.state,
                limit=MAX_REPORT_ROWS,
            )
        rows = [serialize_owner(owner, scoped) for owner in owners]

        self._record_export(
            actor,
            {
                "report_type": "wealth_analysis",
                "format": request.format.value,
                "count": len(rows),
                "owner_ids": [row["id"] for row in rows],
            },
        )

        report = {
            "generated_at": utcnow(),
            "filters": filters,
            "statistics": wealth_statistics(owners),
            "owners": rows,
            "exports_remaining": remaining,
        }
        if request.format == ReportFormat.CSV:
            report["content"] = render_owners_csv(rows)
        return report

    def export_history(
        self, actor: Actor, policy: CompanyPolicy, limit: int = 50, offset: int = 0
    ) -> tuple[list[ActivityLog], int]:
        """Admins see every export in the company, others only their own."""
        self.evaluator.require(
            actor, Action(ActionKind.EXPORT_DATA, actor.company_id, "report"), policy
        )
        return self.activity_repo.get_company_activity(
            actor.company_id,
            action=ActivityType.PROPERTY_EXPORT.value,
            user_id=None if actor.is_admin() else actor.user_id,
            limit=limit,
            offset=offset,
        )
