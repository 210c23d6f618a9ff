from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field

from wealthmap.models.owner import OwnerType
from wealthmap.schemas.property_schemas import OwnerResponse, PropertyFilters, PropertyResponse


class ReportFormat(str, Enum):
    JSON = "json"
    CSV = "csv"


class PropertyReportRequest(BaseModel):
    """
    Export a set of properties.

    Either explicit property_ids or filters select the rows; both are
    narrowed by the company's data-access policy.
    """

    property_ids: list[int] | None = Field(None, max_length=1000)
    filters: PropertyFilters = Field(default_factory=PropertyFilters)
    format: ReportFormat = ReportFormat.JSON
    include_owner_info: bool = True
    include_wealth_data: bool = True
    include_transactions: bool = False


class PropertyReportResponse(BaseModel):
    generated_at: datetime
    count: int
    properties: list[PropertyResponse]
    omitted_fields: list[str] = Field(default_factory=list)
    exports_remaining: int


class OwnerReportRequest(BaseModel):
    """Export one owner, with their currently owned visible properties"""

    owner_id: int
    format: ReportFormat = ReportFormat.JSON
    include_properties: bool = True


class OwnerReportResponse(BaseModel):
    generated_at: datetime
    owner: OwnerResponse
    properties: list[PropertyResponse]
    exports_remaining: int


class WealthAnalysisFilters(BaseModel):
    wealth_tier: str | None = Field(None, max_length=50)
    min_net_worth: float | None = Field(None, ge=0)
    max_net_worth: float | None = Field(None, ge=0)
    owner_type: OwnerType | None = None
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=50)


class WealthAnalysisRequest(BaseModel):
    filters: WealthAnalysisFilters = Field(default_factory=WealthAnalysisFilters)
    format: ReportFormat = ReportFormat.JSON


class WealthStatistics(BaseModel):
    total_owners: int
    total_net_worth: float
    average_net_worth: float
    median_net_worth: float
    tier_distribution: dict[str, int]
    owner_type_distribution: dict[str, int]


class WealthAnalysisResponse(BaseModel):
    generated_at: datetime
    filters: WealthAnalysisFilters
    statistics: WealthStatistics
    owners: list[OwnerResponse]
    exports_remaining: int


class ExportRecord(BaseModel):
    id: int
    user_id: int
    details: dict
    created_at: datetime

    model_config = {"from_attributes": True}


class ExportHistoryResponse(BaseModel):
    exports: list[ExportRecord]
    total: int
    exports_this_month: int
    max_exports_per_month: int
