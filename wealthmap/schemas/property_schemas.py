import datetime
from enum import Enum
from pydantic import BaseModel, Field

from wealthmap.models.owner import OwnerType
from wealthmap.models.property import PropertyType, TransactionType
from wealthmap.policy.scope import RawQuery


class PropertyFilters(BaseModel):
    """
    User-supplied property filters.

    Always passed through the data scope filter before reaching a query, so
    values outside the company's policy are narrowed, not rejected.
    """

    property_types: list[PropertyType] | None = None
    property_sub_type: str | None = Field(None, max_length=50)
    min_value: float | None = Field(None, ge=0)
    max_value: float | None = Field(None, ge=0)
    min_net_worth: float | None = Field(None, ge=0)
    max_net_worth: float | None = Field(None, ge=0)
    min_size: float | None = Field(None, ge=0)
    max_size: float | None = Field(None, ge=0)
    year_built_min: int | None = Field(None, ge=1600, le=2100)
    year_built_max: int | None = Field(None, ge=1600, le=2100)
    state: str | None = Field(None, max_length=50)
    city: str | None = Field(None, max_length=100)
    zip_code: str | None = Field(None, max_length=20)
    country: str | None = Field(None, max_length=100)
    owner_type: OwnerType | None = None

    def to_raw_query(
        self,
        text: str | None = None,
        include_owner_info: bool = True,
        include_wealth_data: bool = True,
        include_transactions: bool = False,
    ) -> RawQuery:
        return RawQuery(
            property_types=(
                frozenset(t.value for t in self.property_types) if self.property_types else None
            ),
            property_sub_type=self.property_sub_type,
            min_value=self.min_value,
            max_value=self.max_value,
            min_net_worth=self.min_net_worth,
            max_net_worth=self.max_net_worth,
            min_size=self.min_size,
            max_size=self.max_size,
            year_built_min=self.year_built_min,
            year_built_max=self.year_built_max,
            state=self.state,
            city=self.city,
            zip_code=self.zip_code,
            country=self.country,
            owner_type=self.owner_type.value if self.owner_type else None,
            text=text.strip() if text and text.strip() else None,
            include_owner_info=include_owner_info,
            include_wealth_data=include_wealth_data,
            include_transactions=include_transactions,
        )


class OwnerResponse(BaseModel):
    """Owner record; wealth fields are null when the caller may not see them"""

    id: int
    owner_type: OwnerType
    name: str
    city: str | None = None
    state: str | None = None
    estimated_net_worth: float | None = None
    wealth_confidence: int | None = None
    wealth_tier: str | None = None
    income_estimate: float | None = None


class PropertyOwnerResponse(BaseModel):
    ownership_percentage: float
    start_date: datetime.date | None = None
    owner: OwnerResponse


class TransactionResponse(BaseModel):
    id: int
    transaction_type: TransactionType
    date: datetime.date | None = None
    price: float | None = None
    seller: str | None = None
    buyer: str | None = None
    document_number: str | None = None

    model_config = {"from_attributes": True}


class PropertyResponse(BaseModel):
    id: int
    street: str
    city: str
    state: str
    zip_code: str
    country: str
    formatted_address: str | None = None
    latitude: float
    longitude: float
    property_type: PropertyType
    property_sub_type: str | None = None
    building_size: float
    lot_size: float
    units: int
    bedrooms: int
    bathrooms: float
    estimated_value: float
    assessed_value: float
    last_sale_price: float
    last_sale_date: datetime.date | None = None
    year_built: int | None = None
    description: str | None = None
    owners: list[PropertyOwnerResponse] | None = None
    transactions: list[TransactionResponse] | None = None
    distance_km: float | None = None


class PropertyListResponse(BaseModel):
    properties: list[PropertyResponse]
    total: int
    omitted_fields: list[str] = Field(default_factory=list)


class PropertyDetailResponse(PropertyResponse):
    omitted_fields: list[str] = Field(default_factory=list)


class OwnerDetailResponse(OwnerResponse):
    property_count: int
    omitted_fields: list[str] = Field(default_factory=list)


class OwnerListResponse(BaseModel):
    owners: list[OwnerResponse]
    total: int
    omitted_fields: list[str] = Field(default_factory=list)


class ValueRange(BaseModel):
    """Estimated-value bucket; max is exclusive and null for the open-ended top range"""

    min: float
    max: float | None = None
    count: int


class PropertyStatsResponse(BaseModel):
    total: int
    average_value: float
    by_type: dict[str, int]
    by_state: dict[str, int]
    value_ranges: list[ValueRange]


class SuggestionType(str, Enum):
    ALL = "all"
    PROPERTY = "property"
    OWNER = "owner"
    CITY = "city"


class Suggestion(BaseModel):
    type: SuggestionType
    text: str
    id: int | None = None
    owner_type: OwnerType | None = None
