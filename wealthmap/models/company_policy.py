"""Immutable snapshot of a company's data-access policy."""

from dataclasses import dataclass
from wealthmap.models.company import Company


@dataclass(frozen=True)
class GeoRestriction:
    """
    Allowlists of states, countries and zip codes.

    An empty allowlist means that dimension is unrestricted.
    """

    states: frozenset[str] = frozenset()
    countries: frozenset[str] = frozenset()
    zip_codes: frozenset[str] = frozenset()

    @classmethod
    def from_dict(cls, raw: dict | None) -> "GeoRestriction | None":
        if not raw:
            return None
        restriction = cls(
            states=frozenset(s.upper() for s in raw.get("states") or []),
            countries=frozenset(c.upper() for c in raw.get("countries") or []),
            zip_codes=frozenset(raw.get("zip_codes") or []),
        )
        return restriction if not restriction.is_empty() else None

    def is_empty(self) -> bool:
        return not (self.states or self.countries or self.zip_codes)


@dataclass(frozen=True)
class CompanyPolicy:
    """
    Tenant-level configuration governing data visibility and export limits.

    Built once per request from the Company row and handed to the policy
    evaluator and data scope filter, which never read the database themselves.
    """

    company_id: int
    is_active: bool = True
    allowed_property_types: frozenset[str] = frozenset()
    wealth_data_access: bool = True
    ownership_history_access: bool = True
    export_enabled: bool = True
    max_exports_per_month: int = 100
    min_value_threshold: float | None = None
    max_value_threshold: float | None = None
    geographic_restrictions: GeoRestriction | None = None
    invitation_expire_days: int = 7
    require_mfa: bool = False

    @classmethod
    def from_company(cls, company: Company) -> "CompanyPolicy":
        return cls(
            company_id=company.id,
            is_active=company.is_active,
            allowed_property_types=frozenset(company.allowed_property_types or []),
            wealth_data_access=company.wealth_data_access,
            ownership_history_access=company.ownership_history_access,
            export_enabled=company.export_enabled,
            max_exports_per_month=company.max_exports_per_month,
            min_value_threshold=company.min_value_threshold,
            max_value_threshold=company.max_value_threshold,
            geographic_restrictions=GeoRestriction.from_dict(company.geographic_restrictions),
            invitation_expire_days=company.invitation_expire_days,
            require_mfa=company.require_mfa,
        )
