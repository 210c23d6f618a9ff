"""
Data scope filter.

Turns what a user asked for (RawQuery) into what the company policy lets them
see (ScopedQuery). Policy acts as a ceiling: user filters can narrow it but
never widen it. Nothing here raises; out-of-policy requests are either
narrowed, stripped (reported in omitted_fields) or marked empty.
"""

from dataclasses import dataclass, field

from wealthmap.models.actor import Actor
from wealthmap.models.company_policy import CompanyPolicy
from wealthmap.policy.permissions import Permission


@dataclass(frozen=True)
class RawQuery:
    property_types: frozenset[str] | None = None
    property_sub_type: str | None = None
    min_value: float | None = None
    max_value: float | None = None
    min_net_worth: float | None = None
    max_net_worth: float | None = None
    min_size: float | None = None
    max_size: float | None = None
    year_built_min: int | None = None
    year_built_max: int | None = None
    state: str | None = None
    city: str | None = None
    zip_code: str | None = None
    country: str | None = None
    owner_type: str | None = None
    text: str | None = None
    include_owner_info: bool = True
    include_wealth_data: bool = True
    include_transactions: bool = False


@dataclass(frozen=True)
class ScopedQuery:
    """
    A data request narrowed to company policy and actor permissions.

    None in a filter field means unrestricted. ``empty`` means the request
    falls outside the company's geographic partition and must yield no rows.
    """

    property_types: frozenset[str] | None = None
    property_sub_type: str | None = None
    min_value: float | None = None
    max_value: float | None = None
    min_net_worth: float | None = None
    max_net_worth: float | None = None
    min_size: float | None = None
    max_size: float | None = None
    year_built_min: int | None = None
    year_built_max: int | None = None
    states: frozenset[str] | None = None
    city: str | None = None
    zip_codes: frozenset[str] | None = None
    countries: frozenset[str] | None = None
    owner_type: str | None = None
    text: str | None = None
    include_owner_info: bool = True
    include_wealth_data: bool = False
    include_transactions: bool = False
    omitted_fields: tuple[str, ...] = field(default_factory=tuple)
    empty: bool = False


def _clamp(value: float | None, floor: float | None, ceiling: float | None) -> float | None:
    if value is None:
        return None
    if floor is not None:
        value = max(value, floor)
    if ceiling is not None:
        value = min(value, ceiling)
    return value


def clamp_range(
    low: float | None, high: float | None, floor: float | None, ceiling: float | None
) -> tuple[float | None, float | None]:
    """
    Clamp a user range into [floor, ceiling].

    Missing user bounds take the policy bound, so a policy ceiling always ends
    up in the scoped query.
    """
    low = _clamp(low, floor, ceiling) if low is not None else floor
    high = _clamp(high, floor, ceiling) if high is not None else ceiling
    return low, high


def _narrow_property_types(
    requested: frozenset[str] | None, allowed: frozenset[str]
) -> frozenset[str] | None:
    if not allowed:
        return requested or None
    if requested:
        intersection = requested & allowed
        if intersection:
            return intersection
    # Policy is a ceiling: out-of-policy requests fall back to the allowlist
    return allowed


def _narrow_dimension(
    requested: str | None, allowlist: frozenset[str], normalize=str.upper
) -> tuple[frozenset[str] | None, bool]:
    """Returns (effective allowlist, out_of_bounds)."""
    if requested:
        value = normalize(requested)
        if allowlist and value not in allowlist:
            return None, True
        return frozenset({value}), False
    return (allowlist or None), False


def scope(actor: Actor, policy: CompanyPolicy, raw: RawQuery) -> ScopedQuery:
    omitted: list[str] = []

    property_types = _narrow_property_types(raw.property_types, policy.allowed_property_types)

    # Wealth data
    wealth_allowed = policy.wealth_data_access and actor.has_permission(Permission.VIEW_WEALTH_DATA)
    include_wealth_data = raw.include_owner_info and raw.include_wealth_data and wealth_allowed
    min_net_worth, max_net_worth = raw.min_net_worth, raw.max_net_worth
    if not wealth_allowed:
        if raw.include_wealth_data and raw.include_owner_info:
            omitted.append("wealth_data")
        if min_net_worth is not None:
            omitted.append("min_net_worth")
        if max_net_worth is not None:
            omitted.append("max_net_worth")
        min_net_worth = max_net_worth = None
    elif min_net_worth is not None or max_net_worth is not None:
        min_net_worth, max_net_worth = clamp_range(
            min_net_worth, max_net_worth, policy.min_value_threshold, policy.max_value_threshold
        )

    # Ownership history
    history_allowed = policy.ownership_history_access and actor.has_permission(
        Permission.VIEW_OWNERSHIP_HISTORY
    )
    include_transactions = raw.include_transactions and history_allowed
    if raw.include_transactions and not history_allowed:
        omitted.append("transactions")

    min_value, max_value = clamp_range(
        raw.min_value, raw.max_value, policy.min_value_threshold, policy.max_value_threshold
    )

    # Geography
    geo = policy.geographic_restrictions
    states, state_out = _narrow_dimension(raw.state, geo.states if geo else frozenset())
    countries, country_out = _narrow_dimension(raw.country, geo.countries if geo else frozenset())
    zip_codes, zip_out = _narrow_dimension(
        raw.zip_code, geo.zip_codes if geo else frozenset(), normalize=str.strip
    )
    empty = state_out or country_out or zip_out
    # An inverted range after clamping can match nothing
    if min_value is not None and max_value is not None and min_value > max_value:
        empty = True

    return ScopedQuery(
        property_types=property_types,
        property_sub_type=raw.property_sub_type,
        min_value=min_value,
        max_value=max_value,
        min_net_worth=min_net_worth,
        max_net_worth=max_net_worth,
        min_size=raw.min_size,
        max_size=raw.max_size,
        year_built_min=raw.year_built_min,
        year_built_max=raw.year_built_max,
        states=states,
        city=raw.city,
        zip_codes=zip_codes,
        countries=countries,
        owner_type=raw.owner_type,
        text=raw.text,
        include_owner_info=raw.include_owner_info,
        include_wealth_data=include_wealth_data,
        include_transactions=include_transactions,
        omitted_fields=tuple(omitted),
        empty=empty,
    )
