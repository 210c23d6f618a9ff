import logging
import math

from sqlalchemy.orm import Session

from wealthmap.core.exceptions import NotFoundException
from wealthmap.models.actor import Actor
from wealthmap.models.company_policy import CompanyPolicy
from wealthmap.models.owner import WEALTH_FIELDS, Owner
from wealthmap.models.property import Property, PropertyTransaction
from wealthmap.policy.actions import Action, ActionKind
from wealthmap.policy.evaluator import PolicyEvaluator
from wealthmap.policy.scope import RawQuery, ScopedQuery, scope
from wealthmap.repositories.owner_repository import OwnerRepository
from wealthmap.repositories.property_repository import PropertyRepository

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE_LAT = 111.32

# Lower bounds of the estimated-value ranges reported by stats
VALUE_BUCKETS = (0, 100_000, 250_000, 500_000, 1_000_000, 5_000_000, 10_000_000)

_PROPERTY_COLUMNS = (
    "id",
    "street",
    "city",
    "state",
    "zip_code",
    "country",
    "formatted_address",
    "latitude",
    "longitude",
    "property_type",
    "property_sub_type",
    "building_size",
    "lot_size",
    "units",
    "bedrooms",
    "bathrooms",
    "estimated_value",
    "assessed_value",
    "last_sale_price",
    "last_sale_date",
    "year_built",
    "description",
)


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def bounding_box(lat: float, lng: float, radius_km: float) -> tuple[float, float, float, float]:
    """(min_lat, max_lat, min_lng, max_lng) enclosing the radius."""
    d_lat = radius_km / KM_PER_DEGREE_LAT
    cos_lat = max(math.cos(math.radians(lat)), 0.01)
    d_lng = min(radius_km / (KM_PER_DEGREE_LAT * cos_lat), 180.0)
    return lat - d_lat, lat + d_lat, lng - d_lng, lng + d_lng


def serialize_owner(owner: Owner, scoped: ScopedQuery) -> dict:
    data = {
        "id": owner.id,
        "owner_type": owner.owner_type,
        "name": owner.name,
        "city": owner.city,
        "state": owner.state,
    }
    if scoped.include_wealth_data:
        for name in WEALTH_FIELDS:
            data[name] = getattr(owner, name)
    return data


def serialize_transaction(transaction: PropertyTransaction) -> dict:
    return {
        "id": transaction.id,
        "transaction_type": transaction.transaction_type,
        "date": transaction.date,
        "price": transaction.price,
        "seller": transaction.seller,
        "buyer": transaction.buyer,
        "document_number": transaction.document_number,
    }


def serialize_property(prop: Property, scoped: ScopedQuery) -> dict:
    """
    Property as a response dict shaped by the scoped query.

    Owners are included only with include_owner_info, their wealth fields only
    with include_wealth_data, and ownership history only with
    include_transactions.
    """
    data = {name: getattr(prop, name) for name in _PROPERTY_COLUMNS}
    if scoped.include_owner_info:
        data["owners"] = [
            {
                "ownership_percentage": ownership.ownership_percentage,
                "start_date": ownership.start_date,
                "owner": serialize_owner(ownership.owner, scoped),
            }
            for ownership in prop.current_ownerships
        ]
    if scoped.include_transactions:
        data["transactions"] = [serialize_transaction(t) for t in prop.transactions]
    return data


class PropertyService:
    """Scoped read access to property and owner reference data"""

    def __init__(self, db: Session, evaluator: PolicyEvaluator):
        self.db = db
        self.evaluator = evaluator
        self.property_repo = PropertyRepository(db)
        self.owner_repo = OwnerRepository(db)

    def _require(
        self,
        kind: ActionKind,
        actor: Actor,
        policy: CompanyPolicy,
        resource_type: str | None = None,
        resource_id: int | None = None,
    ) -> None:
        # Reference data carries no tenant, the actor's own company is the target
        self.evaluator.require(
            actor, Action(kind, actor.company_id, resource_type, resource_id), policy
        )

    def list_properties(
        self,
        raw: RawQuery,
        actor: Actor,
        policy: CompanyPolicy,
        limit: int = 10,
        offset: int = 0,
    ) -> dict:
        self._require(ActionKind.VIEW_PROPERTY, actor, policy, "property")
        scoped = scope(actor, policy, raw)
        properties, total = self.property_repo.find(scoped, limit=limit, offset=offset)
        return {
            "properties": [serialize_property(p, scoped) for p in properties],
            "total": total,
            "omitted_fields": list(scoped.omitted_fields),
        }

    def get_property(
        self, property_id: int, raw: RawQuery, actor: Actor, policy: CompanyPolicy
    ) -> dict:
        """
        Single property, if visible under the company's policy.

        Properties outside the policy are reported as not found.
        """
        self._require(ActionKind.VIEW_PROPERTY, actor, policy, "property", property_id)
        scoped = scope(actor, policy, raw)
        prop = self.property_repo.get_by_id(property_id)
        if prop is None or not self.property_repo.is_visible(property_id, scoped):
            raise NotFoundException(f"Property {property_id} not found")
        data = serialize_property(prop, scoped)
        data["omitted_fields"] = list(scoped.omitted_fields)
        return data

    def stats(self, raw: RawQuery, actor: Actor, policy: CompanyPolicy) -> dict:
        """Aggregates over the properties visible to the company."""
        self._require(ActionKind.VIEW_PROPERTY, actor, policy, "property")
        scoped = scope(actor, policy, raw)
        by_type = self.property_repo.count_by_type(scoped)
        buckets = self.property_repo.count_by_value_bucket(scoped, VALUE_BUCKETS)
        value_ranges = []
        for index, lower in enumerate(VALUE_BUCKETS):
            upper = VALUE_BUCKETS[index + 1] if index + 1 < len(VALUE_BUCKETS) else None
            value_ranges.append({"min": lower, "max": upper, "count": buckets.get(index, 0)})
        return {
            "total": sum(by_type.values()),
            "average_value": self.property_repo.average_value(scoped),
            "by_type": by_type,
            "by_state": self.property_repo.count_by_state(scoped),
            "value_ranges": value_ranges,
        }

    def get_transactions(
        self, property_id: int, actor: Actor, policy: CompanyPolicy
    ) -> list[PropertyTransaction]:
        self._require(ActionKind.VIEW_OWNERSHIP_HISTORY, actor, policy, "property", property_id)
        scoped = scope(actor, policy, RawQuery())
        if not self.property_repo.is_visible(property_id, scoped):
            raise NotFoundException(f"Property {property_id} not found")
        return self.property_repo.get_transactions(property_id)

    def by_location(
        self,
        latitude: float,
        longitude: float,
        radius_km: float,
        raw: RawQuery,
        actor: Actor,
        policy: CompanyPolicy,
        limit: int = 50,
    ) -> dict:
        """Visible properties within radius_km of a point, nearest first."""
        self._require(ActionKind.SEARCH, actor, policy, "property")
        scoped = scope(actor, policy, raw)
        min_lat, max_lat, min_lng, max_lng = bounding_box(latitude, longitude, radius_km)
        candidates = self.property_repo.find_in_box(scoped, min_lat, max_lat, min_lng, max_lng)

        within = []
        for prop in candidates:
            distance = haversine_km(latitude, longitude, prop.latitude, prop.longitude)
            if distance <= radius_km:
                within.append((distance, prop))
        within.sort(key=lambda pair: (pair[0], pair[1].id))

        results = []
        for distance, prop in within[:limit]:
            data = serialize_property(prop, scoped)
            data["distance_km"] = round(distance, 3)
            results.append(data)
        return {
            "properties": results,
            "total": len(within),
            "omitted_fields": list(scoped.omitted_fields),
        }

    def get_owner(
        self, owner_id: int, actor: Actor, policy: CompanyPolicy, include_wealth_data: bool = True
    ) -> dict:
        """
        Owner details. An owner is visible only through a property the
        company can see.
        """
        self._require(ActionKind.VIEW_OWNER, actor, policy, "owner", owner_id)
        visibility = scope(actor, policy, RawQuery())
        scoped = scope(actor, policy, RawQuery(include_wealth_data=include_wealth_data))
        if visibility.empty:
            raise NotFoundException(f"Owner {owner_id} not found")
        owner = self.owner_repo.get_visible(owner_id, self.property_repo.visible_ids(visibility))
        if owner is None:
            raise NotFoundException(f"Owner {owner_id} not found")

        data = serialize_owner(owner, scoped)
        data["property_count"] = len(self.property_repo.get_by_owner(owner_id, visibility))
        data["omitted_fields"] = list(scoped.omitted_fields)
        return data

    def get_owner_properties(
        self, owner_id: int, raw: RawQuery, actor: Actor, policy: CompanyPolicy
    ) -> dict:
        self._require(ActionKind.VIEW_OWNER, actor, policy, "owner", owner_id)
        visibility = scope(actor, policy, RawQuery())
        scoped = scope(actor, policy, raw)
        if visibility.empty or (
            self.owner_repo.get_visible(owner_id, self.property_repo.visible_ids(visibility)) is None
        ):
            raise NotFoundException(f"Owner {owner_id} not found")
        properties = self.property_repo.get_by_owner(owner_id, scoped)
        return {
            "properties": [serialize_property(p, scoped) for p in properties],
            "total": len(properties),
            "omitted_fields": list(scoped.omitted_fields),
        }
