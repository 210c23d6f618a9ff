from sqlalchemy import Select, case, func, or_, select
from sqlalchemy.orm import Session, Query, selectinload

from wealthmap.models.owner import Owner
from wealthmap.models.property import Property, PropertyOwnership, PropertyTransaction, PropertyType
from wealthmap.policy.scope import ScopedQuery

_PROPERTY_TYPE_VALUES = frozenset(t.value for t in PropertyType)


class PropertyRepository:
    """Repository for Property data access. Every listing takes a ScopedQuery."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, property_id: int) -> Property | None:
        return (
            self.db.query(Property)
            .options(selectinload(Property.ownerships).selectinload(PropertyOwnership.owner))
            .filter(Property.id == property_id)
            .first()
        )

    def _scoped(self, scoped: ScopedQuery) -> Query:
        query = self.db.query(Property)

        if scoped.property_types is not None:
            known = [PropertyType(t) for t in sorted(scoped.property_types) if t in _PROPERTY_TYPE_VALUES]
            query = query.filter(Property.property_type.in_(known))
        if scoped.property_sub_type is not None:
            query = query.filter(Property.property_sub_type == scoped.property_sub_type)

        if scoped.min_value is not None:
            query = query.filter(Property.estimated_value >= scoped.min_value)
        if scoped.max_value is not None:
            query = query.filter(Property.estimated_value <= scoped.max_value)
        if scoped.min_size is not None:
            query = query.filter(Property.building_size >= scoped.min_size)
        if scoped.max_size is not None:
            query = query.filter(Property.building_size <= scoped.max_size)
        if scoped.year_built_min is not None:
            query = query.filter(Property.year_built >= scoped.year_built_min)
        if scoped.year_built_max is not None:
            query = query.filter(Property.year_built <= scoped.year_built_max)

        if scoped.states is not None:
            query = query.filter(func.upper(Property.state).in_(sorted(scoped.states)))
        if scoped.countries is not None:
            query = query.filter(func.upper(Property.country).in_(sorted(scoped.countries)))
        if scoped.zip_codes is not None:
            query = query.filter(Property.zip_code.in_(sorted(scoped.zip_codes)))
        if scoped.city is not None:
            query = query.filter(func.lower(Property.city) == scoped.city.lower())

        if scoped.text:
            pattern = f"%{scoped.text}%"
            query = query.filter(
                or_(
                    Property.street.ilike(pattern),
                    Property.city.ilike(pattern),
                    Property.state.ilike(pattern),
                    Property.zip_code.ilike(pattern),
                    Property.formatted_address.ilike(pattern),
                    Property.description.ilike(pattern),
                )
            )

        # Owner-side filters (net worth only survives scoping with wealth access)
        if (
            scoped.min_net_worth is not None
            or scoped.max_net_worth is not None
            or scoped.owner_type is not None
        ):
            owner_filter = (
                select(PropertyOwnership.property_id)
                .join(Owner, PropertyOwnership.owner_id == Owner.id)
                .where(PropertyOwnership.is_current_owner.is_(True))
            )
            if scoped.owner_type is not None:
                owner_filter = owner_filter.where(Owner.owner_type == scoped.owner_type)
            if scoped.min_net_worth is not None:
                owner_filter = owner_filter.where(Owner.estimated_net_worth >= scoped.min_net_worth)
            if scoped.max_net_worth is not None:
                owner_filter = owner_filter.where(Owner.estimated_net_worth <= scoped.max_net_worth)
            query = query.filter(Property.id.in_(owner_filter))

        return query

    def find(
        self, scoped: ScopedQuery, limit: int = 10, offset: int = 0
    ) -> tuple[list[Property], int]:
        """
        Get properties matching a scoped query, highest value first.

        Returns:
            Tuple of (properties list, total count)
        """
        if scoped.empty:
            return [], 0

        query = self._scoped(scoped)
        total = query.count()
        properties = (
            query.options(selectinload(Property.ownerships).selectinload(PropertyOwnership.owner))
            .order_by(Property.estimated_value.desc(), Property.id)
            .limit(limit)
            .offset(offset)
            .all()
        )
        return properties, total

    def find_in_box(
        self,
        scoped: ScopedQuery,
        min_lat: float,
        max_lat: float,
        min_lng: float,
        max_lng: float,
    ) -> list[Property]:
        """Candidates inside a lat/lng bounding box; exact radius is checked by the caller."""
        if scoped.empty:
            return []
        return (
            self._scoped(scoped)
            .filter(
                Property.latitude.between(min_lat, max_lat),
                Property.longitude.between(min_lng, max_lng),
            )
            .options(selectinload(Property.ownerships).selectinload(PropertyOwnership.owner))
            .all()
        )

    def is_visible(self, property_id: int, scoped: ScopedQuery) -> bool:
        """Whether a single property falls inside the scoped query."""
        if scoped.empty:
            return False
        return self._scoped(scoped).filter(Property.id == property_id).first() is not None

    def find_by_ids(self, property_ids: list[int], scoped: ScopedQuery) -> list[Property]:
        """Requested properties that are visible under the scoped query; others are dropped."""
        if scoped.empty or not property_ids:
            return []
        return (
            self._scoped(scoped)
            .filter(Property.id.in_(property_ids))
            .options(selectinload(Property.ownerships).selectinload(PropertyOwnership.owner))
            .order_by(Property.id)
            .all()
        )

    def visible_ids(self, scoped: ScopedQuery) -> Select:
        """SELECT of property ids inside the scoped query, for use in IN clauses."""
        return self._scoped(scoped).with_entities(Property.id).statement

    def get_transactions(self, property_id: int) -> list[PropertyTransaction]:
        return (
            self.db.query(PropertyTransaction)
            .filter(PropertyTransaction.property_id == property_id)
            .order_by(PropertyTransaction.date.desc(), PropertyTransaction.id.desc())
            .all()
        )

    def get_by_owner(self, owner_id: int, scoped: ScopedQuery) -> list[Property]:
        if scoped.empty:
            return []
        current = select(PropertyOwnership.property_id).where(
            PropertyOwnership.owner_id == owner_id,
            PropertyOwnership.is_current_owner.is_(True),
        )
        return (
            self._scoped(scoped)
            .filter(Property.id.in_(current))
            .order_by(Property.estimated_value.desc())
            .all()
        )

    def count_by_type(self, scoped: ScopedQuery) -> dict[str, int]:
        if scoped.empty:
            return {}
        rows = (
            self._scoped(scoped)
            .with_entities(Property.property_type, func.count(Property.id))
            .group_by(Property.property_type)
            .all()
        )
        return {property_type.value: count for property_type, count in rows}

    def count_by_state(self, scoped: ScopedQuery) -> dict[str, int]:
        if scoped.empty:
            return {}
        rows = (
            self._scoped(scoped)
            .with_entities(Property.state, func.count(Property.id))
            .group_by(Property.state)
            .all()
        )
        return {state: count for state, count in rows}

    def average_value(self, scoped: ScopedQuery) -> float:
        if scoped.empty:
            return 0.0
        average = self._scoped(scoped).with_entities(func.avg(Property.estimated_value)).scalar()
        return float(average or 0.0)

    def count_by_value_bucket(self, scoped: ScopedQuery, boundaries: tuple[float, ...]) -> dict[int, int]:
        """
        Property counts keyed by bucket index.

        Bucket i holds values in [boundaries[i], boundaries[i + 1]); the last
        index collects everything at or above the final boundary.
        """
        if scoped.empty:
            return {}
        bucket = case(
            *[
                (Property.estimated_value < upper, index)
                for index, upper in enumerate(boundaries[1:])
            ],
            else_=len(boundaries) - 1,
        ).label("bucket")
        rows = (
            self._scoped(scoped)
            .with_entities(bucket, func.count(Property.id))
            .group_by("bucket")
            .all()
        )
        return {index: count for index, count in rows}

    def matching_cities(self, scoped: ScopedQuery, text: str, limit: int = 3) -> list[str]:
        if scoped.empty:
            return []
        rows = (
            self._scoped(scoped)
            .with_entities(Property.city)
            .filter(Property.city.ilike(f"%{text}%"))
            .distinct()
            .order_by(Property.city)
            .limit(limit)
            .all()
        )
        return [city for (city,) in rows]
