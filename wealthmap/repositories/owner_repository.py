from sqlalchemy import Select, func, or_, select
from sqlalchemy.orm import Query, Session

from wealthmap.models.owner import Owner
from wealthmap.models.property import PropertyOwnership
from wealthmap.policy.scope import ScopedQuery


class OwnerRepository:
    """
    Repository for Owner data access.

    An owner is visible to a company only while they currently own at least
    one property the company can see; callers pass that property set as a
    SELECT of ids (see PropertyRepository.visible_ids).
    """

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _owning(visible_property_ids: Select) -> Select:
        return select(PropertyOwnership.owner_id).where(
            PropertyOwnership.is_current_owner.is_(True),
            PropertyOwnership.property_id.in_(visible_property_ids),
        )

    def get_visible(self, owner_id: int, visible_property_ids: Select) -> Owner | None:
        return (
            self.db.query(Owner)
            .filter(Owner.id == owner_id, Owner.id.in_(self._owning(visible_property_ids)))
            .first()
        )

    def _filtered(self, scoped: ScopedQuery, visible_property_ids: Select) -> Query:
        query = self.db.query(Owner).filter(Owner.id.in_(self._owning(visible_property_ids)))
        if scoped.text:
            pattern = f"%{scoped.text}%"
            query = query.filter(
                or_(Owner.name.ilike(pattern), Owner.city.ilike(pattern), Owner.state.ilike(pattern))
            )
        if scoped.owner_type is not None:
            query = query.filter(Owner.owner_type == scoped.owner_type)
        if scoped.min_net_worth is not None:
            query = query.filter(Owner.estimated_net_worth >= scoped.min_net_worth)
        if scoped.max_net_worth is not None:
            query = query.filter(Owner.estimated_net_worth <= scoped.max_net_worth)
        return query

    def search(
        self,
        scoped: ScopedQuery,
        visible_property_ids: Select,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[Owner], int]:
        """
        Text search over owner name and location.

        Net-worth bounds are applied only when the scoped query kept them.
        """
        if scoped.empty:
            return [], 0

        query = self._filtered(scoped, visible_property_ids)
        total = query.count()
        owners = query.order_by(Owner.name, Owner.id).limit(limit).offset(offset).all()
        return owners, total

    def find_by_wealth(
        self,
        scoped: ScopedQuery,
        visible_property_ids: Select,
        wealth_tier: str | None = None,
        city: str | None = None,
        state: str | None = None,
        limit: int = 1000,
    ) -> list[Owner]:
        """Owners for wealth analysis, wealthiest first. city/state match the owner's own address."""
        if scoped.empty:
            return []

        query = self._filtered(scoped, visible_property_ids)
        if wealth_tier:
            query = query.filter(func.lower(Owner.wealth_tier) == wealth_tier.strip().lower())
        if city:
            query = query.filter(func.lower(Owner.city) == city.strip().lower())
        if state:
            query = query.filter(func.upper(Owner.state) == state.strip().upper())
        return query.order_by(Owner.estimated_net_worth.desc(), Owner.id).limit(limit).all()
