from sqlalchemy.orm import Session

from wealthmap.models.actor import Actor
from wealthmap.models.company_policy import CompanyPolicy
from wealthmap.policy.actions import Action, ActionKind
from wealthmap.policy.evaluator import PolicyEvaluator
from wealthmap.policy.scope import RawQuery, scope
from wealthmap.repositories.owner_repository import OwnerRepository
from wealthmap.repositories.property_repository import PropertyRepository
from wealthmap.schemas.property_schemas import SuggestionType
from wealthmap.services.property_service import serialize_owner, serialize_property

MIN_AUTOCOMPLETE_LENGTH = 2


class SearchService:
    """Free-text search over properties and owners, always policy-scoped"""

    def __init__(self, db: Session, evaluator: PolicyEvaluator):
        self.db = db
        self.evaluator = evaluator
        self.property_repo = PropertyRepository(db)
        self.owner_repo = OwnerRepository(db)

    def search_properties(
        self,
        raw: RawQuery,
        actor: Actor,
        policy: CompanyPolicy,
        limit: int = 10,
        offset: int = 0,
    ) -> dict:
        self.evaluator.require(
            actor,
            Action(ActionKind.SEARCH, actor.company_id, "property"),
            policy,
            details={"query": raw.text},
        )
        scoped = scope(actor, policy, raw)
        properties, total = self.property_repo.find(scoped, limit=limit, offset=offset)
        return {
            "properties": [serialize_property(p, scoped) for p in properties],
            "total": total,
            "omitted_fields": list(scoped.omitted_fields),
        }

    def search_owners(
        self,
        raw: RawQuery,
        actor: Actor,
        policy: CompanyPolicy,
        limit: int = 10,
        offset: int = 0,
    ) -> dict:
        """
        Owners matching the text, restricted to owners of properties the
        company can see.
        """
        self.evaluator.require(
            actor,
            Action(ActionKind.SEARCH, actor.company_id, "owner"),
            policy,
            details={"query": raw.text},
        )
        scoped = scope(actor, policy, raw)
        # Property visibility ignores the owner text, it only carries the policy
        visibility = scope(actor, policy, RawQuery())
        if visibility.empty:
            return {"owners": [], "total": 0, "omitted_fields": list(scoped.omitted_fields)}

        owners, total = self.owner_repo.search(
            scoped, self.property_repo.visible_ids(visibility), limit=limit, offset=offset
        )
        return {
            "owners": [serialize_owner(o, scoped) for o in owners],
            "total": total,
            "omitted_fields": list(scoped.omitted_fields),
        }

    def autocomplete(
        self,
        text: str | None,
        kind: SuggestionType,
        actor: Actor,
        policy: CompanyPolicy,
    ) -> list[dict]:
        """
        Suggestions for a partial query: up to 5 property addresses, 5 owner
        names and 3 cities, all limited to what the company can see.
        """
        self.evaluator.require(
            actor,
            Action(ActionKind.SEARCH, actor.company_id, "autocomplete"),
            policy,
            details={"query": text},
        )
        text = (text or "").strip()
        if len(text) < MIN_AUTOCOMPLETE_LENGTH:
            return []

        visibility = scope(actor, policy, RawQuery(include_owner_info=False))
        if visibility.empty:
            return []

        suggestions = []
        if kind in (SuggestionType.ALL, SuggestionType.PROPERTY):
            scoped = scope(actor, policy, RawQuery(text=text, include_owner_info=False))
            properties, _ = self.property_repo.find(scoped, limit=5)
            for prop in properties:
                label = prop.formatted_address or (
                    f"{prop.street}, {prop.city}, {prop.state} {prop.zip_code}"
                )
                suggestions.append({"type": SuggestionType.PROPERTY, "text": label, "id": prop.id})
        if kind in (SuggestionType.ALL, SuggestionType.OWNER):
            scoped = scope(actor, policy, RawQuery(text=text, include_wealth_data=False))
            owners, _ = self.owner_repo.search(
                scoped, self.property_repo.visible_ids(visibility), limit=5
            )
            for owner in owners:
                suggestions.append(
                    {
                        "type": SuggestionType.OWNER,
                        "text": owner.name,
                        "id": owner.id,
                        "owner_type": owner.owner_type,
                    }
                )
        if kind in (SuggestionType.ALL, SuggestionType.CITY):
            for city in self.property_repo.matching_cities(visibility, text, limit=3):
                suggestions.append({"type": SuggestionType.CITY, "text": city})
        return suggestions
