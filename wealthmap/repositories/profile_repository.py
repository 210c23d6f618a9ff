from sqlalchemy.orm import Session

from wealthmap.models.profile import Bookmark, SavedSearch


class ProfileRepository:
    """Bookmarks and saved searches, always filtered by owning user"""

    def __init__(self, db: Session):
        self.db = db

    def get_bookmarks(self, user_id: int) -> list[Bookmark]:
        return (
            self.db.query(Bookmark)
            .filter(Bookmark.user_id == user_id)
            .order_by(Bookmark.created_at.desc(), Bookmark.id.desc())
            .all()
        )

    def get_bookmark(self, user_id: int, property_id: int) -> Bookmark | None:
        return (
            self.db.query(Bookmark)
            .filter(Bookmark.user_id == user_id, Bookmark.property_id == property_id)
            .first()
        )

    def get_saved_searches(self, user_id: int) -> list[SavedSearch]:
        return (
            self.db.query(SavedSearch)
            .filter(SavedSearch.user_id == user_id)
            .order_by(SavedSearch.created_at.desc(), SavedSearch.id.desc())
            .all()
        )

    def get_saved_search(self, search_id: int, user_id: int) -> SavedSearch | None:
        return (
            self.db.query(SavedSearch)
            .filter(SavedSearch.id == search_id, SavedSearch.user_id == user_id)
            .first()
        )

    def create(self, entity: Bookmark | SavedSearch) -> Bookmark | SavedSearch:
        self.db.add(entity)
        self.db.commit()
        self.db.refresh(entity)
        return entity

    def delete(self, entity: Bookmark | SavedSearch) -> None:
        self.db.delete(entity)
        self.db.commit()
