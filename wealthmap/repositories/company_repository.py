"""Repository for Company model operations."""

from sqlalchemy.orm import Session
from wealthmap.models.company import Company


class CompanyRepository:
    """Repository for Company model operations"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, company_id: int) -> Company | None:
        return self.db.query(Company).filter(Company.id == company_id).first()

    def get_by_slug(self, slug: str) -> Company | None:
        return self.db.query(Company).filter(Company.slug == slug).first()

    def add(self, company: Company) -> Company:
        """
        Stage a new company and assign its ID without committing.

        Used by registration, which creates the company and its first admin
        in one transaction.
        """
        self.db.add(company)
        self.db.flush()
        return company

    def update(self, company: Company) -> Company:
        """Update an existing company"""
        self.db.commit()
        self.db.refresh(company)
        return company
