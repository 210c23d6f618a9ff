from datetime import datetime
from sqlalchemy import func
from sqlalchemy.orm import Session
from wealthmap.models.activity_log import ActivityLog


class ActivityLogRepository:
    """Read side of the activity log (writes go through ActivityRecorder)"""

    def __init__(self, db: Session):
        self.db = db

    def get_company_activity(
        self,
        company_id: int,
        action: str | None = None,
        user_id: int | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[ActivityLog], int]:
        query = self.db.query(ActivityLog).filter(ActivityLog.company_id == company_id)
        if action is not None:
            query = query.filter(ActivityLog.action == action)
        if user_id is not None:
            query = query.filter(ActivityLog.user_id == user_id)

        total = query.count()
        entries = (
            query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        return entries, total

    def count_actions(
        self,
        company_id: int,
        action: str,
        since: datetime | None = None,
        user_id: int | None = None,
    ) -> int:
        query = self.db.query(func.count(ActivityLog.id)).filter(
            ActivityLog.company_id == company_id, ActivityLog.action == action
        )
        if since is not None:
            query = query.filter(ActivityLog.created_at >= since)
        if user_id is not None:
            query = query.filter(ActivityLog.user_id == user_id)
        return query.scalar() or 0
