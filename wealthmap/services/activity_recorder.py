import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from wealthmap.models.activity_log import ActivityLog

logger = logging.getLogger(__name__)


class ActivityRecorder:
    """
    Best-effort writer for the activity log.

    Each record is written in its own short session so a failure here can
    neither roll back nor block the caller's primary transaction. Failures are
    logged and swallowed.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ):
        self.session_factory = session_factory
        self.ip_address = ip_address
        self.user_agent = user_agent

    def record(self, user_id: int, company_id: int, action: str, details: dict | None = None) -> None:
        session = self.session_factory()
        try:
            session.add(
                ActivityLog(
                    user_id=user_id,
                    company_id=company_id,
                    action=action,
                    details=details or {},
                    ip_address=self.ip_address,
                    user_agent=self.user_agent[:512] if self.user_agent else None,
                )
            )
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.warning(
                "Activity log write failed (user=%s company=%s action=%s)",
                user_id,
                company_id,
                action,
                exc_info=True,
            )
        finally:
            session.close()
