"""
Assessment Notifications

Publishing an assessment can announce it to its target cohorts. Delivery
belongs to an external service; the core only records the notification
intent. Emitting is fire-and-forget: a failure is logged and never undoes
the publish that triggered it.
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import sessionmaker

from thinkpro.assessments.database_models import NotificationORM
from thinkpro.assessments.models import Assessment
from thinkpro.common.clock import utcnow
from thinkpro.common.logger import get_logger
from thinkpro.database.repository import RepositoryError, SqlRepository

logger = get_logger(__name__)


@dataclass
class Notification:
    """A notification record addressed to target cohorts."""
    notification_id: str
    title: str
    message: str
    target_audience: List[Dict[str, Any]]
    sent_by: str
    related_assessment_id: Optional[str] = None
    type: str = "assessment"
    priority: str = "high"
    status: str = "sent"
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def for_assessment(
        cls,
        assessment: Assessment,
        message: str,
        sender_id: str,
        now: Optional[datetime] = None
    ) -> 'Notification':
        """
        Build the announcement for a published assessment.

        Every target cohort becomes an audience entry tagged with the owning school.
        """
        return cls(
            notification_id=str(uuid.uuid4()),
            title=f"New Assessment: {assessment.title}",
            message=message,
            target_audience=[
                {"grade": t.grade, "sections": list(t.sections), "school": assessment.school_id}
                for t in assessment.target_students
            ],
            sent_by=sender_id,
            related_assessment_id=assessment.assessment_id,
            created_at=now or utcnow(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.notification_id,
            "title": self.title,
            "message": self.message,
            "type": self.type,
            "priority": self.priority,
            "targetAudience": self.target_audience,
            "relatedAssessment": self.related_assessment_id,
            "sentBy": self.sent_by,
            "status": self.status,
            "createdAt": self.created_at.isoformat(),
        }


class Notifier(ABC):
    """Receives notification intents."""

    @abstractmethod
    async def notify(self, notification: Notification) -> None:
        pass


class MemoryNotifier(Notifier):
    """Keeps notifications in a list; used in development and tests."""

    def __init__(self):
        self.sent: List[Notification] = []

    async def notify(self, notification: Notification) -> None:
        self.sent.append(notification)


class SqlNotificationSink(SqlRepository, Notifier):
    """Persists notifications to the ``notifications`` table in their own transaction."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        super().__init__(session_factory)

    async def notify(self, notification: Notification) -> None:
        try:
            async with self.async_session() as session:
                async with session.begin():
                    session.add(NotificationORM(
                        notification_id=notification.notification_id,
                        title=notification.title,
                        message=notification.message,
                        type=notification.type,
                        priority=notification.priority,
                        target_audience=notification.target_audience,
                        related_assessment_id=notification.related_assessment_id,
                        sent_by=notification.sent_by,
                        status=notification.status,
                        created_at=notification.created_at,
                    ))
        except Exception as e:
            raise RepositoryError(
                f"Failed to store notification for assessment {notification.related_assessment_id}",
                original_exception=e
            )


async def emit_safely(notifier: Notifier, notification: Notification) -> bool:
    """
    Hand a notification to the notifier without letting failures escape.

    Returns:
        True if the notifier accepted it
    """
    try:
        await notifier.notify(notification)
        logger.info(
            f"Notification {notification.notification_id} emitted for assessment "
            f"{notification.related_assessment_id}"
        )
        return True
    except Exception as e:
        logger.error(
            f"Failed to emit notification for assessment {notification.related_assessment_id}: {e}",
            exc_info=True
        )
        return False
