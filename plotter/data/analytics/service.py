"""
Analytics side channel.

Usage events are recorded after the primary operation has committed.
Recording is best effort: a failure is logged and the caller's response is
unaffected.
"""
import logging
from typing import Any, Dict, Literal, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from plotter.data.analytics.models import AnalyticsEvent

logger = logging.getLogger(__name__)

AnalyticsEventType = Literal[
    "entry_created", "entry_updated", "entry_deleted", "projection_viewed"
]


async def log_analytics_event(
    db: AsyncSession,
    user_id: str,
    event_type: AnalyticsEventType,
    metadata: Optional[Dict[str, Any]] = None,
) -> None:
    """Record a usage event without ever failing the caller."""
    try:
        db.add(AnalyticsEvent(user_id=user_id, event_type=event_type, event_metadata=metadata))
        await db.commit()
    except Exception as e:
        # No rollback here: it would expire committed rows the caller still serialises.
        # The session is rolled back when get_db closes it.
        logger.warning(f"Failed to log analytics event {event_type} for user {user_id}: {e}")
