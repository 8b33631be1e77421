"""
Analytics Service: in-process session, interaction and lead counters.
"""

import copy
import threading
from typing import Any, Dict, Optional

from ..models.core import DailyAnalytics, DailyStat, InteractionEvent, SessionRecord
from ..utils.logging_config import get_logger
from ..utils.timestamp_utils import now_millis, utc_date_str

logger = get_logger(__name__)

EVENT_CONTENT_LIMIT = 100

# Maintained by track_interaction only
DERIVED_SESSION_FIELDS = ('interactions', 'events')


class AnalyticsService:
    """Process-wide analytics over sessions, interactions and leads, keyed by UTC day.

    State lives only in memory and is lost on restart. All access to the maps
    goes through a single lock, so one instance may be shared by concurrent
    request threads.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._sessions: Dict[str, SessionRecord] = {}
        self._daily_stats: Dict[str, DailyStat] = {}

    def _ensure_session(self, session_id: str) -> SessionRecord:
        session = self._sessions.get(session_id)
        if session is None:
            session = SessionRecord(session_id=session_id, start_time=now_millis())
            self._sessions[session_id] = session
        return session

    def track_session(self, session_id: str, patch: Optional[Dict[str, Any]] = None) -> SessionRecord:
        """Create the session if needed and replace any top-level fields given in ``patch``.

        Raises:
            ValueError: If ``patch`` names an unknown field or a derived one (interactions, events)

        Returns:
            A copy of the updated SessionRecord
        """
        patch = patch or {}
        for field_name in patch:
            if field_name not in SessionRecord.__dataclass_fields__:
                raise ValueError(f'Unknown session field: {field_name}')
            if field_name in DERIVED_SESSION_FIELDS:
                raise ValueError(f'Session field {field_name} is derived from tracked interactions')

        with self._lock:
            session = self._ensure_session(session_id)
            for field_name, value in patch.items():
                setattr(session, field_name, value)
            return copy.deepcopy(session)

    def track_interaction(self, session_id: str, event: InteractionEvent) -> None:
        """Record an interaction against the session and today's counters."""
        timestamp = event.timestamp or now_millis()
        truncated = InteractionEvent(type=event.type,
                                     content=event.content[:EVENT_CONTENT_LIMIT] if event.content else event.content,
                                     intent=event.intent,
                                     lead_trigger=bool(event.lead_trigger),
                                     latency_ms=event.latency_ms,
                                     timestamp=timestamp)

        with self._lock:
            session = self._ensure_session(session_id)
            session.events.append(truncated)
            session.interactions = len(session.events)
            if truncated.intent:
                session.topics.add(truncated.intent)

            today = utc_date_str(timestamp)
            stats = self._daily_stats.get(today)
            if stats is None:
                stats = DailyStat(date=today)
                self._daily_stats[today] = stats

            stats.total_messages += 1
            if session_id:
                stats.session_ids.add(session_id)
            if truncated.intent:
                stats.top_intents[truncated.intent] = stats.top_intents.get(truncated.intent, 0) + 1
            if truncated.lead_trigger:
                stats.leads_generated += 1

        logger.debug(f'Tracked {truncated.type} interaction for session {session_id}')

    def daily_analytics(self, date: Optional[str] = None) -> DailyAnalytics:
        """Snapshot a day's counters (today, UTC, by default) with derived fields."""
        target = date or utc_date_str()
        with self._lock:
            stats = self._daily_stats.get(target) or DailyStat(date=target)
            total_sessions = len(stats.session_ids)
            leads = stats.leads_generated
            snapshot = DailyAnalytics(date=target,
                                      total_sessions=total_sessions,
                                      total_messages=stats.total_messages,
                                      leads_generated=leads,
                                      top_intents=dict(stats.top_intents),
                                      conversion_rate='0.0')

        if total_sessions > 0:
            snapshot.conversion_rate = f'{leads / total_sessions * 100:.1f}'
        return snapshot

    def capture_lead(self,
                     session_id: str,
                     name: str,
                     email: str,
                     message: str = '',
                     lead_score: int = 0,
                     user_profile: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """Mark a session as a captured lead and count it.

        Returns:
            The stored lead data
        """
        lead_data = {
            'name': name,
            'email': email,
            'message': message or '',
            'session_id': session_id,
            'lead_score': lead_score or 0,
            'user_profile': dict(user_profile or {}),
            'timestamp': now_millis(),
            'status': 'new'
        }
        self.track_session(session_id, {
            'outcome': 'lead_captured',
            'lead_data': lead_data,
            'lead_score': lead_data['lead_score']
        })
        self.track_interaction(session_id,
                               InteractionEvent(type='lead_capture', content=f'Lead captured: {name}', lead_trigger=True))
        logger.info(f'Lead captured for session {session_id} (score {lead_data["lead_score"]})')
        return lead_data

    def get_session(self, session_id: str) -> Optional[SessionRecord]:
        """Return a copy of a session's record, or None if it was never seen."""
        with self._lock:
            session = self._sessions.get(session_id)
            return copy.deepcopy(session) if session else None

    def dashboard_summary(self) -> Dict[str, Any]:
        """Today's headline numbers plus the count of sessions seen by this process."""
        today = self.daily_analytics()
        with self._lock:
            active_sessions = len(self._sessions)
        return {
            'todays_sessions': today.total_sessions,
            'todays_messages': today.total_messages,
            'todays_leads': today.leads_generated,
            'conversion_rate': today.conversion_rate,
            'active_sessions': active_sessions
        }
