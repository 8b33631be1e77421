"""
Tests for the in-process analytics service.
"""

import threading

import pytest

from assistant_core.models.core import InteractionEvent
from assistant_core.utils.timestamp_utils import utc_date_str


def _message(intent=None, lead_trigger=False, content='hello'):
    return InteractionEvent(type='user_message', content=content, intent=intent, lead_trigger=lead_trigger)


class TestTrackInteraction:
    """Tests for track_interaction."""

    def test_interactions_follow_events(self, analytics):
        """The interaction count always equals the number of recorded events."""
        for _ in range(3):
            analytics.track_interaction('s1', _message())

        session = analytics.get_session('s1')
        assert session.interactions == 3
        assert len(session.events) == 3

    def test_content_is_truncated(self, analytics):
        """Event content is stored as at most 100 characters."""
        analytics.track_interaction('s1', _message(content='x' * 250))

        assert analytics.get_session('s1').events[0].content == 'x' * 100

    def test_topics_and_daily_counters(self, analytics):
        """Intents feed the session topics and today's counters."""
        analytics.track_interaction('s1', _message(intent='pricing_inquiry'))
        analytics.track_interaction('s1', _message(intent='pricing_inquiry', lead_trigger=True))
        analytics.track_interaction('s2', _message(intent='portfolio_request'))

        assert analytics.get_session('s1').topics == {'pricing_inquiry'}
        today = analytics.daily_analytics()
        assert today.date == utc_date_str()
        assert today.total_messages == 3
        assert today.total_sessions == 2
        assert today.leads_generated == 1
        assert today.top_intents == {'pricing_inquiry': 2, 'portfolio_request': 1}

    def test_concurrent_updates(self, analytics):
        """Counters stay exact under concurrent writers."""

        def worker(session_id):
            for _ in range(100):
                analytics.track_interaction(session_id, _message(intent='service_inquiry'))

        threads = [threading.Thread(target=worker, args=(f's{i}',)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        today = analytics.daily_analytics()
        assert today.total_messages == 800
        assert today.total_sessions == 8
        assert today.top_intents == {'service_inquiry': 800}
        assert all(analytics.get_session(f's{i}').interactions == 100 for i in range(8))


class TestDailyAnalytics:
    """Tests for daily_analytics."""

    def test_no_sessions(self, analytics):
        """A day without sessions reports a 0.0 conversion rate."""
        snapshot = analytics.daily_analytics()

        assert snapshot.total_sessions == 0
        assert snapshot.conversion_rate == '0.0'

    def test_unknown_day(self, analytics):
        """An unseen date gives a zeroed snapshot."""
        analytics.track_interaction('s1', _message())

        snapshot = analytics.daily_analytics('2000-01-01')
        assert snapshot.date == '2000-01-01'
        assert snapshot.total_messages == 0
        assert snapshot.top_intents == {}

    @pytest.mark.parametrize('sessions, leads, rate', [(2, 1, '50.0'), (3, 1, '33.3'), (1, 2, '200.0')])
    def test_conversion_rate(self, analytics, sessions, leads, rate):
        """The rate is leads per session as a percentage with one decimal."""
        for i in range(sessions):
            analytics.track_interaction(f's{i}', _message())
        for _ in range(leads):
            analytics.track_interaction('s0', _message(lead_trigger=True))

        assert analytics.daily_analytics().conversion_rate == rate


class TestSessions:
    """Tests for session tracking and lead capture."""

    def test_track_session_patch(self, analytics):
        """Patched fields replace the stored values."""
        analytics.track_session('s1')
        session = analytics.track_session('s1', {'lead_score': 40, 'user_profile': {'company': 'Acme'}})

        assert session.lead_score == 40
        assert session.user_profile == {'company': 'Acme'}
        assert session.outcome == 'active'

    def test_track_session_unknown_field(self, analytics):
        """Unknown fields are rejected."""
        with pytest.raises(ValueError):
            analytics.track_session('s1', {'favourite_colour': 'teal'})

    @pytest.mark.parametrize('patch', [{'interactions': 99}, {'events': []}, {'lead_score': 5, 'interactions': 0}])
    def test_track_session_rejects_derived_fields(self, analytics, patch):
        """The interaction count and event list cannot be overwritten, and a rejected patch changes nothing."""
        analytics.track_interaction('s1', _message())

        with pytest.raises(ValueError):
            analytics.track_session('s1', patch)

        session = analytics.get_session('s1')
        assert session.interactions == len(session.events) == 1
        assert session.lead_score == 0

    def test_returned_records_are_copies(self, analytics):
        """Mutating a returned record does not change the stored one."""
        analytics.track_session('s1', {'user_profile': {'company': 'Acme'}})
        analytics.get_session('s1').user_profile['company'] = 'Globex'

        assert analytics.get_session('s1').user_profile == {'company': 'Acme'}

    def test_unknown_session(self, analytics):
        """Sessions never seen are not reported."""
        assert analytics.get_session('missing') is None

    def test_capture_lead(self, analytics):
        """A captured lead marks the session and counts toward today's leads."""
        analytics.track_interaction('s1', _message())

        lead = analytics.capture_lead('s1', name='Ada', email='ada@example.com', lead_score=70,
                                      user_profile={'company': 'Acme'})

        session = analytics.get_session('s1')
        assert session.outcome == 'lead_captured'
        assert session.lead_score == 70
        assert session.lead_data == lead
        assert lead['status'] == 'new'
        assert lead['user_profile'] == {'company': 'Acme'}
        assert session.events[-1].type == 'lead_capture'
        assert analytics.daily_analytics().leads_generated == 1

    def test_dashboard_summary(self, analytics):
        """The summary reports today's headline numbers."""
        analytics.track_interaction('s1', _message())
        analytics.track_interaction('s2', _message())
        analytics.capture_lead('s1', name='Ada', email='ada@example.com')

        assert analytics.dashboard_summary() == {
            'todays_sessions': 2,
            'todays_messages': 3,
            'todays_leads': 1,
            'conversion_rate': '50.0',
            'active_sessions': 2
        }
