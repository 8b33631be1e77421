"""
Tests for ConversationMemoryStore.
"""

import pytest

from assistant_core.services.conversation_memory import ConversationMemoryError, ConversationMemoryStore


@pytest.fixture
def memory(store, embed, memory_config):
    return ConversationMemoryStore(store, embed, memory_config)


class TestAppend:
    """Tests for writing turns."""

    def test_record_layout(self, memory, store, embed):
        """Records are keyed by session, timestamp and role and tagged as conversation."""
        record_id = memory.append('s1', 'user', 'Hello', embed.embed_query('Hello'), timestamp=1000)

        assert record_id == 's1_1000_user'
        metadata = store.records[record_id].metadata
        assert metadata == {
            'content': 'Hello',
            'role': 'user',
            'sessionId': 's1',
            'type': 'conversation',
            'timestamp': 1000
        }

    def test_invalid_role(self, memory, embed):
        """Only user and assistant roles are accepted."""
        with pytest.raises(ConversationMemoryError):
            memory.append('s1', 'system', 'Hello', embed.embed_query('Hello'))

    def test_dimension_mismatch(self, memory):
        """A vector of the wrong dimension is rejected."""
        with pytest.raises(ConversationMemoryError):
            memory.append('s1', 'user', 'Hello', [0.1, 0.2])

    def test_without_store(self, embed, memory_config):
        """Writing without a store is an error."""
        with pytest.raises(ConversationMemoryError):
            ConversationMemoryStore(None, embed, memory_config).append('s1', 'user', 'Hi', [0.1] * 8)

    def test_append_turn(self, memory, store, embed):
        """A turn writes the user line and the embedded reply under one timestamp."""
        memory.append_turn('s1', 'Hi there', 'Hello! How can I help?', embed.embed_query('Hi there'))

        assert len(store.records) == 2
        assert 'Hello! How can I help?' in embed.calls
        timestamps = {r.metadata['timestamp'] for r in store.records.values()}
        assert len(timestamps) == 1


class TestHistory:
    """Tests for reading turns back."""

    def _write_turns(self, memory, embed, session_id, count, start=1000):
        for i in range(count):
            timestamp = start + i * 10
            # Assistant line written first to show the store order does not matter
            memory.append(session_id, 'assistant', f'reply {i}', embed.embed_document(f'reply {i}'), timestamp)
            memory.append(session_id, 'user', f'message {i}', embed.embed_query(f'message {i}'), timestamp)

    def test_oldest_first_user_before_assistant(self, memory, embed):
        """Turns come back in time order with the user line first on ties."""
        self._write_turns(memory, embed, 's1', 2)

        history = memory.history('s1')

        assert [(t['role'], t['content']) for t in history] == [
            ('user', 'message 0'),
            ('assistant', 'reply 0'),
            ('user', 'message 1'),
            ('assistant', 'reply 1'),
        ]

    def test_limit_keeps_most_recent(self, memory, embed):
        """With more records than the limit, the latest ones are kept."""
        self._write_turns(memory, embed, 's1', 12)

        history = memory.history('s1', limit=10)

        assert len(history) == 10
        assert history[0]['content'] == 'message 7'
        assert history[-1]['content'] == 'reply 11'

    def test_fetches_candidate_set(self, memory, store):
        """A candidate set larger than the limit is requested, sorted by timestamp."""
        memory.history('s1', limit=4)

        assert store.filter_queries[-1] == {
            'filters': {'sessionId': 's1', 'type': 'conversation'},
            'top_k': 50,
            'sort_field': 'timestamp'
        }

    def test_sessions_are_isolated(self, memory, embed):
        """Only the requested session's turns are returned."""
        self._write_turns(memory, embed, 's1', 1)
        self._write_turns(memory, embed, 's2', 1)

        assert all(t['content'].endswith('0') for t in memory.history('s2'))
        assert len(memory.history('s2')) == 2

    def test_failure_yields_empty(self, memory, store, embed):
        """A failing store yields an empty history."""
        self._write_turns(memory, embed, 's1', 1)
        store.fail_queries = True

        assert memory.history('s1') == []

    def test_without_store(self, embed, memory_config):
        """No store yields an empty history."""
        assert ConversationMemoryStore(None, embed, memory_config).history('s1') == []
