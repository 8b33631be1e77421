"""
Conversation Memory Store for per-session turn history.
"""

from typing import Dict, List, Optional

from ..models.core import RECORD_TYPE_CONVERSATION, ROLE_ASSISTANT, ROLE_USER, ConversationTurn
from ..utils.bedrock_embed import BedrockEmbed
from ..utils.config import MemoryConfig, config
from ..utils.logging_config import get_logger
from ..utils.opensearch_client import OpenSearchClient, OpenSearchError
from ..utils.timestamp_utils import now_millis

logger = get_logger(__name__)

_ROLE_ORDER = {ROLE_USER: 0, ROLE_ASSISTANT: 1}


class ConversationMemoryError(Exception):
    """Custom exception for conversation memory errors."""
    pass


class ConversationMemoryStore:
    """Persist and read back the turns of a session as tagged vector records.

    The store gives no ordering guarantee, so history is sorted client-side by
    timestamp, with the user line ahead of the assistant line of the same turn.
    """

    def __init__(self,
                 opensearch: Optional[OpenSearchClient],
                 embed: Optional[BedrockEmbed],
                 memory_config: Optional[MemoryConfig] = None):
        self.opensearch = opensearch
        self.embed = embed
        self.config = memory_config or config.memory

    def append(self, session_id: str, role: str, content: str, embedding: List[float], timestamp: Optional[int] = None) -> str:
        """Write one side of a turn.

        Args:
            session_id: Session the turn belongs to
            role: 'user' or 'assistant'
            content: Message text
            embedding: Embedding of the message text
            timestamp: Unix millis (defaults to now)

        Returns:
            The record id

        Raises:
            ConversationMemoryError: If no store is configured or the write fails
        """
        if self.opensearch is None:
            raise ConversationMemoryError('No vector store configured for conversation memory')
        if role not in _ROLE_ORDER:
            raise ConversationMemoryError(f'Invalid role: {role}')

        timestamp = timestamp if timestamp is not None else now_millis()
        turn = ConversationTurn(id=f'{session_id}_{timestamp}_{role}',
                                session_id=session_id,
                                role=role,
                                content=content,
                                embedding=embedding,
                                timestamp=timestamp)
        try:
            self.opensearch.upsert_records([turn.to_record()])
        except OpenSearchError as e:
            raise ConversationMemoryError(f'Failed to store {role} turn for session {session_id}: {e}')

        logger.debug(f'Stored {role} turn {turn.id}')
        return turn.id

    def append_turn(self, session_id: str, message: str, reply: str, message_embedding: List[float]) -> None:
        """Write the user message and the assistant reply of one turn, in that order.

        The reply is embedded here; both records share the turn timestamp.
        """
        if self.embed is None:
            raise ConversationMemoryError('No embedding client configured for conversation memory')

        timestamp = now_millis()
        self.append(session_id, ROLE_USER, message, message_embedding, timestamp)
        reply_embedding = self.embed.embed_document(reply)
        self.append(session_id, ROLE_ASSISTANT, reply, reply_embedding, timestamp)

    def history(self, session_id: str, limit: Optional[int] = None) -> List[Dict[str, object]]:
        """Return up to ``limit`` most recent turns of a session, oldest first.

        A candidate set larger than ``limit`` is fetched before sorting so the
        most recent turns are not dropped by store ranking. Failures yield [].
        """
        if self.opensearch is None:
            return []

        limit = limit if limit is not None else self.config.history_limit
        candidates = max(limit, self.config.history_candidates)

        filters = {'sessionId': session_id, 'type': RECORD_TYPE_CONVERSATION}
        try:
            matches = self.opensearch.filter_query(filters, top_k=candidates, sort_field='timestamp')
        except OpenSearchError as e:
            logger.warning(f'Conversation history unavailable for session {session_id}: {e}')
            return []

        turns = [{
            'role': m.metadata.get('role'),
            'content': m.metadata.get('content'),
            'timestamp': m.metadata.get('timestamp') or 0
        } for m in matches]
        turns.sort(key=lambda t: (t['timestamp'], _ROLE_ORDER.get(t['role'], 2)))

        return turns[-limit:] if limit > 0 else []
