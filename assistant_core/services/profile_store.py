"""
Profile Store for per-session user facts.
"""

from typing import Dict, List, Optional

from ..models.core import RECORD_TYPE_PROFILE, ProfileFact
from ..utils.config import MemoryConfig, config
from ..utils.logging_config import get_logger
from ..utils.opensearch_client import OpenSearchClient, OpenSearchError
from ..utils.timestamp_utils import now_millis

logger = get_logger(__name__)


class ProfileStore:
    """Persist profile facts keyed by (session, key) and read them back by metadata.

    Each fact is written under the id ``{session_id}_profile_{key}``, so a
    repeated write overwrites rather than duplicates. Reads are capped at
    ``profile_top_k`` facts (5 by default); with more keys than that, which
    subset comes back is up to the store.
    """

    def __init__(self, opensearch: Optional[OpenSearchClient], memory_config: Optional[MemoryConfig] = None):
        self.opensearch = opensearch
        self.config = memory_config or config.memory

    def _placeholder_vector(self) -> List[float]:
        # Profile lookups never use similarity; cosine space rejects all-zero vectors
        return [0.01] * self.opensearch.dimension

    def upsert(self, session_id: str, key: str, value: str) -> bool:
        """Write or overwrite one fact. Returns False if the write was dropped."""
        return self.upsert_many(session_id, {key: value})

    def upsert_many(self, session_id: str, facts: Dict[str, str]) -> bool:
        """Write or overwrite several facts in one batch.

        Write failures are logged and dropped.

        Returns:
            True if the facts were written
        """
        if self.opensearch is None or not facts:
            return False

        timestamp = now_millis()
        placeholder = self._placeholder_vector()
        records = [
            ProfileFact(session_id=session_id, key=key, value=str(value), timestamp=timestamp).to_record(placeholder)
            for key, value in facts.items()
        ]
        try:
            self.opensearch.upsert_records(records)
        except OpenSearchError as e:
            logger.warning(f'Dropped profile update for session {session_id}: {e}')
            return False

        logger.info(f'Updated user profile for session {session_id}: {sorted(facts)}')
        return True

    def profile(self, session_id: str) -> Dict[str, str]:
        """Read a session's profile facts. Failures yield {}."""
        if self.opensearch is None:
            return {}

        filters = {'sessionId': session_id, 'type': RECORD_TYPE_PROFILE}
        try:
            matches = self.opensearch.filter_query(filters, top_k=self.config.profile_top_k)
        except OpenSearchError as e:
            logger.warning(f'User profile unavailable for session {session_id}: {e}')
            return {}

        profile = {}
        for match in matches:
            key = match.metadata.get('profileKey')
            value = match.metadata.get('profileValue')
            if key and value:
                profile[key] = value
        return profile
