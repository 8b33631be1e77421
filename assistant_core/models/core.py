"""
Core data models for the conversation engine.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

RECORD_TYPE_KNOWLEDGE = 'knowledge'
RECORD_TYPE_CONVERSATION = 'conversation'
RECORD_TYPE_PROFILE = 'profile'

ROLE_USER = 'user'
ROLE_ASSISTANT = 'assistant'


@dataclass
class VectorRecord:
    """A single document written to the vector index."""
    id: str
    vector: List[float]
    metadata: Dict[str, Any]


@dataclass
class VectorMatch:
    """A single hit returned by the vector index."""
    id: str
    score: float  # Cosine similarity, or 0.0 for pure metadata queries
    metadata: Dict[str, Any]


@dataclass
class KnowledgeChunk:
    """A bounded slice of reference text, tagged with capability flags."""
    id: str
    text: str
    source: str
    has_portfolio: bool
    has_process: bool
    has_pricing: bool
    has_services: bool
    embedding: List[float]
    created_at: int  # Unix millis

    def to_record(self) -> VectorRecord:
        return VectorRecord(id=self.id,
                            vector=self.embedding,
                            metadata={
                                'content': self.text,
                                'type': RECORD_TYPE_KNOWLEDGE,
                                'source': self.source,
                                'hasPortfolio': self.has_portfolio,
                                'hasProcess': self.has_process,
                                'hasPricing': self.has_pricing,
                                'hasServices': self.has_services,
                                'timestamp': self.created_at
                            })


@dataclass
class ConversationTurn:
    """One side (user or assistant) of a conversation turn."""
    id: str
    session_id: str
    role: str
    content: str
    embedding: List[float]
    timestamp: int  # Unix millis

    def to_record(self) -> VectorRecord:
        return VectorRecord(id=self.id,
                            vector=self.embedding,
                            metadata={
                                'content': self.content,
                                'role': self.role,
                                'sessionId': self.session_id,
                                'type': RECORD_TYPE_CONVERSATION,
                                'timestamp': self.timestamp
                            })


@dataclass
class ProfileFact:
    """A single key/value fact about the user of a session."""
    session_id: str
    key: str
    value: str
    timestamp: int  # Unix millis

    @property
    def id(self) -> str:
        return f'{self.session_id}_profile_{self.key}'

    def to_record(self, placeholder_vector: List[float]) -> VectorRecord:
        return VectorRecord(id=self.id,
                            vector=placeholder_vector,
                            metadata={
                                'sessionId': self.session_id,
                                'type': RECORD_TYPE_PROFILE,
                                'profileKey': self.key,
                                'profileValue': self.value,
                                'timestamp': self.timestamp
                            })


@dataclass
class InteractionEvent:
    """An analytics event recorded against a session."""
    type: str  # user_message, ai_response, error, lead_capture
    content: Optional[str] = None
    intent: Optional[str] = None
    lead_trigger: bool = False
    latency_ms: Optional[int] = None
    timestamp: int = 0


@dataclass
class SessionRecord:
    """In-process analytics view of a single session. Not durable."""
    session_id: str
    start_time: int
    interactions: int = 0
    events: List[InteractionEvent] = field(default_factory=list)
    lead_score: int = 0
    user_profile: Dict[str, str] = field(default_factory=dict)
    topics: Set[str] = field(default_factory=set)
    outcome: str = 'active'  # active, lead_captured, abandoned
    lead_data: Optional[Dict[str, Any]] = None


@dataclass
class DailyStat:
    """Per-day aggregate counters. Counters only grow within a day."""
    date: str
    total_messages: int = 0
    session_ids: Set[str] = field(default_factory=set)
    leads_generated: int = 0
    top_intents: Dict[str, int] = field(default_factory=dict)


@dataclass
class DailyAnalytics:
    """Snapshot of a DailyStat with derived fields materialized."""
    date: str
    total_sessions: int
    total_messages: int
    leads_generated: int
    top_intents: Dict[str, int]
    conversion_rate: str
