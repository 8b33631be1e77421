"""
Shared fixtures: in-memory stand-ins for Bedrock and OpenSearch.
"""

import math
import threading
from typing import Any, Dict, List, Optional

import pytest

from assistant_core.models.core import VectorMatch, VectorRecord
from assistant_core.services.analytics import AnalyticsService
from assistant_core.services.conversation_memory import ConversationMemoryStore
from assistant_core.services.knowledge_retrieval import KnowledgeRetriever
from assistant_core.services.profile_store import ProfileStore
from assistant_core.services.response_orchestration import ResponseOrchestrator
from assistant_core.utils.bedrock_embed import BedrockEmbedError
from assistant_core.utils.bedrock_llm import BedrockLLMError
from assistant_core.utils.config import BedrockLLMConfig, KnowledgeConfig, MemoryConfig, PersonaConfig
from assistant_core.utils.opensearch_client import OpenSearchError, VectorDimensionError

DIMENSION = 8


def _cosine(a: List[float], b: List[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class FakeVectorStore:
    """Dict-backed vector store with exact-match filters and cosine scoring.

    By default filters narrow the candidates before the nearest neighbours are
    picked. With ``post_filter`` set, the top_k neighbours are picked across every
    record first and then filtered, as a plain k-NN query with an outer filter does.
    """

    def __init__(self, dimension: int = DIMENSION):
        self.dimension = dimension
        self.records: Dict[str, VectorRecord] = {}
        self.score_overrides: Dict[str, float] = {}
        self.queries: List[Dict[str, Any]] = []
        self.filter_queries: List[Dict[str, Any]] = []
        self.fail_queries = False
        self.fail_upserts = False
        self.post_filter = False
        self._lock = threading.Lock()

    @staticmethod
    def _matches(metadata: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
        return all(metadata.get(k) == v for k, v in (filters or {}).items())

    def upsert_records(self, records: List[VectorRecord]) -> int:
        for record in records:
            if len(record.vector) != self.dimension:
                raise VectorDimensionError(f'{record.id} has {len(record.vector)} dimensions')
        if self.fail_upserts:
            raise OpenSearchError('store is down')
        with self._lock:
            for record in records:
                self.records[record.id] = record
        return len(records)

    def query(self, vector: List[float], top_k: int = 5, filters: Optional[Dict[str, Any]] = None) -> List[VectorMatch]:
        self.queries.append({'vector': vector, 'top_k': top_k, 'filters': dict(filters or {})})
        if self.fail_queries:
            raise OpenSearchError('store is down')
        with self._lock:
            candidates = list(self.records.values())
        if not self.post_filter:
            candidates = [r for r in candidates if self._matches(r.metadata, filters)]
        matches = [
            VectorMatch(id=r.id, score=self.score_overrides.get(r.id, _cosine(vector, r.vector)), metadata=dict(r.metadata))
            for r in candidates
        ]
        matches.sort(key=lambda m: m.score, reverse=True)
        matches = matches[:top_k]
        if self.post_filter:
            matches = [m for m in matches if self._matches(m.metadata, filters)]
        return matches

    def filter_query(self,
                     filters: Dict[str, Any],
                     top_k: int = 10,
                     sort_field: Optional[str] = None,
                     descending: bool = True) -> List[VectorMatch]:
        self.filter_queries.append({'filters': dict(filters), 'top_k': top_k, 'sort_field': sort_field})
        if self.fail_queries:
            raise OpenSearchError('store is down')
        with self._lock:
            candidates = [r for r in self.records.values() if self._matches(r.metadata, filters)]
        if sort_field:
            candidates.sort(key=lambda r: r.metadata.get(sort_field) or 0, reverse=descending)
        return [VectorMatch(id=r.id, score=0.0, metadata=dict(r.metadata)) for r in candidates[:top_k]]


class FakeEmbed:
    """Deterministic bag-of-characters embedder."""

    def __init__(self, dimension: int = DIMENSION):
        self.output_embedding_length = dimension
        self.fail = False
        self.calls: List[str] = []

    def _embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.fail:
            raise BedrockEmbedError('embedding endpoint is down')
        vector = [0.01] * self.output_embedding_length
        for char in text.lower():
            vector[ord(char) % self.output_embedding_length] += 1.0
        return vector

    def embed_query(self, text: str) -> List[float]:
        return self._embed(text)

    def embed_document(self, text: str) -> List[float]:
        return self._embed(text)


class FakeLLM:
    """Returns scripted replies and records the prompts it was given."""

    def __init__(self, replies: Optional[List[str]] = None):
        self.replies = list(replies or [])
        self.default_reply = 'Happy to help with your brand.'
        self.fail = False
        self.calls: List[Dict[str, Any]] = []

    def complete(self, messages, system_prompt, temperature=None, max_tokens=None) -> str:
        self.calls.append({
            'messages': messages,
            'system_prompt': system_prompt,
            'temperature': temperature,
            'max_tokens': max_tokens
        })
        if self.fail:
            raise BedrockLLMError('model endpoint is down')
        return self.replies.pop(0) if self.replies else self.default_reply


@pytest.fixture
def knowledge_config():
    return KnowledgeConfig(max_chunk_size=1000,
                           overlap=200,
                           seed_chunk_size=800,
                           seed_overlap=100,
                           seed_batch_size=50,
                           similarity_threshold=0.70,
                           top_k=5)


@pytest.fixture
def memory_config():
    return MemoryConfig(history_limit=10, history_candidates=50, context_turns=6, profile_top_k=5, background_workers=2)


@pytest.fixture
def persona_config():
    return PersonaConfig(kind='brand',
                         assistant_name='Rakesh',
                         role='AI Brand Strategist',
                         organization='ORIGAMI CREATIVE',
                         website='https://origamicreative.com',
                         max_reply_words=80)


@pytest.fixture
def llm_config():
    return BedrockLLMConfig(region='us-east-1',
                            model_id='test-model',
                            max_tokens=150,
                            temperature=0.7,
                            retry_attempts=1,
                            retry_delay=0.0)


@pytest.fixture
def store():
    return FakeVectorStore()


@pytest.fixture
def embed():
    return FakeEmbed()


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def analytics():
    return AnalyticsService()


@pytest.fixture
def orchestrator(store, embed, llm, analytics, knowledge_config, memory_config, persona_config, llm_config):
    orchestrator = ResponseOrchestrator(llm=llm,
                                        analytics=analytics,
                                        retriever=KnowledgeRetriever(store, embed, knowledge_config),
                                        memory=ConversationMemoryStore(store, embed, memory_config),
                                        profiles=ProfileStore(store, memory_config),
                                        embed=embed,
                                        persona=persona_config,
                                        memory_config=memory_config,
                                        llm_config=llm_config)
    yield orchestrator
    orchestrator.shutdown()
