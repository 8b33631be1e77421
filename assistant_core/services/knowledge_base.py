"""
Knowledge Base Service for seeding reference text into the vector index.
"""

from typing import List, Optional

from ..models.core import KnowledgeChunk
from ..utils.bedrock_embed import BedrockEmbed, BedrockEmbedError
from ..utils.config import KnowledgeConfig, config
from ..utils.logging_config import get_logger
from ..utils.opensearch_client import OpenSearchClient, OpenSearchError
from ..utils.timestamp_utils import now_millis
from .chunker import split_text_into_chunks

logger = get_logger(__name__)

SEED_KNOWLEDGE = [
    'Origami Creative is a full-service branding and creative agency specializing in brand strategy, visual identity '
    'design, and comprehensive brand experiences. We help businesses unfold their potential through strategic creative '
    'solutions. Our team combines strategic thinking with creative execution to help startups, scale-ups, and '
    'established businesses build memorable brands.',
    'Our services include Brand Strategy (positioning, messaging, competitive analysis), Visual Identity Design (logo '
    'creation, color systems, typography), Marketing Materials (business cards, brochures, digital templates), Website '
    'Design (brand-aligned experiences), and Packaging Design (retail presence and unboxing experiences).',
    'Our process follows five phases: 1) Discovery & Research - market analysis and competitor research, 2) Strategy '
    'Development - positioning and messaging, 3) Creative Execution - logo and visual identity, 4) Brand Guidelines - '
    'usage standards and consistency, 5) Implementation - rollout and ongoing support. Projects typically take 8-12 '
    'weeks.',
    'Portfolio highlights: TechFlow startup rebrand increased trust scores by 40% and led to Series A funding. MedCare '
    'health network rebrand improved patient acquisition by 25%. Our work spans technology, healthcare, retail, '
    'finance, and food industries with proven results.',
    'Investment ranges: Startup packages $15,000-$25,000, Professional packages $25,000-$45,000, Enterprise packages '
    '$45,000-$75,000. Additional services include website design ($20,000-$50,000) and packaging ($15,000-$35,000). We '
    'offer flexible payment terms and detailed proposals.',
]


class KnowledgeBaseError(Exception):
    """Custom exception for knowledge base errors."""
    pass


def build_chunk(chunk_id: str, text: str, source: str, embedding: List[float], created_at: int) -> KnowledgeChunk:
    """Tag a chunk of text with capability flags derived from its wording."""
    lowered = text.lower()
    return KnowledgeChunk(id=chunk_id,
                          text=text,
                          source=source,
                          has_portfolio='portfolio' in lowered or 'case study' in lowered,
                          has_process='process' in lowered or 'phases' in lowered,
                          has_pricing='investment' in lowered or '$' in lowered,
                          has_services='services' in lowered or 'design' in lowered,
                          embedding=embedding,
                          created_at=created_at)


class KnowledgeBaseService:
    """Chunk, tag, embed and upsert reference texts."""

    def __init__(self,
                 opensearch: Optional[OpenSearchClient],
                 embed: Optional[BedrockEmbed],
                 knowledge_config: Optional[KnowledgeConfig] = None):
        self.opensearch = opensearch
        self.embed = embed
        self.config = knowledge_config or config.knowledge

    def seed(self, texts: Optional[List[str]] = None) -> int:
        """Seed the knowledge base.

        Args:
            texts: Reference texts; defaults to SEED_KNOWLEDGE

        Returns:
            Number of chunk records written (0 when no vector store is available)

        Raises:
            KnowledgeBaseError: If embedding or upserting fails
        """
        if self.opensearch is None or self.embed is None:
            logger.info('Vector store not available, skipping knowledge seeding')
            return 0

        texts = SEED_KNOWLEDGE if texts is None else texts
        logger.info(f'Seeding knowledge base from {len(texts)} texts')

        try:
            timestamp = now_millis()
            records = []
            for text_index, text in enumerate(texts):
                chunks = split_text_into_chunks(text, self.config.seed_chunk_size, self.config.seed_overlap)
                for chunk_index, chunk_text in enumerate(chunks):
                    chunk = build_chunk(chunk_id=f'seed_{text_index}_{chunk_index}_{timestamp}',
                                        text=chunk_text,
                                        source=f'seed_knowledge_{text_index}',
                                        embedding=self.embed.embed_document(chunk_text),
                                        created_at=timestamp)
                    records.append(chunk.to_record())

            batch_size = self.config.seed_batch_size
            for start in range(0, len(records), batch_size):
                self.opensearch.upsert_records(records[start:start + batch_size])

            logger.info(f'Knowledge seeded: {len(records)} chunks')
            return len(records)

        except (BedrockEmbedError, OpenSearchError) as e:
            logger.error(f'Failed to seed knowledge: {e}')
            raise KnowledgeBaseError(f'Knowledge seeding failed: {e}')
