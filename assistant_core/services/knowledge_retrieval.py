"""
Knowledge Retrieval Service: filtered similarity search over the knowledge base.
"""

from typing import Any, Dict, Optional

from ..models.core import RECORD_TYPE_KNOWLEDGE
from ..utils.bedrock_embed import BedrockEmbed, BedrockEmbedError
from ..utils.config import KnowledgeConfig, config
from ..utils.logging_config import get_logger
from ..utils.opensearch_client import OpenSearchClient, OpenSearchError

logger = get_logger(__name__)

# Intents that narrow retrieval to chunks carrying a capability flag
INTENT_CAPABILITY_FLAGS = {
    'pricing_inquiry': 'hasPricing',
    'portfolio_request': 'hasPortfolio',
    'process_inquiry': 'hasProcess',
    'service_inquiry': 'hasServices',
}


class KnowledgeRetriever:
    """Embed a query, search the knowledge records and format the matches as prompt context.

    Retrieval is fail-soft: any provider failure, or a missing index, yields an
    empty context so the reply can still be produced from base instructions.
    """

    def __init__(self,
                 opensearch: Optional[OpenSearchClient],
                 embed: Optional[BedrockEmbed],
                 knowledge_config: Optional[KnowledgeConfig] = None):
        self.opensearch = opensearch
        self.embed = embed
        self.config = knowledge_config or config.knowledge

    @staticmethod
    def build_filter(intent: Optional[str] = None) -> Dict[str, Any]:
        """Metadata filter for a knowledge query, narrowed by intent where it maps to a flag."""
        filters: Dict[str, Any] = {'type': RECORD_TYPE_KNOWLEDGE}
        flag = INTENT_CAPABILITY_FLAGS.get(intent)
        if flag:
            filters[flag] = True
        return filters

    def retrieve(self, query: str, intent: Optional[str] = None) -> str:
        """Retrieve knowledge context for a query.

        Args:
            query: User message to search with
            intent: Optional classified intent used to narrow the filter

        Returns:
            Matches formatted as "[source] content", joined by blank lines, or ""
        """
        if self.opensearch is None or self.embed is None:
            return ''

        try:
            query_embedding = self.embed.embed_query(query)
            matches = self.opensearch.query(query_embedding, top_k=self.config.top_k, filters=self.build_filter(intent))
        except (BedrockEmbedError, OpenSearchError) as e:
            logger.warning(f'Knowledge retrieval unavailable: {e}')
            return ''
        except Exception as e:
            logger.warning(f'Unexpected error during knowledge retrieval: {e}')
            return ''

        relevant = [m for m in matches if m.score > self.config.similarity_threshold]
        logger.info(f'Retrieved {len(matches)} knowledge matches, {len(relevant)} above threshold')

        return '\n\n'.join(f"[{m.metadata.get('source') or 'unknown'}] {m.metadata.get('content', '')}" for m in relevant)
