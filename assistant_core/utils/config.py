"""
Configuration management for AWS services and application settings.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass
class BedrockLLMConfig:
    """Configuration for Amazon Bedrock LLM service."""
    region: str
    model_id: str
    max_tokens: int
    temperature: float
    retry_attempts: int
    retry_delay: float


@dataclass
class BedrockEmbedConfig:
    """Configuration for Amazon Bedrock Embed service."""
    region: str
    model_id: str
    dimension: int
    retry_attempts: int
    retry_delay: float


@dataclass
class OpenSearchConfig:
    """Configuration for the OpenSearch vector index."""
    enabled: bool
    endpoint: str
    port: int
    region: str
    index_name: str
    dimension: int


@dataclass
class KnowledgeConfig:
    """Configuration for knowledge chunking and retrieval."""
    max_chunk_size: int
    overlap: int
    seed_chunk_size: int
    seed_overlap: int
    seed_batch_size: int
    similarity_threshold: float
    top_k: int


@dataclass
class MemoryConfig:
    """Configuration for conversation memory and profile storage."""
    history_limit: int
    history_candidates: int
    context_turns: int
    profile_top_k: int
    background_workers: int


@dataclass
class PersonaConfig:
    """Configuration for the assistant identity."""
    kind: str  # brand or legal
    assistant_name: str
    role: str
    organization: str
    website: str
    max_reply_words: int


@dataclass
class MCPConfig:
    """Configuration for MCP interface."""
    transport: str
    host: str
    port: int


@dataclass
class AppConfig:
    """Main application configuration."""
    environment: str
    log_level: str
    bedrock_llm: BedrockLLMConfig
    bedrock_embed: BedrockEmbedConfig
    opensearch: OpenSearchConfig
    knowledge: KnowledgeConfig
    memory: MemoryConfig
    persona: PersonaConfig
    mcp: MCPConfig


def _get_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


def load_config() -> AppConfig:
    """Load configuration from environment variables with defaults."""
    environment = os.getenv('ENVIRONMENT', 'development')

    # Bedrock configuration
    bedrock_llm_config = BedrockLLMConfig(region=os.getenv('BEDROCK_LLM_AWS_REGION', 'us-east-1'),
                                          model_id=os.getenv('BEDROCK_LLM_MODEL_ID', 'anthropic.claude-3-sonnet-20240229-v1:0'),
                                          max_tokens=int(os.getenv('BEDROCK_LLM_MAX_TOKENS', '150')),
                                          temperature=float(os.getenv('BEDROCK_LLM_TEMPERATURE', '0.7')),
                                          retry_attempts=int(os.getenv('BEDROCK_LLM_RETRY_ATTEMPTS', '3')),
                                          retry_delay=float(os.getenv('BEDROCK_LLM_RETRY_DELAY', '1.0')))

    # Bedrock Embed configuration
    bedrock_embed_config = BedrockEmbedConfig(region=os.getenv('BEDROCK_EMBED_AWS_REGION', 'us-east-1'),
                                              model_id=os.getenv('BEDROCK_EMBED_MODEL_ID', 'amazon.titan-embed-text-v2:0'),
                                              dimension=int(os.getenv('BEDROCK_EMBED_DIMENSION', '1024')),
                                              retry_attempts=int(os.getenv('BEDROCK_EMBED_RETRY_ATTEMPTS', '3')),
                                              retry_delay=float(os.getenv('BEDROCK_EMBED_RETRY_DELAY', '1.0')))

    # Vector search configuration
    opensearch_config = OpenSearchConfig(enabled=_get_bool('OPENSEARCH_ENABLED', 'true'),
                                         endpoint=os.getenv('OPENSEARCH_ENDPOINT', 'localhost'),
                                         port=int(os.getenv('OPENSEARCH_PORT', '443')),
                                         region=os.getenv('OPENSEARCH_AWS_REGION', 'us-east-1'),
                                         index_name=os.getenv('OPENSEARCH_INDEX', 'assistant_memory'),
                                         dimension=int(os.getenv('OPENSEARCH_DIMENSION', '1024')))

    # Knowledge configuration
    knowledge_config = KnowledgeConfig(max_chunk_size=int(os.getenv('KNOWLEDGE_MAX_CHUNK_SIZE', '1000')),
                                       overlap=int(os.getenv('KNOWLEDGE_OVERLAP', '200')),
                                       seed_chunk_size=int(os.getenv('KNOWLEDGE_SEED_CHUNK_SIZE', '800')),
                                       seed_overlap=int(os.getenv('KNOWLEDGE_SEED_OVERLAP', '100')),
                                       seed_batch_size=int(os.getenv('KNOWLEDGE_SEED_BATCH_SIZE', '50')),
                                       similarity_threshold=float(os.getenv('KNOWLEDGE_SIMILARITY_THRESHOLD', '0.70')),
                                       top_k=int(os.getenv('KNOWLEDGE_TOP_K', '5')))

    # Memory configuration
    memory_config = MemoryConfig(history_limit=int(os.getenv('MEMORY_HISTORY_LIMIT', '10')),
                                 history_candidates=int(os.getenv('MEMORY_HISTORY_CANDIDATES', '50')),
                                 context_turns=int(os.getenv('MEMORY_CONTEXT_TURNS', '6')),
                                 profile_top_k=int(os.getenv('MEMORY_PROFILE_TOP_K', '5')),
                                 background_workers=int(os.getenv('MEMORY_BACKGROUND_WORKERS', '4')))

    # Persona configuration
    persona_config = PersonaConfig(kind=os.getenv('PERSONA_KIND', 'brand'),
                                   assistant_name=os.getenv('PERSONA_NAME', 'Rakesh'),
                                   role=os.getenv('PERSONA_ROLE', 'AI Brand Strategist'),
                                   organization=os.getenv('PERSONA_ORGANIZATION', 'ORIGAMI CREATIVE'),
                                   website=os.getenv('PERSONA_WEBSITE', 'https://origamicreative.com'),
                                   max_reply_words=int(os.getenv('PERSONA_MAX_REPLY_WORDS', '80')))

    # MCP configuration
    mcp_config = MCPConfig(transport=os.getenv('MCP_TRANSPORT', 'sse'),
                           host=os.getenv('MCP_HOST', '127.0.0.1'),
                           port=int(os.getenv('MCP_PORT', '8000')))

    return AppConfig(environment=environment,
                     log_level=os.getenv('LOG_LEVEL', 'INFO'),
                     bedrock_llm=bedrock_llm_config,
                     bedrock_embed=bedrock_embed_config,
                     opensearch=opensearch_config,
                     knowledge=knowledge_config,
                     memory=memory_config,
                     persona=persona_config,
                     mcp=mcp_config)


# Global configuration instance
config = load_config()
