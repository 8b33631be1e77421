"""
Amazon Bedrock embedding client for knowledge chunks, stored turns and queries.
"""

import json
import random
import time
from typing import Any, Dict, List

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .config import BedrockEmbedConfig
from .logging_config import get_logger

logger = get_logger(__name__)


class BedrockEmbedError(Exception):
    """Custom exception for Bedrock embedding errors."""
    pass


class BedrockEmbed:
    """Embed text with a Titan or Cohere model through ``invoke_model``.

    Every vector returned has ``output_embedding_length`` values; anything else
    is rejected so a bad vector never reaches the index.
    """

    def __init__(self, config: BedrockEmbedConfig):
        self.config = config
        self.model_id = config.model_id
        self.output_embedding_length = config.dimension

        # Retries are handled in _invoke
        self.bedrock_runtime = boto3.client('bedrock-runtime',
                                            region_name=config.region,
                                            config=BotoConfig(retries={'max_attempts': 0}))

        logger.info(f'Bedrock Embed ready: {self.model_id} ({self.output_embedding_length} dims)')

    def _request_body(self, text: str, input_type: str) -> Dict[str, Any]:
        model = self.model_id.lower()
        if 'titan' in model:
            return {'inputText': text, 'dimensions': self.output_embedding_length}
        if 'cohere' in model:
            return {'input_type': input_type, 'texts': [text]}
        raise BedrockEmbedError(f'Unsupported embedding model: {self.model_id}')

    @staticmethod
    def _vector_from(result: Dict[str, Any]) -> List[float]:
        if 'embedding' in result:
            return result['embedding'] or []
        embeddings = result.get('embeddings') or [[]]
        return embeddings[0]

    def _invoke(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        attempts = self.config.retry_attempts
        body = json.dumps(payload)
        last_error = None

        for attempt in range(1, attempts + 1):
            try:
                response = self.bedrock_runtime.invoke_model(body=body,
                                                             modelId=self.model_id,
                                                             accept='application/json',
                                                             contentType='application/json')
                return json.loads(response['body'].read())

            except (ClientError, BotoCoreError) as e:
                last_error = e
                logger.warning(f'Embedding call {attempt}/{attempts} to {self.model_id} failed: {e}')
                if attempt < attempts:
                    # Exponential backoff with jitter
                    time.sleep(self.config.retry_delay * (2**(attempt - 1)) + random.uniform(0, 1))

            except Exception as e:
                logger.error(f'Embedding call to {self.model_id} failed: {e}')
                raise BedrockEmbedError(f'Unexpected Bedrock Embed error: {e}')

        raise BedrockEmbedError(f'Bedrock Embed failed after {attempts} attempts: {last_error}')

    def _embed(self, text: str, input_type: str) -> List[float]:
        if not text or not text.strip():
            raise BedrockEmbedError('Cannot embed empty text')

        vector = self._vector_from(self._invoke(self._request_body(text, input_type)))
        if len(vector) != self.output_embedding_length:
            raise BedrockEmbedError(f'Embedding has {len(vector)} dimensions, '
                                    f'expected {self.output_embedding_length}')
        return vector

    def embed_document(self, text: str) -> List[float]:
        """Embed text that will be stored (knowledge chunks, assistant replies).

        Raises:
            BedrockEmbedError: If the model call fails or returns a vector of the wrong size
        """
        return self._embed(text, 'search_document')

    def embed_query(self, text: str) -> List[float]:
        """Embed text used to search (user messages)."""
        return self._embed(text, 'search_query')

    def health_check(self) -> bool:
        """True if a probe text embeds to the configured dimension."""
        try:
            return len(self.embed_document('health check')) == self.output_embedding_length
        except Exception as e:
            logger.error(f'Bedrock Embed health check failed: {e}')
            return False
