"""
Amazon Bedrock LLM client wrapper for short chat completions.
"""

import random
import time
from typing import Dict, List, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .config import BedrockLLMConfig
from .logging_config import get_logger

logger = get_logger(__name__)


class BedrockLLMError(Exception):
    """Custom exception for Bedrock LLM errors."""
    pass


class BedrockLLM:
    """Amazon Bedrock chat client with retry logic and error handling."""

    def __init__(self, config: BedrockLLMConfig):
        """
        Initialize Bedrock LLM client.

        Args:
            config: BedrockLLMConfig instance with connection parameters
        """
        self.config = config
        self.model_id = config.model_id

        self.bedrock_runtime = boto3.client(
            'bedrock-runtime',
            region_name=config.region,
            config=BotoConfig(
                connect_timeout=10,
                read_timeout=60,
                retries={'max_attempts': 0}  # We handle retries manually
            ))

        logger.info(f'Initialized Bedrock LLM client with model: {self.model_id}')

    @staticmethod
    def _to_bedrock_messages(messages: List[Dict[str, str]]) -> List[Dict]:
        return [{'role': m['role'], 'content': [{'text': m['content']}]} for m in messages if m.get('content')]

    def _converse(self, messages: List[Dict], system_prompt: str, max_tokens: int, temperature: float) -> str:
        stream = self.bedrock_runtime.converse_stream(modelId=self.model_id,
                                                      messages=messages,
                                                      system=[{'text': system_prompt}],
                                                      inferenceConfig={
                                                          'maxTokens': max_tokens,
                                                          'temperature': temperature
                                                      }).get('stream')
        text = ''
        for event in stream or []:
            if 'contentBlockDelta' in event:
                text += event['contentBlockDelta']['delta'].get('text', '')
            if 'metadata' in event:
                logger.debug(f"Bedrock LLM usage: {event['metadata'].get('usage')}")
        return text

    def complete(self,
                 messages: List[Dict[str, str]],
                 system_prompt: str,
                 temperature: Optional[float] = None,
                 max_tokens: Optional[int] = None) -> str:
        """
        Generate a chat completion.

        Args:
            messages: Plain chat messages, each a dict with 'role' and 'content'
            system_prompt: System instruction for the model
            temperature: Sampling temperature (uses config default if None)
            max_tokens: Maximum output tokens (uses config default if None)

        Returns:
            Completion text

        Raises:
            BedrockLLMError: If all retry attempts fail or the model returns nothing
        """
        max_tokens = max_tokens if max_tokens is not None else self.config.max_tokens
        temperature = temperature if temperature is not None else self.config.temperature
        bedrock_messages = self._to_bedrock_messages(messages)

        for attempt in range(self.config.retry_attempts):
            try:
                logger.debug(f'Bedrock LLM request attempt {attempt + 1}/{self.config.retry_attempts}')
                text = self._converse(bedrock_messages, system_prompt, max_tokens, temperature)
                if not text.strip():
                    raise BedrockLLMError('Bedrock LLM returned an empty completion')

                logger.debug(f'Bedrock LLM completion generated (length: {len(text)})')
                return text.strip()

            except (ClientError, BotoCoreError) as e:
                logger.warning(f'Bedrock LLM attempt {attempt + 1}/{self.config.retry_attempts} failed: {e}')

                if attempt < self.config.retry_attempts - 1:
                    # Exponential backoff with jitter
                    delay = self.config.retry_delay * (2**attempt) + random.uniform(0, 1)
                    time.sleep(delay)
                else:
                    raise BedrockLLMError(f'Bedrock LLM failed after {self.config.retry_attempts} attempts: {e}')

            except BedrockLLMError:
                raise
            except Exception as e:
                logger.error(f'Unexpected error in Bedrock LLM: {e}')
                raise BedrockLLMError(f'Unexpected Bedrock LLM error: {e}')

        raise BedrockLLMError(f'Bedrock LLM failed after {self.config.retry_attempts} attempts')

    def health_check(self) -> bool:
        """
        Perform a health check on the Bedrock LLM service.

        Returns:
            True if service is healthy, False otherwise
        """
        try:
            reply = self.complete(messages=[{'role': 'user', 'content': 'Hi'}],
                                  system_prompt="You are a helpful assistant. Respond with just 'OK'.",
                                  temperature=0.0,
                                  max_tokens=10)
            return len(reply) > 0

        except Exception as e:
            logger.error(f'Bedrock LLM health check failed: {e}')
            return False
