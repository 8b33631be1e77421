"""
Response Orchestration Service: compose the prompt, generate the reply and record side effects.
"""

import json
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..models.core import InteractionEvent
from ..utils.bedrock_embed import BedrockEmbed, BedrockEmbedError
from ..utils.bedrock_llm import BedrockLLM, BedrockLLMError
from ..utils.config import AppConfig, BedrockLLMConfig, MemoryConfig, PersonaConfig, config
from ..utils.logging_config import get_logger
from ..utils.opensearch_client import OpenSearchClient, OpenSearchError
from .analytics import AnalyticsService
from .conversation_memory import ConversationMemoryError, ConversationMemoryStore
from .intent_classification import IntentClassifier, assess_urgency
from .knowledge_retrieval import KnowledgeRetriever
from .profile_extraction import extract_user_information
from .profile_store import ProfileStore

logger = get_logger(__name__)
background_logger = get_logger(f'{__name__}.background')

LEAD_TRIGGERS = ['contact', 'pricing', 'quote', 'interested']


class ResponseGenerationError(Exception):
    """Raised when the language model cannot produce a reply for a turn."""
    pass


@dataclass
class ChatResult:
    """Outcome of one chat turn."""
    reply: str
    intent: str
    lead_trigger: bool
    user_profile: Dict[str, str] = field(default_factory=dict)  # facts extracted from this turn


def build_conversation_context(history: List[Dict[str, object]], profile: Dict[str, str], max_turns: int = 6) -> str:
    """Render profile facts and the most recent turns as a prompt block."""
    context = ''
    if profile:
        context += 'User Information: '
        for key, value in profile.items():
            context += f'{key}: {value}, '
        context += '\n'

    recent = history[-max_turns:] if max_turns > 0 else []
    for turn in recent:
        context += f"{turn['role']}: {turn['content']}\n"
    return context


def detect_lead_trigger(message: str, reply: str) -> bool:
    """True if the exchange mentions contact, pricing, a quote or interest."""
    combined = (message + reply).lower()
    return any(trigger in combined for trigger in LEAD_TRIGGERS)


class ResponseOrchestrator:
    """Run a chat turn end to end.

    Knowledge, history and profile lookups are fail-soft. Only a failed model
    call aborts the turn. Conversation memory is written after the reply is
    produced, on a background worker that is independent of the caller.
    """

    def __init__(self,
                 llm: BedrockLLM,
                 analytics: AnalyticsService,
                 retriever: KnowledgeRetriever,
                 memory: ConversationMemoryStore,
                 profiles: ProfileStore,
                 embed: Optional[BedrockEmbed] = None,
                 classifier: Optional[IntentClassifier] = None,
                 persona: Optional[PersonaConfig] = None,
                 memory_config: Optional[MemoryConfig] = None,
                 llm_config: Optional[BedrockLLMConfig] = None):
        self.llm = llm
        self.analytics = analytics
        self.retriever = retriever
        self.memory = memory
        self.profiles = profiles
        self.embed = embed
        self.persona = persona or config.persona
        self.classifier = classifier or IntentClassifier.for_persona(self.persona.kind)
        self.memory_config = memory_config or config.memory
        self.llm_config = llm_config or config.bedrock_llm

        self._executor = ThreadPoolExecutor(max_workers=self.memory_config.background_workers,
                                            thread_name_prefix='memory-writer')
        self._pending: set = set()
        self._pending_lock = threading.Lock()

        logger.info(f'Initialized ResponseOrchestrator for {self.persona.organization} ({self.persona.kind})')

    @classmethod
    def from_config(cls, app_config: Optional[AppConfig] = None) -> 'ResponseOrchestrator':
        """Wire the orchestrator and its collaborators from configuration."""
        app_config = app_config or config
        embed = BedrockEmbed(app_config.bedrock_embed)
        llm = BedrockLLM(app_config.bedrock_llm)

        opensearch = None
        if app_config.opensearch.enabled:
            try:
                opensearch = OpenSearchClient(app_config.opensearch)
                opensearch.create_index_if_not_exists()
            except OpenSearchError as e:
                logger.warning(f'Vector store unavailable, continuing without memory or knowledge: {e}')
                opensearch = None

        return cls(llm=llm,
                   analytics=AnalyticsService(),
                   retriever=KnowledgeRetriever(opensearch, embed, app_config.knowledge),
                   memory=ConversationMemoryStore(opensearch, embed, app_config.memory),
                   profiles=ProfileStore(opensearch, app_config.memory),
                   embed=embed,
                   persona=app_config.persona,
                   memory_config=app_config.memory,
                   llm_config=app_config.bedrock_llm)

    def _session_context(self, session_id: str) -> Tuple[str, Dict[str, str]]:
        try:
            history = self.memory.history(session_id, self.memory_config.history_limit)
        except Exception as e:
            logger.warning(f'Skipping conversation history for session {session_id}: {e}')
            history = []

        try:
            profile = self.profiles.profile(session_id)
        except Exception as e:
            logger.warning(f'Skipping user profile for session {session_id}: {e}')
            profile = {}

        return build_conversation_context(history, profile, self.memory_config.context_turns), profile

    def build_system_prompt(self, knowledge_context: str, conversation_context: str, user_profile: Dict[str, str],
                            intent: str, urgency: Optional[str] = None) -> str:
        """Compose the system instruction for the model."""
        persona = self.persona
        company = user_profile.get('company') or 'your business'

        prompt = (f'You are {persona.assistant_name}, the {persona.role} for {persona.organization} ({persona.website}).\n'
                  f'You represent {persona.organization} and speak on its behalf.\n\n'
                  f'RELEVANT KNOWLEDGE:\n{knowledge_context}\n\n'
                  f'CONVERSATION CONTEXT:\n{conversation_context}\n\n'
                  f'USER PROFILE: {json.dumps(user_profile)}\n'
                  f'USER INTENT: {intent}\n')
        if urgency:
            prompt += f'URGENCY LEVEL: {urgency}\n'

        prompt += ('\nINSTRUCTIONS:\n'
                   '- Use only the knowledge above for specific facts; do not invent details\n'
                   '- Personalize responses based on the user profile and conversation history\n'
                   f'- Keep responses under {persona.max_reply_words} words but substantive\n'
                   '- Sound professional and consultative\n'
                   f'- Reference their company "{company}" naturally when relevant')
        if persona.kind == 'legal':
            prompt += '\n- Always recommend consulting a qualified lawyer for specific cases'
        return prompt

    def chat(self, message: str, session_id: Optional[str]) -> ChatResult:
        """Run one chat turn and return the reply with what was learned about the user.

        Raises:
            ResponseGenerationError: If the model call fails
        """
        started = time.monotonic()
        intent = self.classifier.classify(message)
        urgency = assess_urgency(message) if self.persona.kind == 'legal' else None

        self.analytics.track_interaction(session_id, InteractionEvent(type='user_message', content=message, intent=intent))

        conversation_context, user_profile = '', {}
        if session_id:
            conversation_context, user_profile = self._session_context(session_id)

        try:
            knowledge_context = self.retriever.retrieve(message, intent)
        except Exception as e:
            logger.warning(f'Skipping knowledge context: {e}')
            knowledge_context = ''

        system_prompt = self.build_system_prompt(knowledge_context, conversation_context, user_profile, intent, urgency)

        messages = [{'role': 'user', 'content': message}]
        try:
            reply = self.llm.complete(messages=messages,
                                      system_prompt=system_prompt,
                                      temperature=self.llm_config.temperature,
                                      max_tokens=self.llm_config.max_tokens)
        except Exception as e:
            logger.error(f'Model call failed for session {session_id}: {e}')
            self.analytics.track_interaction(session_id, InteractionEvent(type='error', content=str(e)))
            raise ResponseGenerationError(f'Reply generation failed: {e}') from e

        lead_trigger = detect_lead_trigger(message, reply)
        self.analytics.track_interaction(
            session_id,
            InteractionEvent(type='ai_response',
                             content=reply,
                             intent=intent,
                             lead_trigger=lead_trigger,
                             latency_ms=int((time.monotonic() - started) * 1000)))

        extracted = extract_user_information(message, reply)
        if extracted and session_id:
            self.profiles.upsert_many(session_id, extracted)
            self.analytics.track_session(session_id, {'user_profile': {**user_profile, **extracted}})

        if session_id:
            self._submit_background(self._persist_turn, session_id, message, reply)

        return ChatResult(reply=reply, intent=intent, lead_trigger=lead_trigger, user_profile=extracted)

    def respond(self, message: str, session_id: Optional[str]) -> str:
        """Run one chat turn and return only the reply text."""
        return self.chat(message, session_id).reply

    def _submit_background(self, fn, *args) -> Future:
        future = self._executor.submit(fn, *args)
        with self._pending_lock:
            self._pending.add(future)
        future.add_done_callback(self._discard_pending)
        return future

    def _discard_pending(self, future: Future) -> None:
        with self._pending_lock:
            self._pending.discard(future)

    def _persist_turn(self, session_id: str, message: str, reply: str) -> None:
        if self.embed is None or self.memory.opensearch is None:
            return
        try:
            embedding = self.embed.embed_query(message)
            self.memory.append_turn(session_id, message, reply, embedding)
            background_logger.debug(f'Saved conversation memory for session {session_id}')
        except (BedrockEmbedError, ConversationMemoryError) as e:
            background_logger.error(f'Failed to save memory for session {session_id}: {e}')
        except Exception as e:
            background_logger.error(f'Unexpected error saving memory for session {session_id}: {e}')

    def wait_for_background_writes(self, timeout: Optional[float] = None) -> bool:
        """Block until detached memory writes finish. Returns False on timeout."""
        with self._pending_lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait_for_writes: bool = True) -> None:
        """Stop accepting background writes, optionally draining those in flight."""
        self._executor.shutdown(wait=wait_for_writes)
