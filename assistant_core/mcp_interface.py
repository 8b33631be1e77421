"""
MCP Interface Layer using fastmcp for the conversational assistant.
"""
import re
from dataclasses import asdict
from typing import Any, Dict, Optional

from fastmcp import FastMCP

from assistant_core.services.knowledge_base import KnowledgeBaseError, KnowledgeBaseService
from assistant_core.services.response_orchestration import ResponseGenerationError, ResponseOrchestrator
from assistant_core.utils.config import config
from assistant_core.utils.health_check import get_health_status
from assistant_core.utils.logging_config import get_logger

logger = get_logger(__name__)

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

# Initialize FastMCP application
mcp = FastMCP('Assistant Core')

_orchestrator: Optional[ResponseOrchestrator] = None


def get_orchestrator() -> ResponseOrchestrator:
    """Build the orchestrator on first use."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = ResponseOrchestrator.from_config()
    return _orchestrator


@mcp.tool()
def chat(message: str, session_id: Optional[str] = None) -> Dict[str, Any]:
    """Answer a chat message.

    Args:
        message: User message
        session_id: Optional session identifier scoping memory, profile and analytics

    Returns:
        Dict with 'reply' and the 'user_profile' facts learned from this message

    Raises:
        Exception: If the reply cannot be generated
    """
    if not message or not message.strip():
        raise ValueError('Message is required')

    try:
        result = get_orchestrator().chat(message.strip(), session_id)
        return {'reply': result.reply, 'user_profile': result.user_profile}
    except ResponseGenerationError as e:
        logger.error(f'Chat failed for session {session_id}: {e}')
        raise Exception('Chat processing failed')


@mcp.tool()
def capture_lead(name: str,
                 email: str,
                 session_id: str,
                 message: str = '',
                 lead_score: int = 0,
                 user_profile: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Record a lead for a session.

    Args:
        name: Contact name
        email: Contact email
        session_id: Session the lead came from
        message: Optional note from the user
        lead_score: Score assigned by the widget
        user_profile: Profile facts known to the widget

    Returns:
        Confirmation dict
    """
    if not name or not name.strip() or not email or not email.strip():
        raise ValueError('Name and email are required')
    if not EMAIL_PATTERN.match(email.strip()):
        raise ValueError('Invalid email format')

    get_orchestrator().analytics.capture_lead(session_id,
                                              name=name.strip(),
                                              email=email.strip().lower(),
                                              message=message,
                                              lead_score=lead_score,
                                              user_profile=user_profile)
    return {'success': True, 'message': "Thank you! We'll be in touch within 24 hours.", 'lead_id': session_id}


@mcp.tool()
def analytics_dashboard(date: Optional[str] = None) -> Dict[str, Any]:
    """Summarize analytics for today, or the full snapshot of a given UTC date (YYYY-MM-DD)."""
    analytics = get_orchestrator().analytics
    if date:
        return asdict(analytics.daily_analytics(date))
    return {'summary': analytics.dashboard_summary()}


@mcp.tool()
def seed_knowledge() -> Dict[str, Any]:
    """Seed the knowledge base with the built-in reference texts."""
    orchestrator = get_orchestrator()
    service = KnowledgeBaseService(orchestrator.retriever.opensearch, orchestrator.retriever.embed, config.knowledge)
    try:
        return {'chunks': service.seed()}
    except KnowledgeBaseError as e:
        logger.error(f'Knowledge seeding failed: {e}')
        raise Exception(f'Knowledge seeding failed: {e}')


@mcp.tool()
def health() -> Dict[str, Any]:
    """Report provider health."""
    return get_health_status()


if __name__ == '__main__':
    try:
        mcp.run(transport=config.mcp.transport, host=config.mcp.host, port=config.mcp.port)
    finally:
        if _orchestrator is not None:
            _orchestrator.shutdown()
