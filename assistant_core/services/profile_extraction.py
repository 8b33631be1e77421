"""
Profile Extraction Service: pattern-based user facts from chat messages.
"""

import re
from typing import Dict, Optional

from ..utils.logging_config import get_logger

logger = get_logger(__name__)

# Every pattern is tried; the last one that matches wins
COMPANY_PATTERNS = [
    re.compile(r'my company is (.+?)[.,!]', re.IGNORECASE),
    re.compile(r'we are (.+?)[.,!]', re.IGNORECASE),
    re.compile(r'i work at (.+?)[.,!]', re.IGNORECASE),
]

# Every bucket is tried; the last one that matches wins
INDUSTRY_KEYWORDS = {
    'tech': ['technology', 'tech', 'software', 'app', 'platform', 'saas'],
    'healthcare': ['medical', 'health', 'clinic', 'hospital'],
    'retail': ['store', 'shop', 'ecommerce', 'retail'],
    'finance': ['bank', 'finance', 'fintech', 'insurance'],
    'food': ['restaurant', 'food', 'cafe', 'culinary'],
}

# First match wins
PROJECT_TYPES = [
    ('rebrand', 'rebranding'),
    ('new brand', 'new_brand'),
    ('website', 'web_design'),
]


def extract_user_information(message: str, reply: Optional[str] = None) -> Dict[str, str]:
    """Extract company, industry and project type from a user message.

    Args:
        message: The user's message
        reply: The assistant's reply; accepted for call-site symmetry, facts
            are only taken from what the user said

    Returns:
        Mapping containing only the fields that were found
    """
    extracted: Dict[str, str] = {}
    if not message:
        return extracted
    lowered = message.lower()

    for pattern in COMPANY_PATTERNS:
        match = pattern.search(message)
        if match and match.group(1).strip():
            extracted['company'] = match.group(1).strip()

    for industry, keywords in INDUSTRY_KEYWORDS.items():
        if any(keyword in lowered for keyword in keywords):
            extracted['industry'] = industry

    for keyword, project_type in PROJECT_TYPES:
        if keyword in lowered:
            extracted['projectType'] = project_type
            break

    if extracted:
        logger.debug(f'Extracted profile fields: {sorted(extracted)}')
    return extracted
