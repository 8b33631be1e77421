"""
Keyword-based intent classification for chat messages.
"""

from typing import Dict, List, Optional

GENERAL_INQUIRY = 'general_inquiry'

# Order matters: the first intent with a matching keyword wins
BRAND_INTENTS: Dict[str, List[str]] = {
    'portfolio_request': ['portfolio', 'examples', 'case study', 'work', 'projects', 'show me'],
    'process_inquiry': ['process', 'how do you', 'methodology', 'approach', 'steps'],
    'pricing_inquiry': ['price', 'cost', 'budget', 'investment', 'quote', 'expensive'],
    'service_inquiry': ['services', 'what do you do', 'offerings', 'help with'],
    'contact_request': ['contact', 'reach out', 'call', 'meet', 'consultation'],
}

LEGAL_INTENTS: Dict[str, List[str]] = {
    'corporate_law': ['company', 'business', 'corporate', 'merger'],
    'litigation': ['court', 'lawsuit', 'dispute', 'legal action'],
    'contracts': ['contract', 'agreement', 'terms', 'breach'],
    'employment_law': ['employee', 'termination', 'workplace'],
    'real_estate': ['property', 'real estate', 'land', 'lease'],
    'tax_law': ['tax', 'gst', 'income tax'],
}

TAXONOMIES: Dict[str, Dict[str, List[str]]] = {
    'brand': BRAND_INTENTS,
    'legal': LEGAL_INTENTS,
}

URGENCY_LEVELS = (
    ('high', ['urgent', 'emergency', 'asap', 'immediately']),
    ('medium', ['soon', 'important', 'time-sensitive']),
)


class IntentClassifier:
    """Map free text to a fixed, ordered intent taxonomy."""

    def __init__(self, taxonomy: Optional[Dict[str, List[str]]] = None):
        self.taxonomy = taxonomy if taxonomy is not None else BRAND_INTENTS

    @classmethod
    def for_persona(cls, kind: str) -> 'IntentClassifier':
        """Build a classifier for a persona kind ('brand' or 'legal')."""
        if kind not in TAXONOMIES:
            raise ValueError(f'Unknown persona kind: {kind}')
        return cls(TAXONOMIES[kind])

    def classify(self, text: str) -> str:
        """Return the first intent whose keywords occur in ``text``, else general_inquiry."""
        lowered = (text or '').lower()
        for intent, keywords in self.taxonomy.items():
            if any(keyword in lowered for keyword in keywords):
                return intent
        return GENERAL_INQUIRY


def assess_urgency(text: str) -> str:
    """Grade a message as high, medium or low urgency."""
    lowered = (text or '').lower()
    for level, keywords in URGENCY_LEVELS:
        if any(keyword in lowered for keyword in keywords):
            return level
    return 'low'
