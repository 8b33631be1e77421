"""
Tests for keyword intent classification and urgency assessment.
"""

import pytest

from assistant_core.services.intent_classification import (
    GENERAL_INQUIRY,
    LEGAL_INTENTS,
    IntentClassifier,
    assess_urgency,
)


class TestBrandIntents:
    """Tests for the default brand taxonomy."""

    @pytest.mark.parametrize('message, intent', [
        ('Can I see your portfolio?', 'portfolio_request'),
        ('How do you run a project?', 'process_inquiry'),
        ('What are your prices?', 'pricing_inquiry'),
        ('What services do you offer?', 'service_inquiry'),
        ('I would like a consultation', 'contact_request'),
    ])
    def test_classify(self, message, intent):
        """Each intent is reachable through its keywords."""
        assert IntentClassifier().classify(message) == intent

    def test_table_order_breaks_ties(self):
        """When several intents match, the earlier one in the table wins."""
        assert IntentClassifier().classify('Show me the price list') == 'portfolio_request'

    def test_case_insensitive(self):
        """Matching ignores case."""
        assert IntentClassifier().classify('YOUR PORTFOLIO PLEASE') == 'portfolio_request'

    def test_no_match_is_general_inquiry(self):
        """Unmatched and empty text fall back to general_inquiry."""
        classifier = IntentClassifier()

        assert classifier.classify('Hello there') == GENERAL_INQUIRY
        assert classifier.classify('') == GENERAL_INQUIRY


class TestLegalIntents:
    """Tests for the legal persona taxonomy."""

    def test_for_persona(self):
        """The legal persona uses the legal taxonomy."""
        classifier = IntentClassifier.for_persona('legal')

        assert classifier.taxonomy is LEGAL_INTENTS
        assert classifier.classify('I have a dispute with my landlord over the lease') == 'litigation'
        assert classifier.classify('Do I need to register for GST?') == 'tax_law'

    def test_unknown_persona(self):
        """Unknown persona kinds are rejected."""
        with pytest.raises(ValueError):
            IntentClassifier.for_persona('astrology')


class TestAssessUrgency:
    """Tests for assess_urgency."""

    @pytest.mark.parametrize('message, level', [
        ('This is URGENT, please reply', 'high'),
        ('I need an answer asap', 'high'),
        ('It is important but can wait a day', 'medium'),
        ('Just curious about trademarks', 'low'),
    ])
    def test_levels(self, message, level):
        """Keywords map to urgency levels, high checked first."""
        assert assess_urgency(message) == level
