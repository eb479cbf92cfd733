"""Complaint detection and the escalation reply."""

import logging
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from retrieval.search_rules import phrase_pattern
from schemas.profile import AgentProfile
from .phrases import phrase

logger = logging.getLogger(__name__)

DEFAULT_TRIGGERS_PATH = Path(__file__).parent.parent / "config" / "escalation_triggers.yaml"

# Order in which contact channels are offered
CHANNEL_PRIORITY = ("support", "technical", "sales")


class EscalationDetector:
    """Detects complaint, defect and warranty/return messages."""

    def __init__(self, triggers: Optional[Dict[str, List[str]]] = None):
        """
        Initialize detector.

        Args:
            triggers: Phrases per language (defaults to config/escalation_triggers.yaml)
        """
        if triggers is None:
            triggers = self.load_triggers()
        self.triggers = triggers
        self._patterns = [
            (p, phrase_pattern(p))
            for phrases in triggers.values()
            for p in phrases
        ]

    @staticmethod
    def load_triggers(path: Optional[str] = None) -> Dict[str, List[str]]:
        path = Path(path) if path else DEFAULT_TRIGGERS_PATH
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return {lang: [str(p).lower() for p in phrases or []] for lang, phrases in data.items()}

    @classmethod
    def from_yaml(cls, path: Optional[str] = None) -> "EscalationDetector":
        return cls(cls.load_triggers(path))

    def matched_phrase(self, message: str) -> Optional[str]:
        """Return the first trigger phrase found in the message, if any."""
        text = " ".join((message or "").lower().replace("’", "'").split())
        for trigger, pattern in self._patterns:
            if pattern.search(text):
                return trigger
        return None

    def is_triggered(self, message: str) -> bool:
        trigger = self.matched_phrase(message)
        if trigger:
            logger.info(f"Escalation triggered by '{trigger}'")
        return trigger is not None

    def build_reply(self, profile: AgentProfile, language: str = "en") -> str:
        """Point the customer at the best available human channel."""
        contact = None
        for channel in CHANNEL_PRIORITY:
            contact = getattr(profile.contact_info, channel)
            if contact:
                break
        contact = contact or profile.website_url

        if contact:
            return phrase("escalation_with_contact", language, contact=contact)
        return phrase("escalation_without_contact", language)
