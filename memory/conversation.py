"""In-process conversation state for simulator sessions."""

import logging
import uuid
from typing import List, Optional

from schemas.profile import AgentProfile, Product
from .models import ConversationTurn, TurnRole

logger = logging.getLogger(__name__)


class ConversationState:
    """Append-only ordered turn history for one session."""

    MAX_CONTEXT_TURNS = 10  # Maximum turns handed to the backend

    def __init__(self, greeting: Optional[str] = None):
        """
        Initialize state.

        Args:
            greeting: Opening agent message, recorded as the first turn
        """
        self._turns: List[ConversationTurn] = []
        if greeting:
            self.add_agent_turn(greeting)

    @property
    def turns(self) -> List[ConversationTurn]:
        return list(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    def _append(self, role: TurnRole, text: str, product_cards: Optional[List[Product]] = None) -> ConversationTurn:
        turn = ConversationTurn(
            turn_id=len(self._turns) + 1,
            role=role,
            text=text,
            product_cards=list(product_cards or []),
        )
        self._turns.append(turn)
        return turn

    def add_user_turn(self, text: str) -> ConversationTurn:
        return self._append(TurnRole.USER, text)

    def add_agent_turn(self, text: str, product_cards: Optional[List[Product]] = None) -> ConversationTurn:
        return self._append(TurnRole.AGENT, text, product_cards)

    def context_turns(self, limit: Optional[int] = None) -> List[ConversationTurn]:
        """Most recent turns in chronological order."""
        limit = limit or self.MAX_CONTEXT_TURNS
        return self._turns[-limit:]

    def last_turn(self) -> Optional[ConversationTurn]:
        return self._turns[-1] if self._turns else None


class ChatSession:
    """
    A live simulator session bound to one profile snapshot.

    Once closed, results of calls that were in flight must be discarded
    by the caller instead of being applied.
    """

    def __init__(self, token: str, profile: AgentProfile, language: str = "en"):
        self.session_id = uuid.uuid4().hex
        self.token = token
        self.profile = profile
        self.language = language
        self.state = ConversationState(profile.suggested_greeting)
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def close(self):
        if self._active:
            logger.info(f"Closing chat session {self.session_id} for token {self.token}")
        self._active = False
