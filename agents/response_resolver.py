"""Grounding & response resolver: one chat turn to text plus product cards."""

import logging
from typing import List, Optional

from errors import ChatTurnError
from llm.base_client import BaseLLMClient
from retrieval.inventory_index import InventoryIndex
from retrieval.search_rules import SearchRules
from schemas.profile import AgentProfile, Citation, Product, dedupe_citations
from schemas.responses import ChatResponse
from .escalation import EscalationDetector
from .grounding_filter import GroundingFilter
from .phrases import implies_results, phrase
from .strategies import ResponseStrategy, StructuredResponseStrategy

logger = logging.getLogger(__name__)

MIN_ANSWER_LENGTH = 5


class ResponseResolver:
    """
    Resolves a chat turn.

    Escalation is checked first and short-circuits everything else.
    Otherwise the turn runs memory search, an optional live-search
    backend call, merges candidates, filters them for provenance and
    formats the final text. Backend failures never propagate; they
    produce a "checking the catalog" reply instead.
    """

    def __init__(
        self,
        llm_client: BaseLLMClient,
        strategy: Optional[ResponseStrategy] = None,
        index: Optional[InventoryIndex] = None,
        rules: Optional[SearchRules] = None,
        escalation: Optional[EscalationDetector] = None,
        live_search_enabled: bool = True,
        sparse_memory_threshold: int = 2,
        max_cards: int = 6,
        temperature: float = 0.4
    ):
        """
        Initialize resolver.

        Args:
            llm_client: Generative backend
            strategy: Response strategy (structured by default)
            index: Inventory index for memory search
            rules: Url rules for the grounding filter
            escalation: Complaint detector
            live_search_enabled: Allow search-augmented backend calls
            sparse_memory_threshold: Fewer memory hits than this enables live search
            max_cards: Cap on product cards per turn
            temperature: Sampling temperature for chat calls
        """
        self.llm_client = llm_client
        self.strategy = strategy or StructuredResponseStrategy()
        self.rules = rules if rules is not None else SearchRules.from_yaml()
        self.index = index or InventoryIndex(self.rules)
        self.escalation = escalation or EscalationDetector()
        self.live_search_enabled = live_search_enabled
        self.sparse_memory_threshold = sparse_memory_threshold
        self.max_cards = max_cards
        self.temperature = temperature

    def respond(
        self,
        history: list,
        message: str,
        profile: AgentProfile,
        live_citations: Optional[List[Citation]] = None,
        language: str = "en"
    ) -> ChatResponse:
        """
        Produce the reply for one turn.

        Args:
            history: Previous ConversationTurns of this session
            message: Current user message
            profile: Agent profile the session runs against
            live_citations: Grounding citations supplied by the caller
            language: Reply language for fixed phrases

        Returns:
            ChatResponse with final text and filtered product cards
        """
        if self.escalation.is_triggered(message):
            return ChatResponse(
                text=self.escalation.build_reply(profile, language),
                escalated=True,
            )

        try:
            return self._resolve(history, message, profile, live_citations or [], language)
        except ChatTurnError as e:
            logger.error(f"Chat turn failed: {e}")
        except Exception as e:
            logger.error(f"Unexpected error resolving chat turn: {e}", exc_info=True)

        return ChatResponse(text=phrase("checking_stock", language), failed=True)

    def _resolve(
        self,
        history: list,
        message: str,
        profile: AgentProfile,
        live_citations: List[Citation],
        language: str
    ) -> ChatResponse:
        # QUERY_MEMORY
        memory_hits = self.index.search(
            message, profile.products, profile.navigation_tree, language
        )

        # QUERY_LIVE
        use_live = self.live_search_enabled and len(memory_hits) < self.sparse_memory_threshold
        reply = self.strategy.generate_reply(
            self.llm_client,
            message,
            history,
            profile,
            memory_hits,
            language=language,
            search_augmented=use_live,
            temperature=self.temperature,
        )
        logger.debug(
            f"Turn: {len(memory_hits)} memory hits, live={use_live}, "
            f"{len(reply.recommended)} recommended, {len(reply.citations)} citations"
        )

        # MERGE
        citations = list(live_citations)
        if self.strategy.derives_cards_from_citations:
            citations.extend(reply.citations)

        grounding = GroundingFilter(profile.website_url, self.rules)
        live_cards = [
            grounding.card_from_citation(citation, message)
            for citation in dedupe_citations(citations)
        ]
        candidates: List[Product] = self._unique_by_id([*reply.recommended, *live_cards, *memory_hits])

        # FILTER
        cards, rejections = grounding.apply(candidates)
        cards = cards[:self.max_cards]

        # FORMAT
        text = self._settle_text(self.strategy.finalize_text(reply.text), cards, profile, language)
        return ChatResponse(text=text, product_cards=cards, rejections=rejections)

    @staticmethod
    def _unique_by_id(candidates: List[Product]) -> List[Product]:
        # A product can be both recommended and a memory hit
        seen = set()
        unique = []
        for card in candidates:
            if card.id in seen:
                continue
            seen.add(card.id)
            unique.append(card)
        return unique

    def _settle_text(
        self,
        text: str,
        cards: List[Product],
        profile: AgentProfile,
        language: str
    ) -> str:
        """Keep prose consistent with the cards actually shown."""
        if not cards and (not text or implies_results(text)):
            if profile.website_url:
                return phrase("no_exact_match", language, url=profile.website_url)
            return phrase("no_exact_match_no_url", language)

        if cards and len(text.strip()) < MIN_ANSWER_LENGTH:
            return phrase("best_options", language)

        return text
