"""Response strategies: how a chat turn is asked of the backend."""

import logging
import re
from abc import ABC, abstractmethod
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError
from rapidfuzz import fuzz, process

from errors import ChatTurnError
from llm.base_client import BaseLLMClient, Message
from schemas.context import ContextSegment
from schemas.profile import AgentProfile, Citation, Product
from schemas.responses import StructuredReply
from utils.json_payload import extract_json_object

logger = logging.getLogger(__name__)

MAX_CATALOG_IN_PROMPT = 40
NAME_MATCH_CUTOFF = 90

_LIST_LINE = re.compile(r"^\s*(?:[*\-•]|\d+[.)])\s*")


class StrategyReply(BaseModel):
    """Raw outcome of one backend call for a chat turn."""
    text: str = ""
    recommended: List[Product] = Field(default_factory=list)
    citations: List[Citation] = Field(default_factory=list)


def scrub_text(text: str) -> str:
    """Drop list/bullet lines and lines carrying raw urls."""
    kept = []
    for line in (text or "").splitlines():
        if _LIST_LINE.match(line) or "http" in line.lower():
            continue
        kept.append(line)
    return "\n".join(kept).strip()


def build_catalog_listing(profile: AgentProfile, memory_hits: List[Product]) -> str:
    """Catalog excerpt for the prompt: memory hits first, then the rest."""
    listed = []
    seen = set()
    for product in [*memory_hits, *profile.products]:
        if product.id in seen:
            continue
        seen.add(product.id)
        listed.append(product)
        if len(listed) >= MAX_CATALOG_IN_PROMPT:
            break

    lines = []
    for product in listed:
        price = f" | {product.price}" if product.price else ""
        lines.append(f"[{product.id}] {product.name}{price}")
    return "\n".join(lines)


def build_system_instruction(profile: AgentProfile, language: str) -> str:
    contacts = ", ".join(
        f"{channel}: {value}"
        for channel, value in profile.contact_info.model_dump().items()
        if value
    )
    parts = [profile.system_instruction or f"You are {profile.agent_name}, a sales assistant."]
    if profile.summary:
        parts.append(f"Business: {profile.summary}")
    if profile.website_url:
        parts.append(f"Website: {profile.website_url}")
    if contacts:
        parts.append(f"Contacts: {contacts}")
    parts.append(f"Always answer in {'Spanish' if language == 'es' else 'English'}.")
    return "\n".join(parts)


def to_messages(history: list) -> List[Message]:
    """Map conversation turns to backend messages, starting at the first user turn."""
    messages = []
    for turn in history:
        role = "user" if turn.role == "user" else "assistant"
        if not messages and role != "user":
            continue
        messages.append(Message(role=role, content=turn.text))
    return messages


class ResponseStrategy(ABC):
    """One way of turning a chat message into prose plus recommendations."""

    name = "base"
    # Whether search citations should be turned into cards heuristically
    derives_cards_from_citations = False

    @abstractmethod
    def generate_reply(
        self,
        client: BaseLLMClient,
        message: str,
        history: list,
        profile: AgentProfile,
        memory_hits: List[Product],
        language: str = "en",
        search_augmented: bool = False,
        temperature: float = 0.4
    ) -> StrategyReply:
        """
        Ask the backend for a reply.

        Raises:
            ChatTurnError: If the backend call fails
        """
        pass

    def finalize_text(self, text: str) -> str:
        return (text or "").strip()


class StructuredResponseStrategy(ResponseStrategy):
    """
    Schema-constrained reply separating the answer from recommended ids.

    Ids that do not exist in the catalog are matched back by product
    name when the backend returned a name instead of an id.
    """

    name = "structured"

    PROMPT = """Catalog (id, name, price):
{catalog}

Customer message: {message}

Answer briefly and conversationally in answer. Do not write urls, prices or product
lists in answer. Put the ids of the catalog products worth showing, best first, in
recommendedProductIds. Only use ids from the catalog above."""

    def generate_reply(self, client, message, history, profile, memory_hits,
                       language="en", search_augmented=False, temperature=0.4):
        prompt = self.PROMPT.format(
            catalog=build_catalog_listing(profile, memory_hits) or "(empty)",
            message=message,
        )
        try:
            result = client.generate(
                [ContextSegment.from_text(prompt)],
                schema=StructuredReply.model_json_schema(by_alias=True),
                search_augmented=search_augmented,
                temperature=temperature,
                system_instruction=build_system_instruction(profile, language),
                history=to_messages(history),
            )
        except Exception as e:
            raise ChatTurnError(f"Backend call failed: {e}") from e

        payload = result.structured if result.structured else extract_json_object(result.text)
        try:
            reply = StructuredReply.model_validate(payload or {})
        except ValidationError as e:
            logger.warning(f"Structured reply did not validate, using raw text: {e}")
            reply = StructuredReply(answer=scrub_text(result.text))

        if not reply.answer and not payload:
            reply.answer = scrub_text(result.text)

        return StrategyReply(
            text=reply.answer,
            recommended=self.resolve_ids(reply.recommended_product_ids, profile),
            citations=result.citations,
        )

    def resolve_ids(self, product_ids: List[str], profile: AgentProfile) -> List[Product]:
        """Map recommended ids to catalog products, in order, without repeats."""
        names = {product.id: product.name for product in profile.products}
        resolved = []
        for product_id in product_ids:
            product = profile.get_product(product_id)
            if product is None and names:
                match = process.extractOne(
                    product_id, names, scorer=fuzz.WRatio, score_cutoff=NAME_MATCH_CUTOFF
                )
                if match:
                    product = profile.get_product(match[2])
                    logger.debug(f"Matched recommendation '{product_id}' to '{match[0]}'")
            if product is None:
                logger.debug(f"Ignoring unknown product id '{product_id}'")
                continue
            if product not in resolved:
                resolved.append(product)
        return resolved


class TextScrubbingStrategy(ResponseStrategy):
    """
    Free-text reply for backends without structured output.

    Lists and urls are scrubbed from the prose; cards come from memory
    search and search citations instead.
    """

    name = "text_scrubbing"
    derives_cards_from_citations = True

    PROMPT = """Relevant catalog items (id, name, price):
{catalog}

Customer message: {message}

Answer briefly and conversationally. Do not write urls or bulleted lists; matching
products are shown to the customer as cards."""

    def generate_reply(self, client, message, history, profile, memory_hits,
                       language="en", search_augmented=False, temperature=0.4):
        prompt = self.PROMPT.format(
            catalog=build_catalog_listing(profile, memory_hits) or "(empty)",
            message=message,
        )
        try:
            result = client.generate(
                [ContextSegment.from_text(prompt)],
                search_augmented=search_augmented,
                temperature=temperature,
                system_instruction=build_system_instruction(profile, language),
                history=to_messages(history),
            )
        except Exception as e:
            raise ChatTurnError(f"Backend call failed: {e}") from e

        return StrategyReply(text=result.text, citations=result.citations)

    def finalize_text(self, text: str) -> str:
        return scrub_text(text)


RESPONSE_STRATEGIES = {
    StructuredResponseStrategy.name: StructuredResponseStrategy,
    TextScrubbingStrategy.name: TextScrubbingStrategy,
}


def create_response_strategy(name: Optional[str] = None) -> ResponseStrategy:
    name = name or StructuredResponseStrategy.name
    if name not in RESPONSE_STRATEGIES:
        raise ValueError(f"Unknown response strategy: {name}")
    return RESPONSE_STRATEGIES[name]()
