"""Profile synthesizer: turns a context bundle into an AgentProfile."""

import logging
import time
import uuid
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple, Union

from pydantic import Field, ValidationError

from errors import ProfileDecodeError, SynthesisError
from llm.base_client import BaseLLMClient
from retrieval.search_rules import SearchRules
from schemas.context import ContextBundle, ContextSegment
from schemas.profile import (
    AgentProfile,
    CamelModel,
    Citation,
    ContactInfo,
    Product,
    ProfileDraft,
    dedupe_citations,
)
from utils.json_payload import extract_json_object
from .grounding_filter import GroundingFilter
from .phrases import phrase
from .progress import ProgressListener, ProgressReporter

logger = logging.getLogger(__name__)

LANGUAGE_NAMES = {"en": "English", "es": "Spanish"}

MAX_INVENTORY_CATEGORIES = 6


class InventoryDraft(CamelModel):
    """Output of the inventory pass."""
    products: List[Product] = Field(default_factory=list)


SYSTEM_PROMPT = """You are an expert e-commerce analyst configuring a sales assistant for a brand.
You read everything the operator provides (notes, urls, documents, spreadsheets) and, when
search is available, the brand's public website.

Rules:
- Only use facts found in the provided material or on the brand's own website.
- Never invent prices. Leave price empty when it is not explicit.
- Product buyUrl values must be real pages of the brand's own domain. Never use
  placeholder domains such as example.com or yourdomain.com.
- Items labelled [PRIORITY ...] override anything else you find.
"""

PROFILE_INSTRUCTION = """Build the sales assistant configuration for this business.
Write every human-facing text in {language_name}.

Return:
- agentName: a short friendly name for the assistant
- systemInstruction: persona, tone and sales rules for the assistant, including every
  [PRIORITY BUSINESS RULE] verbatim. It must tell the assistant to redirect complaints,
  defects, warranty and return requests to the support contact.
- summary: two or three sentences describing the business
- suggestedGreeting: the first message customers see
- brandColor: the brand's main color as #RRGGBB
- websiteUrl: the canonical root url of the website
- keyTopics: up to eight topics customers ask about
- navigationTree: main catalog sections as {{name, url}}
- products: between 20 and 30 representative products or services with
  {{name, description, price, buyUrl, imageUrl, kind, tags}}; kind is PRODUCT, SERVICE or LINK
- contactInfo: {{sales, support, technical}} emails or phone numbers
"""

ARCHITECTURE_INSTRUCTION = """Phase 1 of 2: analyze the brand and the structure of its website.
Write every human-facing text in {language_name}.

Respond with a single JSON object containing: agentName, systemInstruction, summary,
suggestedGreeting, brandColor (#RRGGBB), websiteUrl, keyTopics (list of strings),
navigationTree (list of {{name, url}} for the main catalog sections) and
contactInfo ({{sales, support, technical}}). Do not list products yet.
"""

INVENTORY_INSTRUCTION = """Phase 2 of 2: extract the inventory of {website}.
Focus on these sections:
{sections}

Respond with a single JSON object {{"products": [...]}} holding between 20 and 30 real
items, each with name, description, price (only if shown), buyUrl (a real page of the
site), imageUrl, type (PRODUCT, SERVICE or LINK) and tags (keywords).
"""


class SynthesisStrategy(ABC):
    """One way of asking the backend for a profile draft."""

    name = "base"

    @abstractmethod
    def run(
        self,
        client: BaseLLMClient,
        bundle: ContextBundle,
        language: str,
        reporter: ProgressReporter,
        temperature: float
    ) -> Tuple[ProfileDraft, List[Citation]]:
        """
        Produce a draft and the citations gathered while producing it.

        Raises:
            ProfileDecodeError: If the backend output cannot be decoded
        """
        pass


def _decode(model, payload: dict, what: str):
    if not payload:
        raise ProfileDecodeError(f"Empty or unparsable {what} payload")
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise ProfileDecodeError(f"Invalid {what} payload: {e}") from e


class StructuredSynthesis(SynthesisStrategy):
    """Single schema-constrained call."""

    name = "structured"

    def run(self, client, bundle, language, reporter, temperature):
        reporter.emit("analyzing", 10, phrase("phase_analyzing", language))

        instruction = PROFILE_INSTRUCTION.format(
            language_name=LANGUAGE_NAMES.get(language, "English")
        )
        result = client.generate(
            [ContextSegment.from_text(instruction), *bundle.segments],
            schema=ProfileDraft.model_json_schema(by_alias=True),
            search_augmented=True,
            temperature=temperature,
            system_instruction=SYSTEM_PROMPT,
        )

        payload = result.structured if result.structured else extract_json_object(result.text)
        draft = _decode(ProfileDraft, payload, "profile")

        reporter.emit("finalizing", 90, phrase("phase_finalizing", language))
        return draft, list(result.citations)


class TwoPhaseSynthesis(SynthesisStrategy):
    """
    Architecture/branding pass followed by an inventory pass.

    Both passes use free-text JSON extraction. An unusable first pass is a
    decode error; an unusable inventory pass leaves the catalog empty.
    """

    name = "two_phase"

    def run(self, client, bundle, language, reporter, temperature):
        language_name = LANGUAGE_NAMES.get(language, "English")

        reporter.emit("analyzing", 10, phrase("phase_analyzing", language))
        architecture = client.generate(
            [ContextSegment.from_text(ARCHITECTURE_INSTRUCTION.format(language_name=language_name)),
             *bundle.segments],
            search_augmented=True,
            temperature=temperature,
            system_instruction=SYSTEM_PROMPT,
        )
        draft = _decode(ProfileDraft, extract_json_object(architecture.text), "architecture")
        citations = list(architecture.citations)

        reporter.emit("inventory", 50, phrase("phase_inventory", language))
        website = draft.website_url or (bundle.seed_urls[0] if bundle.seed_urls else "the business")
        sections = "\n".join(
            f"- {category.name}: {category.url}"
            for category in draft.navigation_tree[:MAX_INVENTORY_CATEGORIES]
        ) or "- the main catalog"

        inventory = client.generate(
            [ContextSegment.from_text(INVENTORY_INSTRUCTION.format(website=website, sections=sections)),
             *bundle.segments],
            search_augmented=True,
            temperature=temperature,
            system_instruction=SYSTEM_PROMPT,
        )
        citations.extend(inventory.citations)

        try:
            products = _decode(InventoryDraft, extract_json_object(inventory.text), "inventory").products
        except ProfileDecodeError as e:
            logger.warning(f"Inventory pass unusable, continuing without products: {e}")
            products = []

        reporter.emit("finalizing", 90, phrase("phase_finalizing", language))
        return draft.model_copy(update={"products": products}), citations


STRATEGIES = {
    StructuredSynthesis.name: StructuredSynthesis,
    TwoPhaseSynthesis.name: TwoPhaseSynthesis,
}


class ProfileSynthesizer:
    """
    Drives profile synthesis with bounded sequential retries.

    Each attempt runs the configured strategy and normalizes its draft.
    After the last failed attempt a SynthesisError is raised; nothing is
    returned partially.
    """

    def __init__(
        self,
        llm_client: BaseLLMClient,
        strategy: Union[str, SynthesisStrategy] = "structured",
        max_attempts: int = 3,
        backoff_seconds: float = 2.0,
        temperature: float = 0.1,
        rules: Optional[SearchRules] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize synthesizer.

        Args:
            llm_client: Generative backend
            strategy: "structured", "two_phase" or a SynthesisStrategy instance
            max_attempts: Retry ceiling
            backoff_seconds: Fixed delay between attempts
            temperature: Sampling temperature for synthesis calls
            rules: Url rules used to sanitize buy urls
            sleep: Delay function (injectable for tests)
        """
        if isinstance(strategy, str):
            if strategy not in STRATEGIES:
                raise ValueError(f"Unknown synthesis strategy: {strategy}")
            strategy = STRATEGIES[strategy]()

        self.llm_client = llm_client
        self.strategy = strategy
        self.max_attempts = max(1, max_attempts)
        self.backoff_seconds = backoff_seconds
        self.temperature = temperature
        self.rules = rules if rules is not None else SearchRules.from_yaml()
        self.sleep = sleep

    def synthesize(
        self,
        bundle: ContextBundle,
        language: str = "en",
        progress: Optional[Union[ProgressReporter, ProgressListener]] = None
    ) -> AgentProfile:
        """
        Synthesize a profile from an ingested bundle.

        Args:
            bundle: Output of the context ingestor
            language: Language for generated texts ("en" or "es")
            progress: Reporter or callback receiving ProgressEvents

        Returns:
            Normalized AgentProfile

        Raises:
            SynthesisError: If every attempt failed
        """
        reporter = progress if isinstance(progress, ProgressReporter) else ProgressReporter(progress)
        reporter.emit("started", 0, phrase("phase_started", language))

        last_error = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                draft, citations = self.strategy.run(
                    self.llm_client, bundle, language, reporter, self.temperature
                )
                profile = self.normalize(draft, citations, bundle, language)
                reporter.complete("done", phrase("phase_done", language))
                logger.info(
                    f"Synthesized profile '{profile.agent_name}' with "
                    f"{len(profile.products)} products in {attempt} attempt(s)"
                )
                return profile
            except Exception as e:
                last_error = e
                logger.warning(f"Synthesis attempt {attempt}/{self.max_attempts} failed: {e}")
                if attempt < self.max_attempts:
                    self.sleep(self.backoff_seconds)

        reporter.fail(str(last_error), phase="failed")
        raise SynthesisError(
            f"Profile synthesis failed after {self.max_attempts} attempts: {last_error}",
            attempts=self.max_attempts,
            last_error=last_error,
        ) from last_error

    def normalize(
        self,
        draft: ProfileDraft,
        citations: List[Citation],
        bundle: ContextBundle,
        language: str = "en"
    ) -> AgentProfile:
        """Fill defaults, assign ids and drop urls that fail the sanity filter."""
        website_url = draft.website_url or (bundle.seed_urls[0] if bundle.seed_urls else None)
        url_filter = GroundingFilter(website_url, self.rules)

        products = []
        seen_ids = set()
        for product in draft.products:
            updates = {}
            if not product.id or product.id in seen_ids:
                updates["id"] = f"prod-{uuid.uuid4().hex[:12]}"
            if product.buy_url:
                reason = url_filter.check(product.buy_url)
                if reason:
                    logger.debug(f"Dropping buy url of '{product.name}': {reason}")
                    updates["buy_url"] = None
            product = product.model_copy(update=updates)
            seen_ids.add(product.id)
            products.append(product)

        navigation = []
        for category in draft.navigation_tree:
            reason = url_filter.check(category.url)
            if reason:
                logger.debug(f"Dropping category '{category.name}': {reason}")
                continue
            navigation.append(category)

        # Operator-entered contacts win over extracted ones
        extracted = draft.contact_info or ContactInfo()
        contact_info = extracted.model_copy(update={
            channel: value
            for channel, value in bundle.contact_info.model_dump().items()
            if value
        })

        return AgentProfile(
            agent_name=(draft.agent_name or "").strip() or phrase("default_agent_name", language),
            brand_color=draft.brand_color,
            summary=draft.summary,
            system_instruction=draft.system_instruction,
            suggested_greeting=draft.suggested_greeting or phrase("default_greeting", language),
            key_topics=draft.key_topics,
            products=products,
            navigation_tree=navigation,
            contact_info=contact_info,
            sources=dedupe_citations(citations),
            website_url=website_url,
        )
