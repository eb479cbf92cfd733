"""Main orchestrator for the brand agent console."""

import logging
from typing import Callable, Dict, List, Optional

from config.settings import Settings
from errors import AgentConsoleError, PersistenceError
from schemas.context import ContextBundle, ContextItem
from schemas.profile import AgentProfile, Citation
from schemas.responses import ChatResponse

# LLM components
from llm.factory import create_llm_client, LLMProvider
from llm.base_client import BaseLLMClient

# Retrieval
from retrieval.context_ingestor import ContextIngestor
from retrieval.inventory_index import InventoryIndex
from retrieval.search_rules import SearchRules

# Agents
from agents.escalation import EscalationDetector
from agents.profile_synthesizer import ProfileSynthesizer
from agents.progress import ProgressListener, ProgressReporter
from agents.response_resolver import ResponseResolver
from agents.strategies import create_response_strategy

# Memory components
from memory.autosave import DebouncedAutoSaver
from memory.blob_store import FileBlobStore
from memory.conversation import ChatSession
from memory.models import ClientSession, Workspace
from memory.profile_store import ProfileStore
from memory.sqlite_store import SQLiteProfileStore

from utils.embed_snippet import build_embed_snippet

logger = logging.getLogger(__name__)


class AgentConsoleOrchestrator:
    """
    Wires ingestion, synthesis, chat resolution and persistence.

    The in-memory workspace is authoritative; persistence happens through
    a debounced auto-saver except after training, which saves at once.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        llm_client: Optional[BaseLLMClient] = None,
        store: Optional[ProfileStore] = None
    ):
        """
        Initialize orchestrator.

        Args:
            settings: Application settings
            llm_client: Backend override (built from settings when omitted)
            store: Persistence override (SQLite when omitted)
        """
        self.settings = settings or Settings()

        self.llm_client = llm_client
        if self.llm_client is None:
            self._init_llm_client()

        # Rule tables
        self.rules = SearchRules.from_yaml(self.settings.search_rules_path)
        self.escalation = EscalationDetector.from_yaml(self.settings.escalation_triggers_path)

        self.ingestor = ContextIngestor(
            fetch_urls=self.settings.fetch_url_content,
            timeout=self.settings.url_fetch_timeout,
            max_workers=self.settings.max_ingestion_workers,
        )
        self.index = InventoryIndex(self.rules, max_results=self.settings.max_search_results)

        self.synthesizer = ProfileSynthesizer(
            self.llm_client,
            strategy=self.settings.synthesis_strategy,
            max_attempts=self.settings.synthesis_max_attempts,
            backoff_seconds=self.settings.synthesis_backoff_seconds,
            temperature=self.settings.synthesis_temperature,
            rules=self.rules,
        )
        self.resolver = ResponseResolver(
            self.llm_client,
            strategy=create_response_strategy(self.settings.response_strategy),
            index=self.index,
            rules=self.rules,
            escalation=self.escalation,
            live_search_enabled=self.settings.live_search_enabled,
            sparse_memory_threshold=self.settings.sparse_memory_threshold,
            max_cards=self.settings.max_product_cards,
            temperature=self.settings.chat_temperature,
        )

        # Persistence
        self.store = store or SQLiteProfileStore(
            db_path=self.settings.db_path,
            blob_store=FileBlobStore(self.settings.blob_dir, timeout=self.settings.url_fetch_timeout),
        )
        self.autosaver = DebouncedAutoSaver(self.store, delay_seconds=self.settings.autosave_delay_seconds)

        self._workspaces: Dict[str, Workspace] = {}
        self._sessions: Dict[str, ChatSession] = {}

    def _init_llm_client(self):
        """Initialize LLM client based on settings."""
        api_key = self.settings.get_llm_api_key()

        if not api_key:
            logger.warning(
                f"No API key for {self.settings.llm_provider}. "
                "Training and chat replies will be unavailable."
            )
            return

        try:
            provider = LLMProvider(self.settings.llm_provider)
            self.llm_client = create_llm_client(
                provider=provider,
                api_key=api_key,
                model=self.settings.llm_model,
                search_model=self.settings.search_model,
            )
            logger.info(
                f"LLM client initialized: {self.settings.llm_provider} "
                f"({self.llm_client.get_model_name()})"
            )
        except Exception as e:
            logger.error(f"Failed to initialize LLM client: {e}")
            self.llm_client = None

    # Session/auth boundary

    def register_client(self, token: str, email: str, role: str = "client") -> ClientSession:
        if not isinstance(self.store, SQLiteProfileStore):
            raise AgentConsoleError("Client registry requires the SQLite store")
        return self.store.register_client(token, email, role=role)

    def validate_token(self, token: str) -> Optional[ClientSession]:
        """Return the active client for a token, or None."""
        if not isinstance(self.store, SQLiteProfileStore):
            return None
        client = self.store.get_client(token)
        if client is None or not client.is_active:
            logger.warning(f"Rejected token {token}")
            return None
        return client

    # Workspace

    def load_workspace(self, token: str) -> Workspace:
        """
        Return the in-memory workspace, loading it from the store on first use.

        Raises:
            PersistenceError: If the stored workspace cannot be read. Nothing
                is cached then, so later saves cannot overwrite stored data.
        """
        if token in self._workspaces:
            return self._workspaces[token]

        try:
            workspace = self.store.load(token)
        except PersistenceError as e:
            logger.error(f"Failed to load workspace {token}: {e}")
            raise

        workspace = workspace or Workspace(token=token)
        self._workspaces[token] = workspace
        return workspace

    def ingest(self, items: List[ContextItem]) -> ContextBundle:
        return self.ingestor.ingest(items)

    def update_context(self, token: str, items: List[ContextItem]) -> Workspace:
        """Replace the context items and schedule a save."""
        workspace = self.load_workspace(token).model_copy(update={"items": list(items)})
        self._workspaces[token] = workspace
        self.autosaver.schedule(token, workspace.profile, workspace.items)
        return workspace

    def patch_profile(self, token: str, **changes) -> AgentProfile:
        """Patch branding fields (brand_color, agent_name) and schedule a save."""
        workspace = self.load_workspace(token)
        if workspace.profile is None:
            raise AgentConsoleError(f"No profile to patch for {token}")

        profile = workspace.profile.with_patch(**changes)
        self._workspaces[token] = workspace.model_copy(update={"profile": profile})
        self.autosaver.schedule(token, profile, workspace.items)
        return profile

    def train(
        self,
        token: str,
        language: Optional[str] = None,
        progress: Optional[ProgressListener] = None,
        is_active: Optional[Callable[[], bool]] = None
    ) -> Optional[AgentProfile]:
        """
        Synthesize a profile from the workspace context and save it.

        Args:
            token: Access token
            language: Language of generated texts (default from settings)
            progress: Callback receiving ProgressEvents
            is_active: Liveness check; a stale caller's result is discarded

        Returns:
            The new profile, or None if the caller went away meanwhile

        Raises:
            SynthesisError: If synthesis failed (the stored profile is untouched)
            AgentConsoleError: If there is no context or no backend
        """
        if self.llm_client is None:
            raise AgentConsoleError("No LLM client configured")

        language = language or self.settings.default_language
        workspace = self.load_workspace(token)
        bundle = self.ingest(workspace.items)
        if bundle.is_empty():
            raise AgentConsoleError("Add some context before training")

        profile = self.synthesizer.synthesize(bundle, language, ProgressReporter(progress))

        if is_active is not None and not is_active():
            logger.info(f"Discarding synthesized profile for {token}: caller is gone")
            return None

        workspace = self.load_workspace(token).model_copy(update={"profile": profile})
        self._workspaces[token] = workspace

        if not self.autosaver.save_now(token, profile, workspace.items):
            logger.error(f"Trained profile for {token} is only held in memory until the next save")
        return profile

    # Chat

    def open_session(self, token: str, language: Optional[str] = None) -> ChatSession:
        workspace = self.load_workspace(token)
        if workspace.profile is None:
            raise AgentConsoleError(f"Train an agent before chatting ({token})")

        session = ChatSession(token, workspace.profile, language or self.settings.default_language)
        self._sessions[session.session_id] = session
        return session

    def chat(
        self,
        session: ChatSession,
        message: str,
        live_citations: Optional[List[Citation]] = None
    ) -> Optional[ChatResponse]:
        """
        Run one chat turn.

        The user message is recorded before the backend call so a failed
        turn keeps it. Returns None if the session closed meanwhile.
        """
        if not session.active:
            raise AgentConsoleError("Session is closed")

        history = session.state.context_turns()
        session.state.add_user_turn(message)

        response = self.resolver.respond(
            history, message, session.profile, live_citations, session.language
        )

        if not session.active:
            logger.info(f"Discarding reply for closed session {session.session_id}")
            return None

        session.state.add_agent_turn(response.text, response.product_cards)
        return response

    def close_session(self, session: ChatSession):
        session.close()
        self._sessions.pop(session.session_id, None)

    def embed_snippet(self, token: str, theme: str = "light") -> str:
        workspace = self.load_workspace(token)
        brand_color = workspace.profile.brand_color if workspace.profile else None
        return build_embed_snippet(token, brand_color, theme, self.settings.widget_script_url)

    def shutdown(self):
        """Write pending auto-saves and close sessions."""
        for session in list(self._sessions.values()):
            self.close_session(session)
        self.autosaver.flush()
