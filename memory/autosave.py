"""Debounced auto-save of workspaces."""

import logging
import threading
from typing import Callable, Dict, List, Optional, Tuple

from errors import PersistenceError
from schemas.context import ContextItem
from schemas.profile import AgentProfile
from .profile_store import ProfileStore

logger = logging.getLogger(__name__)


class DebouncedAutoSaver:
    """
    Coalesces rapid saves per token into one write after a quiet period.

    Writes for one token never overlap, so the newest state always lands
    last. Failures are logged and reported to on_error; they never reach
    the caller.
    """

    def __init__(
        self,
        store: ProfileStore,
        delay_seconds: float = 1.0,
        on_error: Optional[Callable[[str, PersistenceError], None]] = None
    ):
        self.store = store
        self.delay_seconds = delay_seconds
        self.on_error = on_error
        self._pending: Dict[str, Tuple[Optional[AgentProfile], List[ContextItem]]] = {}
        self._timers: Dict[str, threading.Timer] = {}
        self._write_locks: Dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    def schedule(self, token: str, profile: Optional[AgentProfile], items: List[ContextItem]):
        """Queue the latest state for a token, restarting its timer."""
        with self._lock:
            self._pending[token] = (profile, list(items))
            self._cancel_timer(token)
            timer = threading.Timer(self.delay_seconds, self._write, args=(token,))
            timer.daemon = True
            self._timers[token] = timer
            timer.start()

    def save_now(self, token: str, profile: Optional[AgentProfile], items: List[ContextItem]) -> bool:
        """Replace any pending state and write it immediately."""
        with self._lock:
            self._pending[token] = (profile, list(items))
            self._cancel_timer(token)
        return self._write(token)

    def pending_tokens(self) -> List[str]:
        with self._lock:
            return list(self._pending)

    def flush(self, token: Optional[str] = None):
        """Write pending state now (one token or all)."""
        with self._lock:
            tokens = [token] if token else list(self._pending)
            for t in tokens:
                self._cancel_timer(t)
        for t in tokens:
            self._write(t)

    def cancel(self):
        """Drop pending writes without saving."""
        with self._lock:
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()
            self._pending.clear()

    def _cancel_timer(self, token: str):
        timer = self._timers.pop(token, None)
        if timer:
            timer.cancel()

    def _write_lock_for(self, token: str) -> threading.Lock:
        with self._lock:
            if token not in self._write_locks:
                self._write_locks[token] = threading.Lock()
            return self._write_locks[token]

    def _write(self, token: str) -> bool:
        with self._write_lock_for(token):
            with self._lock:
                state = self._pending.pop(token, None)
                self._timers.pop(token, None)
            if state is None:
                return False

            profile, items = state
            try:
                self.store.save(token, profile, items)
                logger.debug(f"Auto-saved workspace for {token}")
                return True
            except PersistenceError as e:
                logger.error(f"Auto-save failed for {token}: {e}")
                if self.on_error:
                    self.on_error(token, e)
                return False
