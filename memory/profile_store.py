"""Persistence gateway interface."""

from abc import ABC, abstractmethod
from typing import List, Optional

from schemas.context import ContextItem
from schemas.profile import AgentProfile
from .models import Workspace


class ProfileStore(ABC):
    """Load/save of an agent profile and its context items, keyed by access token."""

    @abstractmethod
    def load(self, token: str) -> Optional[Workspace]:
        """
        Load a workspace.

        Returns:
            Workspace, or None if nothing was saved for the token

        Raises:
            PersistenceError: If the stored data cannot be read
        """
        pass

    @abstractmethod
    def save(self, token: str, profile: Optional[AgentProfile], items: List[ContextItem]):
        """
        Replace the stored workspace for a token (last write wins).

        Raises:
            PersistenceError: If the write fails
        """
        pass
