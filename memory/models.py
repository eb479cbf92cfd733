"""Memory data models."""

from datetime import datetime
from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, Field

from schemas.context import ContextItem
from schemas.profile import AgentProfile, Product


class TurnRole(str, Enum):
    USER = "user"
    AGENT = "agent"


class ConversationTurn(BaseModel):
    """A single turn in a simulator conversation."""
    turn_id: int
    role: TurnRole
    text: str
    product_cards: List[Product] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=datetime.now)


class ClientSession(BaseModel):
    """Identity behind an access token."""
    token: str
    email: str
    is_active: bool = True
    role: str = "client"


class Workspace(BaseModel):
    """Everything persisted for one access token."""
    token: str
    profile: Optional[AgentProfile] = None
    items: List[ContextItem] = Field(default_factory=list)
    updated_at: Optional[datetime] = None
