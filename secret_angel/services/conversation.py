from __future__ import annotations

import asyncio
import enum
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, List, Optional, Tuple


class ConversationStep(str, enum.Enum):
    AWAITING_NAME = "awaiting_name"
    AWAITING_WISHLIST = "awaiting_wishlist"
    AWAITING_NAME_FOR_ASSIGNMENT = "awaiting_name_for_assignment"
    AWAITING_CLEAR_CONFIRMATION = "awaiting_clear_confirmation"
    AWAITING_NUM_GROUPS = "awaiting_num_groups"
    AWAITING_RESTRICTIONS = "awaiting_restrictions"


@dataclass(frozen=True)
class RosterEntry:
    id: int
    name: str


@dataclass
class ConversationState:
    step: ConversationStep
    name: Optional[str] = None
    num_groups: Optional[int] = None
    roster: List[RosterEntry] = field(default_factory=list)

    @property
    def participant_count(self) -> int:
        return len(self.roster)


class ConversationStore:
    """In-memory conversation state keyed by chat id.

    Also hands out one lock per chat id so that events of a single chat are
    processed one at a time, in arrival order.
    """

    def __init__(self) -> None:
        self._states: Dict[int, ConversationState] = {}
        self._locks: Dict[int, Tuple[asyncio.Lock, int]] = {}

    def get(self, chat_id: int) -> Optional[ConversationState]:
        return self._states.get(chat_id)

    def set(self, chat_id: int, state: ConversationState) -> ConversationState:
        self._states[chat_id] = state
        return state

    def start(self, chat_id: int, step: ConversationStep, **data) -> ConversationState:
        return self.set(chat_id, ConversationState(step=step, **data))

    def clear(self, chat_id: int) -> Optional[ConversationState]:
        return self._states.pop(chat_id, None)

    def __contains__(self, chat_id: int) -> bool:
        return chat_id in self._states

    def __len__(self) -> int:
        return len(self._states)

    @asynccontextmanager
    async def locked(self, chat_id: int) -> AsyncIterator[None]:
        lock, users = self._locks.get(chat_id, (None, 0))
        if lock is None:
            lock = asyncio.Lock()
        self._locks[chat_id] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._locks[chat_id]
            if users <= 1:
                del self._locks[chat_id]
            else:
                self._locks[chat_id] = (lock, users - 1)

    def active_locks(self) -> int:
        return len(self._locks)
