"""Per-conversation sessions with TTL and LRU eviction."""

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime

from pydantic import BaseModel, Field

from finance_agent.config import get_config
from finance_agent.models.conversation import ChatMessage, ConversationState

logger = logging.getLogger(__name__)


class Session(BaseModel):
    """Everything the engine remembers about one conversation."""

    conversation_id: str
    state: ConversationState = Field(default_factory=ConversationState)
    topics: list[str] = Field(default_factory=list, description="Most recent first")
    history: list[ChatMessage] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


@dataclass
class _LockEntry:
    mutex: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class SessionStore:
    """
    In-memory session store keyed by conversation id.

    Sessions idle for longer than the TTL are evicted, and once the store
    holds max_sessions entries the least recently used one is dropped.
    get() hands out a copy; changes are only kept once put() is called.
    """

    def __init__(
        self,
        ttl_seconds: float | None = None,
        max_sessions: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the store.

        Args:
            ttl_seconds: Idle time before a session expires (config default)
            max_sessions: Maximum number of live sessions (config default)
            clock: Monotonic time source, replaceable in tests
        """
        config = get_config()
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else config.session_ttl_seconds
        self.max_sessions = max_sessions if max_sessions is not None else config.max_sessions
        self._clock = clock
        self._sessions: OrderedDict[str, tuple[Session, float]] = OrderedDict()
        self._locks: dict[str, _LockEntry] = {}
        self._guard = threading.Lock()

    def __len__(self) -> int:
        with self._guard:
            return len(self._sessions)

    def __contains__(self, conversation_id: str) -> bool:
        with self._guard:
            return conversation_id in self._sessions

    def get(self, conversation_id: str) -> Session:
        """Return the session for a conversation, starting a new one if needed."""
        with self._guard:
            self._evict_expired_locked()
            entry = self._sessions.get(conversation_id)
            if entry is None:
                logger.debug(f"New session {conversation_id}")
                return Session(conversation_id=conversation_id)

            session, _ = entry
            self._sessions[conversation_id] = (session, self._clock())
            self._sessions.move_to_end(conversation_id)
            return session.model_copy(deep=True)

    def put(self, conversation_id: str, session: Session) -> None:
        """Store a session, evicting the least recently used one if full."""
        session = session.model_copy(update={"updated_at": datetime.now()}, deep=True)
        with self._guard:
            self._sessions[conversation_id] = (session, self._clock())
            self._sessions.move_to_end(conversation_id)

            while len(self._sessions) > self.max_sessions:
                evicted, _ = self._sessions.popitem(last=False)
                logger.info(f"Evicted least recently used session {evicted}")

    def drop(self, conversation_id: str) -> bool:
        """Forget a conversation. Returns True if it existed."""
        with self._guard:
            return self._sessions.pop(conversation_id, None) is not None

    @contextmanager
    def lock(self, conversation_id: str) -> Iterator[None]:
        """
        Hold the mutex serialising turns for a single conversation.

        The mutex lives only while some thread holds or waits for it, so
        conversations that are never stored leave nothing behind.
        """
        with self._guard:
            entry = self._locks.get(conversation_id)
            if entry is None:
                entry = self._locks[conversation_id] = _LockEntry()
            entry.users += 1

        try:
            with entry.mutex:
                yield
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._locks[conversation_id]

    @property
    def active_locks(self) -> int:
        """Number of conversations with a turn running or waiting."""
        with self._guard:
            return len(self._locks)

    def evict_expired(self) -> int:
        """Remove sessions idle for longer than the TTL. Returns the count."""
        with self._guard:
            return self._evict_expired_locked()

    def _evict_expired_locked(self) -> int:
        now = self._clock()
        expired = [
            cid for cid, (_, touched) in self._sessions.items()
            if now - touched > self.ttl_seconds
        ]
        for cid in expired:
            del self._sessions[cid]

        if expired:
            logger.info(f"Evicted {len(expired)} expired session(s)")
        return len(expired)
