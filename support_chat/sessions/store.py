# support_chat/sessions/store.py

"""
Session storage.

SessionManager talks to a SessionStore so a persistent backend can replace
the in-memory one without touching call sites. The in-memory store is
volatile: a restart loses every session.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from support_chat.models import ChatSession


class SessionStore(ABC):

    @abstractmethod
    def get(self, session_id: str) -> Optional[ChatSession]:
        ...

    @abstractmethod
    def put(self, session: ChatSession) -> None:
        ...

    @abstractmethod
    def delete(self, session_id: str) -> bool:
        ...

    @abstractmethod
    def values(self) -> List[ChatSession]:
        ...

    @abstractmethod
    def __len__(self) -> int:
        ...


class InMemorySessionStore(SessionStore):
    """Dict-backed store keyed by session id."""

    def __init__(self):
        self._sessions: Dict[str, ChatSession] = {}

    def get(self, session_id: str) -> Optional[ChatSession]:
        return self._sessions.get(session_id)

    def put(self, session: ChatSession) -> None:
        self._sessions[session.id] = session

    def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def values(self) -> List[ChatSession]:
        # Snapshot, so callers may delete while iterating
        return list(self._sessions.values())

    def __len__(self) -> int:
        return len(self._sessions)
