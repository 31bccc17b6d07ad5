"""Conversation sessions: root and follow-up queries over one controller.

The session store is the persistence collaborator: it receives completed
{query, response} turns keyed by session id and hands them back so that
follow-up queries can carry the conversation history.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from uuid import uuid4

from nlweb.contracts.nlweb_v054 import SearchParams
from nlweb.search.controller import SearchSessionController
from nlweb.search.models import QueryResultSet


@dataclass(frozen=True)
class Backend:
    site: str
    endpoint: str


@dataclass(frozen=True)
class SearchSession:
    session_id: str
    query: str
    backend: Backend
    created: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated: datetime = field(default_factory=lambda: datetime.now(UTC))


class SessionStore(ABC):
    """Storage for conversation turns, keyed by session id."""

    @abstractmethod
    def list_sessions(self) -> list[SearchSession]:
        pass

    @abstractmethod
    def start(
        self, session_id: str, first_turn: QueryResultSet, backend: Backend
    ) -> SearchSession:
        pass

    @abstractmethod
    def load(self, session_id: str) -> list[QueryResultSet]:
        pass

    @abstractmethod
    def save(self, session_id: str, turns: list[QueryResultSet]) -> None:
        pass

    @abstractmethod
    def delete(self, session_id: str) -> None:
        pass


class InMemorySessionStore(SessionStore):
    def __init__(self) -> None:
        self._sessions: dict[str, SearchSession] = {}
        self._turns: dict[str, list[QueryResultSet]] = {}

    def list_sessions(self) -> list[SearchSession]:
        return sorted(self._sessions.values(), key=lambda s: s.updated, reverse=True)

    def start(
        self, session_id: str, first_turn: QueryResultSet, backend: Backend
    ) -> SearchSession:
        session = SearchSession(
            session_id=session_id, query=first_turn.query, backend=backend
        )
        self._sessions[session_id] = session
        self._turns[session_id] = [first_turn]
        return session

    def load(self, session_id: str) -> list[QueryResultSet]:
        return list(self._turns.get(session_id, []))

    def save(self, session_id: str, turns: list[QueryResultSet]) -> None:
        session = self._sessions.get(session_id)
        if session is None:
            raise KeyError(f"Unknown session: {session_id}")
        self._turns[session_id] = list(turns)
        self._sessions[session_id] = replace(session, updated=datetime.now(UTC))

    def delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)
        self._turns.pop(session_id, None)


class ConversationSession:
    """Root query starts a session; follow-ups send prior queries as context."""

    def __init__(
        self,
        controller: SearchSessionController,
        store: SessionStore,
        session_id: str | None = None,
        *,
        user_id: str | None = None,
    ):
        self._controller = controller
        self._store = store
        self._session_id = session_id
        self._user_id = user_id

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def turns(self) -> list[QueryResultSet]:
        if self._session_id is None:
            return []
        return self._store.load(self._session_id)

    async def ask(self, query: str) -> QueryResultSet:
        text = (query or "").strip()
        if not text:
            raise ValueError("query must not be empty")

        turns = self.turns
        params = SearchParams(
            query=text,
            conversation_history=[t.query for t in turns],
            user_id=self._user_id,
        )
        response = await self._controller.search(params)
        # Finished turns live in the store, not in the controller's live state.
        self._controller.clear_results()

        turn = QueryResultSet(query=text, response=response)
        if not turns:
            self._session_id = uuid4().hex
            self._store.start(
                self._session_id,
                turn,
                Backend(site=self._controller.site, endpoint=self._controller.endpoint),
            )
        else:
            self._store.save(self._session_id, [*turns, turn])
        return turn

    def end(self) -> None:
        self._session_id = None
