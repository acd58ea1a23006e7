"""In-memory session storage — one dict keyed by session id, for tests and scripts."""

from recovery.storage.port import SessionStorage


class InMemorySessionStorage(SessionStorage):
    def __init__(self):
        self._sessions: dict[str, object] = {}
        # email -> session ids in creation order
        self._by_email: dict[str, list[str]] = {}

    def save(self, session) -> None:
        session_id = str(session.id)
        if session_id not in self._sessions:
            self._by_email.setdefault(session.email, []).append(session_id)
        self._sessions[session_id] = session

    def get(self, session_id: str):
        return self._sessions.get(str(session_id))

    def for_email(self, email: str) -> list:
        return [self._sessions[session_id] for session_id in self._by_email.get(email, [])]

    def all(self) -> list:
        return list(self._sessions.values())

    def delete(self, session_id: str) -> None:
        session = self._sessions.pop(str(session_id), None)
        if session is None:
            return

        ids = self._by_email.get(session.email, [])
        if str(session_id) in ids:
            ids.remove(str(session_id))
        if not ids:
            self._by_email.pop(session.email, None)

    def clear(self) -> None:
        self._sessions.clear()
        self._by_email.clear()
