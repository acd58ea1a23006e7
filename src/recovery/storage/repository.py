"""Repository-backed session storage — persists sessions through Protean.

Whatever database provider the recovery domain is configured with
(``domain.toml``) backs the sessions: memory in development and tests, a
relational database in production. Requires an active domain context.
"""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from recovery.session.session import CartSession
from recovery.storage.port import SessionStorage


class RepositorySessionStorage(SessionStorage):
    def __init__(self, page_size: int = 500):
        self.page_size = page_size

    @property
    def _repo(self):
        return current_domain.repository_for(CartSession)

    def _fetch(self, queryset) -> list:
        sessions = []
        offset = 0
        while True:
            page = queryset.order_by("created_at").offset(offset).limit(self.page_size).all()
            sessions.extend(page.items)
            if len(page.items) < self.page_size:
                return sessions
            offset += self.page_size

    def save(self, session) -> None:
        self._repo.add(session)

    def get(self, session_id: str):
        try:
            return self._repo.get(str(session_id))
        except ObjectNotFoundError:
            return None

    def for_email(self, email: str) -> list:
        return self._fetch(self._repo._dao.query.filter(email=email))

    def all(self) -> list:
        return self._fetch(self._repo._dao.query)

    def delete(self, session_id: str) -> None:
        session = self.get(session_id)
        if session is not None:
            self._repo._dao.delete(session)

    def clear(self) -> None:
        for session in self.all():
            self._repo._dao.delete(session)
