"""In-memory registry of open editing sessions, one store per session."""
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from sitecheck.schemas.checklist import ChecklistRecord
from sitecheck.services.record_store import ChecklistStore
from sitecheck.utils.exceptions import NotFoundError

logger = logging.getLogger(__name__)


@dataclass
class ChecklistSession:
    id: str
    store: ChecklistStore
    assignment_id: Optional[str] = None


class ChecklistSessions:
    def __init__(self):
        self._sessions: dict[str, ChecklistSession] = {}

    def create(
        self, record: Optional[ChecklistRecord] = None, assignment_id: Optional[str] = None
    ) -> ChecklistSession:
        session = ChecklistSession(str(uuid.uuid4()), ChecklistStore(record), assignment_id)
        self._sessions[session.id] = session
        logger.info("Checklist session %s opened", session.id)
        return session

    def get(self, session_id: str) -> ChecklistSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError("Checklist não encontrado")
        return session

    def close(self, session_id: str) -> None:
        if self._sessions.pop(session_id, None) is not None:
            logger.info("Checklist session %s closed", session_id)

    def __len__(self) -> int:
        return len(self._sessions)
