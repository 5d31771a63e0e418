"""In-memory registry of flow sessions, one FlowController per session."""

import logging
import uuid
from collections import OrderedDict

from analysis_client import AnalysisClient
from flow import FlowController
from models import SessionSnapshot
from preview import PreviewStore

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Creates, looks up and closes flow sessions, evicting the oldest past the limit."""

    def __init__(self, client: AnalysisClient, max_sessions: int):
        self._client = client
        self._max_sessions = max_sessions
        self.previews = PreviewStore()
        self._sessions: OrderedDict[str, FlowController] = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self) -> str:
        session_id = uuid.uuid4().hex
        self._sessions[session_id] = FlowController(self._client, self.previews)

        while len(self._sessions) > self._max_sessions:
            oldest_id, oldest = self._sessions.popitem(last=False)
            logger.info("Evicting session %s (limit %d)", oldest_id, self._max_sessions)
            oldest.close()

        return session_id

    def get(self, session_id: str) -> FlowController | None:
        return self._sessions.get(session_id)

    def close(self, session_id: str) -> bool:
        flow = self._sessions.pop(session_id, None)
        if flow is None:
            return False
        flow.close()
        return True

    def close_all(self) -> None:
        for session_id in list(self._sessions):
            self.close(session_id)

    def snapshot(self, session_id: str) -> SessionSnapshot | None:
        flow = self.get(session_id)
        if flow is None:
            return None
        return SessionSnapshot(session_id=session_id, **flow.snapshot().model_dump())
