import threading
import uuid
from typing import List, Optional

from flask import current_app
from sqlalchemy import func

from judging import db
from judging.errors import DeviceNotFound, SessionNotFound
from judging.models import JudgingSession
from judging.schemas import SessionInfo, SessionRequest, validate

from . import now_ms
from .presence import DevicePresenceTracker


class SessionRegistry:
    """Authoritative map of session id -> owning device and creation time."""

    def __init__(self, presence: DevicePresenceTracker, lock: Optional[threading.RLock] = None,
                 clock=now_ms, id_factory=None):
        self._presence = presence
        self._lock = lock or threading.RLock()
        self._clock = clock
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))

    def create_session(self, device_id: str, device_name: str) -> SessionInfo:
        request = validate(SessionRequest, {'deviceId': device_id, 'deviceName': device_name}).unwrap()
        with self._lock:
            if not self._presence.is_online(request.device_id):
                raise DeviceNotFound(request.device_id)
            latest = db.session.query(func.max(JudgingSession.created_at)).scalar() or 0
            session = JudgingSession(
                session_id=self._fresh_session_id(),
                device_id=request.device_id,
                device_name=request.device_name,
                created_at=max(self._clock(), int(latest)),
            )
            db.session.add(session)
            try:
                db.session.commit()
            except Exception:
                db.session.rollback()
                raise
            current_app.logger.info(f"[session-created] session={session.session_id} device={session.device_id}")
            return session.to_info()

    def _fresh_session_id(self) -> str:
        # Ids are never reused, closed sessions included
        while True:
            candidate = self._id_factory()
            if not JudgingSession.query.filter_by(session_id=candidate).first():
                return candidate

    def _lookup(self, session_id: str) -> JudgingSession:
        session = JudgingSession.query.filter_by(session_id=session_id).first()
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def get_session(self, session_id: str) -> SessionInfo:
        return self._lookup(session_id).to_info()

    def is_closed(self, session_id: str) -> bool:
        return self._lookup(session_id).is_closed

    def list_sessions_for_device(self, device_id: str, include_closed: bool = True) -> List[SessionInfo]:
        query = JudgingSession.query.filter_by(device_id=device_id)
        if not include_closed:
            query = query.filter(JudgingSession.closed_at.is_(None))
        return [s.to_info() for s in query.order_by(JudgingSession.created_at, JudgingSession.id).all()]

    def close_session(self, session_id: str) -> SessionInfo:
        """Close a session. Closing twice is harmless; the id stays reserved."""
        with self._lock:
            session = self._lookup(session_id)
            if session.closed_at is None:
                session.closed_at = max(self._clock(), int(session.created_at))
                try:
                    db.session.commit()
                except Exception:
                    db.session.rollback()
                    raise
                current_app.logger.info(f"[session-closed] session={session_id}")
            return session.to_info()
