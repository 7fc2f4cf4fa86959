"""Judging domain services: device presence, session registry, rubrics.

These are shared, process-wide state holders. Every mutating operation runs
under one re-entrant lock so the presence and session invariants hold even
when Socket.IO handlers run on several threads.
"""

import threading
import time
from dataclasses import dataclass

from flask import current_app


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class JudgingServices:
    presence: 'DevicePresenceTracker'
    sessions: 'SessionRegistry'
    rubrics: 'RubricBook'
    connections: 'ConnectionManager'


def init_services(app, socketio, clock=now_ms) -> JudgingServices:
    from .presence import DevicePresenceTracker
    from .rubrics import RubricBook
    from .sessions import SessionRegistry
    from judging.rpc.connections import ConnectionManager

    lock = threading.RLock()
    presence = DevicePresenceTracker(lock=lock, clock=clock)
    services = JudgingServices(
        presence=presence,
        sessions=SessionRegistry(presence, lock=lock, clock=clock),
        rubrics=RubricBook(lock=lock),
        connections=ConnectionManager(
            socketio,
            namespace=app.config.get('SOCKETIO_NAMESPACE', '/ws'),
            call_timeout=float(app.config.get('CALL_TIMEOUT_SEC', 30)),
        ),
    )
    app.extensions['judging'] = services
    return services


def get_services() -> JudgingServices:
    return current_app.extensions['judging']
