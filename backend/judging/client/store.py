"""Client-side projection of server-driven state.

The store is an ordinary object: whoever owns the channel creates one and
hands it to the handlers. UI code reads snapshots and subscribes; only
dispatched handlers write.
"""

import logging
import threading
from dataclasses import asdict, dataclass, fields, replace
from typing import Callable, List, Optional, Tuple

from judging.schemas import DeviceInfo

logger = logging.getLogger(__name__)

Subscriber = Callable[['ClientState'], None]


@dataclass(frozen=True)
class ClientState:
    server_call_count: int = 0
    last_update_age: float = 0
    devices: Tuple[DeviceInfo, ...] = ()

    def to_wire(self):
        return {
            'serverCallCount': self.server_call_count,
            'lastUpdateAge': self.last_update_age,
            'devices': [d.to_wire() for d in self.devices],
        }


STATE_FIELDS = frozenset(f.name for f in fields(ClientState))


class ClientStateStore:
    def __init__(self, initial: Optional[ClientState] = None):
        self._state = initial or ClientState()
        self._subscribers: List[Tuple[object, Subscriber]] = []
        self._lock = threading.RLock()

    def get_client_state(self) -> ClientState:
        with self._lock:
            return replace(self._state)

    def update_client_state(self, partial=None, **changes) -> ClientState:
        """Shallow-merge ``partial`` / keyword changes, then notify every subscriber once.

        Subscribers run synchronously, in subscription order, against the
        list as it was when the update started. A subscriber that raises is
        logged and skipped; the update itself stays applied and the remaining
        subscribers are still notified.
        """
        merged = dict(partial or {}, **changes)
        unknown = set(merged) - STATE_FIELDS
        if unknown:
            raise TypeError(f"Unknown client state field(s): {', '.join(sorted(unknown))}")
        with self._lock:
            self._state = replace(self._state, **merged)
            snapshot = self._state
            round_subscribers = [callback for _, callback in self._subscribers]
            for callback in round_subscribers:
                try:
                    callback(snapshot)
                except Exception:
                    logger.exception(f"[store-subscriber-error] callback={callback!r}")
        return snapshot

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        token = object()
        with self._lock:
            self._subscribers.append((token, callback))

        def unsubscribe():
            with self._lock:
                self._subscribers = [(t, cb) for t, cb in self._subscribers if t is not token]

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def as_dict(self):
        return asdict(self.get_client_state())
