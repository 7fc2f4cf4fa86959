"""Server side bookkeeping of live Socket.IO connections.

A device may hold several connections (tabs); it counts as online while at
least one of them is open.
"""

import logging
import threading
from typing import Dict, List, Optional, Set, Tuple

from judging.errors import CallTimeout, DeviceNotFound
from judging.rpc.messages import MUTATION, RPC_EVENT, ResponseMessage, make_request
from judging.rpc.pending import PendingCall, PendingCalls

logger = logging.getLogger(__name__)


class ConnectionManager:
    def __init__(self, socketio, namespace: str = '/ws', call_timeout: float = 30.0):
        self.socketio = socketio
        self.namespace = namespace
        self.call_timeout = call_timeout
        self.pending = PendingCalls()
        self._sid_to_device: Dict[str, Optional[str]] = {}
        self._device_sids: Dict[str, Set[str]] = {}
        self._lock = threading.RLock()

    # ---- connection lifecycle ----

    def add(self, sid: str, device_id: Optional[str] = None) -> None:
        with self._lock:
            self._sid_to_device[sid] = None
            if device_id:
                self.bind(sid, device_id)

    def bind(self, sid: str, device_id: str) -> Optional[str]:
        """Attach ``sid`` to ``device_id``.

        Returns the previously bound device if this left it without any
        connection, so the caller can mark it offline.
        """
        with self._lock:
            previous = self._sid_to_device.get(sid)
            self._sid_to_device[sid] = device_id
            self._device_sids.setdefault(device_id, set()).add(sid)
            if previous and previous != device_id:
                return previous if self._release(sid, previous) else None
            return None

    def remove(self, sid: str, reason: str = 'disconnected') -> Tuple[Optional[str], bool]:
        """Forget ``sid``; returns (device_id, device_has_no_connection_left)."""
        with self._lock:
            device_id = self._sid_to_device.pop(sid, None)
            last = self._release(sid, device_id) if device_id else False
        self.pending.fail_owner(sid, f"Client {sid} {reason}")
        return device_id, last

    def _release(self, sid: str, device_id: str) -> bool:
        sids = self._device_sids.get(device_id)
        if sids is None:
            return True
        sids.discard(sid)
        if not sids:
            del self._device_sids[device_id]
            return True
        return False

    # ---- lookups ----

    def device_for(self, sid: str) -> Optional[str]:
        return self._sid_to_device.get(sid)

    def sids_for(self, device_id: str) -> List[str]:
        with self._lock:
            return sorted(self._device_sids.get(device_id, ()))

    def is_device_connected(self, device_id: str) -> bool:
        return bool(self.sids_for(device_id))

    def connected_devices(self) -> List[str]:
        with self._lock:
            return sorted(self._device_sids)

    def connected_sids(self) -> List[str]:
        with self._lock:
            return sorted(self._sid_to_device)

    # ---- server -> client calls ----

    def send(self, sid: str, path: str, payload=None, call_type: str = MUTATION,
             expect_response: bool = True) -> PendingCall:
        message = make_request(path, payload, call_type)
        call = PendingCall(message['id'], path, owner=sid)
        if expect_response:
            self.pending.add(call)
        self.socketio.emit(RPC_EVENT, message, to=sid, namespace=self.namespace)
        return call

    def send_to_device(self, device_id: str, path: str, payload=None, call_type: str = MUTATION,
                       expect_response: bool = True) -> List[PendingCall]:
        sids = self.sids_for(device_id)
        if not sids:
            raise DeviceNotFound(device_id, reason='has no live connection')
        return [self.send(sid, path, payload, call_type, expect_response) for sid in sids]

    def broadcast(self, path: str, payload=None, call_type: str = MUTATION,
                  expect_response: bool = True) -> List[PendingCall]:
        return [self.send(sid, path, payload, call_type, expect_response) for sid in self.connected_sids()]

    def wait(self, call: PendingCall, timeout: Optional[float] = None):
        """Block until ``call`` is answered; a timed out call is forgotten."""
        try:
            return call.wait(self.call_timeout if timeout is None else timeout)
        except CallTimeout:
            self.pending.discard(call)
            raise

    def handle_response(self, sid: str, response: ResponseMessage) -> Optional[PendingCall]:
        call = self.pending.resolve(sid, response)
        if call is None:
            logger.debug(f"[rpc-response-unmatched] sid={sid} id={response.id}")
        return call

    def kick(self, device_id: str) -> int:
        sids = self.sids_for(device_id)
        for sid in sids:
            self.socketio.server.disconnect(sid, namespace=self.namespace)
        return len(sids)
