import logging
from typing import List, Optional

import socketio

from judging.client.channel import ClientChannel
from judging.client.store import ClientStateStore
from judging.errors import CallTimeout
from judging.rpc.messages import MUTATION, QUERY, RPC_EVENT
from judging.rpc.router import ProcedureRouter
from judging.schemas import DeviceInfo, SessionInfo

logger = logging.getLogger(__name__)

MAX_RECONNECT_ATTEMPTS = 5
RECONNECT_DELAY_SEC = 1


class JudgingClient:
    """Connects a device to the judging server over Socket.IO.

    The store is injected (or created here) and owned by this client; UI
    code should only read it and subscribe to it.
    """

    def __init__(self, device_id: str, device_name: str, store: Optional[ClientStateStore] = None,
                 router: Optional[ProcedureRouter] = None, sio=None, namespace: str = '/ws',
                 call_timeout: float = 30.0):
        self.device_id = device_id
        self.device_name = device_name
        self.namespace = namespace
        self.call_timeout = call_timeout
        self.sio = sio or socketio.Client(
            reconnection=True,
            reconnection_attempts=MAX_RECONNECT_ATTEMPTS,
            reconnection_delay=RECONNECT_DELAY_SEC,
        )
        self.channel = ClientChannel(self._send, store=store, router=router)
        self.sio.on(RPC_EVENT, self.channel.handle_message, namespace=namespace)
        self.sio.on('connect', self._on_connect, namespace=namespace)
        self.sio.on('disconnect', self._on_disconnect, namespace=namespace)

    @property
    def store(self) -> ClientStateStore:
        return self.channel.store

    def connect(self, url: str, **kwargs) -> None:
        self.sio.connect(
            url,
            namespaces=[self.namespace],
            auth={'deviceId': self.device_id, 'deviceName': self.device_name},
            **kwargs,
        )

    def disconnect(self) -> None:
        self.sio.disconnect()

    def _send(self, message: dict) -> None:
        self.sio.emit(RPC_EVENT, message, namespace=self.namespace)

    def _on_connect(self):
        self.channel.reopen()
        logger.info(f"[connected] device={self.device_id}")

    def _on_disconnect(self, *args):
        # Every pending call fails; reconnection is left to python-socketio
        self.channel.close()
        logger.info(f"[disconnected] device={self.device_id}")

    def call(self, path: str, payload=None, call_type: str = MUTATION, timeout: Optional[float] = None):
        pending = self.channel.call(path, payload, call_type)
        try:
            return pending.wait(self.call_timeout if timeout is None else timeout)
        except CallTimeout:
            self.channel.pending.discard(pending)
            raise

    def register(self, device_name: Optional[str] = None) -> DeviceInfo:
        if device_name is not None:
            self.device_name = device_name
        data = self.call('registerDevice', {'deviceId': self.device_id, 'deviceName': self.device_name})
        return DeviceInfo.model_validate(data)

    def create_session(self) -> SessionInfo:
        data = self.call('createSession', {'deviceId': self.device_id, 'deviceName': self.device_name})
        return SessionInfo.model_validate(data)

    def list_sessions(self) -> List[SessionInfo]:
        data = self.call('listSessionsForDevice', {'deviceId': self.device_id}, call_type=QUERY)
        return [SessionInfo.model_validate(item) for item in data]
