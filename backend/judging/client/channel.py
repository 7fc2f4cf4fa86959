import logging
import threading
from typing import Callable, Optional

from judging.client.router import ClientContext, build_client_router
from judging.client.store import ClientStateStore
from judging.errors import ChannelClosed, JudgingError
from judging.rpc.dispatcher import CallDispatcher
from judging.rpc.messages import MUTATION, RequestMessage, make_request, parse_message
from judging.rpc.pending import PendingCall, PendingCalls
from judging.rpc.router import ProcedureRouter

logger = logging.getLogger(__name__)

SERVER = 'server'


class ClientChannel:
    """Transport-agnostic client end of the protocol.

    Incoming messages are handled one at a time, in the order they are fed
    to :meth:`handle_message`; every server request is answered through
    ``send``.
    """

    def __init__(self, send: Callable[[dict], None], store: Optional[ClientStateStore] = None,
                 router: Optional[ProcedureRouter] = None):
        self._send = send
        self.store = store or ClientStateStore()
        self.dispatcher = CallDispatcher(router or build_client_router(), log=logger)
        self.pending = PendingCalls()
        self._inbound = threading.Lock()
        self.closed = False

    def handle_message(self, raw) -> Optional[dict]:
        """Apply one incoming envelope; returns the response sent back, if any."""
        with self._inbound:
            try:
                message = parse_message(raw)
            except JudgingError as exc:
                logger.error(f"Error parsing or validating message: {exc.message}")
                return None

            if not isinstance(message, RequestMessage):
                if self.pending.resolve(SERVER, message) is None:
                    logger.warning(f"Received response for unknown request: {message.id}")
                return None

            if self.closed:
                # Dropped mid-delivery: nothing is applied
                return None
            response = self.dispatcher.handle_request(message, ClientContext(store=self.store, channel=self))
            self._send(response)
            return response

    def call(self, path: str, payload=None, call_type: str = MUTATION) -> PendingCall:
        if self.closed:
            raise ChannelClosed('WebSocket connection closed')
        message = make_request(path, payload, call_type)
        call = self.pending.add(PendingCall(message['id'], path, owner=SERVER))
        self._send(message)
        return call

    def close(self, reason: str = 'WebSocket connection closed') -> None:
        self.closed = True
        self.pending.fail_owner(SERVER, reason)

    def reopen(self) -> None:
        self.closed = False
