import threading
from typing import Any, Dict, List, Optional

from judging.errors import CallTimeout, ChannelClosed, JudgingError, RemoteError
from judging.rpc.messages import ResponseMessage


class PendingCall:
    """An outgoing call waiting for the peer's response."""

    def __init__(self, request_id: str, path: str, owner: str):
        self.request_id = request_id
        self.path = path
        self.owner = owner
        self.data: Any = None
        self.error: Optional[JudgingError] = None
        self._done = threading.Event()

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def resolve(self, data) -> None:
        if not self.done:
            self.data = data
            self._done.set()

    def fail(self, error: JudgingError) -> None:
        if not self.done:
            self.error = error
            self._done.set()

    def wait(self, timeout: Optional[float] = None):
        if not self._done.wait(timeout):
            self.fail(CallTimeout(f"Request {self.request_id} to {self.owner} timed out"))
        if self.error is not None:
            raise self.error
        return self.data


class PendingCalls:
    def __init__(self):
        self._calls: Dict[str, PendingCall] = {}
        self._lock = threading.Lock()

    def add(self, call: PendingCall) -> PendingCall:
        with self._lock:
            self._calls[f'{call.owner}:{call.request_id}'] = call
        return call

    def resolve(self, owner: str, response: ResponseMessage) -> Optional[PendingCall]:
        with self._lock:
            call = self._calls.pop(f'{owner}:{response.id}', None)
        if call is None:
            return None
        result = response.result
        if result.type == 'error':
            body = result.error
            call.fail(RemoteError(body.message if body else 'Unknown error', body.code if body else None))
        else:
            call.resolve(result.data)
        return call

    def fail_owner(self, owner: str, reason: str) -> List[PendingCall]:
        with self._lock:
            keys = [k for k, c in self._calls.items() if c.owner == owner]
            dropped = [self._calls.pop(k) for k in keys]
        for call in dropped:
            call.fail(ChannelClosed(reason))
        return dropped

    def discard(self, call: PendingCall) -> None:
        with self._lock:
            self._calls.pop(f'{call.owner}:{call.request_id}', None)

    def __len__(self):
        with self._lock:
            return len(self._calls)
