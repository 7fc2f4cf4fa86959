import logging
from dataclasses import dataclass
from typing import Any, Optional

from judging.errors import HandlerFailure, JudgingError, UnknownProcedure
from judging.rpc.messages import RequestMessage, data_response, error_response
from judging.rpc.router import ProcedureRouter
from judging.schemas import to_wire, validate

logger = logging.getLogger(__name__)


@dataclass
class CallResult:
    data: Any = None
    error: Optional[JudgingError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_response(self, request_id: str) -> dict:
        if self.error is not None:
            return error_response(request_id, self.error)
        return data_response(request_id, self.data)


class CallDispatcher:
    """Looks up, validates and runs procedures; failures come back as values.

    Each received call runs its handler at most once. Nothing raised by a
    handler escapes ``dispatch``.
    """

    def __init__(self, router: ProcedureRouter, log: Optional[logging.Logger] = None):
        self.router = router
        self.log = log or logger

    def dispatch(self, path: str, payload: Any = None, ctx: Any = None, call_type: Optional[str] = None) -> CallResult:
        procedure = self.router.get(path)
        if procedure is None:
            return self._failed(path, UnknownProcedure(path))
        if call_type is not None and call_type != procedure.type:
            return self._failed(path, UnknownProcedure(
                path, f"Procedure type mismatch. Expected {procedure.type}, got {call_type}"
            ))

        if procedure.input is not None:
            checked = validate(procedure.input, payload)
            if not checked.ok:
                return self._failed(path, checked.violation)
            payload = checked.value

        try:
            result = procedure.handler(payload, ctx)
        except JudgingError as exc:
            return self._failed(path, exc)
        except Exception as exc:
            self.log.exception(f"[rpc-handler-error] router={self.router.name} path={path}")
            return self._failed(path, HandlerFailure(path, exc))

        if procedure.output is not None:
            checked = validate(procedure.output, to_wire(result))
            if not checked.ok:
                return self._failed(path, HandlerFailure(path, checked.violation))
            result = checked.value
        return CallResult(data=to_wire(result))

    def handle_request(self, request: RequestMessage, ctx: Any = None) -> dict:
        """Run a parsed request and build the response envelope."""
        return self.dispatch(request.path, request.input, ctx, call_type=request.type).to_response(request.id)

    def _failed(self, path: str, error: JudgingError) -> CallResult:
        self.log.warning(f"[rpc-error] router={self.router.name} path={path} code={error.code} message={error.message}")
        return CallResult(error=error)
