import functools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional

from pydantic import TypeAdapter

from judging.rpc.messages import MUTATION, QUERY
from judging.schemas import adapter_for

Handler = Callable[[Any, Any], Any]
Wrapper = Callable[[str, Handler], Handler]


@dataclass(frozen=True)
class Procedure:
    name: str
    handler: Handler
    type: str = MUTATION
    input: Optional[TypeAdapter] = None
    output: Optional[TypeAdapter] = None


class ProcedureRouter:
    """Name -> procedure table for one side of the channel.

    Handlers are called as ``handler(payload, ctx)``. ``wrappers`` are applied
    to each handler once, when it is registered, innermost first.
    """

    def __init__(self, name: str, wrappers: Iterable[Wrapper] = ()):
        self.name = name
        self._wrappers = tuple(wrappers)
        self._procedures: Dict[str, Procedure] = {}

    def add(self, name: str, handler: Handler, type: str = MUTATION, input=None, output=None) -> Procedure:
        if type not in (QUERY, MUTATION):
            raise ValueError(f"Unsupported procedure type {type!r}")
        if name in self._procedures:
            raise ValueError(f"Procedure {name} already registered on {self.name}")
        wrapped = handler
        for wrapper in self._wrappers:
            wrapped = wrapper(name, wrapped)
        procedure = Procedure(
            name=name,
            handler=wrapped,
            type=type,
            input=adapter_for(input) if input is not None else None,
            output=adapter_for(output) if output is not None else None,
        )
        self._procedures[name] = procedure
        return procedure

    def procedure(self, name: str, type: str = MUTATION, input=None, output=None):
        def decorator(fn):
            self.add(name, fn, type=type, input=input, output=output)
            return fn
        return decorator

    def query(self, name: str, input=None, output=None):
        return self.procedure(name, type=QUERY, input=input, output=output)

    def mutation(self, name: str, input=None, output=None):
        return self.procedure(name, type=MUTATION, input=input, output=output)

    def get(self, name: str) -> Optional[Procedure]:
        return self._procedures.get(name)

    def __contains__(self, name):
        return name in self._procedures

    def names(self):
        return sorted(self._procedures)


def log_calls(logger: logging.Logger, level: int = logging.DEBUG) -> Wrapper:
    """Wrapper that logs every invocation of a procedure."""
    def wrap(name: str, handler: Handler) -> Handler:
        @functools.wraps(handler)
        def logged(payload, ctx):
            logger.log(level, f"[rpc-call] path={name}")
            return handler(payload, ctx)
        return logged
    return wrap
