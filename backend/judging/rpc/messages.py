"""Request/response envelopes carried on the ``rpc`` event."""

import json
import uuid
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from judging.errors import JudgingError, SchemaViolation
from judging.schemas import to_wire, violation_from

QUERY = 'query'
MUTATION = 'mutation'
RPC_EVENT = 'rpc'


class RequestMessage(BaseModel):
    kind: Literal['request']
    id: str
    type: Literal['query', 'mutation']
    path: str
    input: Any = None


class ErrorBody(BaseModel):
    message: str
    code: Optional[str] = None


class ResultBody(BaseModel):
    type: Literal['data', 'error']
    data: Any = None
    error: Optional[ErrorBody] = None


class ResponseMessage(BaseModel):
    kind: Literal['response']
    id: str
    result: ResultBody


Message = TypeAdapter(Annotated[Union[RequestMessage, ResponseMessage], Field(discriminator='kind')])


def parse_message(raw) -> Union[RequestMessage, ResponseMessage]:
    """Parse an envelope from a dict or a JSON string; raises SchemaViolation."""
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError as exc:
            raise SchemaViolation('', f'invalid JSON: {exc}')
    try:
        return Message.validate_python(raw)
    except ValidationError as exc:
        raise violation_from(exc)


def make_request(path: str, payload: Any = None, call_type: str = MUTATION, request_id: Optional[str] = None) -> dict:
    return {
        'kind': 'request',
        'id': request_id or str(uuid.uuid4()),
        'type': call_type,
        'path': path,
        'input': to_wire(payload),
    }


def data_response(request_id: str, data: Any) -> dict:
    return {'kind': 'response', 'id': request_id, 'result': {'type': 'data', 'data': to_wire(data)}}


def error_response(request_id: str, error: JudgingError) -> dict:
    return {'kind': 'response', 'id': request_id, 'result': {'type': 'error', 'error': error.to_dict()}}
