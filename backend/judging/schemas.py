"""Data contracts exchanged over the protocol.

Every model is frozen, so a value returned by :func:`validate` keeps
satisfying its constraints for as long as it lives. Wire names are camelCase
(``deviceId``); Python attributes are snake_case (``device_id``).
"""

from typing import Annotated, Any, NamedTuple, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from judging.errors import SchemaViolation

UUID_PATTERN = r'^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$'
SESSION_DEVICE_NAME_MAX = 100
TEAM_NUMBER_MAX = 10

Uuid = Annotated[str, StringConstraints(pattern=UUID_PATTERN)]
DeviceId = Annotated[str, StringConstraints(min_length=1)]
Timestamp = Annotated[int, Field(strict=True, gt=0)]
TeamNumber = Annotated[str, StringConstraints(min_length=1, max_length=TEAM_NUMBER_MAX, pattern=r'^[A-Z0-9]+$')]
SessionDeviceName = Annotated[str, StringConstraints(min_length=1, max_length=SESSION_DEVICE_NAME_MAX)]
Rank = Annotated[float, Field(strict=True, ge=0, le=5, allow_inf_nan=False)]
Score = Annotated[float, Field(strict=True, allow_inf_nan=False)]

# Sequences are stored as tuples so frozen contracts stay immutable all the way
# down; arrays from the wire are accepted and converted.
Ranks = Annotated[Tuple[Rank, ...], Field(strict=False)]
Scores = Annotated[Tuple[Score, ...], Field(strict=False)]
Rows = Annotated[Tuple[Annotated[str, Field(strict=True)], ...], Field(strict=False)]


class Contract(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        strict=True,
    )

    def to_wire(self):
        return self.model_dump(mode='json', by_alias=True)


class DeviceInfo(Contract):
    device_id: DeviceId
    device_name: str
    connected_at: Timestamp
    is_online: bool


class SessionInfo(Contract):
    session_id: Uuid
    created_at: Timestamp
    # Same id space as DeviceInfo.device_id
    device_id: DeviceId
    device_name: SessionDeviceName


class EngineeringNotebookRubric(Contract):
    id: Uuid
    team_number: TeamNumber
    judge_id: Uuid
    rubric: Ranks
    notes: str
    innovate_award_notes: str


class TeamInterviewRubric(Contract):
    id: Uuid
    team_number: TeamNumber
    judge_id: Uuid
    # Unbounded on purpose; the notebook rubric is the only one capped at 5.
    rubric: Scores
    notes: str = ''


class TeamInterviewNote(Contract):
    id: Uuid
    team_number: TeamNumber
    judge_id: Uuid
    rows: Rows


# Request payloads

class DeviceRegistration(Contract):
    device_id: DeviceId
    device_name: str


class SessionRequest(Contract):
    device_id: DeviceId
    device_name: SessionDeviceName


class DeviceLookup(Contract):
    device_id: DeviceId


class SessionLookup(Contract):
    session_id: Uuid


class RecordLookup(Contract):
    id: Uuid


class TeamLookup(Contract):
    team_number: TeamNumber


class AgePush(Contract):
    age: Score
    device_id: Optional[DeviceId] = None


Age = TypeAdapter(Score)
Name = TypeAdapter(Annotated[str, Field(strict=True)])


class Validation(NamedTuple):
    value: Any = None
    violation: Optional[SchemaViolation] = None

    @property
    def ok(self) -> bool:
        return self.violation is None

    def unwrap(self):
        if self.violation is not None:
            raise self.violation
        return self.value


def adapter_for(schema: Union[type, TypeAdapter]) -> TypeAdapter:
    if isinstance(schema, TypeAdapter):
        return schema
    return TypeAdapter(schema)


def format_path(loc) -> str:
    path = ''
    for part in loc:
        if isinstance(part, int):
            path += f'[{part}]'
        else:
            path = f'{path}.{part}' if path else str(part)
    return path


def violation_from(error: ValidationError) -> SchemaViolation:
    issues = [(format_path(e['loc']), e['msg']) for e in error.errors()]
    path, constraint = issues[0]
    return SchemaViolation(path, constraint, issues)


def validate(schema: Union[type, TypeAdapter], raw: Any) -> Validation:
    """Check ``raw`` against ``schema`` without raising.

    ``schema`` is a contract class, any type pydantic understands, or a
    prepared ``TypeAdapter``. Already validated instances pass straight through.
    """
    if isinstance(schema, type) and isinstance(raw, schema):
        return Validation(value=raw)
    try:
        return Validation(value=adapter_for(schema).validate_python(raw))
    except ValidationError as exc:
        return Validation(violation=violation_from(exc))


def to_wire(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode='json', by_alias=True)
    if isinstance(value, (list, tuple)):
        return [to_wire(v) for v in value]
    if isinstance(value, dict):
        return {k: to_wire(v) for k, v in value.items()}
    return value
