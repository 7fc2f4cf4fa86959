from sqlalchemy.orm import validates

from judging import db
from judging.schemas import (
    DeviceInfo,
    EngineeringNotebookRubric,
    SessionInfo,
    TeamInterviewNote,
    TeamInterviewRubric,
)


class Device(db.Model):
    __tablename__ = 'device'
    device_id = db.Column(db.Text, primary_key=True)
    device_name = db.Column(db.Text, nullable=False, default='')
    connected_at = db.Column(db.BigInteger, nullable=False)  # epoch ms
    is_online = db.Column(db.Boolean, nullable=False, default=True, index=True)

    def to_info(self) -> DeviceInfo:
        return DeviceInfo(
            device_id=self.device_id,
            device_name=self.device_name,
            connected_at=int(self.connected_at),
            is_online=bool(self.is_online),
        )

    def to_dict(self):
        return self.to_info().to_wire()


class JudgingSession(db.Model):
    __tablename__ = 'judging_session'
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.String(36), unique=True, nullable=False, index=True)
    # Not a database foreign key: device history may be purged while sessions remain.
    device_id = db.Column(db.Text, nullable=False, index=True)
    device_name = db.Column(db.String(100), nullable=False)
    created_at = db.Column(db.BigInteger, nullable=False, index=True)
    closed_at = db.Column(db.BigInteger, nullable=True)

    @validates('device_id')
    def _device_id_is_write_once(self, key, value):
        if self.device_id is not None and self.device_id != value:
            raise ValueError(f"Session {self.session_id} already belongs to device {self.device_id}")
        return value

    @property
    def is_closed(self):
        return self.closed_at is not None

    def to_info(self) -> SessionInfo:
        return SessionInfo(
            session_id=self.session_id,
            created_at=int(self.created_at),
            device_id=self.device_id,
            device_name=self.device_name,
        )

    def to_dict(self):
        return self.to_info().to_wire()


class RubricRecordMixin:
    id = db.Column(db.String(36), primary_key=True)
    team_number = db.Column(db.String(10), nullable=False, index=True)
    judge_id = db.Column(db.String(36), nullable=False, index=True)

    contract = None

    def assign(self, value):
        """Overwrite every column from a validated contract value."""
        for field in self.contract.model_fields:
            setattr(self, field, _column_value(getattr(value, field)))

    def to_contract(self):
        return self.contract(**{field: getattr(self, field) for field in self.contract.model_fields})

    def to_dict(self):
        return self.to_contract().to_wire()


def _column_value(value):
    if isinstance(value, tuple):
        return list(value)
    return value


class EngineeringNotebookRubricRecord(RubricRecordMixin, db.Model):
    __tablename__ = 'engineering_notebook_rubric'
    rubric = db.Column(db.JSON, nullable=False)
    notes = db.Column(db.Text, nullable=False, default='')
    innovate_award_notes = db.Column(db.Text, nullable=False, default='')

    contract = EngineeringNotebookRubric


class TeamInterviewRubricRecord(RubricRecordMixin, db.Model):
    __tablename__ = 'team_interview_rubric'
    rubric = db.Column(db.JSON, nullable=False)
    notes = db.Column(db.Text, nullable=False, default='')

    contract = TeamInterviewRubric


class TeamInterviewNoteRecord(RubricRecordMixin, db.Model):
    __tablename__ = 'team_interview_note'
    rows = db.Column(db.JSON, nullable=False)

    contract = TeamInterviewNote
