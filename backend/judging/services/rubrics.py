import threading
from typing import Dict, List, Optional

from flask import current_app

from judging import db
from judging.errors import RecordNotFound
from judging.models import (
    EngineeringNotebookRubricRecord,
    TeamInterviewNoteRecord,
    TeamInterviewRubricRecord,
)
from judging.schemas import validate

ENGINEERING_NOTEBOOK_RUBRIC = 'engineeringNotebookRubric'
TEAM_INTERVIEW_RUBRIC = 'teamInterviewRubric'
TEAM_INTERVIEW_NOTE = 'teamInterviewNote'

RECORDS = {
    ENGINEERING_NOTEBOOK_RUBRIC: EngineeringNotebookRubricRecord,
    TEAM_INTERVIEW_RUBRIC: TeamInterviewRubricRecord,
    TEAM_INTERVIEW_NOTE: TeamInterviewNoteRecord,
}


class RubricBook:
    """Stores rubric submissions; each submission replaces the record with the same id."""

    def __init__(self, lock: Optional[threading.RLock] = None):
        self._lock = lock or threading.RLock()

    def submit(self, kind: str, raw):
        record_cls = RECORDS[kind]
        value = validate(record_cls.contract, raw).unwrap()
        with self._lock:
            record = db.session.get(record_cls, value.id)
            replaced = record is not None
            if record is None:
                record = record_cls()
                db.session.add(record)
            record.assign(value)
            try:
                db.session.commit()
            except Exception:
                db.session.rollback()
                raise
            current_app.logger.info(
                f"[rubric-{'replaced' if replaced else 'stored'}] kind={kind} id={value.id} team={value.team_number}"
            )
            return value

    def get(self, kind: str, record_id: str):
        record = db.session.get(RECORDS[kind], record_id)
        if record is None:
            raise RecordNotFound(kind, record_id)
        return record.to_contract()

    def list_for_team(self, team_number: str) -> Dict[str, List]:
        listing = {}
        for kind, record_cls in RECORDS.items():
            records = record_cls.query.filter_by(team_number=team_number).order_by(record_cls.id).all()
            listing[f'{kind}s'] = [r.to_contract() for r in records]
        return listing
