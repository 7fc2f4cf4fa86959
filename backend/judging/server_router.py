"""Procedures a connected device may call on the server."""

from dataclasses import dataclass
from typing import List, Optional

from flask import current_app

from judging.rpc.router import ProcedureRouter, log_calls
from judging.schemas import (
    AgePush,
    DeviceInfo,
    DeviceLookup,
    DeviceRegistration,
    EngineeringNotebookRubric,
    RecordLookup,
    SessionInfo,
    SessionLookup,
    SessionRequest,
    TeamInterviewNote,
    TeamInterviewRubric,
    TeamLookup,
)
from judging.services import JudgingServices
from judging.services.rubrics import ENGINEERING_NOTEBOOK_RUBRIC, TEAM_INTERVIEW_NOTE, TEAM_INTERVIEW_RUBRIC


@dataclass
class ServerContext:
    sid: Optional[str]
    services: JudgingServices

    @property
    def device_id(self) -> Optional[str]:
        if self.sid is None:
            return None
        return self.services.connections.device_for(self.sid)


class _AppLogger:
    # Resolves the Flask logger at call time; routers outlive a single app.
    def log(self, level, msg, *args, **kwargs):
        current_app.logger.log(level, msg, *args, **kwargs)


server_router = ProcedureRouter('server', wrappers=[log_calls(_AppLogger())])


def broadcast_device_list(services: JudgingServices):
    """Push the current device list to every connection; nobody answers."""
    devices = services.presence.list_devices()
    return services.connections.broadcast('onDeviceListUpdate', devices, expect_response=False)


# ---- devices ----

@server_router.mutation('registerDevice', input=DeviceRegistration, output=DeviceInfo)
def register_device(payload: DeviceRegistration, ctx: ServerContext):
    info = ctx.services.presence.register_device(payload.device_id, payload.device_name)
    if ctx.sid is not None:
        orphaned = ctx.services.connections.bind(ctx.sid, info.device_id)
        if orphaned:
            ctx.services.presence.mark_offline(orphaned)
    broadcast_device_list(ctx.services)
    return info


@server_router.query('getDevices', output=List[DeviceInfo])
def get_devices(payload, ctx: ServerContext):
    return ctx.services.presence.list_devices()


@server_router.mutation('kickDevice', input=DeviceLookup)
def kick_device(payload: DeviceLookup, ctx: ServerContext):
    purged = ctx.services.presence.purge_device(payload.device_id)
    kicked = ctx.services.connections.kick(payload.device_id)
    broadcast_device_list(ctx.services)
    return {'success': purged or kicked > 0}


# ---- sessions ----

@server_router.mutation('createSession', input=SessionRequest, output=SessionInfo)
def create_session(payload: SessionRequest, ctx: ServerContext):
    return ctx.services.sessions.create_session(payload.device_id, payload.device_name)


@server_router.query('getSession', input=SessionLookup, output=SessionInfo)
def get_session(payload: SessionLookup, ctx: ServerContext):
    return ctx.services.sessions.get_session(payload.session_id)


@server_router.query('listSessionsForDevice', input=DeviceLookup, output=List[SessionInfo])
def list_sessions_for_device(payload: DeviceLookup, ctx: ServerContext):
    return ctx.services.sessions.list_sessions_for_device(payload.device_id)


@server_router.mutation('closeSession', input=SessionLookup, output=SessionInfo)
def close_session(payload: SessionLookup, ctx: ServerContext):
    return ctx.services.sessions.close_session(payload.session_id)


# ---- rubrics ----

@server_router.mutation('submitEngineeringNotebookRubric', input=EngineeringNotebookRubric, output=EngineeringNotebookRubric)
def submit_engineering_notebook_rubric(payload, ctx: ServerContext):
    return ctx.services.rubrics.submit(ENGINEERING_NOTEBOOK_RUBRIC, payload)


@server_router.mutation('submitTeamInterviewRubric', input=TeamInterviewRubric, output=TeamInterviewRubric)
def submit_team_interview_rubric(payload, ctx: ServerContext):
    return ctx.services.rubrics.submit(TEAM_INTERVIEW_RUBRIC, payload)


@server_router.mutation('submitTeamInterviewNote', input=TeamInterviewNote, output=TeamInterviewNote)
def submit_team_interview_note(payload, ctx: ServerContext):
    return ctx.services.rubrics.submit(TEAM_INTERVIEW_NOTE, payload)


@server_router.query('getEngineeringNotebookRubric', input=RecordLookup, output=EngineeringNotebookRubric)
def get_engineering_notebook_rubric(payload: RecordLookup, ctx: ServerContext):
    return ctx.services.rubrics.get(ENGINEERING_NOTEBOOK_RUBRIC, payload.id)


@server_router.query('getTeamInterviewRubric', input=RecordLookup, output=TeamInterviewRubric)
def get_team_interview_rubric(payload: RecordLookup, ctx: ServerContext):
    return ctx.services.rubrics.get(TEAM_INTERVIEW_RUBRIC, payload.id)


@server_router.query('getTeamInterviewNote', input=RecordLookup, output=TeamInterviewNote)
def get_team_interview_note(payload: RecordLookup, ctx: ServerContext):
    return ctx.services.rubrics.get(TEAM_INTERVIEW_NOTE, payload.id)


@server_router.query('listRubricsForTeam', input=TeamLookup)
def list_rubrics_for_team(payload: TeamLookup, ctx: ServerContext):
    return ctx.services.rubrics.list_for_team(payload.team_number)


# ---- server push ----

@server_router.mutation('pushUpdateAge', input=AgePush)
def push_update_age(payload: AgePush, ctx: ServerContext):
    """Fire-and-forget ``onUpdateAge`` to one device, or to everybody."""
    connections = ctx.services.connections
    if payload.device_id is not None:
        calls = connections.send_to_device(payload.device_id, 'onUpdateAge', payload.age, expect_response=False)
    else:
        calls = connections.broadcast('onUpdateAge', payload.age, expect_response=False)
    return {'delivered': len(calls)}
