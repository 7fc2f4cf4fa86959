from flask import current_app, request
from flask_socketio import ConnectionRefusedError, emit

from judging import db, socketio
from judging.errors import JudgingError
from judging.rpc.dispatcher import CallDispatcher
from judging.rpc.messages import RPC_EVENT, RequestMessage, parse_message
from judging.schemas import DeviceRegistration, validate
from judging.server_router import ServerContext, broadcast_device_list, server_router
from judging.services import get_services

dispatcher = CallDispatcher(server_router)


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def handle_connect(auth=None):
    """Accept the connection; register the device when auth names one."""
    services = get_services()
    sid = _get_sid()
    # Anything but an object is treated as an anonymous handshake
    auth = auth if isinstance(auth, dict) else {}
    if auth.get('deviceId') is None:
        services.connections.add(sid)
        emit('connected', {'message': 'Connected to /ws', 'device': None})
        return

    registration = validate(DeviceRegistration, {
        'deviceId': auth.get('deviceId'),
        'deviceName': auth.get('deviceName', ''),
    })
    if not registration.ok:
        current_app.logger.info(f"[connect-refused] sid={sid} reason={registration.violation}")
        raise ConnectionRefusedError(str(registration.violation))

    device = services.presence.register_device(registration.value.device_id, registration.value.device_name)
    services.connections.add(sid, device.device_id)
    emit('connected', {'message': 'Connected to /ws', 'device': device.to_wire()})
    broadcast_device_list(services)


def handle_disconnect(reason=None):
    services = get_services()
    sid = _get_sid()
    device_id, last = services.connections.remove(sid, reason='disconnected')
    current_app.logger.info(f"[disconnect] sid={sid} device={device_id} reason={reason}")
    # Another tab of the same device may still be connected
    if device_id and last:
        services.presence.mark_offline(device_id)
        broadcast_device_list(services)


def handle_rpc(data):
    """Entry point for every envelope a client sends on the ``rpc`` event."""
    services = get_services()
    sid = _get_sid()
    try:
        message = parse_message(data)
    except JudgingError as exc:
        current_app.logger.info(f"[rpc-malformed] sid={sid} error={exc.message}")
        emit('error', exc.to_dict())
        return

    if not isinstance(message, RequestMessage):
        services.connections.handle_response(sid, message)
        return

    result = dispatcher.dispatch(message.path, message.input, ServerContext(sid, services), call_type=message.type)
    if not result.ok:
        # A rejected call must not leave half-written rows behind
        db.session.rollback()
    emit(RPC_EVENT, result.to_response(message.id))


def register_socketio_handlers(namespace: str = '/ws') -> None:
    """Register Socket.IO event handlers on ``namespace``."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event(RPC_EVENT, handle_rpc, namespace=namespace)
