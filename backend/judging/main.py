from flask import Blueprint, jsonify

from judging.errors import NotFound
from judging.services import get_services

main = Blueprint('main', __name__)


@main.errorhandler(NotFound)
def handle_not_found(error):
    return jsonify(error.to_dict()), 404


@main.route('/')
def index():
    return jsonify({'message': "Welcome to the Judges' Room server!"})


@main.route('/api/devices')
def list_devices():
    devices = get_services().presence.list_devices()
    return jsonify([d.to_wire() for d in devices])


@main.route('/api/devices/<string:device_id>/sessions')
def list_device_sessions(device_id):
    sessions = get_services().sessions.list_sessions_for_device(device_id)
    return jsonify([s.to_wire() for s in sessions])


@main.route('/api/sessions/<string:session_id>')
def get_session(session_id):
    return jsonify(get_services().sessions.get_session(session_id).to_wire())
