import threading

import pytest

from judging.client import ClientChannel, ClientState, ClientStateStore, JudgingClient
from judging.errors import CallTimeout, ChannelClosed, RemoteError
from judging.rpc.messages import QUERY, make_request


@pytest.fixture()
def sent():
    return []


@pytest.fixture()
def channel(sent):
    return ClientChannel(sent.append)


def test_update_age_request_updates_store_and_replies(channel, sent):
    notifications = []
    channel.store.subscribe(notifications.append)
    response = channel.handle_message(make_request('onUpdateAge', 42.0, request_id='r1'))
    assert response == {'kind': 'response', 'id': 'r1', 'result': {'type': 'data', 'data': 'Age updated to 42.0'}}
    assert sent == [response]
    assert notifications == [ClientState(server_call_count=1, last_update_age=42)]


def test_get_name_query(channel):
    response = channel.handle_message(make_request('getName', 'Alice', call_type=QUERY, request_id='r2'))
    assert response['result'] == {'type': 'data', 'data': 'Hello, Alice!'}


def test_invalid_age_leaves_store_untouched(channel):
    response = channel.handle_message(make_request('onUpdateAge', 'old', request_id='r3'))
    assert response['result']['error']['code'] == 'SCHEMA_VIOLATION'
    assert channel.store.get_client_state() == ClientState()


def test_unknown_procedure_leaves_store_untouched(channel):
    response = channel.handle_message(make_request('doesNotExist', {}, request_id='r4'))
    assert response['result']['error']['message'] == 'No procedure found at path: doesNotExist'
    assert channel.store.get_client_state() == ClientState()


def test_malformed_envelope_is_dropped(channel, sent):
    assert channel.handle_message('{"kind": "request"') is None
    assert channel.handle_message({'kind': 'mystery'}) is None
    assert sent == []


def test_requests_are_applied_in_arrival_order(channel):
    for i, age in enumerate([1, 2, 3]):
        channel.handle_message(make_request('onUpdateAge', age, request_id=f'r{i}'))
    assert channel.store.get_client_state() == ClientState(server_call_count=3, last_update_age=3)


def test_call_resolves_with_matching_response(channel, sent):
    call = channel.call('createSession', {'deviceId': 'd1', 'deviceName': 'Judge Phone'})
    request = sent[-1]
    assert request['kind'] == 'request' and request['path'] == 'createSession'
    channel.handle_message({'kind': 'response', 'id': request['id'], 'result': {'type': 'data', 'data': {'ok': 1}}})
    assert call.wait(0) == {'ok': 1}
    assert len(channel.pending) == 0


def test_call_error_response_raises_remote_error(channel, sent):
    call = channel.call('createSession', {})
    channel.handle_message({
        'kind': 'response', 'id': sent[-1]['id'],
        'result': {'type': 'error', 'error': {'message': 'Device d1 is not a known online device',
                                              'code': 'DEVICE_NOT_FOUND'}},
    })
    with pytest.raises(RemoteError) as excinfo:
        call.wait(0)
    assert excinfo.value.code == 'DEVICE_NOT_FOUND'


def test_close_fails_pending_calls(channel):
    call = channel.call('getDevices', None, call_type=QUERY)
    channel.close()
    with pytest.raises(ChannelClosed):
        call.wait(0)
    with pytest.raises(ChannelClosed):
        channel.call('getDevices', None, call_type=QUERY)


def test_requests_after_close_are_not_applied(channel, sent):
    channel.close()
    assert channel.handle_message(make_request('onUpdateAge', 5, request_id='late')) is None
    assert channel.store.get_client_state() == ClientState()
    assert sent == []


class FakeSocket:
    """Stands in for socketio.Client; records handlers and emits."""

    def __init__(self):
        self.handlers = {}
        self.emitted = []
        self.connected_with = None
        self.on_emit = None

    def on(self, event, handler, namespace=None):
        self.handlers[(event, namespace)] = handler

    def connect(self, url, namespaces=None, auth=None, **kwargs):
        self.connected_with = {'url': url, 'namespaces': namespaces, 'auth': auth}
        self.handlers[('connect', '/ws')]()

    def disconnect(self):
        self.handlers[('disconnect', '/ws')]()

    def emit(self, event, data, namespace=None):
        self.emitted.append((event, data, namespace))
        if self.on_emit:
            self.on_emit(data)

    def deliver(self, message):
        return self.handlers[('rpc', '/ws')](message)


def test_judging_client_connects_with_device_auth():
    sio = FakeSocket()
    store = ClientStateStore()
    client = JudgingClient('d1', 'Judge Phone', store=store, sio=sio)
    client.connect('http://localhost:5000')
    assert sio.connected_with['auth'] == {'deviceId': 'd1', 'deviceName': 'Judge Phone'}
    assert sio.connected_with['namespaces'] == ['/ws']
    assert client.store is store


def test_judging_client_answers_server_requests():
    sio = FakeSocket()
    client = JudgingClient('d1', 'Judge Phone', sio=sio)
    client.connect('http://localhost:5000')
    sio.deliver(make_request('onUpdateAge', 42.0, request_id='push-1'))
    event, data, namespace = sio.emitted[-1]
    assert (event, namespace) == ('rpc', '/ws')
    assert data['id'] == 'push-1'
    assert client.store.get_client_state() == ClientState(server_call_count=1, last_update_age=42)


def test_judging_client_create_session_round_trip():
    sio = FakeSocket()
    client = JudgingClient('d1', 'Judge Phone', sio=sio)
    client.connect('http://localhost:5000')

    def reply(request):
        # Answer from another thread, like the socket's receive loop would
        threading.Thread(target=sio.deliver, args=({
            'kind': 'response', 'id': request['id'],
            'result': {'type': 'data', 'data': {
                'sessionId': '123e4567-e89b-12d3-a456-426614174000',
                'createdAt': 1700000000000,
                'deviceId': 'd1',
                'deviceName': 'Judge Phone',
            }},
        },)).start()

    sio.on_emit = reply
    session = client.create_session()
    assert session.device_id == 'd1'
    assert sio.emitted[0][1]['input'] == {'deviceId': 'd1', 'deviceName': 'Judge Phone'}


def test_judging_client_call_times_out_and_forgets_call():
    sio = FakeSocket()
    client = JudgingClient('d1', 'Judge Phone', sio=sio, call_timeout=0.01)
    client.connect('http://localhost:5000')
    with pytest.raises(CallTimeout):
        client.call('getDevices', call_type=QUERY)
    assert len(client.channel.pending) == 0


def test_judging_client_disconnect_fails_pending_calls():
    sio = FakeSocket()
    client = JudgingClient('d1', 'Judge Phone', sio=sio)
    client.connect('http://localhost:5000')
    pending = client.channel.call('getDevices', None, call_type=QUERY)
    client.disconnect()
    with pytest.raises(ChannelClosed):
        pending.wait(0)


def test_device_list_update_replaces_devices(channel):
    devices = [
        {'deviceId': 'd1', 'deviceName': 'Judge Phone', 'connectedAt': 10, 'isOnline': True},
        {'deviceId': 'd2', 'deviceName': 'Tablet', 'connectedAt': 20, 'isOnline': False},
    ]
    response = channel.handle_message(make_request('onDeviceListUpdate', devices, request_id='list-1'))
    assert response['result']['type'] == 'data'
    state = channel.store.get_client_state()
    assert [d.device_id for d in state.devices] == ['d1', 'd2']
    assert state.server_call_count == 0
    assert state.to_wire()['devices'] == devices


def test_malformed_device_list_is_rejected_whole(channel):
    devices = [
        {'deviceId': 'd1', 'deviceName': 'Judge Phone', 'connectedAt': 10, 'isOnline': True},
        {'deviceId': 'd2', 'deviceName': 'Tablet', 'connectedAt': 0, 'isOnline': False},
    ]
    response = channel.handle_message(make_request('onDeviceListUpdate', devices, request_id='list-2'))
    assert response['result']['error']['code'] == 'SCHEMA_VIOLATION'
    assert channel.store.get_client_state() == ClientState()
