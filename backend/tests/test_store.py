import pytest

from judging.client.store import ClientState, ClientStateStore


def test_initial_state():
    store = ClientStateStore()
    assert store.get_client_state() == ClientState(server_call_count=0, last_update_age=0)


def test_update_merges_and_notifies_once():
    store = ClientStateStore()
    seen = []
    store.subscribe(seen.append)
    store.update_client_state(server_call_count=1, last_update_age=42)
    assert seen == [ClientState(server_call_count=1, last_update_age=42)]
    store.update_client_state({'last_update_age': 7})
    assert store.get_client_state() == ClientState(server_call_count=1, last_update_age=7)
    assert len(seen) == 2


def test_unknown_field_is_rejected_without_notifying():
    store = ClientStateStore()
    seen = []
    store.subscribe(seen.append)
    with pytest.raises(TypeError):
        store.update_client_state(favourite_colour='blue')
    assert seen == []
    assert store.get_client_state() == ClientState()


def test_unsubscribe_only_removes_that_registration():
    store = ClientStateStore()
    seen = []
    unsubscribe_first = store.subscribe(seen.append)
    store.subscribe(seen.append)
    unsubscribe_first()
    unsubscribe_first()
    store.update_client_state(server_call_count=3)
    assert len(seen) == 1
    assert store.subscriber_count == 1


def test_subscriber_added_during_notification_waits_for_next_update():
    store = ClientStateStore()
    late = []

    def first(state):
        store.subscribe(late.append)

    store.subscribe(first)
    store.update_client_state(server_call_count=1)
    assert late == []
    store.update_client_state(server_call_count=2)
    assert [s.server_call_count for s in late] == [2]


def test_snapshots_are_independent():
    store = ClientStateStore()
    before = store.get_client_state()
    store.update_client_state(server_call_count=5)
    assert before.server_call_count == 0
    assert store.as_dict() == {'server_call_count': 5, 'last_update_age': 0, 'devices': ()}
    assert store.get_client_state().to_wire() == {'serverCallCount': 5, 'lastUpdateAge': 0, 'devices': []}


def test_two_updates_notify_twice():
    store = ClientStateStore()
    seen = []
    store.subscribe(seen.append)
    store.update_client_state({'server_call_count': 1})
    store.update_client_state({'last_update_age': 42})
    assert len(seen) == 2
    assert store.get_client_state() == ClientState(server_call_count=1, last_update_age=42)


def test_unsubscribe_during_notification():
    store = ClientStateStore()
    seen = []
    handles = {}

    def leaving(state):
        seen.append(('leaving', state.server_call_count))
        handles['leaving']()

    handles['leaving'] = store.subscribe(leaving)
    store.subscribe(lambda state: seen.append(('staying', state.server_call_count)))
    store.update_client_state(server_call_count=1)
    store.update_client_state(server_call_count=2)
    assert seen == [('leaving', 1), ('staying', 1), ('staying', 2)]


def test_failing_subscriber_does_not_starve_the_others():
    store = ClientStateStore()
    later = []

    def broken(state):
        raise RuntimeError('render failed')

    store.subscribe(broken)
    store.subscribe(later.append)
    result = store.update_client_state(server_call_count=1)
    assert result == ClientState(server_call_count=1)
    assert later == [ClientState(server_call_count=1)]
    assert store.get_client_state() == result


def test_failing_subscriber_does_not_fail_the_dispatched_call():
    from judging.client.router import ClientContext, build_client_router
    from judging.rpc.dispatcher import CallDispatcher

    store = ClientStateStore()
    later = []

    def broken(state):
        raise RuntimeError('render failed')

    store.subscribe(broken)
    store.subscribe(later.append)

    result = CallDispatcher(build_client_router()).dispatch('onUpdateAge', 42.0, ClientContext(store=store))
    assert result.ok
    assert result.data == 'Age updated to 42.0'
    assert store.get_client_state() == ClientState(server_call_count=1, last_update_age=42)
    assert later == [store.get_client_state()]
