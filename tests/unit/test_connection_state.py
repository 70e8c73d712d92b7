from resilient_stomp import ConnectionState


def test_connecting_states():
    assert ConnectionState.CONNECTING.is_connecting
    assert ConnectionState.RECONNECTING.is_connecting
    assert not ConnectionState.CONNECTED.is_connecting
    assert not ConnectionState.DISCONNECTED.is_connecting


def test_values_are_stable_strings():
    assert [state.value for state in ConnectionState] == ["disconnected", "connecting", "connected", "reconnecting"]
