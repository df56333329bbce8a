import pytest
import requests
from unittest.mock import Mock

from vocab.errors import ForbiddenError, NetworkError, ServerError, UnauthorizedError
from vocab.local_store import LocalStore
from vocab.session_monitor import MonitorState, SessionMonitor


def _raiser(error):
    def call():
        raise error
    return call


@pytest.mark.unit
def test_three_failures_trigger_auto_logout_and_success_resets(monitor):
    for _ in range(3):
        with pytest.raises(NetworkError):
            monitor.wrap_api_call(_raiser(NetworkError("Network error: refused")), '/vocab')
    assert monitor.should_auto_logout()

    assert monitor.wrap_api_call(lambda: 'ok', '/vocab') == 'ok'
    assert monitor.consecutive_failures == 0
    assert not monitor.should_auto_logout()


@pytest.mark.unit
def test_failures_across_endpoints_share_one_counter(monitor):
    monitor.wrap_api_call(lambda: 1, '/openai')
    with pytest.raises(ServerError):
        monitor.wrap_api_call(_raiser(ServerError("boom", 500)), '/openai')
    with pytest.raises(NetworkError):
        monitor.wrap_api_call(_raiser(NetworkError("timeout")), '/tts')
    assert not monitor.should_auto_logout()
    with pytest.raises(ForbiddenError):
        monitor.wrap_api_call(_raiser(ForbiddenError("Forbidden", 403)), '/admin/users')
    assert monitor.should_auto_logout()


@pytest.mark.unit
def test_401_records_one_server_error_event_and_rethrows_original(monitor, analytics):
    error = UnauthorizedError("Unauthorized", 401, '/vocab')
    with pytest.raises(UnauthorizedError) as excinfo:
        monitor.wrap_api_call(_raiser(error), '/vocab')
    assert excinfo.value is error

    history = analytics.get_logout_history()
    assert len(history) == 1
    assert history[0].type == 'server_error'
    assert history[0].http_status == 401
    assert history[0].api_endpoint == '/vocab'
    assert monitor.consecutive_failures == 1


@pytest.mark.unit
@pytest.mark.parametrize("error", [
    ForbiddenError("Forbidden", 403),
    ServerError("Internal", 502),
    NetworkError("Network error: refused"),
    RuntimeError("something odd"),
])
def test_non_401_failures_do_not_record_logout(monitor, analytics, error):
    with pytest.raises(type(error)):
        monitor.wrap_api_call(_raiser(error), '/vocab')
    assert analytics.get_logout_history() == []
    assert monitor.consecutive_failures == 1


@pytest.mark.unit
def test_probe_without_token_is_a_no_op(monitor, monitor_http):
    assert monitor.perform_health_check() is None
    monitor_http.get.assert_not_called()
    assert monitor.consecutive_failures == 0


@pytest.mark.unit
def test_probe_401_forces_teardown(monitor, store, analytics, monitor_http, make_response):
    store.save_auth('tok', 'amy', False)
    monitor_http.get.return_value = make_response(401)

    assert monitor.perform_health_check() is False

    args, kwargs = monitor_http.get.call_args
    assert args[0] == 'http://api.test/health'
    assert kwargs['headers'] == {'Authorization': 'Bearer tok'}
    assert store.get_token() is None
    assert monitor.get_session_info().username is None
    monitor.on_session_expired.assert_called_once()
    event = analytics.get_logout_history()[0]
    assert event.type == 'server_error'
    assert event.reason == 'Session expired during health check'
    assert event.http_status == 401
    assert event.api_endpoint == '/health'


@pytest.mark.unit
def test_probe_network_failures_record_event_but_do_not_force_logout(monitor, store, analytics, monitor_http):
    store.save_auth('tok', 'amy', False)
    monitor_http.get.side_effect = requests.ConnectionError("connection refused")

    monitor.perform_health_check()
    monitor.perform_health_check()
    assert analytics.get_logout_history() == []

    monitor.perform_health_check()
    history = analytics.get_logout_history()
    assert len(history) == 1
    assert history[0].type == 'network_error'
    assert history[0].reason == 'Multiple health check failures'
    assert 'connection refused' in history[0].error_details
    assert store.get_token() == 'tok'
    assert monitor.should_auto_logout()
    monitor.on_session_expired.assert_not_called()


@pytest.mark.unit
def test_probe_non_401_error_status_counts_as_failure(monitor, store, monitor_http, make_response):
    store.save_auth('tok', 'amy', False)
    monitor_http.get.return_value = make_response(503)
    assert monitor.perform_health_check() is False
    assert monitor.consecutive_failures == 1
    assert store.get_token() == 'tok'


@pytest.mark.unit
def test_probe_success_resets_counter(monitor, store, monitor_http, make_response):
    store.save_auth('tok', 'amy', False)
    for _ in range(2):
        with pytest.raises(NetworkError):
            monitor.wrap_api_call(_raiser(NetworkError("down")), '/vocab')
    monitor_http.get.return_value = make_response(200, json_data={'ok': True})

    assert monitor.perform_health_check() is True
    assert monitor.consecutive_failures == 0


@pytest.mark.unit
def test_start_and_stop_health_check(monitor):
    assert monitor.state is MonitorState.IDLE
    monitor.start_health_check()
    timer = monitor._timer
    monitor.start_health_check()
    assert monitor._timer is timer
    assert monitor.state is MonitorState.MONITORING
    assert monitor.get_session_info().health_check_active

    monitor.stop_health_check()
    monitor.stop_health_check()
    assert monitor.state is MonitorState.IDLE
    assert not timer.active


@pytest.mark.unit
def test_session_info_reads_local_auth_state(monitor, store):
    store.save_auth('tok', 'amy', True)
    with pytest.raises(NetworkError):
        monitor.wrap_api_call(_raiser(NetworkError("down")), '/vocab')

    info = monitor.get_session_info()
    assert info.has_token
    assert info.username == 'amy'
    assert info.is_admin
    assert info.consecutive_failures == 1
    assert not info.health_check_active


@pytest.mark.unit
def test_reset_failure_count(monitor):
    with pytest.raises(NetworkError):
        monitor.wrap_api_call(_raiser(NetworkError("down")), '/vocab')
    monitor.reset_failure_count()
    assert monitor.consecutive_failures == 0


class ReadOnlyStore(LocalStore):
    def clear_auth(self):
        raise OSError("read-only file system")


@pytest.mark.unit
def test_expiry_callback_runs_even_if_auth_cannot_be_cleared(analytics):
    callback = Mock()
    monitor = SessionMonitor(ReadOnlyStore(), analytics, 'http://api.test', http=Mock(),
                             on_session_expired=callback)
    with pytest.raises(OSError):
        monitor.handle_session_expired('Session expired during health check')
    callback.assert_called_once()
