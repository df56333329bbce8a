import os
import dataclasses
import pytest
from unittest.mock import Mock

from vocab.analytics import SessionAnalytics
from vocab.clock import FakeClock
from vocab.config import Settings
from vocab.local_store import LocalStore
from vocab.session_monitor import SessionMonitor


def run_inline(task):
    task()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return LocalStore()


@pytest.fixture
def make_response():
    def _make(status=200, text='', json_data=None):
        resp = Mock()
        resp.status_code = status
        resp.ok = 200 <= status < 400
        resp.text = text
        resp.json.return_value = json_data if json_data is not None else {}
        return resp
    return _make


@pytest.fixture
def analytics_http():
    return Mock()


@pytest.fixture
def analytics(store, clock, analytics_http):
    return SessionAnalytics(store, 'http://api.test', clock=clock, http=analytics_http,
                            user_agent='pytest-agent', dispatch=run_inline)


@pytest.fixture
def monitor_http():
    return Mock()


@pytest.fixture
def monitor(store, analytics, monitor_http):
    return SessionMonitor(store, analytics, 'http://api.test', http=monitor_http,
                          interval_seconds=3600, on_session_expired=Mock())


@pytest.fixture
def settings(tmp_path):
    return dataclasses.replace(
        Settings.from_env(),
        api_url='http://api.test',
        client_state_file=str(tmp_path / 'client_state.json'),
        db_path=str(tmp_path / 'vocab.db'),
        users_file=str(tmp_path / 'users.json'),
        cache_ttl_seconds=300,
        cache_sweep_interval_seconds=600,
        health_check_interval_seconds=3600,
        max_consecutive_failures=3,
    )


@pytest.fixture
def aws_credentials():
    """Mocked AWS Credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
