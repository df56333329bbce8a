import pytest

from vocab.errors import (
    ApiError,
    ForbiddenError,
    NetworkError,
    ServerError,
    UnauthorizedError,
    classify_error,
    error_for_status,
)


@pytest.mark.unit
@pytest.mark.parametrize("status,cls", [
    (401, UnauthorizedError),
    (403, ForbiddenError),
    (500, ServerError),
    (503, ServerError),
    (404, ApiError),
])
def test_error_for_status(status, cls):
    error = error_for_status(status, '', '/vocab')
    assert type(error) is cls
    assert error.status == status
    assert error.endpoint == '/vocab'
    assert str(error)


@pytest.mark.unit
@pytest.mark.parametrize("error,event_type,reason", [
    (UnauthorizedError("Unauthorized", 401), 'server_error', 'Unauthorized - session may have expired'),
    (ForbiddenError("Forbidden", 403), 'server_error', 'Forbidden - insufficient permissions'),
    (ServerError("Internal", 500), 'server_error', 'Server error'),
    (NetworkError("Network error: refused"), 'network_error', 'Network connectivity issue'),
    (RuntimeError("plain failure"), 'network_error', 'Network connectivity issue'),
    (ApiError("Failed to fetch", 404), 'network_error', 'Network connectivity issue'),
    (ApiError("Not Found", 404), 'server_error', 'Unknown API error'),
])
def test_classify_error(error, event_type, reason):
    classification = classify_error(error)
    assert classification.event_type == event_type
    assert classification.reason == reason
    assert classification.status == getattr(error, 'status', None)
