import pytest

from vocab.user_auth import UserStore


@pytest.fixture
def users(tmp_path, monkeypatch):
    monkeypatch.setenv('ADMIN_USERNAMES', 'Root, ops')
    return UserStore(str(tmp_path / 'users.json'))


@pytest.mark.unit
def test_register_and_login(users):
    assert users.register_user('amy', 'secret1') is None
    user = users.login_user('AMY', 'secret1')
    assert user['id'] == 1
    assert user['is_admin'] is False
    assert user['password_hash'] != 'secret1'
    assert users.login_user('amy', 'wrong!!') is None
    assert users.login_user('bob', 'secret1') is None


@pytest.mark.unit
def test_registration_rules(users):
    assert users.register_user('', 'secret1') == 'Username is required.'
    assert 'at least' in users.register_user('amy', '123')
    assert users.register_user('amy', 'secret1') is None
    assert users.register_user('Amy', 'secret1') == 'Username already taken.'


@pytest.mark.unit
def test_admins_come_from_environment(users):
    users.register_user('amy', 'secret1')
    users.register_user('root', 'secret1')
    assert users.get_user(2)['is_admin'] is True
    assert users.get_user(1)['is_admin'] is False


@pytest.mark.unit
def test_change_password(users):
    users.register_user('amy', 'secret1')
    assert users.change_password(1, 'nope!!', 'secret2') == 'Current password is incorrect.'
    assert users.change_password(1, 'secret1', 'secret2') is None
    assert users.login_user('amy', 'secret1') is None
    assert users.login_user('amy', 'secret2') is not None
