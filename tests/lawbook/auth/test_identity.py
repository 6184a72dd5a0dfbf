import jwt
import pytest

from lawbook.auth import jwt_handler
from lawbook.auth.identity import DatabaseIdentityService, hash_password, verify_password
from lawbook.errors import ConflictError
from lawbook.models.user import ROLE_CLIENT, User


def test_password_hash_round_trip() -> None:
    hashed = hash_password('correct-horse')

    assert hashed != 'correct-horse'
    assert verify_password('correct-horse', hashed) is True
    assert verify_password('wrong-horse', hashed) is False
    assert verify_password('correct-horse', None) is False


def test_sign_up_normalizes_email_and_opens_session(booking_db) -> None:
    session = DatabaseIdentityService(booking_db).sign_up(' Ivan@Example.COM ', 'correct-horse', full_name='Ivan Petrov')

    user = booking_db.query(User).one()
    assert user.email == 'ivan@example.com'
    assert user.role == ROLE_CLIENT
    assert session.user_id == user.id
    assert jwt_handler.decode_access_token(session.access_token)['sub'] == 'ivan@example.com'


def test_sign_up_rejects_existing_email(booking_db) -> None:
    identity = DatabaseIdentityService(booking_db)
    identity.sign_up('ivan@example.com', 'correct-horse', full_name='Ivan Petrov')

    with pytest.raises(ConflictError):
        identity.sign_up('IVAN@example.com', 'another-pass', full_name='Ivan Again')

    assert identity.exists('ivan@example.com') is True
    assert booking_db.query(User).count() == 1


def test_sign_in_checks_password(booking_db) -> None:
    identity = DatabaseIdentityService(booking_db)
    identity.sign_up('ivan@example.com', 'correct-horse', full_name='Ivan Petrov')

    assert identity.sign_in('ivan@example.com', 'wrong-horse') is None
    assert identity.sign_in('nobody@example.com', 'correct-horse') is None
    assert identity.sign_in('IVAN@example.com', 'correct-horse').email == 'ivan@example.com'


def test_sign_out_revokes_token(booking_db) -> None:
    identity = DatabaseIdentityService(booking_db)
    session = identity.sign_up('ivan@example.com', 'correct-horse', full_name='Ivan Petrov')

    identity.sign_out(session)

    with pytest.raises(jwt.InvalidTokenError):
        jwt_handler.decode_access_token(session.access_token)
