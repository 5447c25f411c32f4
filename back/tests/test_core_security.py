from datetime import timedelta

from jose import jwt

from supplychain.core.security import SecurityManager
from supplychain.core.settings import settings
from supplychain.schemas.request import CurrentUser


def test_password_hash_different_each_time():
    """Хеш одного пароля дает разные результаты"""
    password = "TestPassword123!"
    hash1 = SecurityManager.get_password_hash(password)
    hash2 = SecurityManager.get_password_hash(password)

    assert hash1 != hash2
    assert SecurityManager.verify_password(password, hash1)
    assert SecurityManager.verify_password(password, hash2)


def test_password_verification_fails_wrong_password():
    """Проверка неверного пароля"""
    hashed = SecurityManager.get_password_hash("CorrectPass123!")

    assert not SecurityManager.verify_password("WrongPass123!", hashed)


def test_password_strength_validation():
    """Валидация длины пароля"""
    ok, msg = SecurityManager.validate_password_strength("abc")
    assert not ok
    assert "at least" in msg.lower()

    ok, msg = SecurityManager.validate_password_strength("LongEnoughPassword123!")
    assert ok
    assert "valid" in msg.lower()


def test_access_token_carries_role():
    """Токен несёт id, email и роль"""
    token = SecurityManager.create_access_token("user-123", email="a@example.com", role="admin")

    payload = SecurityManager.verify_token(token)
    assert payload is not None
    assert payload["sub"] == "user-123"
    assert payload["type"] == "access"

    user = CurrentUser.from_claims(payload)
    assert user == CurrentUser(id="user-123", email="a@example.com", role="admin")


def test_expired_token_rejected():
    token = SecurityManager.create_access_token("user-456", expires_delta=timedelta(minutes=-5))
    assert SecurityManager.verify_token(token) is None


def test_tampered_token_rejected():
    token = SecurityManager.create_access_token("user-789")
    other = SecurityManager.create_access_token("admin-1", role="admin")
    # подпись от другого токена
    forged = token.rsplit(".", 1)[0] + "." + other.rsplit(".", 1)[1]
    assert SecurityManager.verify_token(forged) is None


def test_wrong_token_type_rejected():
    token = jwt.encode({"sub": "u", "type": "refresh"}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    assert SecurityManager.verify_token(token) is None
