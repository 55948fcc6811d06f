"""
Unit tests for UserRepository authentication operations
"""
from datetime import date

import pytest
from crud.user import UserRepository
from auth_utils import hash_password, verify_password
from models.enums import Role


@pytest.mark.asyncio
async def test_create_and_get_user(test_db):
    """
    Test creating a new user and retrieving it by email.

    This test verifies:
    - User creation via UserRepository.create_user
    - User retrieval via UserRepository.get_user_by_email
    - Email is stored lowercased and nickname defaults to the username
    """
    user_repo = UserRepository(test_db)

    test_email = "Test@Example.com"
    hashed_pwd = hash_password("Password123")

    created_user = await user_repo.create_user({
        "username": "tester",
        "email": test_email,
        "hashed_password": hashed_pwd,
    })

    assert created_user.id is not None
    assert created_user.email == test_email.lower()
    assert created_user.nickname == "tester"
    assert created_user.role == Role.NORMAL

    await test_db.commit()

    retrieved_user = await user_repo.get_user_by_email(test_email)
    assert retrieved_user is not None
    assert retrieved_user.id == created_user.id


@pytest.mark.asyncio
async def test_login_lookup_by_username_or_email(test_db):
    user_repo = UserRepository(test_db)
    created = await user_repo.create_user({
        "username": "bob",
        "email": "bob@example.com",
        "hashed_password": hash_password("Password123"),
    })

    assert (await user_repo.get_user_by_login("bob")).id == created.id
    assert (await user_repo.get_user_by_login("BOB@example.com")).id == created.id
    assert await user_repo.get_user_by_login("nobody") is None


@pytest.mark.asyncio
async def test_login_verification(test_db):
    """
    Test password verification for login.
    """
    user_repo = UserRepository(test_db)
    test_password = "Secure_password_456"

    await user_repo.create_user({
        "username": "login_test",
        "email": "login_test@example.com",
        "hashed_password": hash_password(test_password),
    })
    await test_db.commit()

    retrieved_user = await user_repo.get_user_by_email("login_test@example.com")

    assert verify_password(test_password, retrieved_user.hashed_password) is True
    assert verify_password("wrong_password", retrieved_user.hashed_password) is False


@pytest.mark.asyncio
async def test_daily_login_recorded_once_per_day(test_db):
    user_repo = UserRepository(test_db)
    user = await user_repo.create_user({
        "username": "daily",
        "email": "daily@example.com",
        "hashed_password": hash_password("Password123"),
    })

    assert await user_repo.record_daily_login(user.id, date(2024, 5, 1)) is True
    assert await user_repo.record_daily_login(user.id, date(2024, 5, 1)) is False
    assert await user_repo.record_daily_login(user.id, date(2024, 5, 2)) is True
    assert await user_repo.count_daily_logins(user.id) == 2
