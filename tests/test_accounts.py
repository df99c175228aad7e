import pytest

from extensions import db
from models import ActivityLog, BankAccount, Delegate, User
from services.account_service import (
    AddUserRequest, add_or_update_bank_account, add_user, authenticate, change_password,
    decrement_student_count, increment_student_count, next_id, toggle_user_status, update_user,
)
from services.errors import AuthError, NotFoundError, ValidationError


def _new_user(**overrides):
    data = {
        "fullName": "ريم خالد",
        "username": "reem",
        "password": "secret1",
        "confirmPassword": "secret1",
        "role": "delegate",
        "phone": "0508888888",
    }
    data.update(overrides)
    return AddUserRequest.from_mapping(data)


def test_authenticate_is_case_insensitive(ctx):
    user = authenticate("ADMIN", "123456")
    assert user.username == "admin"

    log = ActivityLog.query.order_by(ActivityLog.id.desc()).first()
    assert log.action_type == "login"
    assert log.user_id == user.id


def test_authenticate_rejects_bad_password(ctx):
    with pytest.raises(AuthError) as exc:
        authenticate("admin", "wrong")
    assert exc.value.code == "invalid_credentials"
    assert exc.value.status_code == 401


def test_authenticate_rejects_inactive(ctx, admin):
    toggle_user_status(7, actor=admin)
    with pytest.raises(AuthError) as exc:
        authenticate("najla", "123456")
    assert exc.value.code == "inactive_account"


def test_add_user_creates_delegate_profile(ctx, admin):
    user = add_user(_new_user(), referred_by_id=3, actor=admin)

    assert user.id == 8
    assert user.check_password("secret1")
    assert user.referred_by_id == 3

    profile = Delegate.query.filter_by(user_id=user.id).one()
    assert profile.id == 8
    assert profile.students == 0
    assert profile.phone == "0508888888"
    assert profile.role == "delegate"


def test_add_user_validations(ctx, admin):
    with pytest.raises(ValidationError) as exc:
        add_user(_new_user(confirmPassword="other"), actor=admin)
    assert exc.value.code == "password_mismatch"

    with pytest.raises(ValidationError) as exc:
        add_user(_new_user(password="", confirmPassword=""), actor=admin)
    assert exc.value.code == "missing_password"

    with pytest.raises(ValidationError) as exc:
        add_user(_new_user(username="Admin"), actor=admin)
    assert exc.value.code == "duplicate_username"

    with pytest.raises(ValidationError) as exc:
        add_user(_new_user(role="owner"), actor=admin)
    assert exc.value.code == "invalid_choice"


def test_update_user_mirrors_profile_and_keeps_blank_password(ctx, admin):
    update_user(4, {"fullName": "هدية عوض", "phone": "0500000001", "password": ""}, actor=admin)

    user = db.session.get(User, 4)
    assert user.full_name == "هدية عوض"
    assert user.check_password("123456")

    profile = Delegate.query.filter_by(user_id=4).one()
    assert profile.full_name == "هدية عوض"
    assert profile.phone == "0500000001"


def test_update_user_password_needs_confirmation(ctx, admin):
    with pytest.raises(ValidationError):
        update_user(4, {"password": "a", "confirmPassword": "b"}, actor=admin)


def test_toggle_flips_user_and_profile(ctx, admin):
    user = toggle_user_status(5, actor=admin)
    assert user.is_active is False
    assert Delegate.query.filter_by(user_id=5).one().is_active is False

    user = toggle_user_status(5, actor=admin)
    assert user.is_active is True


def test_change_password(ctx):
    with pytest.raises(AuthError) as exc:
        change_password(3, "nope", "newpass")
    assert exc.value.code == "wrong_password"

    with pytest.raises(NotFoundError) as exc:
        change_password(999, "123456", "newpass")
    assert exc.value.code == "user_not_found"

    change_password(3, "123456", "newpass")
    assert db.session.get(User, 3).check_password("newpass")


def test_counter_increment_and_floor(ctx):
    increment_student_count(6)
    db.session.commit()
    assert db.session.get(Delegate, 6).students == 1

    for _ in range(5):
        decrement_student_count(6)
    db.session.commit()
    assert db.session.get(Delegate, 6).students == 0


def test_bank_account_add_or_update(ctx, admin):
    created = add_or_update_bank_account(6, {
        "bankName": "بنك البلاد", "accountHolder": "AMMAR", "bankAccount": "SA001",
    }, actor=admin)
    assert created.id == 4

    updated = add_or_update_bank_account(6, {
        "bankName": "بنك البلاد", "accountHolder": "AMMAR ALHADDAD", "bankAccount": "SA002",
    }, actor=admin)
    assert updated.id == 4
    assert BankAccount.query.filter_by(delegate_id=6).count() == 1
    assert updated.bank_account == "SA002"

    with pytest.raises(ValidationError):
        add_or_update_bank_account(6, {"bankName": ""}, actor=admin)


def test_next_id_on_empty_table(ctx):
    BankAccount.query.delete()
    db.session.commit()
    assert next_id(BankAccount) == 1
