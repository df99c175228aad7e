"""Users, delegate profiles, bank accounts and authentication."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
import logging
from typing import Optional

from sqlalchemy import case, func

from extensions import db
from models import BankAccount, Delegate, User, ROLES
from services.errors import AuthError, NotFoundError, ValidationError
from utils.events import log_activity

logger = logging.getLogger(__name__)


def next_id(model) -> int:
    """max(id) + 1, or 1 for an empty table."""
    current = db.session.query(func.max(model.id)).scalar()
    return int(current or 0) + 1


# =========================
# Requests
# =========================
@dataclass
class AddUserRequest:
    full_name: str
    username: str
    password: str
    confirm_password: str
    role: str = "delegate"
    phone: Optional[str] = None
    email: Optional[str] = None

    @classmethod
    def from_mapping(cls, data):
        data = data or {}
        return cls(
            full_name=(data.get("fullName") or "").strip(),
            username=(data.get("username") or "").strip(),
            password=data.get("password") or "",
            confirm_password=data.get("confirmPassword") or "",
            role=(data.get("role") or "delegate").strip().lower(),
            phone=(data.get("phone") or "").strip() or None,
            email=(data.get("email") or "").strip() or None,
        )


# =========================
# Authentication
# =========================
def authenticate(username, password) -> User:
    """Return the active user matching the credentials or raise AuthError."""
    username = (username or "").strip()
    user = User.query.filter(func.lower(User.username) == username.lower()).first()

    if not user or not user.check_password(password):
        logger.warning(f"Login failed | username={username}")
        raise AuthError("اسم المستخدم أو كلمة المرور غير صحيحة.", code="invalid_credentials")

    if not user.is_active:
        logger.warning(f"Login refused (inactive) | user_id={user.id}")
        raise AuthError("هذا الحساب غير نشط.", code="inactive_account")

    log_activity(user, "login", "system", "تسجيل دخول")
    db.session.commit()
    return user


def record_logout(user) -> None:
    log_activity(user, "logout", "system", "تسجيل خروج")
    db.session.commit()


def change_password(user_id, current_password, new_password) -> None:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("المستخدم غير موجود", code="user_not_found")
    if not user.check_password(current_password):
        raise AuthError("كلمة المرور الحالية غير صحيحة", code="wrong_password")
    if not new_password:
        raise ValidationError("كلمة المرور الجديدة مطلوبة", code="missing_password")

    user.set_password(new_password)
    log_activity(user, "edit", "users", f"تغيير كلمة المرور (ID: {user.id})")
    db.session.commit()


# =========================
# Users & delegate profiles
# =========================
def add_user(req: AddUserRequest, referred_by_id=None, actor=None) -> User:
    """Create a user and, always, a matching delegate profile (students=0)."""
    if not req.full_name or not req.username:
        raise ValidationError("الاسم واسم المستخدم مطلوبان", code="missing_field")
    if req.role not in ROLES:
        raise ValidationError("الصلاحية غير صحيحة", code="invalid_choice")
    if not req.password:
        raise ValidationError("كلمة المرور مطلوبة", code="missing_password")
    if req.password != req.confirm_password:
        raise ValidationError("كلمتا المرور غير متطابقتين!", code="password_mismatch")

    exists = User.query.filter(func.lower(User.username) == req.username.lower()).first()
    if exists:
        raise ValidationError("اسم المستخدم موجود مسبقًا", code="duplicate_username")

    user = User(
        id=next_id(User),
        full_name=req.full_name,
        username=req.username,
        role=req.role,
        is_active=True,
        created_date=date.today(),
        referred_by_id=referred_by_id,
    )
    user.set_password(req.password)
    db.session.add(user)
    db.session.flush()

    delegate = Delegate(
        id=next_id(Delegate),
        user_id=user.id,
        full_name=req.full_name,
        phone=req.phone,
        email=req.email,
        students=0,
        is_active=True,
        role=req.role,
    )
    db.session.add(delegate)

    log_activity(actor, "add", "users", f"إضافة مستخدم: {user.full_name} ({user.username})")
    db.session.commit()

    logger.info(f"User created | user_id={user.id} | role={user.role} | referred_by={referred_by_id}")
    return user


def update_user(user_id, changes, actor=None) -> User:
    """Update user fields and mirror them onto the delegate profile.

    A blank password keeps the current one.
    """
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("المستخدم غير موجود", code="user_not_found")
    changes = changes or {}

    password = changes.get("password") or ""
    if password:
        if password != (changes.get("confirmPassword") or ""):
            raise ValidationError("كلمتا المرور غير متطابقتين!", code="password_mismatch")
        user.set_password(password)

    if "username" in changes and changes["username"]:
        username = str(changes["username"]).strip()
        clash = (
            User.query
            .filter(func.lower(User.username) == username.lower(), User.id != user.id)
            .first()
        )
        if clash:
            raise ValidationError("اسم المستخدم موجود مسبقًا", code="duplicate_username")
        user.username = username

    if "role" in changes and changes["role"]:
        role = str(changes["role"]).strip().lower()
        if role not in ROLES:
            raise ValidationError("الصلاحية غير صحيحة", code="invalid_choice")
        user.role = role

    if changes.get("fullName"):
        user.full_name = str(changes["fullName"]).strip()

    if "isActive" in changes:
        user.is_active = bool(changes["isActive"])

    profile = Delegate.query.filter_by(user_id=user.id).first()
    if profile:
        profile.full_name = user.full_name
        profile.role = user.role
        profile.is_active = user.is_active
        if "phone" in changes:
            profile.phone = changes.get("phone")
        if "email" in changes:
            profile.email = changes.get("email")

    log_activity(actor, "edit", "users", f"تعديل مستخدم: {user.full_name} (ID: {user.id})")
    db.session.commit()
    return user


def toggle_user_status(user_id, actor=None) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("المستخدم غير موجود", code="user_not_found")

    user.is_active = not user.is_active
    Delegate.query.filter_by(user_id=user.id).update({"is_active": user.is_active})

    state = "تفعيل" if user.is_active else "تعطيل"
    log_activity(actor, "edit", "users", f"{state} حساب: {user.full_name} (ID: {user.id})")
    db.session.commit()
    return user


def get_delegate_for_user(user) -> Optional[Delegate]:
    if user is None:
        return None
    return Delegate.query.filter_by(user_id=user.id).first()


def list_users(role=None, search=None):
    q = User.query
    if role:
        q = q.filter(User.role == role)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter((User.full_name.ilike(like)) | (User.username.ilike(like)))
    return q.order_by(User.id.asc()).all()


def list_delegates(active_only=False):
    q = Delegate.query
    if active_only:
        q = q.filter(Delegate.is_active.is_(True))
    return q.order_by(Delegate.id.asc()).all()


# =========================
# Student counter cache
# =========================
def increment_student_count(delegate_id) -> None:
    # Single UPDATE so concurrent workers cannot lose increments.
    Delegate.query.filter_by(id=delegate_id).update(
        {"students": Delegate.students + 1},
        synchronize_session="fetch",
    )


def decrement_student_count(delegate_id) -> None:
    Delegate.query.filter_by(id=delegate_id).update(
        {"students": case((Delegate.students > 0, Delegate.students - 1), else_=0)},
        synchronize_session="fetch",
    )


# =========================
# Bank accounts
# =========================
def add_or_update_bank_account(delegate_id, data, actor=None) -> BankAccount:
    data = data or {}
    bank_name = (data.get("bankName") or "").strip()
    holder = (data.get("accountHolder") or "").strip()
    number = (data.get("bankAccount") or "").strip()
    if not delegate_id or not bank_name or not holder or not number:
        raise ValidationError("الرجاء تعبئة بيانات الحساب البنكي كاملة", code="missing_field")
    if db.session.get(Delegate, delegate_id) is None:
        raise ValidationError("المندوب غير موجود", code="unknown_delegate")

    account = BankAccount.query.filter_by(delegate_id=delegate_id).first()
    if account:
        account.bank_name = bank_name
        account.account_holder = holder
        account.bank_account = number
        account.iban = (data.get("iban") or "").strip() or None
        action = "edit"
    else:
        account = BankAccount(
            id=next_id(BankAccount),
            delegate_id=delegate_id,
            bank_name=bank_name,
            account_holder=holder,
            bank_account=number,
            iban=(data.get("iban") or "").strip() or None,
        )
        db.session.add(account)
        action = "add"

    log_activity(actor, action, "bankAccounts", f"الحساب البنكي للمندوب (ID: {delegate_id})")
    db.session.commit()
    return account
