from functools import wraps

from flask import abort
from flask_login import current_user


def roles_required(*roles):
    """Role gate built on User.has_role().

    Unauthenticated -> 401, authenticated without a matching role -> 403.
    Disabled accounts are treated as unauthenticated.
    """

    allowed_roles = [str(r).strip() for r in roles if r]

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated or not current_user.is_active:
                abort(401)

            if current_user.has_role(*allowed_roles):
                return f(*args, **kwargs)

            abort(403)

        return decorated_function

    return decorator
