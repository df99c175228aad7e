from flask import Blueprint


audit_bp = Blueprint(
    "audit",
    __name__,
    url_prefix="/api/logs"
)


from . import routes  # noqa
