from flask import Blueprint


commissions_bp = Blueprint(
    "commissions",
    __name__,
    url_prefix="/api/commissions"
)


from . import routes  # noqa
