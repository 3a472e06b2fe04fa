"""Decorators for protecting API routes."""

from functools import wraps

from flask import jsonify, session


def login_required(f=None, admin_required=False):
    """Reject the request unless a user is logged in.

    The session is populated by the authentication layer in front of this
    app; ``user_id`` and ``is_admin`` are read from it.

    Usage:
    @login_required
    def protected_view():
        ...

    @login_required(admin_required=True)
    def admin_view():
        ...
    """

    def decorator(func):
        @wraps(func)
        def decorated_function(*args, **kwargs):
            if "user_id" not in session:
                return (
                    jsonify(
                        success=False, message="Authentication required.", data=None
                    ),
                    401,
                )
            if admin_required and not session.get("is_admin"):
                return (
                    jsonify(
                        success=False,
                        message="You are not authorized to perform this action.",
                        data=None,
                    ),
                    403,
                )
            return func(*args, **kwargs)

        return decorated_function

    if f:
        return decorator(f)
    return decorator
