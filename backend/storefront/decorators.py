# Overview: Access guard; bearer token -> live principal for protected routes.

from functools import wraps

from flask import current_app, g, jsonify, request

from .errors import Unauthorized
from .extensions import db
from .services.user_directory import UserDirectory


def authenticate(raw_header, tokens, session):
    """
    Resolve an Authorization header value to an active User.

    Raises Unauthorized (or its TokenExpired / TokenMalformed subclasses)
    when the header is missing or malformed, the token does not validate,
    or the principal no longer exists or is deactivated.
    """
    if not raw_header or not raw_header.startswith("Bearer "):
        raise Unauthorized("Unauthorized - No token provided")

    token = raw_header.split(" ", 1)[1].strip()
    if not token:
        raise Unauthorized("Unauthorized - No token provided")

    user_id = tokens.validate(token)

    user = UserDirectory(session).get(user_id, active_only=True)
    if not user:
        raise Unauthorized("Unauthorized - User not found or inactive")
    return user


def require_auth(f):
    """
    Require a valid bearer token.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.user_id: Its id
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            user = authenticate(
                request.headers.get("Authorization"),
                current_app.extensions["token_manager"],
                db.session,
            )
        except Unauthorized as exc:
            current_app.logger.info("Rejected bearer token path=%s code=%s", request.path, exc.code)
            body, status = exc.to_response()
            return jsonify(body), status

        g.current_user = user
        g.user_id = user.id

        return f(*args, **kwargs)

    return decorated_function
