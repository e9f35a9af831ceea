# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, g

ACTOR_HEADER = "X-Actor-Id"
_MAX_ACTOR_LENGTH = 64


def with_actor(f):
    """
    Attach the caller's identity (if any) to the request.

    Identity is established by the external auth layer in front of this
    service, which forwards it in the X-Actor-Id header. Sets:
    - g.actor_id: str or None

    The value is only recorded on approvals and the custody event log; it
    does not gate any operation.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = request.headers.get(ACTOR_HEADER, "")
        actor = raw.strip()[:_MAX_ACTOR_LENGTH]
        g.actor_id = actor or None
        return f(*args, **kwargs)

    return decorated_function
