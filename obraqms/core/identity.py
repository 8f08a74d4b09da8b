"""
Acting-user context.

The JWT middleware resolves the bearer token into an ``ActingUser`` and
stores it on ``flask.g``. Services read it through ``get_acting_user()``
(nullable) or ``require_acting_user()`` (raises ``NotAuthenticatedError``).

Outside a request (CLI commands, tests) use ``acting_as``::

    with acting_as(ActingUser(id="u-1", name="Maria Santos", role="fiscal")):
        submit_record("material", {...})
"""

from contextlib import contextmanager
from dataclasses import dataclass

from flask import g, has_app_context

from obraqms.core.exceptions import NotAuthenticatedError


@dataclass(frozen=True)
class ActingUser:
    id: str
    name: str
    role: str = "viewer"

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "role": self.role}


def get_acting_user() -> ActingUser | None:
    """Return the acting user, or None when nobody is authenticated."""
    if not has_app_context():
        return None
    return getattr(g, "acting_user", None)


def require_acting_user() -> ActingUser:
    user = get_acting_user()
    if user is None:
        raise NotAuthenticatedError()
    return user


@contextmanager
def acting_as(user: ActingUser | None):
    """Temporarily set the acting user on ``g`` (requires an app context)."""
    previous = getattr(g, "acting_user", None)
    g.acting_user = user
    try:
        yield user
    finally:
        g.acting_user = previous
