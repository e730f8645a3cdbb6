"""Request identity and the authorization capability passed to services.

Identity is established upstream (the auth gateway); this module only reads
what it forwards and turns it into a ``RequestContext`` once per request.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import Flask, current_app, g, request

from lotogen.errors import NotAdminError, NotAuthenticatedError, NotAuthorizedError

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class RequestContext:
    owner_id: str | None = None
    is_admin: bool = False

    @property
    def is_authenticated(self) -> bool:
        return bool(self.owner_id)

    def require_owner(self) -> str:
        if not self.owner_id:
            raise NotAuthenticatedError()
        return self.owner_id

    def require_admin(self) -> None:
        self.require_owner()
        if not self.is_admin:
            raise NotAdminError()

    def can_access(self, owner_id: str) -> bool:
        return self.is_admin or (self.is_authenticated and self.owner_id == owner_id)

    def require_access(self, owner_id: str) -> None:
        self.require_owner()
        if not self.can_access(owner_id):
            raise NotAuthorizedError()


ANONYMOUS = RequestContext()


def resolve_request_context() -> RequestContext:
    user_header = str(current_app.config.get("AUTH_USER_HEADER", "X-User-Id"))
    admin_header = str(current_app.config.get("AUTH_ADMIN_HEADER", "X-User-Is-Admin"))

    owner_id = (request.headers.get(user_header) or "").strip()
    if not owner_id:
        return ANONYMOUS

    is_admin = (request.headers.get(admin_header) or "").strip().lower() in _TRUTHY
    return RequestContext(owner_id=owner_id, is_admin=is_admin)


def init_auth(app: Flask) -> None:
    @app.before_request
    def _load_request_context() -> None:
        g.request_context = resolve_request_context()


def get_request_context() -> RequestContext:
    return getattr(g, "request_context", ANONYMOUS)
