"""Request-scoped middleware for API requests."""

from typing import Callable
from uuid import UUID, uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from api.base import error_response, request_id_of, ErrorCodes
from core.models import Actor, Role

ActorResolver = Callable[[Request], Actor | None]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns a unique request ID to every request."""

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


def actor_from_headers(request: Request) -> Actor | None:
    """
    Actor asserted by the authenticating gateway in front of this service.

    Reads X-Actor-Id and X-Actor-Role. Returns None when either is missing
    or malformed.
    """
    role = request.headers.get("X-Actor-Role")
    actor_id = request.headers.get("X-Actor-Id")
    if not role or not actor_id:
        return None
    try:
        return Actor(id=UUID(actor_id), role=Role(role.lower()))
    except ValueError:
        return None


class ActorMiddleware(BaseHTTPMiddleware):
    """
    Resolves the acting party and stores it on request.state.actor.

    Requests without a resolvable actor get 401. Public paths bypass the check.
    """

    PUBLIC_PATHS = [
        "/health",
        "/docs",
        "/openapi.json",
    ]

    def __init__(self, app, resolve_actor: ActorResolver = actor_from_headers):
        super().__init__(app)
        self._resolve_actor = resolve_actor

    def _is_public_path(self, path: str) -> bool:
        return any(path == p or path.startswith(p) for p in self.PUBLIC_PATHS)

    async def dispatch(self, request: Request, call_next):
        if self._is_public_path(request.url.path):
            return await call_next(request)

        actor = self._resolve_actor(request)
        if actor is None or actor.role == Role.SYSTEM:
            return JSONResponse(
                status_code=401,
                content=error_response(
                    ErrorCodes.NOT_AUTHENTICATED,
                    "Authentication required",
                    request_id_of(request),
                ).model_dump(mode="json"),
            )

        request.state.actor = actor
        return await call_next(request)
