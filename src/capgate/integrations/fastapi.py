"""
FastAPI integration.

Turns gate guards into FastAPI dependencies. The authentication layer runs
first and stores the principal on `request.state.principal`; the dependency
builds the ResourceContext from the request, runs the guard and either
returns the Decision or raises AuthorizationDeniedError, which the installed
exception handler renders as the standard JSON error body.

Usage:
    gate = AuthorizationGate(PermissionCatalog.default())
    authz = authorize(gate)
    install_exception_handlers(app)

    @app.delete("/inscripciones/{id}")
    async def delete_inscripcion(
        id: int,
        decision: Decision = Depends(
            authz.require_any("inscripciones:delete", "inscripciones:delete_self")
        ),
    ):
        ...
"""

import json
import logging
from typing import Any, Callable, Mapping

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from capgate.errors import AuthorizationDeniedError
from capgate.policy import AuthorizationGate, Guard
from capgate.schema import (
    ERROR_LABELS,
    MESSAGE_INTERNAL_ERROR,
    Decision,
    Principal,
    ResourceContext,
)

logger = logging.getLogger(__name__)

PROFILE_MARKERS = ("/perfil",)


# =============================================================================
# Request -> engine inputs
# =============================================================================


def principal_from_request(request: Request) -> Principal | None:
    """
    Read the principal placed on request.state by the authentication layer.

    Accepts a Principal or a {id, rol|role} mapping. Anything unusable means
    the request is not authenticated.
    """
    principal = getattr(request.state, "principal", None)
    if principal is None or isinstance(principal, Principal):
        return principal
    if isinstance(principal, Mapping):
        try:
            return Principal.from_claims(principal)
        except (KeyError, ValidationError) as e:
            logger.debug("Ignoring unusable principal on request: %s", e)
    return None


async def _read_json_body(request: Request) -> Any:
    """JSON body of any method (DELETE included), None when absent or not JSON."""
    if "application/json" not in request.headers.get("content-type", ""):
        return None
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


async def resource_context_from_request(
    request: Request,
    profile_markers: tuple[str, ...] = PROFILE_MARKERS,
) -> ResourceContext:
    """Build the ResourceContext for a FastAPI request."""
    route = request.scope.get("route")
    route_path = getattr(route, "path", None) or request.url.path
    body = await _read_json_body(request)
    return ResourceContext.from_request_parts(
        path_id=request.path_params.get("id"),
        body=body if isinstance(body, Mapping) else None,
        route_path=route_path,
        profile_markers=profile_markers,
    )


# =============================================================================
# Dependencies
# =============================================================================


class FastAPIAuthorizer:
    """
    Builds FastAPI dependencies from a gate.

    Attributes:
        gate: The authorization gate
        profile_markers: Route path fragments that mark profile routes
    """

    def __init__(
        self,
        gate: AuthorizationGate,
        profile_markers: tuple[str, ...] = PROFILE_MARKERS,
    ) -> None:
        self.gate = gate
        self.profile_markers = profile_markers

    def require_all(self, *permissions: str) -> Callable:
        """Dependency requiring ALL permissions."""
        return self._create_dependency(self.gate.require_all(list(permissions)))

    def require_any(self, *permissions: str) -> Callable:
        """Dependency requiring ANY of the permissions."""
        return self._create_dependency(self.gate.require_any(list(permissions)))

    def require(self, permission: str) -> Callable:
        return self.require_all(permission)

    def _create_dependency(self, guard: Guard) -> Callable:
        """Create a FastAPI Depends callable from a guard."""
        blocking = getattr(self.gate.source, "blocking", False)

        async def dependency(request: Request) -> Decision:
            principal = principal_from_request(request)
            ctx = await resource_context_from_request(request, self.profile_markers)

            if blocking:
                decision = await run_in_threadpool(guard.check, principal, ctx)
            else:
                decision = guard.check(principal, ctx)

            return decision.raise_for_denial()

        return dependency


def authorize(gate: AuthorizationGate, **kwargs: Any) -> FastAPIAuthorizer:
    """Shortcut for FastAPIAuthorizer(gate, ...)."""
    return FastAPIAuthorizer(gate, **kwargs)


# =============================================================================
# Error rendering
# =============================================================================


async def authorization_denied_handler(
    request: Request,
    exc: AuthorizationDeniedError,
) -> JSONResponse:
    """Render a denial as {success, error, message}."""
    if exc.decision is None:
        body = {"success": False, "error": ERROR_LABELS[500], "message": MESSAGE_INTERNAL_ERROR}
        return JSONResponse(status_code=500, content=body)
    return JSONResponse(status_code=exc.status_code, content=exc.decision.error_body())


def install_exception_handlers(app: FastAPI) -> None:
    """Register the denial handler on an app."""
    app.add_exception_handler(AuthorizationDeniedError, authorization_denied_handler)
