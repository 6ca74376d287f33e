"""
rbac/dependencies.py -- FastAPI Depends() helpers for authorization.

Authentication is the host application's job: some earlier layer (middleware
or a dependency) resolves the caller and stores the Account on
request.state.account. These helpers only decide.

The store is read from request.app.state.rbac_store, wired up by the host's
lifespan.

  get_current_account()           -> 401 if nothing authenticated the request
  require_permission(r, a)        -> 403 unless the account holds r.a
  require_any_permission(*pairs)  -> 403 unless it holds at least one pair
  require_all_permissions(*pairs) -> 403 unless it holds every pair

Layer rule: no imports from jobs/ or core/. This is the only rbac module that
imports fastapi; the rest of the package runs without a web framework.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import HTTPException, Request

from rbac.decider import AuthorizationDecider
from rbac.models import Account, Decision


def get_current_account(request: Request) -> Account:
    """Return the authenticated Account. Raises HTTP 401 if there is none."""
    account = getattr(request.state, "account", None)
    if account is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return account


def _forbidden(message: str) -> HTTPException:
    return HTTPException(status_code=403, detail={"code": "forbidden", "message": message})


def require_permission(resource: str, action: str) -> Callable[[Request], Account]:
    """Dependency factory for a single (resource, action) check.

    Use as:
        @router.get("/tenants")
        async def route(account: Account = Depends(require_permission("tenants", "view_list"))): ...
    """

    def dependency(request: Request) -> Account:
        account = get_current_account(request)
        decider = AuthorizationDecider(request.app.state.rbac_store)
        if decider.decide(account, resource, action) is Decision.DENY:
            raise _forbidden(f"Permission denied: {resource}.{action} required.")
        return account

    return dependency


def require_any_permission(*pairs: tuple[str, str]) -> Callable[[Request], Account]:
    def dependency(request: Request) -> Account:
        account = get_current_account(request)
        decider = AuthorizationDecider(request.app.state.rbac_store)
        if decider.decide_any(account, pairs) is Decision.DENY:
            wanted = ", ".join(f"{r}.{a}" for r, a in pairs)
            raise _forbidden(f"Permission denied: one of {wanted} required.")
        return account

    return dependency


def require_all_permissions(*pairs: tuple[str, str]) -> Callable[[Request], Account]:
    def dependency(request: Request) -> Account:
        account = get_current_account(request)
        decider = AuthorizationDecider(request.app.state.rbac_store)
        if decider.decide_all(account, pairs) is Decision.DENY:
            wanted = ", ".join(f"{r}.{a}" for r, a in pairs)
            raise _forbidden(f"Permission denied: all of {wanted} required.")
        return account

    return dependency
