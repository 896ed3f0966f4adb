# Overview: Request and permission decorators for API routes.

from functools import wraps

from flask import current_app, g, jsonify, request

from .errors import ValidationError
from .permissions import VALID_ROLES
from .services.policy import Principal, has_permission


def _principal_from_headers() -> Principal | None:
    """
    Build the principal from the gateway's trusted headers.

    X-User-Id and X-User-Roles are required; X-Shop-Id is absent for
    head-office users.
    """
    user_id = request.headers.get("X-User-Id", "").strip()
    roles_header = request.headers.get("X-User-Roles", "")
    shop_header = request.headers.get("X-Shop-Id", "").strip()

    if not user_id.isdigit():
        return None
    roles = {role.strip() for role in roles_header.split(",") if role.strip()}
    if not roles or not roles <= set(VALID_ROLES):
        return None
    if shop_header and not shop_header.isdigit():
        return None

    try:
        return Principal(
            user_id=int(user_id),
            name=request.headers.get("X-User-Name", "").strip(),
            shop_id=int(shop_header) if shop_header else None,
            roles=frozenset(roles),
        )
    except ValidationError:
        return None


def require_principal(f):
    """
    Require an authenticated principal.

    Sets g.principal for the view. Authentication itself happens upstream;
    this only refuses requests the gateway did not vouch for (401).
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        principal = _principal_from_headers()
        if principal is None:
            return jsonify({"error": "Authentication required", "code": "UNAUTHENTICATED"}), 401

        g.principal = principal
        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """Require a specific permission (use after @require_principal)."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            principal = getattr(g, "principal", None)
            if principal is None:
                return jsonify({"error": "Authentication required", "code": "UNAUTHENTICATED"}), 401

            if not has_permission(principal, permission_code):
                current_app.logger.warning(
                    "PERMISSION_DENIED user_id=%s permission=%s resource=%s",
                    principal.user_id,
                    permission_code,
                    request.path,
                )
                return jsonify({
                    "error": "Permission denied",
                    "code": "UNAUTHORIZED",
                    "required_permission": permission_code,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
