# Overview: Service-layer authorization policy; every workflow operation checks its principal here.

"""
Authorization policy.

WHY: Approval, completion and collection rights used to be decided by
which buttons a page rendered. Every mutating service operation now calls
authorize() itself, so the rule holds no matter which surface invokes it.

DESIGN PRINCIPLES:
- Fail closed: a principal holds only the permissions its roles grant
- Shop scope: non-admin staff may only act on their own shop's records
- Strict shop scope: some attestations (receiving an exchange) require
  shop membership even for admins
- Log denials only
"""
from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app

from ..errors import Unauthorized, ValidationError
from ..permissions import DEFAULT_ROLE_PERMISSIONS, VALID_ROLES, ROLE_ADMIN


@dataclass(frozen=True)
class Principal:
    """
    Authenticated actor supplied by the external auth collaborator.

    shop_id is None for head-office users who are not attached to a shop.
    """
    user_id: int
    name: str = ""
    shop_id: int | None = None
    roles: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self):
        unknown = set(self.roles) - set(VALID_ROLES)
        if unknown:
            raise ValidationError(f"Unknown roles: {', '.join(sorted(unknown))}")
        object.__setattr__(self, "roles", frozenset(self.roles))

    @property
    def is_admin(self) -> bool:
        return ROLE_ADMIN in self.roles

    @property
    def permissions(self) -> set[str]:
        codes: set[str] = set()
        for role in self.roles:
            codes.update(DEFAULT_ROLE_PERMISSIONS.get(role, ()))
        return codes


def has_permission(principal: Principal, permission_code: str) -> bool:
    return permission_code in principal.permissions


def authorize(
    principal: Principal,
    permission_code: str,
    *,
    shop_id: int | None = None,
    strict_shop: bool = False,
) -> None:
    """
    Require principal to hold permission_code, raise Unauthorized if not.

    When shop_id is given, non-admins must belong to that shop. With
    strict_shop=True the membership check applies to admins as well.

    Usage:
        authorize(principal, "APPROVE_ALLOCATION")
        authorize(principal, "CONFIRM_EXCHANGE", shop_id=exchange.to_shop_id, strict_shop=True)
    """
    if principal is None:
        raise Unauthorized("Authentication required")

    if not has_permission(principal, permission_code):
        _log_denial(principal, permission_code, f"Missing permission: {permission_code}")
        raise Unauthorized(f"Permission denied: {permission_code}", required_permission=permission_code)

    if shop_id is None:
        return

    if principal.is_admin and not strict_shop:
        return

    if principal.shop_id != shop_id:
        _log_denial(principal, permission_code, f"Principal shop {principal.shop_id} is not shop {shop_id}")
        raise Unauthorized(
            f"Permission denied: {permission_code} is limited to staff of shop {shop_id}",
            required_permission=permission_code,
            shop_id=shop_id,
        )


def visible_shop_id(principal: Principal, requested_shop_id: int | None) -> int | None:
    """
    Resolve the shop filter for a read query.

    Admins see whatever shop they ask for (or all); staff are pinned to
    their own shop. Staff without a shop see no shop-scoped records.
    """
    if principal.is_admin:
        return requested_shop_id
    if principal.shop_id is None:
        _log_denial(principal, "SHOP_SCOPED_READ", "Principal is not attached to a shop")
        raise Unauthorized("Shop-scoped records need a shop assignment")
    if requested_shop_id is not None and requested_shop_id != principal.shop_id:
        raise Unauthorized(f"Cannot view records of shop {requested_shop_id}", shop_id=requested_shop_id)
    return principal.shop_id


def _log_denial(principal: Principal, permission_code: str, reason: str) -> None:
    current_app.logger.warning(
        "PERMISSION_DENIED user_id=%s shop_id=%s permission=%s reason=%s",
        principal.user_id,
        principal.shop_id,
        permission_code,
        reason,
    )
