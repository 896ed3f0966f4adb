# backend/shopledger/routes/activity.py
"""
Activity feed: clients poll with after_id to pick up committed changes.
"""
from flask import Blueprint, g, jsonify, request

from ..errors import LedgerError
from ..decorators import require_permission, require_principal
from ..services import activity_service
from ..services.policy import visible_shop_id
from ..validation import optional_int


activity_bp = Blueprint("activity", __name__, url_prefix="/api/activity")


@activity_bp.get("")
@require_principal
@require_permission("VIEW_ACTIVITY")
def list_events():
    """Query: after_id, shop_id, entity_type, limit (max 500)"""
    try:
        after_id = optional_int(request.args.get("after_id"), "after_id", minimum=0)
        shop_id = visible_shop_id(g.principal, optional_int(request.args.get("shop_id"), "shop_id"))
        limit = optional_int(request.args.get("limit"), "limit", minimum=1, maximum=500) or 100
        events = activity_service.list_events(
            after_id=after_id,
            shop_id=shop_id,
            entity_type=request.args.get("entity_type") or None,
            limit=limit,
        )
        return jsonify({
            "events": [ev.to_dict() for ev in events],
            "last_id": events[-1].id if events else after_id,
        }), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
