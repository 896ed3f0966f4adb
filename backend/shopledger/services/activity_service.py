# Overview: Service-layer operations for the activity feed; append-only audit of workflow transitions.

from __future__ import annotations

from typing import Optional

from ..extensions import db
from ..models import ActivityEvent
"""
Activity Feed Invariants (authoritative)

- Append-only record of committed workflow transitions.
- No domain/business logic in the feed itself.
- Events are written inside the same DB transaction as the change they record.
- Readers poll with after_id; ids are monotonically increasing.
"""


def append_event(
    *,
    event_type: str,
    entity_type: str,
    entity_id: int,
    shop_id: int | None = None,
    actor_user_id: int | None = None,
    note: Optional[str] = None,
    payload: Optional[dict] = None,
) -> ActivityEvent:
    """
    Append-only activity event.

    - No domain logic here.
    - No deletes/updates of existing events.
    """
    ev = ActivityEvent(
        event_type=event_type,
        entity_type=entity_type,
        entity_id=entity_id,
        shop_id=shop_id,
        actor_user_id=actor_user_id,
        note=note,
        payload=payload,
    )
    db.session.add(ev)
    db.session.flush()  # ensures ev.id is assigned without committing
    return ev


def list_events(
    *,
    after_id: int | None = None,
    shop_id: int | None = None,
    entity_type: str | None = None,
    limit: int = 100,
) -> list[ActivityEvent]:
    query = db.session.query(ActivityEvent)
    if after_id is not None:
        query = query.filter(ActivityEvent.id > after_id)
    if shop_id is not None:
        query = query.filter(ActivityEvent.shop_id == shop_id)
    if entity_type is not None:
        query = query.filter(ActivityEvent.entity_type == entity_type)
    return query.order_by(ActivityEvent.id.asc()).limit(limit).all()
