from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class ActivityEvent(db.Model):
    """
    Append-only record of every committed workflow transition.

    Written in the same DB transaction as the change it describes, so a
    reader polling by id never sees an event for a rolled-back mutation.
    Doubles as the change feed UIs poll to refresh their views.
    """
    __tablename__ = "activity_events"
    __table_args__ = (
        db.Index("ix_activity_entity", "entity_type", "entity_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    event_type = db.Column(db.String(64), nullable=False, index=True)
    entity_type = db.Column(db.String(32), nullable=False)
    entity_id = db.Column(db.Integer, nullable=False)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=True, index=True)
    actor_user_id = db.Column(db.Integer, nullable=True)
    note = db.Column(db.String(255), nullable=True)
    payload = db.Column(db.JSON, nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_type": self.event_type,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "shop_id": self.shop_id,
            "actor_user_id": self.actor_user_id,
            "note": self.note,
            "payload": self.payload,
            "occurred_at": to_utc_z(self.occurred_at),
        }
