from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from storefront.time_utils import to_utc_z


EVENT_USER_REGISTERED = "USER_REGISTERED"
EVENT_STORE_REGISTERED = "STORE_REGISTERED"
EVENT_CONSENT_ACCEPTED = "CONSENT_ACCEPTED"
EVENT_ONBOARDING_COMPLETED = "ONBOARDING_COMPLETED"
EVENT_LOGIN_SUCCEEDED = "LOGIN_SUCCEEDED"
EVENT_LOGIN_FAILED = "LOGIN_FAILED"


class AuditEventImmutableError(Exception):
    """Raised when something tries to change or remove a written audit event."""


class AuditEvent(db.Model):
    """
    Compliance audit trail: registrations, consents and logins.

    WHY: Legal consents and registration facts must be provable later, with
    the request provenance (IP, user agent) they were captured under.

    IMMUTABLE: Never update or delete. Append-only for audit integrity.
    The ORM refuses both (see listeners below).
    """
    __tablename__ = "audit_events"
    __table_args__ = (
        db.Index("ix_audit_events_user_type", "user_id", "event_type"),
        db.Index("ix_audit_events_occurred", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    event_type = db.Column(db.String(64), nullable=False, index=True)
    consent_type = db.Column(db.String(32), nullable=True)  # CONSENT_ACCEPTED only

    # Subject references. Nullable: a failed login may not resolve to anyone.
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True, index=True)
    store_id = db.Column(db.String(36), db.ForeignKey("stores.id"), nullable=True, index=True)

    payload = db.Column(db.JSON, nullable=True)

    # Client context
    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_type": self.event_type,
            "consent_type": self.consent_type,
            "user_id": self.user_id,
            "store_id": self.store_id,
            "payload": self.payload,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "occurred_at": to_utc_z(self.occurred_at),
        }


@event.listens_for(AuditEvent, "before_update")
def _refuse_update(mapper, connection, target):
    raise AuditEventImmutableError(f"Audit event {target.id} is append-only")


@event.listens_for(AuditEvent, "before_delete")
def _refuse_delete(mapper, connection, target):
    raise AuditEventImmutableError(f"Audit event {target.id} is append-only")
