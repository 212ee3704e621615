# Overview: Compliance audit log; append-only, best-effort after the business commit.

"""
Compliance Audit Log

WHY: Registrations and legal consents must be provable later, together with
the IP address and user agent of the request that produced them.

DESIGN:
- Events are written AFTER the registration transaction has committed, in a
  transaction of their own. A failed audit write therefore never rolls back a
  registration and never fails the request.
- Transient storage errors are retried (run_with_retry). A write that still
  fails is logged at error level with the AUDIT_WRITE_FAILED marker, which is
  what alerting keys on.
- Payloads are snapshots built here; passwords never enter them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from ..models import AuditEvent
from ..models.audit import (
    EVENT_CONSENT_ACCEPTED,
    EVENT_LOGIN_FAILED,
    EVENT_LOGIN_SUCCEEDED,
    EVENT_ONBOARDING_COMPLETED,
    EVENT_STORE_REGISTERED,
    EVENT_USER_REGISTERED,
)
from ..models.auth import CONSENT_COLUMNS
from .concurrency import run_with_retry


@dataclass(frozen=True)
class RequestProvenance:
    """Where a request came from, as recorded next to every audit event."""
    ip_address: str | None = None
    user_agent: str | None = None

    @classmethod
    def from_request(cls, request) -> "RequestProvenance":
        return cls(
            ip_address=request.remote_addr or "unknown",
            user_agent=request.headers.get("User-Agent") or "unknown",
        )


class AuditLog:
    def __init__(self, session, logger: logging.Logger, *, retry_attempts: int = 3):
        self.session = session
        self.logger = logger
        self.retry_attempts = retry_attempts

    def record(
        self,
        event_type: str,
        provenance: RequestProvenance,
        *,
        user_id: str | None = None,
        store_id: str | None = None,
        consent_type: str | None = None,
        payload: dict | None = None,
    ) -> AuditEvent | None:
        """
        Append one event. Returns the stored event, or None when the write
        failed (already logged).
        """
        event = AuditEvent(
            event_type=event_type,
            user_id=user_id,
            store_id=store_id,
            consent_type=consent_type,
            payload=payload,
            ip_address=provenance.ip_address,
            user_agent=provenance.user_agent,
        )

        def _op():
            self._persist(event)
            return event

        try:
            return run_with_retry(_op, session=self.session, attempts=self.retry_attempts)
        except SQLAlchemyError:
            self.session.rollback()
            self.logger.exception(
                "AUDIT_WRITE_FAILED event_type=%s user_id=%s store_id=%s consent_type=%s",
                event_type, user_id, store_id, consent_type,
            )
            return None

    def _persist(self, event: AuditEvent) -> None:
        self.session.add(event)
        self.session.commit()

    # ------------------------------------------------------------------
    # Event helpers
    # ------------------------------------------------------------------

    def log_user_registration(self, user, provenance: RequestProvenance) -> AuditEvent | None:
        return self.record(
            EVENT_USER_REGISTERED,
            provenance,
            user_id=user.id,
            payload={
                "email": user.email,
                "role": user.role,
                "origin": user.origin,
                "firstName": user.first_name,
                "lastName": user.last_name,
                "businessName": user.business_name,
                "businessType": user.business_type,
                "businessAddress": user.business_address,
                "countrySpecificFields": user.country_specific_fields,
            },
        )

    def log_store_registration(self, store, provenance: RequestProvenance) -> AuditEvent | None:
        return self.record(
            EVENT_STORE_REGISTERED,
            provenance,
            user_id=store.owner_id,
            store_id=store.id,
            payload={
                "name": store.name,
                "slug": store.slug,
                "legalBusinessName": store.legal_business_name,
                "legalBusinessType": store.legal_business_type,
                "legalAddress": store.legal_address,
                "countrySpecificFields": store.country_specific_fields,
            },
        )

    def log_consent_acceptance(self, user_id: str, consent_type: str, accepted_at, provenance: RequestProvenance):
        return self.record(
            EVENT_CONSENT_ACCEPTED,
            provenance,
            user_id=user_id,
            consent_type=consent_type,
            payload={"accepted": True, "acceptedAt": accepted_at.isoformat() if accepted_at else None},
        )

    def log_consents(self, user, consent_types, provenance: RequestProvenance) -> list:
        events = []
        for consent_type in consent_types:
            _, at_col = CONSENT_COLUMNS[consent_type]
            events.append(self.log_consent_acceptance(user.id, consent_type, getattr(user, at_col), provenance))
        return events

    def log_onboarding_completed(self, user, store, provenance: RequestProvenance) -> AuditEvent | None:
        return self.record(
            EVENT_ONBOARDING_COMPLETED,
            provenance,
            user_id=user.id,
            store_id=store.id,
            payload={"role": user.role, "regulatoryId": user.regulatory_id},
        )

    def log_login(self, provenance: RequestProvenance, *, user_id: str | None, success: bool, reason: str | None = None):
        return self.record(
            EVENT_LOGIN_SUCCEEDED if success else EVENT_LOGIN_FAILED,
            provenance,
            user_id=user_id,
            payload={"reason": reason} if reason else None,
        )
