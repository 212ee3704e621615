from __future__ import annotations

from ..extensions import db
from .auth import new_id
from storefront.time_utils import to_utc_z


DOCUMENT_PENDING = "pending"
DOCUMENT_VERIFIED = "verified"
DOCUMENT_REJECTED = "rejected"
DOCUMENT_STATES = (DOCUMENT_PENDING, DOCUMENT_VERIFIED, DOCUMENT_REJECTED)

# Every store tracks exactly these documents, from creation on
DOCUMENT_KINDS = (
    "registration_certificate",
    "siren_certificate",
    "tax_certificate",
    "identity_document",
    "proof_of_address",
    "bank_details",
)


def initial_document_status() -> dict:
    return {kind: DOCUMENT_PENDING for kind in DOCUMENT_KINDS}


class Store(db.Model):
    """
    Tenant: the business a store owner runs on the marketplace.

    SLUG: derived once from the name at creation, globally unique (enforced by
    uq_stores_slug) and never rewritten, even when the display name changes.

    OWNERSHIP: one principal owns at most one store (uq_stores_owner_id).
    owner_id is nullable at the schema level but every creation path sets it.

    LIFECYCLE: "deleting" a store clears is_active; rows are never removed.
    """
    __tablename__ = "stores"
    __table_args__ = (
        db.UniqueConstraint("slug", name="uq_stores_slug"),
        db.UniqueConstraint("owner_id", name="uq_stores_owner_id"),
        db.Index("ix_stores_is_active", "is_active"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    owner_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True)

    name = db.Column(db.String(100), nullable=False)
    slug = db.Column(db.String(120), nullable=False)
    description = db.Column(db.String(500), nullable=True)

    # Operational details
    address = db.Column(db.String(330), nullable=True)
    phone = db.Column(db.String(20), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    opening_hours = db.Column(db.JSON, nullable=True)  # {"monday": {"open": "09:00", "close": "18:00"}}
    timezone = db.Column(db.String(64), nullable=True)
    is_holiday = db.Column(db.Boolean, nullable=False, default=False)
    holiday_message = db.Column(db.String(200), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    # Legal details copied from the owner's business profile at creation
    legal_business_name = db.Column(db.String(200), nullable=True)
    legal_business_type = db.Column(db.String(32), nullable=True)
    legal_address = db.Column(db.JSON, nullable=True)
    billing_address = db.Column(db.JSON, nullable=True)
    country_specific_fields = db.Column(db.JSON, nullable=True)

    # Document verification (driven by a separate back-office process)
    document_verification_status = db.Column(db.JSON, nullable=False, default=initial_document_status)
    verification_notes = db.Column(db.Text, nullable=True)
    is_legally_verified = db.Column(db.Boolean, nullable=False, default=False)
    verified_at = db.Column(db.DateTime(timezone=True), nullable=True)
    verified_by = db.Column(db.String(36), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    owner = db.relationship("User", backref=db.backref("store", uselist=False, lazy=True))

    def __repr__(self) -> str:
        return f"<Store id={self.id} slug={self.slug!r} owner_id={self.owner_id}>"

    def to_public_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "isActive": self.is_active,
            "isLegallyVerified": self.is_legally_verified,
            "documentVerificationStatus": dict(self.document_verification_status or {}),
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "address": self.address,
            "phone": self.phone,
            "email": self.email,
            "openingHours": self.opening_hours,
            "timezone": self.timezone,
            "isHoliday": self.is_holiday,
            "holidayMessage": self.holiday_message,
            "isActive": self.is_active,
            "isLegallyVerified": self.is_legally_verified,
            "createdAt": to_utc_z(self.created_at),
        }
