from __future__ import annotations

import uuid

from sqlalchemy.orm import validates

from ..extensions import db
from ..jurisdictions import CountrySpecificFields
from storefront.time_utils import to_utc_z


ROLE_CUSTOMER = "customer"
ROLE_STORE_OWNER = "store_owner"
ROLES = (ROLE_CUSTOMER, ROLE_STORE_OWNER)

ORIGIN_LOCAL = "local"
ORIGIN_GOOGLE = "google"
ORIGIN_APPLE = "apple"
ORIGINS = (ORIGIN_LOCAL, ORIGIN_GOOGLE, ORIGIN_APPLE)

BUSINESS_TYPES = ("sole_proprietorship", "partnership", "llc", "corporation", "other")

CONSENT_TERMS = "terms"
CONSENT_PRIVACY = "privacy"
CONSENT_DATA_PROCESSING = "data_processing"
CONSENT_MARKETING = "marketing"

# consent type -> (flag column, timestamp column)
CONSENT_COLUMNS = {
    CONSENT_TERMS: ("accepted_terms", "terms_accepted_at"),
    CONSENT_PRIVACY: ("accepted_privacy_policy", "privacy_policy_accepted_at"),
    CONSENT_DATA_PROCESSING: ("accepted_data_processing", "data_processing_accepted_at"),
    CONSENT_MARKETING: ("marketing_consent", "marketing_consent_given_at"),
}


def new_id() -> str:
    return str(uuid.uuid4())


def normalize_email(email: str) -> str:
    return email.strip().lower()


class User(db.Model):
    """
    Principal: a customer or a store owner.

    Email is globally unique regardless of case: the value is stored lowercased
    and a unique index on lower(email) backs it at the storage layer, so two
    racing registrations cannot both commit.

    Local accounts carry a bcrypt password hash. OAuth accounts have none and
    start with is_fully_registered=False until onboarding completes.

    Consent timestamps are only ever written through set_consent(), which keeps
    "timestamp set iff flag true".
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_role", "role"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    email = db.Column(db.String(255), nullable=False)

    # Bcrypt hash; NULL for OAuth-created principals
    password_hash = db.Column(db.String(255), nullable=True)

    first_name = db.Column(db.String(50), nullable=True)
    last_name = db.Column(db.String(50), nullable=True)

    role = db.Column(db.String(16), nullable=False, default=ROLE_CUSTOMER)
    origin = db.Column(db.String(16), nullable=False, default=ORIGIN_LOCAL)
    oauth_subject = db.Column(db.String(255), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_fully_registered = db.Column(db.Boolean, nullable=False, default=False)
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Business profile
    business_name = db.Column(db.String(200), nullable=True)
    business_type = db.Column(db.String(32), nullable=True)
    business_address = db.Column(db.JSON, nullable=True)
    owner_phone = db.Column(db.String(20), nullable=True)
    owner_date_of_birth = db.Column(db.Date, nullable=True)
    country_specific_fields = db.Column(db.JSON, nullable=True)

    # Legal consents
    accepted_terms = db.Column(db.Boolean, nullable=False, default=False)
    terms_accepted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    accepted_privacy_policy = db.Column(db.Boolean, nullable=False, default=False)
    privacy_policy_accepted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    accepted_data_processing = db.Column(db.Boolean, nullable=False, default=False)
    data_processing_accepted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    marketing_consent = db.Column(db.Boolean, nullable=False, default=False)
    marketing_consent_given_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Registration provenance
    registration_ip_address = db.Column(db.String(45), nullable=True)  # IPv6 max length
    registration_user_agent = db.Column(db.String(512), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    @validates("email")
    def _normalize_email(self, key, value):
        return normalize_email(value)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"

    def set_consent(self, consent: str, accepted: bool, at) -> None:
        flag_col, at_col = CONSENT_COLUMNS[consent]
        setattr(self, flag_col, bool(accepted))
        setattr(self, at_col, at if accepted else None)

    def accepted_consents(self) -> list[str]:
        return [name for name, (flag_col, _) in CONSENT_COLUMNS.items() if getattr(self, flag_col)]

    @property
    def identifiers(self) -> CountrySpecificFields | None:
        return CountrySpecificFields.from_dict(self.country_specific_fields)

    @property
    def regulatory_id(self) -> str | None:
        identifiers = self.identifiers
        return identifiers.regulatory_id if identifiers else None

    def to_public_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "role": self.role,
            "type": self.origin,
            "isActive": self.is_active,
            "isFullyRegistered": self.is_fully_registered,
            "lastLoginAt": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }

    def to_dict(self) -> dict:
        identifiers = self.identifiers
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "role": self.role,
            "origin": self.origin,
            "is_active": self.is_active,
            "is_fully_registered": self.is_fully_registered,
            "business_name": self.business_name,
            "business_type": self.business_type,
            "business_address": self.business_address,
            "owner_phone": self.owner_phone,
            "country_specific_fields": identifiers.to_dict() if identifiers else None,
            "consents": self.accepted_consents(),
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


# Case-insensitive uniqueness enforced by the database itself
db.Index("uq_users_email_lower", db.func.lower(User.email), unique=True)
