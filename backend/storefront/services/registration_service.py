# Overview: Registration orchestrator; provisions principals and stores in one transaction.

"""
Registration & Onboarding

WHY: A store owner and their store are one business fact. Either both rows
exist afterwards or neither does, whatever fails in between.

FLOWS:
- register_customer: local customer, fully registered at creation.
- register_store_owner: direct path. Principal + Store inside ONE atomic()
  scope; the principal is fully registered at creation (canonical flow).
- complete_onboarding: deferred path for OAuth principals. Upgrades the
  principal in place and creates its single store.
- login / provision_oauth_principal: token issuance for existing or
  freshly provisioned principals.

CONCURRENCY:
- The email pre-check is a fast path for a friendly error only. The unique
  index on lower(email) is what actually rejects the loser of a race, and
  atomic() turns that into EmailAlreadyRegistered.
- Slugs are not pre-checked during registration at all; uq_stores_slug
  decides, surfacing as SlugUnavailable and rolling back the principal too.
- Tokens and audit events are produced AFTER commit. Audit failures are
  logged and swallowed by AuditLog; they never undo a registration.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..errors import (
    AccountDeactivated,
    ConsentRequired,
    EmailAlreadyRegistered,
    InvalidCredentials,
    MissingRequiredFields,
    StoreAlreadyOwned,
    UserNotFound,
    ValidationFailed,
)
from ..jurisdictions import with_registration_id
from ..models import Store, User
from ..models.auth import (
    CONSENT_DATA_PROCESSING,
    CONSENT_MARKETING,
    CONSENT_PRIVACY,
    CONSENT_TERMS,
    ORIGIN_LOCAL,
    ROLE_CUSTOMER,
    ROLE_STORE_OWNER,
)
from ..models.tenancy import initial_document_status
from ..validation import CustomerRegistration, OnboardingSubmission, StoreOwnerRegistration
from .audit_service import AuditLog, RequestProvenance
from .concurrency import atomic
from .credential_service import BCRYPT_ROUNDS, TokenManager, hash_password, verify_password
from .store_directory import StoreDirectory, create_slug
from .user_directory import UserDirectory
from storefront.time_utils import age_in_years, utcnow


MINIMUM_OWNER_AGE = 18

# Consents set by accepting the onboarding terms
ONBOARDING_CONSENTS = (CONSENT_TERMS, CONSENT_PRIVACY, CONSENT_DATA_PROCESSING)

# (request attribute, consent type, param reported when missing, message)
MANDATORY_CONSENTS = (
    ("accepted_terms", CONSENT_TERMS, "acceptedTerms", "You must accept the terms and conditions"),
    ("accepted_privacy_policy", CONSENT_PRIVACY, "acceptedPrivacyPolicy", "You must accept the privacy policy"),
    ("accepted_data_processing", CONSENT_DATA_PROCESSING, "acceptedDataProcessing",
     "You must accept data processing"),
)


@dataclass(frozen=True)
class OAuthIdentity:
    """What an identity provider vouches for after a successful code exchange."""
    provider: str
    subject: str
    email: str
    first_name: str | None = None
    last_name: str | None = None


@dataclass
class AuthResult:
    token: str | None
    user: User
    store: Store | None = None
    created: bool = False


class RegistrationService:
    def __init__(
        self,
        session,
        tokens: TokenManager,
        audit: AuditLog,
        *,
        password_rounds: int = BCRYPT_ROUNDS,
        logger: logging.Logger | None = None,
    ):
        self.session = session
        self.tokens = tokens
        self.audit = audit
        self.password_rounds = password_rounds
        self.logger = logger or logging.getLogger(__name__)
        self.users = UserDirectory(session)
        self.stores = StoreDirectory(session)

    # ------------------------------------------------------------------
    # Direct registration
    # ------------------------------------------------------------------

    def register_customer(self, data: CustomerRegistration, provenance: RequestProvenance) -> AuthResult:
        if self.users.find_by_email(data.email):
            raise EmailAlreadyRegistered()

        password_hash = hash_password(data.password, self.password_rounds)

        with atomic(self.session):
            user = self.users.add(User(
                email=data.email,
                password_hash=password_hash,
                first_name=data.first_name,
                last_name=data.last_name,
                role=ROLE_CUSTOMER,
                origin=ORIGIN_LOCAL,
                is_active=True,
                is_fully_registered=True,
                registration_ip_address=provenance.ip_address,
                registration_user_agent=provenance.user_agent,
            ))

        token = self.tokens.issue(user)
        self.audit.log_user_registration(user, provenance)
        self.logger.info("Customer registered user_id=%s", user.id)
        return AuthResult(token=token, user=user, created=True)

    def register_store_owner(self, data: StoreOwnerRegistration, provenance: RequestProvenance) -> AuthResult:
        """
        Create a store owner and their store atomically.

        Raises:
            ValidationFailed: owner under 18, or store name yields no slug
            ConsentRequired: a mandatory consent is not explicitly true
            EmailAlreadyRegistered / SlugUnavailable: uniqueness lost
        """
        if age_in_years(data.owner_date_of_birth) < MINIMUM_OWNER_AGE:
            raise ValidationFailed.for_field("ownerDateOfBirth", "You must be at least 18 years old")

        for attr, _, param, msg in MANDATORY_CONSENTS:
            if getattr(data, attr) is not True:
                raise ConsentRequired(param, msg)

        if self.users.find_by_email(data.email):
            raise EmailAlreadyRegistered()

        slug = create_slug(data.store_name)
        if not slug:
            raise ValidationFailed.for_field("storeName", "Store name must contain letters or digits")

        password_hash = hash_password(data.password, self.password_rounds)
        now = utcnow()
        business_address = data.business_address.to_dict()
        identifiers = data.country_specific_fields.to_dict() if data.country_specific_fields else None

        with atomic(self.session):
            user = User(
                email=data.email,
                password_hash=password_hash,
                first_name=data.owner_first_name,
                last_name=data.owner_last_name,
                role=ROLE_STORE_OWNER,
                origin=ORIGIN_LOCAL,
                is_active=True,
                is_fully_registered=True,
                business_name=data.business_name,
                business_type=data.business_type,
                business_address=business_address,
                owner_phone=data.owner_phone,
                owner_date_of_birth=data.owner_date_of_birth,
                country_specific_fields=identifiers,
                registration_ip_address=provenance.ip_address,
                registration_user_agent=provenance.user_agent,
            )
            for _, consent, _, _ in MANDATORY_CONSENTS:
                user.set_consent(consent, True, now)
            user.set_consent(CONSENT_MARKETING, data.marketing_consent, now)
            self.users.add(user)
            # Flush so the store row can reference the new principal id
            self.session.flush()

            store = self.stores.add(Store(
                owner_id=user.id,
                name=data.store_name,
                slug=slug,
                address=data.business_address.one_line(),
                phone=data.owner_phone,
                email=data.email,
                legal_business_name=data.business_name,
                legal_business_type=data.business_type,
                legal_address=business_address,
                billing_address=business_address,
                country_specific_fields=identifiers,
                document_verification_status=initial_document_status(),
            ))

        token = self.tokens.issue(user)
        self.audit.log_user_registration(user, provenance)
        self.audit.log_store_registration(store, provenance)
        self.audit.log_consents(user, user.accepted_consents(), provenance)
        self.logger.info("Store owner registered user_id=%s store_id=%s slug=%s", user.id, store.id, store.slug)
        return AuthResult(token=token, user=user, store=store, created=True)

    # ------------------------------------------------------------------
    # Deferred onboarding
    # ------------------------------------------------------------------

    def complete_onboarding(
        self,
        user_id: str,
        data: OnboardingSubmission,
        provenance: RequestProvenance,
    ) -> AuthResult:
        user = self.users.get(user_id)
        if not user:
            raise UserNotFound()

        missing = [
            param for param, present in (
                ("phoneNumber", data.phone_number),
                ("storeName", data.store_name),
                ("registrationId", data.registration_id),
                ("storeAddress", data.store_address),
                ("acceptedCGU", data.accepted_cgu),
            ) if not present
        ]
        if missing:
            raise MissingRequiredFields(missing)

        # A principal owns at most one store; uq_stores_owner_id backs this up.
        if self.stores.find_by_owner(user.id):
            raise StoreAlreadyOwned()

        slug = create_slug(data.store_name)
        if not slug:
            raise ValidationFailed.for_field("storeName", "Store name must contain letters or digits")

        address = data.store_address
        try:
            identifiers = with_registration_id(address.country, data.registration_id, user.identifiers)
        except ValidationFailed as exc:
            msg = exc.errors[0]["msg"] if exc.errors else "Invalid registration identifier"
            raise ValidationFailed.for_field("registrationId", msg) from exc

        accepted_at = data.accepted_cgu_at or utcnow()
        store_address = address.to_dict()
        billing_address = data.billing_address.to_dict() if data.billing_address else store_address

        with atomic(self.session):
            user.owner_phone = data.phone_number
            user.business_address = store_address
            user.country_specific_fields = identifiers.to_dict()
            for consent in ONBOARDING_CONSENTS:
                user.set_consent(consent, True, accepted_at)
            user.role = ROLE_STORE_OWNER
            user.is_fully_registered = True

            store = self.stores.add(Store(
                owner_id=user.id,
                name=data.store_name,
                slug=slug,
                address=address.one_line(),
                phone=data.phone_number,
                email=user.email,
                legal_business_name=user.business_name,
                legal_business_type=user.business_type,
                legal_address=store_address,
                billing_address=billing_address,
                country_specific_fields=identifiers.to_dict(),
                document_verification_status=initial_document_status(),
            ))

        self.audit.log_onboarding_completed(user, store, provenance)
        self.audit.log_store_registration(store, provenance)
        self.audit.log_consents(user, ONBOARDING_CONSENTS, provenance)
        self.logger.info("Onboarding completed user_id=%s store_id=%s", user.id, store.id)
        return AuthResult(token=None, user=user, store=store, created=True)

    def check_store_name_availability(self, store_name: str) -> dict:
        """
        Convenience pre-check. The answer can be stale by the time a store is
        created; creation itself is guarded by uq_stores_slug.
        """
        slug = create_slug(store_name)
        available = bool(slug) and not self.stores.slug_exists(slug)
        return {"available": available, "slug": slug}

    # ------------------------------------------------------------------
    # Login & OAuth
    # ------------------------------------------------------------------

    def login(self, email: str, password: str, provenance: RequestProvenance) -> AuthResult:
        """
        Authenticate a local principal.

        Unknown email, OAuth-only principal and wrong password all raise
        InvalidCredentials; an inactive principal raises AccountDeactivated.
        The reason is logged, never returned.
        """
        user = self.users.find_by_email(email)

        if not user or not user.password_hash:
            self._login_failed(provenance, None, "unknown_email" if not user else "no_password")
            raise InvalidCredentials()

        if not verify_password(password, user.password_hash):
            self._login_failed(provenance, user.id, "bad_password")
            raise InvalidCredentials()

        if not user.is_active:
            self._login_failed(provenance, user.id, "deactivated")
            raise AccountDeactivated()

        with atomic(self.session):
            self.users.touch_last_login(user)

        token = self.tokens.issue(user)
        self.audit.log_login(provenance, user_id=user.id, success=True)
        return AuthResult(token=token, user=user)

    def _login_failed(self, provenance: RequestProvenance, user_id: str | None, reason: str) -> None:
        self.logger.warning("Login failed user_id=%s reason=%s ip=%s", user_id, reason, provenance.ip_address)
        self.audit.log_login(provenance, user_id=user_id, success=False, reason=reason)

    def provision_oauth_principal(self, identity: OAuthIdentity, provenance: RequestProvenance) -> AuthResult:
        """
        Find or create the principal an identity provider vouched for.

        New principals are customers with no password and
        is_fully_registered=False until onboarding completes. If another
        request creates the same email first, that principal is used.
        """
        existing = self.users.find_by_email(identity.email)
        if existing:
            return self._oauth_login(existing, provenance)

        try:
            with atomic(self.session):
                user = self.users.add(User(
                    email=identity.email,
                    password_hash=None,
                    first_name=identity.first_name,
                    last_name=identity.last_name,
                    role=ROLE_CUSTOMER,
                    origin=identity.provider,
                    oauth_subject=identity.subject,
                    is_active=True,
                    is_fully_registered=False,
                    last_login_at=utcnow(),
                    registration_ip_address=provenance.ip_address,
                    registration_user_agent=provenance.user_agent,
                ))
        except EmailAlreadyRegistered:
            existing = self.users.find_by_email(identity.email)
            if not existing:
                raise
            return self._oauth_login(existing, provenance)

        token = self.tokens.issue(user)
        self.audit.log_user_registration(user, provenance)
        self.logger.info("OAuth principal created user_id=%s provider=%s", user.id, identity.provider)
        return AuthResult(token=token, user=user, created=True)

    def _oauth_login(self, user: User, provenance: RequestProvenance) -> AuthResult:
        if not user.is_active:
            raise AccountDeactivated()
        with atomic(self.session):
            self.users.touch_last_login(user)
        token = self.tokens.issue(user)
        self.audit.log_login(provenance, user_id=user.id, success=True)
        return AuthResult(token=token, user=user)
