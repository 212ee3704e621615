from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from email_validator import EmailNotValidError, validate_email

from .errors import ValidationFailed
from .jurisdictions import CountrySpecificFields, parse_country_specific_fields
from .models.auth import BUSINESS_TYPES
from storefront.time_utils import parse_iso_date, parse_iso_datetime


COUNTRY_CODE_RE = re.compile(r"^[A-Z]{2}$")
PASSWORD_MIN_LENGTH = 8
# bcrypt only accepts this many bytes
PASSWORD_MAX_BYTES = 72


@dataclass(frozen=True)
class Address:
    street: str
    city: str
    postal_code: str
    country: str

    def to_dict(self) -> dict:
        return {
            "street": self.street,
            "city": self.city,
            "postalCode": self.postal_code,
            "country": self.country,
        }

    def one_line(self) -> str:
        return f"{self.street}, {self.postal_code} {self.city}"


@dataclass(frozen=True)
class LoginRequest:
    email: str
    password: str


@dataclass(frozen=True)
class CustomerRegistration:
    email: str
    password: str
    first_name: str
    last_name: str


@dataclass(frozen=True)
class StoreOwnerRegistration:
    email: str
    password: str
    store_name: str
    business_name: str
    business_type: str
    business_address: Address
    owner_first_name: str
    owner_last_name: str
    owner_phone: str
    owner_date_of_birth: date
    accepted_terms: bool
    accepted_privacy_policy: bool
    accepted_data_processing: bool
    marketing_consent: bool = False
    country_specific_fields: CountrySpecificFields | None = None


@dataclass(frozen=True)
class OnboardingSubmission:
    """Every field optional here; the orchestrator decides what is missing."""
    phone_number: str | None
    store_name: str | None
    registration_id: str | None
    store_address: Address | None
    billing_address: Address | None
    accepted_cgu: bool
    accepted_cgu_at: datetime | None


class FieldErrors:
    """
    Collects field-level problems so one response can name all of them,
    in the {"msg", "param"} shape clients already consume.
    """

    def __init__(self):
        self.errors: list[dict] = []

    def add(self, param: str, msg: str) -> None:
        self.errors.append({"msg": msg, "param": param})

    def raise_if_any(self) -> None:
        if self.errors:
            raise ValidationFailed(list(self.errors))


def _require_object(payload) -> dict:
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationFailed(message="Invalid JSON payload")
    return payload


def _string(errors: FieldErrors, payload: dict, key: str, *, min_len: int = 1, max_len: int | None = None,
            param: str | None = None, required: bool = True) -> str | None:
    param = param or key
    raw = payload.get(key)
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        if required and min_len > 0:
            errors.add(param, f"{param} is required")
        return None
    if not isinstance(raw, str):
        errors.add(param, f"{param} must be a string")
        return None
    value = raw.strip()
    if len(value) < min_len:
        errors.add(param, f"{param} must be at least {min_len} characters")
        return None
    if max_len is not None and len(value) > max_len:
        errors.add(param, f"{param} exceeds max length {max_len}")
        return None
    return value


def _boolean(errors: FieldErrors, payload: dict, key: str, *, required: bool = True) -> bool:
    raw = payload.get(key)
    if raw is None and not required:
        return False
    if not isinstance(raw, bool):
        errors.add(key, f"{key} must be a boolean")
        return False
    return raw


def _email(errors: FieldErrors, payload: dict, key: str = "email") -> str | None:
    raw = payload.get(key)
    if not isinstance(raw, str) or not raw.strip():
        errors.add(key, "A valid email is required")
        return None
    try:
        result = validate_email(raw.strip(), check_deliverability=False)
    except EmailNotValidError:
        errors.add(key, "A valid email is required")
        return None
    return result.normalized.lower()


def _password(errors: FieldErrors, payload: dict, key: str = "password") -> str | None:
    """Min 8 characters with at least one letter and one digit."""
    raw = payload.get(key)
    if not isinstance(raw, str) or not raw:
        errors.add(key, "Password is required")
        return None
    if len(raw) < PASSWORD_MIN_LENGTH:
        errors.add(key, f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
        return None
    if len(raw.encode("utf-8")) > PASSWORD_MAX_BYTES:
        errors.add(key, f"Password must be at most {PASSWORD_MAX_BYTES} bytes long")
        return None
    if not re.search(r"[A-Za-z]", raw):
        errors.add(key, "Password must contain at least one letter")
        return None
    if not re.search(r"\d", raw):
        errors.add(key, "Password must contain at least one digit")
        return None
    return raw


def _address(errors: FieldErrors, payload: dict, key: str, *, required: bool = True) -> Address | None:
    raw = payload.get(key)
    if raw is None and not required:
        return None
    if not isinstance(raw, dict):
        errors.add(key, f"{key} must be an object")
        return None

    before = len(errors.errors)
    street = _string(errors, raw, "street", max_len=200, param=f"{key}.street")
    city = _string(errors, raw, "city", max_len=100, param=f"{key}.city")
    postal_code = _string(errors, raw, "postalCode", max_len=20, param=f"{key}.postalCode")

    country = raw.get("country")
    if not isinstance(country, str) or not COUNTRY_CODE_RE.match(country):
        errors.add(f"{key}.country", "Country must be a valid 2-letter ISO code")

    if len(errors.errors) > before:
        return None
    return Address(street=street, city=city, postal_code=postal_code, country=country)


# =============================================================================
# REQUEST PARSERS
# =============================================================================

def parse_login(payload) -> LoginRequest:
    payload = _require_object(payload)
    errors = FieldErrors()
    email = _email(errors, payload)
    password = payload.get("password")
    if not isinstance(password, str) or not password:
        errors.add("password", "Password is required")
    errors.raise_if_any()
    return LoginRequest(email=email, password=password)


def parse_customer_registration(payload) -> CustomerRegistration:
    payload = _require_object(payload)
    errors = FieldErrors()
    email = _email(errors, payload)
    password = _password(errors, payload)
    first_name = _string(errors, payload, "firstName", max_len=50)
    last_name = _string(errors, payload, "lastName", max_len=50)
    errors.raise_if_any()
    return CustomerRegistration(email=email, password=password, first_name=first_name, last_name=last_name)


def parse_store_owner_registration(payload) -> StoreOwnerRegistration:
    """
    Shape and format checks only. Legal rules (age, mandatory consents) are
    enforced by the registration service so they hold for every caller.
    """
    payload = _require_object(payload)
    errors = FieldErrors()

    email = _email(errors, payload)
    password = _password(errors, payload)
    store_name = _string(errors, payload, "storeName", max_len=100)
    business_name = _string(errors, payload, "businessName", max_len=200)

    business_type = payload.get("businessType")
    if business_type not in BUSINESS_TYPES:
        errors.add("businessType", f"businessType must be one of: {', '.join(BUSINESS_TYPES)}")

    business_address = _address(errors, payload, "businessAddress")
    owner_first_name = _string(errors, payload, "ownerFirstName", max_len=50)
    owner_last_name = _string(errors, payload, "ownerLastName", max_len=50)
    owner_phone = _string(errors, payload, "ownerPhone", max_len=20)

    owner_date_of_birth = None
    raw_dob = payload.get("ownerDateOfBirth")
    try:
        owner_date_of_birth = parse_iso_date(raw_dob) if isinstance(raw_dob, str) else None
    except ValueError:
        owner_date_of_birth = None
    if owner_date_of_birth is None:
        errors.add("ownerDateOfBirth", "ownerDateOfBirth must be an ISO-8601 date")

    accepted_terms = _boolean(errors, payload, "acceptedTerms")
    accepted_privacy_policy = _boolean(errors, payload, "acceptedPrivacyPolicy")
    accepted_data_processing = _boolean(errors, payload, "acceptedDataProcessing")
    marketing_consent = _boolean(errors, payload, "marketingConsent", required=False)

    country_specific_fields = None
    if business_address is not None:
        try:
            country_specific_fields = parse_country_specific_fields(
                business_address.country, payload.get("countrySpecificFields")
            )
        except ValidationFailed as exc:
            errors.errors.extend(exc.errors)

    errors.raise_if_any()
    return StoreOwnerRegistration(
        email=email,
        password=password,
        store_name=store_name,
        business_name=business_name,
        business_type=business_type,
        business_address=business_address,
        owner_first_name=owner_first_name,
        owner_last_name=owner_last_name,
        owner_phone=owner_phone,
        owner_date_of_birth=owner_date_of_birth,
        accepted_terms=accepted_terms,
        accepted_privacy_policy=accepted_privacy_policy,
        accepted_data_processing=accepted_data_processing,
        marketing_consent=marketing_consent,
        country_specific_fields=country_specific_fields,
    )


def parse_onboarding(payload) -> OnboardingSubmission:
    payload = _require_object(payload)
    errors = FieldErrors()

    phone_number = _string(errors, payload, "phoneNumber", max_len=20, required=False)
    store_name = _string(errors, payload, "storeName", max_len=100, required=False)
    registration_id = _string(errors, payload, "registrationId", max_len=64, required=False)
    store_address = _address(errors, payload, "storeAddress", required=False)
    billing_address = _address(errors, payload, "billingAddress", required=False)

    accepted_cgu = payload.get("acceptedCGU") is True

    accepted_cgu_at = None
    raw_at = payload.get("acceptedCGUAt")
    if raw_at is not None:
        try:
            accepted_cgu_at = parse_iso_datetime(raw_at) if isinstance(raw_at, str) else None
        except ValueError:
            accepted_cgu_at = None
        if accepted_cgu_at is None:
            errors.add("acceptedCGUAt", "acceptedCGUAt must be an ISO-8601 datetime")

    errors.raise_if_any()
    return OnboardingSubmission(
        phone_number=phone_number,
        store_name=store_name,
        registration_id=registration_id,
        store_address=store_address,
        billing_address=billing_address,
        accepted_cgu=accepted_cgu,
        accepted_cgu_at=accepted_cgu_at,
    )


# wire key -> (model attribute, max length or None for non-strings)
STORE_UPDATE_FIELDS = {
    "name": ("name", 100),
    "description": ("description", 500),
    "address": ("address", 330),
    "phone": ("phone", 20),
    "email": ("email", 255),
    "openingHours": ("opening_hours", None),
    "timezone": ("timezone", 64),
}


def parse_store_update(payload) -> dict[str, Any]:
    """Validate an owner's store edit. Unknown keys (slug included) are rejected."""
    payload = _require_object(payload)
    errors = FieldErrors()
    changes: dict[str, Any] = {}

    for key, raw in payload.items():
        if key not in STORE_UPDATE_FIELDS:
            errors.add(key, f"Field not allowed: {key}")
            continue
        attr, max_len = STORE_UPDATE_FIELDS[key]

        if key == "openingHours":
            if raw is not None and not isinstance(raw, dict):
                errors.add(key, "openingHours must be an object")
                continue
            changes[attr] = raw
        elif key == "email":
            if raw is None:
                changes[attr] = None
                continue
            value = _email(errors, payload, "email")
            if value is not None:
                changes[attr] = value
        elif key == "name":
            value = _string(errors, payload, key, max_len=max_len)
            if value is not None:
                changes[attr] = value
        else:
            if raw is None:
                changes[attr] = None
                continue
            value = _string(errors, payload, key, min_len=0, max_len=max_len)
            if value is not None:
                changes[attr] = value

    errors.raise_if_any()
    return changes
