# Overview: Country-specific business identifiers as a closed set of variants.

"""
Country-Specific Regulatory Identifiers

Each jurisdiction accepts its own fixed set of identifier keys. The variant is
chosen by the business address country, so a US EIN on a French business (or
any other key the jurisdiction does not know) is rejected up front instead of
being stored in an open bag of optional strings.

Stored shape (JSON column):
    {"jurisdiction": "FR", "siren": "...", "siret": "...", ...}

Wire shape (request bodies) uses camelCase keys: siren, siret,
frenchBusinessType, euVatNumber, ein, taxId, companyNumber, ukVatNumber,
businessRegistrationNumber.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, fields, replace
from typing import ClassVar

from .errors import ValidationFailed


SIREN_RE = re.compile(r"^\d{9}$")
SIRET_RE = re.compile(r"^\d{14}$")
EIN_RE = re.compile(r"^\d{2}-\d{7}$")

FRENCH_BUSINESS_TYPES = ("auto_entrepreneur", "eurl", "sarl", "sas", "sasu", "sa")

PARAM_PREFIX = "countrySpecificFields"


@dataclass(frozen=True)
class CountrySpecificFields:
    jurisdiction: str

    # wire key -> attribute name
    WIRE_KEYS: ClassVar[dict[str, str]] = {}
    # attribute holding the primary registration identifier
    REGISTRATION_ATTR: ClassVar[str] = ""

    @classmethod
    def from_payload(cls, jurisdiction: str, payload: dict) -> "CountrySpecificFields":
        errors = []
        values = {}
        for key, raw in payload.items():
            attr = cls.WIRE_KEYS.get(key)
            if attr is None:
                errors.append({
                    "msg": f"{key} is not accepted for country {jurisdiction}",
                    "param": f"{PARAM_PREFIX}.{key}",
                })
                continue
            if raw is None or raw == "":
                continue
            if not isinstance(raw, str):
                errors.append({"msg": f"{key} must be a string", "param": f"{PARAM_PREFIX}.{key}"})
                continue
            values[attr] = raw.strip()

        if errors:
            raise ValidationFailed(errors)

        instance = cls(jurisdiction=jurisdiction, **values)
        instance.validate()
        return instance

    @classmethod
    def from_dict(cls, data: dict | None) -> "CountrySpecificFields | None":
        """Rebuild from the stored JSON shape."""
        if not data:
            return None
        jurisdiction = data.get("jurisdiction", "")
        variant = variant_for(jurisdiction)
        names = {f.name for f in fields(variant)}
        return variant(**{k: v for k, v in data.items() if k in names})

    def validate(self) -> None:
        """Format checks; variants without fixed formats accept anything."""

    def to_dict(self) -> dict:
        out = {"jurisdiction": self.jurisdiction}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name != "jurisdiction" and value is not None:
                out[f.name] = value
        return out

    def to_wire(self) -> dict:
        reverse = {attr: key for key, attr in self.WIRE_KEYS.items()}
        out = {"jurisdiction": self.jurisdiction}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name != "jurisdiction" and value is not None:
                out[reverse[f.name]] = value
        return out

    @property
    def regulatory_id(self) -> str | None:
        return getattr(self, self.REGISTRATION_ATTR, None)

    def with_registration_id(self, registration_id: str) -> "CountrySpecificFields":
        updated = replace(self, **{self.REGISTRATION_ATTR: registration_id.strip()})
        updated.validate()
        return updated


@dataclass(frozen=True)
class FrenchIdentifiers(CountrySpecificFields):
    siren: str | None = None
    siret: str | None = None
    french_business_type: str | None = None
    eu_vat_number: str | None = None

    WIRE_KEYS: ClassVar[dict[str, str]] = {
        "siren": "siren",
        "siret": "siret",
        "frenchBusinessType": "french_business_type",
        "euVatNumber": "eu_vat_number",
    }
    REGISTRATION_ATTR: ClassVar[str] = "siret"

    def validate(self) -> None:
        errors = []
        if self.siren is not None and not SIREN_RE.match(self.siren):
            errors.append({"msg": "SIREN must be 9 digits", "param": f"{PARAM_PREFIX}.siren"})
        if self.siret is not None and not SIRET_RE.match(self.siret):
            errors.append({"msg": "SIRET must be 14 digits", "param": f"{PARAM_PREFIX}.siret"})
        if self.french_business_type is not None and self.french_business_type not in FRENCH_BUSINESS_TYPES:
            errors.append({
                "msg": "Invalid French business type",
                "param": f"{PARAM_PREFIX}.frenchBusinessType",
            })
        if errors:
            raise ValidationFailed(errors)


@dataclass(frozen=True)
class UsIdentifiers(CountrySpecificFields):
    ein: str | None = None
    tax_id: str | None = None

    WIRE_KEYS: ClassVar[dict[str, str]] = {"ein": "ein", "taxId": "tax_id"}
    REGISTRATION_ATTR: ClassVar[str] = "ein"

    def validate(self) -> None:
        if self.ein is not None and not EIN_RE.match(self.ein):
            raise ValidationFailed.for_field(f"{PARAM_PREFIX}.ein", "EIN must be in format XX-XXXXXXX")


@dataclass(frozen=True)
class UkIdentifiers(CountrySpecificFields):
    company_number: str | None = None
    uk_vat_number: str | None = None

    WIRE_KEYS: ClassVar[dict[str, str]] = {
        "companyNumber": "company_number",
        "ukVatNumber": "uk_vat_number",
    }
    REGISTRATION_ATTR: ClassVar[str] = "company_number"


@dataclass(frozen=True)
class GenericIdentifiers(CountrySpecificFields):
    tax_id: str | None = None
    business_registration_number: str | None = None
    eu_vat_number: str | None = None

    WIRE_KEYS: ClassVar[dict[str, str]] = {
        "taxId": "tax_id",
        "businessRegistrationNumber": "business_registration_number",
        "euVatNumber": "eu_vat_number",
    }
    REGISTRATION_ATTR: ClassVar[str] = "business_registration_number"


VARIANTS: dict[str, type[CountrySpecificFields]] = {
    "FR": FrenchIdentifiers,
    "US": UsIdentifiers,
    "GB": UkIdentifiers,
}


def variant_for(country: str) -> type[CountrySpecificFields]:
    return VARIANTS.get(country, GenericIdentifiers)


def parse_country_specific_fields(country: str, payload) -> CountrySpecificFields | None:
    """Build the variant for `country` from a request body fragment."""
    if payload is None:
        return None
    if not isinstance(payload, dict):
        raise ValidationFailed.for_field(PARAM_PREFIX, "countrySpecificFields must be an object")
    if not payload:
        return None
    return variant_for(country).from_payload(country, payload)


def with_registration_id(
    country: str,
    registration_id: str,
    existing: CountrySpecificFields | None = None,
) -> CountrySpecificFields:
    """
    Attach an onboarding registration identifier to the right slot for the
    country, keeping any identifiers already on file for that same country.
    """
    if existing is None or existing.jurisdiction != country:
        existing = variant_for(country)(jurisdiction=country)
    return existing.with_registration_id(registration_id)
