"""
Slug derivation and country-specific identifier tests.
"""

import pytest

from storefront.errors import ValidationFailed
from storefront.jurisdictions import (
    CountrySpecificFields,
    FrenchIdentifiers,
    GenericIdentifiers,
    UkIdentifiers,
    UsIdentifiers,
    parse_country_specific_fields,
    with_registration_id,
)
from storefront.services.store_directory import create_slug


# =============================================================================
# SLUGS
# =============================================================================


class TestCreateSlug:
    @pytest.mark.parametrize(
        "name,slug",
        [
            ("Chez Marie", "chez-marie"),
            ("Joe's Café", "joes-cafe"),
            ("  Le  Petit_Bistro -- Paris ", "le-petit-bistro-paris"),
            ("Crème Brûlée & Co.", "creme-brulee-co"),
            ("ABC123", "abc123"),
            ("!!!", ""),
        ],
    )
    def test_examples(self, name, slug):
        assert create_slug(name) == slug

    def test_deterministic(self):
        assert create_slug("Joe's Café") == create_slug("Joe's Café")

    def test_names_that_collide(self):
        assert create_slug("Joe's Café") == create_slug("joes cafe")


# =============================================================================
# COUNTRY-SPECIFIC IDENTIFIERS
# =============================================================================


def _params(exc):
    return [e["param"] for e in exc.value.errors]


class TestFrench:
    def test_valid_identifiers(self):
        ids = parse_country_specific_fields("FR", {
            "siren": "123456789",
            "siret": "12345678900012",
            "frenchBusinessType": "sas",
            "euVatNumber": "FR12345678901",
        })
        assert isinstance(ids, FrenchIdentifiers)
        assert ids.regulatory_id == "12345678900012"
        assert ids.to_wire()["frenchBusinessType"] == "sas"

    @pytest.mark.parametrize(
        "payload,param",
        [
            ({"siren": "12345678"}, "countrySpecificFields.siren"),
            ({"siret": "1234567890001X"}, "countrySpecificFields.siret"),
            ({"frenchBusinessType": "gmbh"}, "countrySpecificFields.frenchBusinessType"),
        ],
    )
    def test_bad_formats(self, payload, param):
        with pytest.raises(ValidationFailed) as exc:
            parse_country_specific_fields("FR", payload)
        assert param in _params(exc)

    def test_foreign_key_rejected(self):
        with pytest.raises(ValidationFailed) as exc:
            parse_country_specific_fields("FR", {"ein": "12-3456789"})
        assert _params(exc) == ["countrySpecificFields.ein"]


class TestOtherJurisdictions:
    def test_us_ein_format(self):
        assert parse_country_specific_fields("US", {"ein": "12-3456789"}).regulatory_id == "12-3456789"
        with pytest.raises(ValidationFailed):
            parse_country_specific_fields("US", {"ein": "123456789"})

    def test_uk_is_free_form(self):
        ids = parse_country_specific_fields("GB", {"companyNumber": "SC123", "ukVatNumber": "whatever"})
        assert isinstance(ids, UkIdentifiers)
        assert ids.regulatory_id == "SC123"

    def test_unknown_country_uses_generic_variant(self):
        ids = parse_country_specific_fields("DE", {"businessRegistrationNumber": "HRB 1234", "taxId": "x"})
        assert isinstance(ids, GenericIdentifiers)
        assert ids.jurisdiction == "DE"
        assert ids.regulatory_id == "HRB 1234"

    def test_missing_or_empty_is_none(self):
        assert parse_country_specific_fields("FR", None) is None
        assert parse_country_specific_fields("FR", {}) is None

    def test_non_object_rejected(self):
        with pytest.raises(ValidationFailed):
            parse_country_specific_fields("FR", ["siren"])


class TestStoredShape:
    def test_round_trip_through_stored_dict(self):
        ids = parse_country_specific_fields("US", {"ein": "12-3456789", "taxId": "T-1"})
        stored = ids.to_dict()
        assert stored == {"jurisdiction": "US", "ein": "12-3456789", "tax_id": "T-1"}
        assert CountrySpecificFields.from_dict(stored) == ids

    def test_from_empty(self):
        assert CountrySpecificFields.from_dict(None) is None


class TestRegistrationId:
    def test_fr_goes_to_siret_and_keeps_siren(self):
        existing = FrenchIdentifiers(jurisdiction="FR", siren="123456789")
        ids = with_registration_id("FR", "12345678900012", existing)
        assert ids.siret == "12345678900012"
        assert ids.siren == "123456789"

    def test_fr_registration_id_validated(self):
        with pytest.raises(ValidationFailed):
            with_registration_id("FR", "not-a-siret")

    def test_other_country_discards_foreign_identifiers(self):
        existing = FrenchIdentifiers(jurisdiction="FR", siren="123456789")
        ids = with_registration_id("US", "12-3456789", existing)
        assert isinstance(ids, UsIdentifiers)
        assert ids.ein == "12-3456789"

    def test_generic_slot(self):
        assert with_registration_id("BE", "0123.456.789").business_registration_number == "0123.456.789"
