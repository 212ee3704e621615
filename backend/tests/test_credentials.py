"""
Credential & token tests.

Verifies:
- bcrypt hashing round trip and tolerance of malformed stored hashes
- Token issue/validate round trip
- Expired tokens fail with TokenExpired, tampered ones with TokenMalformed
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from jose import jwt

from storefront.errors import TokenExpired, TokenMalformed
from storefront.services.credential_service import TokenManager, hash_password, verify_password


SECRET = "unit-test-secret"
PRINCIPAL = SimpleNamespace(id="b7f1c6a2-0000-4000-8000-000000000001", email="ada@example.com", role="customer")


# =============================================================================
# PASSWORDS
# =============================================================================


class TestPasswordHashing:
    def test_hash_verifies_and_hides_plaintext(self):
        hashed = hash_password("Password123", rounds=4)
        assert hashed != "Password123"
        assert hashed.startswith("$2")
        assert verify_password("Password123", hashed)

    def test_wrong_password_rejected(self):
        hashed = hash_password("Password123", rounds=4)
        assert not verify_password("Password124", hashed)

    def test_each_hash_is_salted(self):
        assert hash_password("Password123", rounds=4) != hash_password("Password123", rounds=4)

    @pytest.mark.parametrize("stored", [None, "", "not-a-bcrypt-hash", "$2b$04$short"])
    def test_malformed_hash_returns_false(self, stored):
        assert verify_password("Password123", stored) is False


# =============================================================================
# TOKENS
# =============================================================================


class TestTokens:
    def test_issue_then_validate_returns_principal_id(self):
        tokens = TokenManager(SECRET)
        token = tokens.issue(PRINCIPAL)
        assert tokens.validate(token) == PRINCIPAL.id

    def test_claims_carry_identity_and_seven_day_window(self):
        tokens = TokenManager(SECRET)
        claims = tokens.decode(tokens.issue(PRINCIPAL))
        assert claims["email"] == PRINCIPAL.email
        assert claims["role"] == PRINCIPAL.role
        assert claims["exp"] - claims["iat"] == int(timedelta(days=7).total_seconds())

    def test_expired_token(self):
        past = datetime.now(timezone.utc) - timedelta(days=8)
        token = TokenManager(SECRET, clock=lambda: past).issue(PRINCIPAL)
        with pytest.raises(TokenExpired):
            TokenManager(SECRET).validate(token)

    def test_altered_signature_is_malformed(self):
        tokens = TokenManager(SECRET)
        header, payload, signature = tokens.issue(PRINCIPAL).split(".")
        i = len(signature) // 2
        swapped = "A" if signature[i] != "A" else "B"
        tampered = ".".join([header, payload, signature[:i] + swapped + signature[i + 1:]])
        with pytest.raises(TokenMalformed):
            tokens.validate(tampered)

    def test_other_secret_is_malformed(self):
        token = TokenManager("someone-else").issue(PRINCIPAL)
        with pytest.raises(TokenMalformed):
            TokenManager(SECRET).validate(token)

    @pytest.mark.parametrize("garbage", ["", "abc", "a.b.c"])
    def test_garbage_is_malformed(self, garbage):
        with pytest.raises(TokenMalformed):
            TokenManager(SECRET).validate(garbage)

    def test_token_without_user_id_is_malformed(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode({"sub": "x", "exp": int((now + timedelta(hours=1)).timestamp())}, SECRET, algorithm="HS256")
        with pytest.raises(TokenMalformed):
            TokenManager(SECRET).validate(token)

    def test_empty_secret_refused(self):
        with pytest.raises(ValueError):
            TokenManager("")

    def test_expired_is_still_unauthorized(self):
        """Callers catching Unauthorized see both failure kinds."""
        from storefront.errors import Unauthorized
        assert issubclass(TokenExpired, Unauthorized)
        assert issubclass(TokenMalformed, Unauthorized)
