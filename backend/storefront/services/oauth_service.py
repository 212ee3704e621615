# Overview: Google and Apple sign-in; authorization URLs and code exchange over httpx.

"""
OAuth Identity Providers

Each provider knows two things: where to send the browser (authorization_url)
and how to turn the returned code into an OAuthIdentity (exchange).
Everything after that (find-or-create, tokens, audit) belongs to
RegistrationService.provision_oauth_principal.

Providers are built once in create_app from configuration. A provider whose
client id, secret or redirect URI is missing is simply not registered, and its
entry point answers OAuthNotConfigured.
"""

from __future__ import annotations

from urllib.parse import urlencode

import httpx
from jose import JWTError, jwt

from ..errors import OAuthFailed, OAuthNotConfigured
from ..models.auth import ORIGIN_APPLE, ORIGIN_GOOGLE
from .registration_service import OAuthIdentity


def _claim_is_true(value) -> bool:
    # Apple sends booleans as strings
    return value is True or value == "true"


class OAuthProvider:
    name = ""
    AUTHORIZE_URL = ""
    TOKEN_URL = ""
    SCOPES = ()

    def __init__(self, client_id: str, client_secret: str, redirect_uri: str, *, http_client: httpx.Client):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.http = http_client

    def authorization_params(self, state: str) -> dict:
        return {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.SCOPES),
            "state": state,
        }

    def authorization_url(self, state: str) -> str:
        return f"{self.AUTHORIZE_URL}?{urlencode(self.authorization_params(state))}"

    def _exchange_code(self, code: str) -> dict:
        try:
            response = self.http.post(
                self.TOKEN_URL,
                data={
                    "grant_type": "authorization_code",
                    "code": code,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "redirect_uri": self.redirect_uri,
                },
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise OAuthFailed(f"{self.name} token exchange failed") from exc

    def exchange(self, code: str, extra: dict | None = None) -> OAuthIdentity:
        raise NotImplementedError


class GoogleProvider(OAuthProvider):
    name = ORIGIN_GOOGLE
    AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
    SCOPES = ("openid", "email", "profile")

    def exchange(self, code: str, extra: dict | None = None) -> OAuthIdentity:
        tokens = self._exchange_code(code)
        access_token = tokens.get("access_token")
        if not access_token:
            raise OAuthFailed("google returned no access token")

        try:
            response = self.http.get(self.USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"})
            response.raise_for_status()
            profile = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise OAuthFailed("google profile lookup failed") from exc

        if not profile.get("sub") or not profile.get("email"):
            raise OAuthFailed("google profile is missing subject or email")
        if not _claim_is_true(profile.get("email_verified")):
            raise OAuthFailed("google email is not verified")

        return OAuthIdentity(
            provider=ORIGIN_GOOGLE,
            subject=profile["sub"],
            email=profile["email"].lower(),
            first_name=profile.get("given_name"),
            last_name=profile.get("family_name"),
        )


class AppleProvider(OAuthProvider):
    name = ORIGIN_APPLE
    AUTHORIZE_URL = "https://appleid.apple.com/auth/authorize"
    TOKEN_URL = "https://appleid.apple.com/auth/token"
    SCOPES = ("name", "email")

    def authorization_params(self, state: str) -> dict:
        params = super().authorization_params(state)
        # Apple only releases name/email to a form_post callback
        params["response_mode"] = "form_post"
        return params

    def exchange(self, code: str, extra: dict | None = None) -> OAuthIdentity:
        tokens = self._exchange_code(code)
        id_token = tokens.get("id_token")
        if not id_token:
            raise OAuthFailed("apple returned no id token")

        # The id token was received directly from Apple's token endpoint over TLS
        try:
            claims = jwt.get_unverified_claims(id_token)
        except JWTError as exc:
            raise OAuthFailed("apple id token is unreadable") from exc

        if claims.get("aud") not in (self.client_id, [self.client_id]):
            raise OAuthFailed("apple id token audience mismatch")
        if not claims.get("sub") or not claims.get("email"):
            raise OAuthFailed("apple id token is missing subject or email")
        if not _claim_is_true(claims.get("email_verified")):
            raise OAuthFailed("apple email is not verified")

        # Apple sends the user's name only on first authorization, in the form body
        name = (extra or {}).get("name") or {}
        return OAuthIdentity(
            provider=ORIGIN_APPLE,
            subject=claims["sub"],
            email=claims["email"].lower(),
            first_name=name.get("firstName"),
            last_name=name.get("lastName"),
        )


PROVIDERS = {
    ORIGIN_GOOGLE: (GoogleProvider, "GOOGLE"),
    ORIGIN_APPLE: (AppleProvider, "APPLE"),
}


def build_oauth_providers(config, http_client: httpx.Client | None = None) -> dict[str, OAuthProvider]:
    """Instantiate every provider whose credentials are fully configured."""
    if http_client is None:
        http_client = httpx.Client(timeout=config.get("OAUTH_HTTP_TIMEOUT_SECONDS", 10.0))

    providers = {}
    for name, (provider_cls, prefix) in PROVIDERS.items():
        client_id = config.get(f"{prefix}_CLIENT_ID")
        client_secret = config.get(f"{prefix}_CLIENT_SECRET")
        redirect_uri = config.get(f"{prefix}_REDIRECT_URI")
        if client_id and client_secret and redirect_uri:
            providers[name] = provider_cls(client_id, client_secret, redirect_uri, http_client=http_client)
    return providers


def get_provider(providers: dict, name: str) -> OAuthProvider:
    provider = providers.get(name)
    if provider is None:
        raise OAuthNotConfigured()
    return provider
