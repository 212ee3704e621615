# Overview: Flask API routes for registration, login, onboarding and OAuth sign-in.

# backend/storefront/routes/auth.py
"""
Authentication & Provisioning API routes

- Local registration and login for customers and store owners
- Deferred onboarding for OAuth-created principals
- Google / Apple sign-in (redirect flow, state kept in the session cookie)

Domain errors are rendered verbatim as {"error", "code"[, "errors"]};
anything unexpected is logged and answered with an opaque 500.
"""

import json
import secrets
from urllib.parse import quote, urlencode

from flask import Blueprint, current_app, g, jsonify, redirect, request, session

from ..decorators import require_auth
from ..errors import ProvisioningError, ValidationFailed
from ..extensions import db
from ..services.audit_service import AuditLog, RequestProvenance
from ..services.oauth_service import get_provider
from ..services.registration_service import RegistrationService
from ..validation import (
    parse_customer_registration,
    parse_login,
    parse_onboarding,
    parse_store_owner_registration,
)


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

OAUTH_STATE_KEY = "oauth_state"


def registration_service() -> RegistrationService:
    return RegistrationService(
        db.session,
        current_app.extensions["token_manager"],
        AuditLog(db.session, current_app.logger),
        password_rounds=current_app.config["BCRYPT_ROUNDS"],
        logger=current_app.logger,
    )


def error_response(exc: ProvisioningError):
    body, status = exc.to_response()
    return jsonify(body), status


def internal_error():
    return jsonify({"error": "Internal server error", "code": "InternalError"}), 500


def _provenance() -> RequestProvenance:
    return RequestProvenance.from_request(request)


# =============================================================================
# LOCAL ACCOUNTS
# =============================================================================

def _login():
    try:
        data = parse_login(request.get_json(silent=True))
        result = registration_service().login(data.email, data.password, _provenance())
        return jsonify({"token": result.token, "user": result.user.to_public_dict()}), 200
    except ProvisioningError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to login user")
        return internal_error()


@auth_bp.post("/customer/login")
def customer_login_route():
    return _login()


@auth_bp.post("/store/login")
def store_login_route():
    return _login()


@auth_bp.post("/customer/register")
def customer_register_route():
    try:
        data = parse_customer_registration(request.get_json(silent=True))
        result = registration_service().register_customer(data, _provenance())
        return jsonify({"token": result.token, "user": result.user.to_public_dict()}), 201
    except ProvisioningError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to register customer")
        return internal_error()


@auth_bp.post("/store/register")
def store_register_route():
    """
    Register a store owner together with their store.

    Both rows are created in one transaction; on any failure neither exists.
    """
    try:
        data = parse_store_owner_registration(request.get_json(silent=True))
        result = registration_service().register_store_owner(data, _provenance())
        return jsonify({
            "token": result.token,
            "user": result.user.to_public_dict(),
            "store": result.store.to_public_dict(),
        }), 201
    except ProvisioningError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to register store owner")
        return internal_error()


@auth_bp.get("/me")
@require_auth
def me_route():
    user = g.current_user
    body = user.to_public_dict()
    regulatory_id = user.regulatory_id
    if regulatory_id:
        body["regulatoryId"] = regulatory_id
    return jsonify(body), 200


@auth_bp.post("/complete-onboarding")
@require_auth
def complete_onboarding_route():
    try:
        data = parse_onboarding(request.get_json(silent=True))
        result = registration_service().complete_onboarding(g.user_id, data, _provenance())
        return jsonify({
            "user": result.user.to_public_dict(),
            "store": result.store.to_public_dict(),
        }), 200
    except ProvisioningError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to complete onboarding")
        return internal_error()


@auth_bp.get("/check-store-name")
def check_store_name_route():
    store_name = (request.args.get("storeName") or "").strip()
    if not store_name:
        return error_response(ValidationFailed.for_field("storeName", "storeName is required"))
    try:
        return jsonify(registration_service().check_store_name_availability(store_name)), 200
    except Exception:
        current_app.logger.exception("Failed to check store name availability")
        return internal_error()


# =============================================================================
# OAUTH
# =============================================================================

def _frontend_redirect(path: str, params: dict):
    return redirect(f"{current_app.config['FRONTEND_URL']}{path}?{urlencode(params, quote_via=quote)}")


def _oauth_start(provider_name: str):
    try:
        provider = get_provider(current_app.extensions["oauth_providers"], provider_name)
    except ProvisioningError as exc:
        return error_response(exc)

    state = secrets.token_urlsafe(24)
    session[OAUTH_STATE_KEY] = {"provider": provider_name, "state": state}
    return redirect(provider.authorization_url(state))


def _oauth_callback(provider_name: str, params, extra: dict | None = None):
    """
    Finish a provider redirect. Every failure path lands on the frontend
    error page; the reason is only logged.
    """
    expected = session.pop(OAUTH_STATE_KEY, None) or {}
    try:
        if params.get("error"):
            raise ValueError(f"provider returned error={params.get('error')}")
        if expected.get("provider") != provider_name or not expected.get("state"):
            raise ValueError("no OAuth flow in progress")
        if not secrets.compare_digest(expected["state"], params.get("state") or ""):
            raise ValueError("state mismatch")
        code = params.get("code")
        if not code:
            raise ValueError("missing authorization code")

        provider = get_provider(current_app.extensions["oauth_providers"], provider_name)
        identity = provider.exchange(code, extra)
        result = registration_service().provision_oauth_principal(identity, _provenance())
    except (ProvisioningError, ValueError) as exc:
        current_app.logger.warning("OAuth callback failed provider=%s reason=%s", provider_name, exc)
        return _frontend_redirect("/auth/error", {"message": "OAuth failed"})
    except Exception:
        current_app.logger.exception("OAuth callback crashed provider=%s", provider_name)
        return _frontend_redirect("/auth/error", {"message": "OAuth failed"})

    return _frontend_redirect("/auth/success", {
        "token": result.token,
        "type": result.user.role,
        "onboarding": "complete" if result.user.is_fully_registered else "pending",
    })


@auth_bp.get("/google")
def google_oauth_route():
    return _oauth_start("google")


@auth_bp.get("/google/callback")
def google_oauth_callback_route():
    return _oauth_callback("google", request.args)


@auth_bp.get("/apple")
def apple_oauth_route():
    return _oauth_start("apple")


@auth_bp.route("/apple/callback", methods=["GET", "POST"])
def apple_oauth_callback_route():
    params = request.form if request.method == "POST" else request.args
    extra = {}
    raw_user = params.get("user")
    if raw_user:
        try:
            extra = json.loads(raw_user)
        except ValueError:
            current_app.logger.warning("Ignoring unreadable Apple user payload")
        if not isinstance(extra, dict):
            extra = {}
    return _oauth_callback("apple", params, extra)
