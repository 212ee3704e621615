# Overview: Flask API routes for store operations; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import ProvisioningError, StoreNotFound, ValidationFailed
from ..extensions import db
from ..services.concurrency import atomic
from ..services.store_directory import StoreDirectory
from ..validation import parse_store_update
from .auth import error_response, internal_error


stores_bp = Blueprint("stores", __name__, url_prefix="/api/stores")


@stores_bp.get("")
def list_stores():
    stores = StoreDirectory(db.session).list_active()
    return jsonify([store.to_dict() for store in stores]), 200


@stores_bp.get("/slug/<slug>")
def get_store_by_slug(slug: str):
    store = StoreDirectory(db.session).find_by_slug(slug)
    if not store:
        return error_response(StoreNotFound())
    return jsonify(store.to_dict()), 200


@stores_bp.get("/<store_id>")
def get_store(store_id: str):
    store = StoreDirectory(db.session).get(store_id)
    if not store:
        return error_response(StoreNotFound())
    return jsonify(store.to_dict()), 200


@stores_bp.put("/<store_id>")
@require_auth
def update_store(store_id: str):
    """Owner edit. The slug is fixed at creation and cannot be sent here."""
    try:
        changes = parse_store_update(request.get_json(silent=True))
        directory = StoreDirectory(db.session)
        with atomic(db.session):
            store = directory.get_owned(store_id, g.user_id)
            directory.update(store, changes)
        current_app.logger.info("Store updated store_id=%s fields=%s", store.id, sorted(changes))
        return jsonify(store.to_dict()), 200
    except ProvisioningError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to update store")
        return internal_error()


@stores_bp.put("/<store_id>/holiday")
@require_auth
def toggle_holiday(store_id: str):
    data = request.get_json(silent=True) or {}
    message = data.get("holidayMessage")
    if message is not None and (not isinstance(message, str) or len(message) > 200):
        return error_response(ValidationFailed.for_field("holidayMessage", "holidayMessage must be a string of at most 200 characters"))
    try:
        directory = StoreDirectory(db.session)
        with atomic(db.session):
            store = directory.get_owned(store_id, g.user_id)
            directory.toggle_holiday(store, message)
        return jsonify(store.to_dict()), 200
    except ProvisioningError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to toggle holiday mode")
        return internal_error()


@stores_bp.delete("/<store_id>")
@require_auth
def deactivate_store(store_id: str):
    try:
        directory = StoreDirectory(db.session)
        with atomic(db.session):
            store = directory.get_owned(store_id, g.user_id)
            directory.deactivate(store)
        current_app.logger.info("Store deactivated store_id=%s", store.id)
        return jsonify({"message": "Store deactivated", "id": store.id}), 200
    except ProvisioningError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to deactivate store")
        return internal_error()
