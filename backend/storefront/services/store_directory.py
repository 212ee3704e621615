# Overview: Tenant directory: lookups and in-place updates for stores.

from __future__ import annotations

import re
import unicodedata

from ..errors import StoreNotFound
from ..models import Store


# Fields an owner may edit after creation. The slug is deliberately absent.
EDITABLE_FIELDS = ("name", "description", "address", "phone", "email", "opening_hours", "timezone")

_STRIP = re.compile(r"[^a-z0-9\s_-]")
_SEPARATORS = re.compile(r"[\s_-]+")


def create_slug(name: str) -> str:
    """
    Deterministic URL-safe identifier for a store name.

    "Joe's Café" -> "joes-cafe", "Chez  Marie!" -> "chez-marie".
    Accents are folded to ASCII, anything that is not a letter, digit,
    whitespace, "_" or "-" is dropped, and each run of whitespace/"_"/"-"
    becomes a single "-". May return "" for names with no letters or digits.
    """
    folded = unicodedata.normalize("NFKD", name or "")
    ascii_only = folded.encode("ascii", "ignore").decode("ascii").lower()
    stripped = _STRIP.sub("", ascii_only)
    return _SEPARATORS.sub("-", stripped).strip("-")


class StoreDirectory:
    """
    Repository for the Store aggregate.

    Slug uniqueness belongs to the uq_stores_slug constraint. slug_exists() is
    a convenience for the availability check only and can be stale by the
    time a store is actually inserted.
    """

    def __init__(self, session):
        self.session = session

    def get(self, store_id: str, *, active_only: bool = True) -> Store | None:
        query = self.session.query(Store).filter(Store.id == store_id)
        if active_only:
            query = query.filter(Store.is_active.is_(True))
        return query.first()

    def find_by_slug(self, slug: str, *, active_only: bool = False) -> Store | None:
        query = self.session.query(Store).filter(Store.slug == slug)
        if active_only:
            query = query.filter(Store.is_active.is_(True))
        return query.first()

    def find_by_owner(self, owner_id: str) -> Store | None:
        return self.session.query(Store).filter(Store.owner_id == owner_id).first()

    def slug_exists(self, slug: str) -> bool:
        return self.find_by_slug(slug) is not None

    def list_active(self) -> list[Store]:
        return (
            self.session.query(Store)
            .filter(Store.is_active.is_(True))
            .order_by(Store.name.asc())
            .all()
        )

    def add(self, store: Store) -> Store:
        self.session.add(store)
        return store

    def get_owned(self, store_id: str, owner_id: str) -> Store:
        """
        Active store owned by owner_id. A store owned by someone else is
        reported as missing so its existence is not revealed.
        """
        store = self.get(store_id)
        if not store or store.owner_id != owner_id:
            raise StoreNotFound()
        return store

    def update(self, store: Store, changes: dict) -> Store:
        for key, value in changes.items():
            if key not in EDITABLE_FIELDS:
                raise ValueError(f"Store field is not editable: {key}")
            setattr(store, key, value)
        return store

    def toggle_holiday(self, store: Store, holiday_message: str | None = None) -> Store:
        store.is_holiday = not store.is_holiday
        store.holiday_message = holiday_message if store.is_holiday else None
        return store

    def deactivate(self, store: Store) -> Store:
        store.is_active = False
        return store
