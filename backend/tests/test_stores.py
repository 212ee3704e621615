"""
Store management tests.

Verifies:
- Public listing and lookup by id / slug
- Only the owner may edit, toggle holiday mode or deactivate
- The slug never changes after creation
"""

from conftest import bearer, store_owner_payload


def _register_other_owner(client):
    resp = client.post(
        "/api/auth/store/register",
        json=store_owner_payload(email="rival@example.fr", storeName="Rival Shop"),
    )
    assert resp.status_code == 201
    return resp.get_json()


class TestPublicLookups:
    def test_list_active(self, client, registered_owner):
        resp = client.get("/api/stores")
        assert resp.status_code == 200
        assert [s["slug"] for s in resp.get_json()] == ["chez-marie"]

    def test_get_by_id(self, client, registered_owner):
        store_id = registered_owner["store"]["id"]
        resp = client.get(f"/api/stores/{store_id}")
        assert resp.status_code == 200
        assert resp.get_json()["name"] == "Chez Marie"

    def test_get_by_slug(self, client, registered_owner):
        resp = client.get("/api/stores/slug/chez-marie")
        assert resp.status_code == 200
        assert resp.get_json()["id"] == registered_owner["store"]["id"]

    def test_unknown(self, client):
        assert client.get("/api/stores/missing").get_json()["code"] == "StoreNotFound"
        assert client.get("/api/stores/slug/missing").status_code == 404


class TestOwnerEdits:
    def test_update_keeps_slug(self, client, registered_owner):
        store_id = registered_owner["store"]["id"]
        resp = client.put(
            f"/api/stores/{store_id}",
            json={"name": "Chez Marie & Fils", "description": "Fresh bread", "openingHours": {"monday": {"open": "08:00", "close": "18:00"}}},
            headers=bearer(registered_owner["token"]),
        )
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["name"] == "Chez Marie & Fils"
        assert body["description"] == "Fresh bread"
        assert body["openingHours"]["monday"]["open"] == "08:00"
        assert body["slug"] == "chez-marie"

    def test_slug_is_not_editable(self, client, registered_owner):
        resp = client.put(
            f"/api/stores/{registered_owner['store']['id']}",
            json={"slug": "something-else"},
            headers=bearer(registered_owner["token"]),
        )
        assert resp.status_code == 400
        assert resp.get_json()["errors"][0]["param"] == "slug"
        assert client.get("/api/stores/slug/chez-marie").status_code == 200

    def test_non_owner_sees_not_found(self, client, registered_owner):
        rival = _register_other_owner(client)
        resp = client.put(
            f"/api/stores/{registered_owner['store']['id']}",
            json={"description": "hijacked"},
            headers=bearer(rival["token"]),
        )
        assert resp.status_code == 404
        assert resp.get_json()["code"] == "StoreNotFound"

    def test_requires_auth(self, client, registered_owner):
        resp = client.put(f"/api/stores/{registered_owner['store']['id']}", json={"description": "x"})
        assert resp.status_code == 401

    def test_holiday_toggle(self, client, registered_owner):
        url = f"/api/stores/{registered_owner['store']['id']}/holiday"
        headers = bearer(registered_owner["token"])

        on = client.put(url, json={"holidayMessage": "Back in September"}, headers=headers).get_json()
        assert on["isHoliday"] is True
        assert on["holidayMessage"] == "Back in September"

        off = client.put(url, json={"holidayMessage": "ignored"}, headers=headers).get_json()
        assert off["isHoliday"] is False
        assert off["holidayMessage"] is None

    def test_deactivate(self, client, registered_owner):
        store_id = registered_owner["store"]["id"]
        resp = client.delete(f"/api/stores/{store_id}", headers=bearer(registered_owner["token"]))
        assert resp.status_code == 200

        assert client.get(f"/api/stores/{store_id}").status_code == 404
        assert client.get("/api/stores").get_json() == []
        by_slug = client.get("/api/stores/slug/chez-marie").get_json()
        assert by_slug["isActive"] is False

    def test_deactivated_slug_stays_reserved(self, client, registered_owner):
        client.delete(f"/api/stores/{registered_owner['store']['id']}", headers=bearer(registered_owner["token"]))
        check = client.get("/api/auth/check-store-name", query_string={"storeName": "Chez Marie"}).get_json()
        assert check["available"] is False
