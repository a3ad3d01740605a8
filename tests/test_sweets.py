# tests/test_sweets.py
from __future__ import annotations

import uuid
from typing import Any, Dict, List

import httpx
import pytest
from fastapi.testclient import TestClient

SEEDED_NAMES = ["Chocolate Bar", "Gulab Jamun", "Ladoo", "Rasgulla"]


# --- Utilitare ----------------------------------------------------------------
def _dump_response(r: httpx.Response) -> str:
    """Returnează un diagnostic compact despre răspunsul HTTP."""
    try:
        j = r.json()
    except Exception:
        j = None
    snippet = r.text[:500].replace("\n", "\\n")
    return f"status={r.status_code} url={r.request.method} {r.request.url} json={j!r} text='{snippet}...'"


def _assert_status(r: httpx.Response, expected: int | tuple[int, ...]):
    if isinstance(expected, int):
        ok = r.status_code == expected
        exp_str = str(expected)
    else:
        ok = r.status_code in expected
        exp_str = "|".join(map(str, expected))
    assert ok, f"expected {exp_str} but got: {_dump_response(r)}"


def _bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _names(items: List[Dict[str, Any]]) -> List[str]:
    return [it["name"] for it in items]


def _id_by_name(c: TestClient, name: str) -> int:
    r = c.get("/sweets")
    _assert_status(r, 200)
    for it in r.json():
        if it["name"] == name:
            return it["id"]
    raise AssertionError(f"sweet {name!r} not found in list")


def _id_by_name_with(c: TestClient, token: str, name: str) -> int:
    r = c.get("/sweets", headers=_bearer(token))
    _assert_status(r, 200)
    return next(it["id"] for it in r.json() if it["name"] == name)


def create_sweet(c: TestClient, **overrides: Any) -> Dict[str, Any]:
    payload = {
        "name": f"Sweet_{uuid.uuid4().hex[:8]}",
        "category": "Test",
        "price": "12.50",
        "quantity": 5,
    }
    payload.update(overrides)
    r = c.post("/sweets", json=payload)
    _assert_status(r, 201)
    return r.json()


# --- Listare & citire ---------------------------------------------------------
@pytest.mark.timeout(10)
def test_list_requires_login(client: TestClient):
    r = client.get("/sweets")
    _assert_status(r, 401)
    assert r.headers.get("WWW-Authenticate") == "Bearer"


@pytest.mark.timeout(10)
def test_list_seeded_sorted_by_name(user_client: TestClient):
    r = user_client.get("/sweets")
    _assert_status(r, 200)
    items = r.json()
    assert _names(items) == SEEDED_NAMES
    assert r.headers.get("X-Total-Count") == str(len(SEEDED_NAMES))

    gulab = items[1]
    assert gulab["category"] == "Traditional"
    assert gulab["price"] == "50.00"
    assert gulab["quantity"] == 100
    assert {"id", "createdAt", "updatedAt"} <= gulab.keys()


@pytest.mark.timeout(10)
def test_get_by_id_and_missing(user_client: TestClient):
    sweet_id = _id_by_name(user_client, "Ladoo")
    r = user_client.get(f"/sweets/{sweet_id}")
    _assert_status(r, 200)
    assert r.json()["name"] == "Ladoo"

    r = user_client.get("/sweets/999999")
    _assert_status(r, 404)
    assert r.json()["detail"] == "Sweet not found"


@pytest.mark.timeout(10)
@pytest.mark.parametrize("bad_id", ["0", "-3", "abc"])
def test_get_invalid_id_is_400(user_client: TestClient, bad_id: str):
    _assert_status(user_client.get(f"/sweets/{bad_id}"), 400)


# --- Căutare ------------------------------------------------------------------
@pytest.mark.timeout(10)
def test_search_price_range_inclusive(user_client: TestClient):
    r = user_client.get("/sweets/search", params={"minPrice": 40, "maxPrice": 50})
    _assert_status(r, 200)
    assert _names(r.json()) == ["Gulab Jamun", "Ladoo", "Rasgulla"]
    assert r.headers.get("X-Total-Count") == "3"


@pytest.mark.timeout(10)
def test_search_name_is_case_insensitive_substring(user_client: TestClient):
    r = user_client.get("/sweets/search", params={"search": "CHOC"})
    _assert_status(r, 200)
    assert _names(r.json()) == ["Chocolate Bar"]

    r = user_client.get("/sweets/search", params={"search": "a"})
    _assert_status(r, 200)
    assert _names(r.json()) == ["Chocolate Bar", "Gulab Jamun", "Ladoo", "Rasgulla"]


@pytest.mark.timeout(10)
def test_search_filters_combine(user_client: TestClient):
    r = user_client.get("/sweets/search", params={"category": "Traditional", "maxPrice": "45"})
    _assert_status(r, 200)
    assert _names(r.json()) == ["Ladoo", "Rasgulla"]

    r = user_client.get("/sweets/search", params={"category": "Modern", "search": "jamun"})
    _assert_status(r, 200)
    assert r.json() == []


@pytest.mark.timeout(10)
def test_search_treats_like_wildcards_literally(admin_client: TestClient):
    create_sweet(admin_client, name="100% Cocoa")
    create_sweet(admin_client, name="Kaju_Katli")

    r = admin_client.get("/sweets/search", params={"search": "%"})
    _assert_status(r, 200)
    assert _names(r.json()) == ["100% Cocoa"]

    r = admin_client.get("/sweets/search", params={"search": "_"})
    _assert_status(r, 200)
    assert _names(r.json()) == ["Kaju_Katli"]

    r = admin_client.get("/sweets/search", params={"search": "l_d"})
    _assert_status(r, 200)
    assert r.json() == []


@pytest.mark.timeout(10)
def test_search_without_filters_returns_everything(user_client: TestClient):
    r = user_client.get("/sweets/search")
    _assert_status(r, 200)
    assert _names(r.json()) == SEEDED_NAMES


@pytest.mark.timeout(10)
@pytest.mark.parametrize(
    "params",
    [{"minPrice": 60, "maxPrice": 10}, {"minPrice": -1}, {"maxPrice": "cheap"}],
)
def test_search_bad_price_filters_are_400(user_client: TestClient, params):
    _assert_status(user_client.get("/sweets/search", params=params), 400)


# --- Create -------------------------------------------------------------------
@pytest.mark.timeout(10)
def test_admin_creates_sweet_with_trimmed_fields(admin_client: TestClient):
    r = admin_client.post(
        "/sweets",
        json={"name": "  Kaju Katli ", "category": " Traditional ", "price": "60.5", "quantity": 10},
    )
    _assert_status(r, 201)
    body = r.json()
    assert body["name"] == "Kaju Katli"
    assert body["category"] == "Traditional"
    assert body["price"] == "60.50"
    assert body["quantity"] == 10

    r = admin_client.get(f"/sweets/{body['id']}")
    _assert_status(r, 200)
    assert r.json()["name"] == "Kaju Katli"


@pytest.mark.timeout(10)
def test_create_accepts_numeric_price_and_zero_stock(admin_client: TestClient):
    body = create_sweet(admin_client, price=0, quantity=0)
    assert body["price"] == "0.00"
    assert body["quantity"] == 0


@pytest.mark.timeout(10)
def test_create_requires_admin(client: TestClient, user_token: str):
    payload = {"name": "Peda", "category": "Traditional", "price": 20, "quantity": 3}

    _assert_status(client.post("/sweets", json=payload), 401)

    r = client.post("/sweets", json=payload, headers=_bearer(user_token))
    _assert_status(r, 403)
    assert r.json()["detail"] == "Admin access required"


@pytest.mark.timeout(10)
@pytest.mark.parametrize(
    "overrides",
    [
        {"name": "   "},
        {"category": ""},
        {"price": -1},
        {"price": "abc"},
        {"price": "NaN"},
        {"quantity": -1},
        {"quantity": 1.5},
        {"name": None},
    ],
)
def test_create_invalid_payload_is_400(admin_client: TestClient, overrides):
    payload = {"name": "Barfi", "category": "Traditional", "price": "25", "quantity": 4}
    payload.update(overrides)
    r = admin_client.post("/sweets", json=payload)
    _assert_status(r, 400)
    assert isinstance(r.json()["detail"], str)


@pytest.mark.timeout(10)
def test_create_missing_field_is_400(admin_client: TestClient):
    r = admin_client.post("/sweets", json={"name": "Barfi", "category": "Traditional", "price": "25"})
    _assert_status(r, 400)
    assert "quantity" in r.json()["detail"]


# --- Update -------------------------------------------------------------------
@pytest.mark.timeout(10)
def test_partial_update_keeps_other_fields(admin_client: TestClient):
    created = create_sweet(admin_client, name="Jalebi", category="Fried", price="15", quantity=7)

    r = admin_client.put(f"/sweets/{created['id']}", json={"price": 18.25})
    _assert_status(r, 200)
    body = r.json()
    assert body["price"] == "18.25"
    assert body["name"] == "Jalebi"
    assert body["category"] == "Fried"
    assert body["quantity"] == 7
    assert body["createdAt"] == created["createdAt"]
    assert body["updatedAt"]


@pytest.mark.timeout(10)
def test_update_trims_and_null_means_not_supplied(admin_client: TestClient):
    created = create_sweet(admin_client, category="Fried")
    r = admin_client.put(f"/sweets/{created['id']}", json={"name": "  Imarti  ", "category": None})
    _assert_status(r, 200)
    assert r.json()["name"] == "Imarti"
    assert r.json()["category"] == "Fried"


@pytest.mark.timeout(10)
@pytest.mark.parametrize("payload", [{}, {"name": None}, {"price": None, "quantity": None}])
def test_update_without_fields_is_400(admin_client: TestClient, payload):
    created = create_sweet(admin_client)
    r = admin_client.put(f"/sweets/{created['id']}", json=payload)
    _assert_status(r, 400)
    assert "No fields to update" in r.json()["detail"]


@pytest.mark.timeout(10)
@pytest.mark.parametrize("payload", [{"price": -5}, {"quantity": -1}, {"name": "  "}])
def test_update_invalid_values_are_400(admin_client: TestClient, payload):
    created = create_sweet(admin_client)
    _assert_status(admin_client.put(f"/sweets/{created['id']}", json=payload), 400)
    r = admin_client.get(f"/sweets/{created['id']}")
    assert r.json()["price"] == created["price"]
    assert r.json()["quantity"] == created["quantity"]


@pytest.mark.timeout(10)
def test_update_missing_is_404_and_requires_admin(client: TestClient, admin_token: str, user_token: str):
    r = client.put("/sweets/999999", json={"price": 1}, headers=_bearer(admin_token))
    _assert_status(r, 404)

    sweet_id = _id_by_name_with(client, admin_token, "Ladoo")
    r = client.put(f"/sweets/{sweet_id}", json={"price": 1}, headers=_bearer(user_token))
    _assert_status(r, 403)


# --- Delete -------------------------------------------------------------------
@pytest.mark.timeout(10)
def test_delete_then_get_is_404(admin_client: TestClient):
    created = create_sweet(admin_client)

    r = admin_client.delete(f"/sweets/{created['id']}")
    _assert_status(r, 200)
    assert r.json() == {"message": "Sweet deleted successfully"}

    _assert_status(admin_client.get(f"/sweets/{created['id']}"), 404)
    _assert_status(admin_client.delete(f"/sweets/{created['id']}"), 404)


@pytest.mark.timeout(10)
def test_delete_missing_is_404(admin_client: TestClient):
    r = admin_client.delete("/sweets/999999")
    _assert_status(r, 404)
    assert r.json()["detail"] == "Sweet not found"


@pytest.mark.timeout(10)
def test_delete_requires_admin(client: TestClient, admin_token: str, user_token: str):
    sweet_id = _id_by_name_with(client, admin_token, "Rasgulla")
    _assert_status(client.delete(f"/sweets/{sweet_id}", headers=_bearer(user_token)), 403)
    _assert_status(client.get(f"/sweets/{sweet_id}", headers=_bearer(user_token)), 200)
