"""
API tests for bars, drinks, cache clearing and likes.

Services are wired to a fake Sheets client through dependency overrides
(see conftest.py), so the cache behavior is exercised end to end.
"""
from app.cache import InvalidationFailure

from tests.conftest import bar_row


# =============================================================================
# Bars
# =============================================================================

def test_bars_defaults_to_active(client):
    response = client.get("/bars")
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["count"] == 1
    assert [b["id"] for b in data["bars"]] == ["1"]


def test_bars_active_false_returns_all(client):
    data = client.get("/bars?active=false").json()
    assert data["count"] == 2
    assert {b["id"] for b in data["bars"]} == {"1", "2"}
    assert data["bars"][0]["address"]["city"] == "New York"


def test_bars_active_is_true_unless_literal_false(client):
    assert client.get("/bars?active=yes").json()["count"] == 1
    assert client.get("/bars?active=FALSE").json()["count"] == 1
    assert client.get("/bars?active=").json()["count"] == 1


def test_bars_upstream_failure_is_500(client, failing):
    response = client.get("/bars")
    assert response.status_code == 500
    data = response.json()
    assert data["success"] is False
    assert "503" in data["error"]


def test_bar_by_id(client):
    response = client.get("/bars/2")
    assert response.status_code == 200
    assert response.json()["bar"]["name"] == "B"


def test_bar_by_id_not_found(client):
    response = client.get("/bars/999")
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Bar not found"}


def test_bar_menu(client):
    response = client.get("/bars/1/menu")
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["bar"] == {"id": "1", "name": "A", "menu_sheet_id": "menu-1"}
    assert [d["id"] for d in data["drinks"]] == ["m1", "m2"]
    assert data["count"] == 2
    assert data["source"] == "live"

    assert client.get("/bars/1/menu").json()["source"] == "cache"


def test_bar_menu_category_filter(client):
    data = client.get("/bars/1/menu?category=Cocktail").json()
    assert [d["id"] for d in data["drinks"]] == ["m2"]


def test_bar_menu_missing_and_inactive_bars_are_404(client):
    response = client.get("/bars/999/menu")
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Bar not found"}

    response = client.get("/bars/2/menu")
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Bar is currently inactive"}


def test_bar_menu_unreadable_is_500(client, sheets):
    sheets.sheets["menu-1"] = {}
    response = client.get("/bars/1/menu")
    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Failed to load bar menu"}


def test_nearby_bars(client):
    response = client.post("/bars/nearby", json={"latitude": 40.71, "longitude": -74.0})
    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 1
    assert data["bars"][0]["id"] == "1"
    assert 0 < data["bars"][0]["distance_miles"] < 1

    data = client.post(
        "/bars/nearby", json={"latitude": 40.71, "longitude": -74.0, "active_only": False}
    ).json()
    assert data["count"] == 2


def test_nearby_bars_validation(client):
    assert client.post("/bars/nearby", json={}).status_code == 400
    assert client.post("/bars/nearby", json={"latitude": 95, "longitude": 0}).status_code == 400

    response = client.post(
        "/bars/nearby", json={"latitude": 40.7, "longitude": -74.0, "max_distance_miles": 500}
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid max_distance_miles: must be between 0 and 300"

    response = client.post("/bars/nearby", json={"latitude": 40.7, "longitude": -74.0, "limit": 0})
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid limit: must be between 1 and 100"


# =============================================================================
# Drinks
# =============================================================================

def test_drinks_lists_available(client):
    data = client.get("/drinks").json()
    assert data["total"] == 2
    assert [d["id"] for d in data["drinks"]] == ["d1", "d2"]


def test_drinks_filters(client):
    data = client.get("/drinks?flavors=bitter").json()
    assert [d["id"] for d in data["drinks"]] == ["d1"]

    data = client.get("/drinks?category=beer&occasions=sports").json()
    assert [d["id"] for d in data["drinks"]] == ["d2"]

    data = client.get("/drinks?search=vermouth").json()
    assert [d["id"] for d in data["drinks"]] == ["d1"]


def test_drink_by_id(client):
    assert client.get("/drinks?id=d2").json()["name"] == "Pilsner"
    response = client.get("/drinks?id=missing")
    assert response.status_code == 404
    assert response.json() == {"error": "Drink not found"}


def test_drinks_for_bar_use_its_menu(client):
    data = client.get("/drinks?bar_id=1").json()
    assert [d["id"] for d in data["drinks"]] == ["m1", "m2"]
    assert data["total"] == 2

    data = client.get("/drinks?bar_id=1&category=beer").json()
    assert [d["id"] for d in data["drinks"]] == ["m1"]

    data = client.get("/drinks?bar_id=1&strength=strong").json()
    assert [d["id"] for d in data["drinks"]] == ["m2"]


def test_drinks_for_unavailable_bar_is_404(client):
    response = client.get("/drinks?bar_id=999")
    assert response.status_code == 404
    assert response.json() == {"error": "Bar not found"}

    response = client.get("/drinks?bar_id=2")
    assert response.status_code == 404
    assert response.json() == {"error": "Bar is currently inactive"}


def test_drinks_for_bar_menu_failure_is_500(client, sheets):
    sheets.sheets["menu-1"] = {}
    response = client.get("/drinks?bar_id=1")
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to load bar menu"}


def test_drinks_category_queries_do_not_grow_the_cache(client, manager):
    for i in range(50):
        assert client.get(f"/drinks?category=junk-{i}").json()["total"] == 0
    assert set(manager.keys()) == {"drinks:all", "drinks:active"}


def test_drinks_upstream_failure_is_500(client, failing):
    response = client.get("/drinks")
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to fetch drinks"}


# =============================================================================
# Cache clearing
# =============================================================================

def test_clear_cache_forces_refetch(client, sheets):
    assert client.get("/bars?active=false").json()["count"] == 2
    sheets.sheets["bars-sheet"].append(bar_row("3", "C"))

    # Still served from cache
    assert client.get("/bars?active=false").json()["count"] == 2

    response = client.post("/admin/clear-cache")
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["message"] == "Cache cleared successfully"
    assert data["timestamp"].endswith("Z")

    assert client.get("/bars?active=false").json()["count"] == 3


def test_clear_cache_clears_drinks_too(client, manager):
    client.get("/bars")
    client.get("/drinks")
    assert manager.keys()

    client.post("/admin/clear-cache")
    assert manager.keys() == ()


def test_clear_cache_when_empty_succeeds(client):
    response = client.post("/admin/clear-cache")
    assert response.status_code == 200
    assert response.json()["success"] is True


def test_clear_cache_requires_secret_when_configured(client, manager, test_settings):
    test_settings.sheets_webhook_secret = "s3cret"
    client.get("/bars")
    keys_before = manager.keys()

    assert client.post("/admin/clear-cache").status_code == 401
    response = client.post("/admin/clear-cache", headers={"Authorization": "Bearer wrong"})
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}
    assert manager.keys() == keys_before

    response = client.post("/admin/clear-cache", headers={"Authorization": "Bearer s3cret"})
    assert response.status_code == 200
    assert manager.keys() == ()


def test_clear_cache_failure_is_500(client, manager, monkeypatch):
    def broken_clear(prefix=None):
        raise InvalidationFailure("store unreachable")

    monkeypatch.setattr(manager, "clear", broken_clear)
    response = client.post("/admin/clear-cache")
    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error", "message": "store unreachable"}


# =============================================================================
# Likes
# =============================================================================

def test_like_toggle_roundtrip(client):
    response = client.post("/likes", json={"drinkId": "d1", "sessionId": "s1"})
    assert response.status_code == 200
    assert response.json() == {"success": True, "likeCount": 1, "liked": True}

    status = client.get("/likes?drinkId=d1&sessionId=s1").json()
    assert status == {"drinkId": "d1", "likeCount": 1, "liked": True}

    assert client.get("/likes?sessionId=s1").json() == {"likedDrinks": ["d1"]}

    response = client.post("/likes", json={"drinkId": "d1", "sessionId": "s1"})
    assert response.json() == {"success": True, "likeCount": 0, "liked": False}


def test_like_missing_fields_is_400(client):
    response = client.post("/likes", json={"drinkId": "d1"})
    assert response.status_code == 400
    assert response.json() == {"error": "Missing drinkId or sessionId"}


def test_likes_get_without_params_is_400(client):
    response = client.get("/likes")
    assert response.status_code == 400
    assert response.json() == {"error": "Missing required parameters"}


def test_cache_stats(client):
    client.get("/bars")
    data = client.get("/cache/stats").json()
    assert data["cache"]["entries"] == 2
    assert data["bars"]["cached"] is True
    assert data["bars"]["count"] == 2
    assert data["drinks"]["cached"] is False
