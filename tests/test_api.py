import json
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from conftest import SUPER_ADMIN_EMAIL, auth_headers, make_token

from storefront.dependencies import get_authorizer
from storefront.services.tenancy import TENANT_COOKIE

MADRID = ZoneInfo("Europe/Madrid")


def tomorrow() -> str:
    return (datetime.now(MADRID).date() + timedelta(days=1)).isoformat()


def order_payload(product_id: int, pickup_time: str = "12:00", **overrides) -> dict:
    payload = {
        "customer": {"name": "Lucía García", "phone": "+34 600 123 456", "email": "lucia@example.com"},
        "items": [{"product_id": product_id, "quantity": 2}],
        "pickup_date": tomorrow(),
        "pickup_time": pickup_time,
        "payment_method": "cash",
    }
    payload.update(overrides)
    return payload


# =============================================================================
# HEALTH & IDENTITY
# =============================================================================

def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["database"] == "healthy"
    assert data["payment_service"] == "healthy"


def test_whoami(client):
    assert client.get("/api/whoami").json() == {"ok": False, "user_id": None, "email": None}

    response = client.get("/api/whoami", headers=auth_headers("user-1", "Someone@Example.com"))
    assert response.json() == {"ok": True, "user_id": "user-1", "email": "someone@example.com"}


def test_whoami_reads_session_cookie(client):
    client.cookies.set("sb-access-token", make_token("user-2", "two@example.com"))
    assert client.get("/api/whoami").json()["user_id"] == "user-2"


# =============================================================================
# TENANT RESOLUTION
# =============================================================================

def test_missing_tenant(client):
    client.cookies.clear()
    response = client.get("/api/slots")
    assert response.status_code == 400
    assert response.json()["detail"] == "Missing tenant"


def test_unknown_business(client):
    response = client.get("/api/slots", params={"tenant": "no-such-place"})
    assert response.status_code == 404


def test_tenant_cookie_is_set_and_reused(client, seed):
    business = seed.business()

    first = client.get("/api/settings/schedule", params={"tenant": business.slug})
    assert first.cookies.get(TENANT_COOKIE) == business.slug

    second = client.get("/api/slots", params={"date": tomorrow()})
    assert second.status_code == 200
    assert TENANT_COOKIE not in second.cookies


def test_service_paths_do_not_pick_a_tenant(client):
    client.cookies.clear()

    for path in ("/health", "/favicon.ico", "/docs", "/redoc", "/openapi.json"):
        response = client.get(path)
        assert TENANT_COOKIE not in response.cookies, path
    assert client.cookies.get(TENANT_COOKIE) is None

    response = client.get("/api/products")
    assert response.status_code == 400
    assert response.json()["detail"] == "Missing tenant"


def test_schedule_without_tenant_is_null(client):
    client.cookies.clear()
    assert client.get("/api/settings/schedule").json() == {"ok": True, "data": None}


def test_schedule_falls_back_to_default_hours(client, seed):
    business = seed.business(ordering_hours=None, opening_hours=None)
    data = client.get("/api/settings/schedule", params={"tenant": business.slug}).json()["data"]
    assert data["1"] == [{"start": "12:00", "end": "16:00"}, {"start": "20:00", "end": "23:00"}]


# =============================================================================
# SLOTS
# =============================================================================

def test_slots_for_future_date(client, seed):
    business = seed.business()

    response = client.get("/api/slots", params={"tenant": business.slug, "date": tomorrow()})

    assert response.status_code == 200
    data = response.json()
    assert data["timezone"] == "Europe/Madrid"
    assert data["slots"][0] == "00:00"
    assert data["slots"][-1] == "23:50"
    assert len(data["slots"]) == 287


def test_slots_bad_date(client, seed):
    business = seed.business()
    response = client.get("/api/slots", params={"tenant": business.slug, "date": "22/09/2025"})
    assert response.status_code == 400


# =============================================================================
# MENU & ORDERS
# =============================================================================

def test_menu_lists_available_products(client, seed):
    business = seed.business()
    seed.product(business.id, "Margherita", 1000)
    seed.product(business.id, "Hidden", 500, available=False)

    data = client.get("/api/products", params={"tenant": business.slug}).json()

    names = [p["name"] for c in data["categories"] for p in c["products"]]
    assert names == ["Margherita"]


def test_order_rejects_unavailable_slot(client, seed):
    business = seed.business()
    product_id = seed.product(business.id)

    response = client.post(
        "/api/orders",
        params={"tenant": business.slug},
        json=order_payload(product_id, pickup_time="12:03"),
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Pickup time is not available"


def test_order_rejects_past_pickup_date(client, seed):
    business = seed.business()
    product_id = seed.product(business.id)
    last_month = (datetime.now(MADRID).date() - timedelta(days=30)).isoformat()

    response = client.post(
        "/api/orders",
        params={"tenant": business.slug},
        json=order_payload(product_id, pickup_time="13:00", pickup_date=last_month),
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Pickup date is in the past"


def test_order_rejects_unknown_product(client, seed):
    business = seed.business()
    response = client.post("/api/orders", params={"tenant": business.slug}, json=order_payload(999999))
    assert response.status_code == 400


def test_cash_order_is_repriced_with_best_promotion(client, seed):
    business = seed.business()
    product_id = seed.product(business.id, price_cents=1000)
    seed.promotion(business.id, type="percent", value=10, scope="order")

    response = client.post("/api/orders", params={"tenant": business.slug}, json=order_payload(product_id))

    assert response.status_code == 200
    data = response.json()
    assert data["subtotal_cents"] == 2000
    assert data["discount_cents"] == 200
    assert data["total_cents"] == 1800
    assert data["client_secret"] is None
    assert data["order_id"].startswith(data["code"])

    order = client.get(f"/api/orders/{data['order_id']}", params={"tenant": business.slug}).json()
    assert order["status"] == "pending"
    assert order["payment_status"] == "unpaid"
    assert order["items"][0]["line_total_cents"] == 2000


def test_order_is_scoped_to_its_business(client, seed):
    business = seed.business()
    other = seed.business()
    product_id = seed.product(business.id)

    order_id = client.post(
        "/api/orders", params={"tenant": business.slug}, json=order_payload(product_id)
    ).json()["order_id"]

    assert client.get(f"/api/orders/{order_id}", params={"tenant": other.slug}).status_code == 404


def test_card_order_requires_card_payments(client, seed):
    business = seed.business()
    product_id = seed.product(business.id)

    response = client.post(
        "/api/orders",
        params={"tenant": business.slug},
        json=order_payload(product_id, payment_method="card"),
    )
    assert response.status_code == 400


def test_card_order_paid_through_webhook(client, seed):
    business = seed.business(card_payments_enabled=True)
    product_id = seed.product(business.id, price_cents=1250)

    created = client.post(
        "/api/orders",
        params={"tenant": business.slug},
        json=order_payload(product_id, payment_method="card"),
    ).json()
    assert created["client_secret"].startswith("pi_mock_")
    intent_id = created["client_secret"].split("_secret_")[0]

    event = {"type": "payment_intent.succeeded", "data": {"object": {"id": intent_id}}}
    response = client.post("/api/stripe/webhook", content=json.dumps(event))
    assert response.status_code == 200

    order = client.get(f"/api/orders/{created['order_id']}", params={"tenant": business.slug}).json()
    assert order["payment_status"] == "paid"
    assert order["status"] == "confirmed"


def test_webhook_rejects_garbage(client):
    assert client.post("/api/stripe/webhook", content=b"not json").status_code == 400


# =============================================================================
# ADMIN ACCESS
# =============================================================================

def test_admin_requires_authentication(client, seed):
    business = seed.business()
    response = client.get("/api/admin/access", params={"tenant": business.slug})
    assert response.status_code == 401


def test_admin_rejects_bad_token(client, seed):
    business = seed.business()
    token = make_token("user-1", "x@example.com", secret="wrong-secret")
    response = client.get(
        "/api/admin/access",
        params={"tenant": business.slug},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 401


def test_admin_denies_non_member(client, seed):
    business = seed.business()
    response = client.get(
        "/api/admin/access",
        params={"tenant": business.slug},
        headers=auth_headers("stranger", "stranger@example.com"),
    )
    assert response.status_code == 403


def test_admin_allows_member_and_logs_access(client, seed):
    business = seed.business()
    seed.member(business.id, "owner-1", email="owner@pizza.es", role="owner")
    headers = auth_headers("owner-1", "owner@pizza.es")

    response = client.get("/api/admin/access", params={"tenant": business.slug}, headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["allowed"] is True
    assert data["role"] == "owner"
    assert data["business_id"] == business.id

    client.portal.call(get_authorizer().drain)

    logs = client.get("/api/admin/member-access-logs", params={"tenant": business.slug}, headers=headers).json()
    assert [(log["user_id"], log["email"]) for log in logs][0] == ("owner-1", "owner@pizza.es")


def test_super_admin_without_tenant(client):
    client.cookies.clear()
    headers = auth_headers("root-1", SUPER_ADMIN_EMAIL)

    access = client.get("/api/admin/access", headers=headers)
    assert access.status_code == 200
    assert access.json()["is_super_admin"] is True

    products = client.get("/api/admin/products", headers=headers)
    assert products.status_code == 400


# =============================================================================
# ADMIN MANAGEMENT
# =============================================================================

def test_admin_schedule_update_normalizes(client, seed):
    business = seed.business()
    headers = auth_headers("root-1", SUPER_ADMIN_EMAIL)

    response = client.put(
        "/api/admin/settings/schedule",
        params={"tenant": business.slug},
        headers=headers,
        json={"ordering_hours": {"2": [
            {"start": "14:00", "end": "16:00"},
            {"start": "12:00", "end": "15:00"},
        ]}},
    )

    assert response.status_code == 200
    assert response.json()["data"] == {"2": [{"start": "12:00", "end": "16:00"}]}


def test_admin_schedule_update_rejects_malformed(client, seed):
    business = seed.business()
    response = client.put(
        "/api/admin/settings/schedule",
        params={"tenant": business.slug},
        headers=auth_headers("root-1", SUPER_ADMIN_EMAIL),
        json={"ordering_hours": {"9": [{"start": "12:00", "end": "16:00"}]}},
    )
    assert response.status_code == 400


def test_admin_payment_settings(client, seed):
    business = seed.business()
    headers = auth_headers("root-1", SUPER_ADMIN_EMAIL)
    params = {"tenant": business.slug}

    bad = client.put("/api/admin/settings/payments", params=params, headers=headers,
                     json={"card_enabled": False, "cash_enabled": False})
    assert bad.status_code == 422

    ok = client.put("/api/admin/settings/payments", params=params, headers=headers,
                    json={"card_enabled": True, "cash_enabled": False})
    assert ok.status_code == 200
    assert client.get("/api/admin/settings/payments", params=params, headers=headers).json() == {
        "card_enabled": True,
        "cash_enabled": False,
    }


def test_admin_members_crud(client, seed):
    business = seed.business()
    headers = auth_headers("root-1", SUPER_ADMIN_EMAIL)
    params = {"tenant": business.slug}

    created = client.post("/api/admin/members", params=params, headers=headers,
                          json={"user_id": "u-9", "email": "Nine@Pizza.es", "role": "wizard"})
    assert created.status_code == 200
    assert created.json()["role"] == "staff"
    assert created.json()["email"] == "nine@pizza.es"

    client.post("/api/admin/members", params=params, headers=headers,
                json={"user_id": "u-9", "role": "manager"})
    members = client.get("/api/admin/members", params=params, headers=headers).json()
    assert [(m["user_id"], m["role"]) for m in members] == [("u-9", "manager")]

    assert client.delete("/api/admin/members/u-9", params=params, headers=headers).status_code == 200
    assert client.delete("/api/admin/members/u-9", params=params, headers=headers).status_code == 404


def test_admin_products_and_order_status(client, seed):
    business = seed.business()
    headers = auth_headers("root-1", SUPER_ADMIN_EMAIL)
    params = {"tenant": business.slug}

    product = client.post("/api/admin/products", params=params, headers=headers,
                          json={"name": "Calzone", "price_cents": 1150}).json()
    updated = client.patch(f"/api/admin/products/{product['id']}", params=params, headers=headers,
                           json={"price_cents": 1200})
    assert updated.json()["price_cents"] == 1200

    order_id = client.post("/api/orders", params=params, json=order_payload(product["id"])).json()["order_id"]

    listed = client.get("/api/admin/orders", params={**params, "status": "pending"}, headers=headers).json()
    assert listed["total"] == 1

    response = client.post("/api/admin/orders/status", params=params, headers=headers,
                           json={"id": order_id, "status": "ready"})
    assert response.status_code == 200
    assert response.json()["status"] == "ready"


def test_admin_promotions(client, seed):
    business = seed.business()
    headers = auth_headers("root-1", SUPER_ADMIN_EMAIL)
    params = {"tenant": business.slug}

    invalid = client.post("/api/admin/promotions", params=params, headers=headers,
                          json={"name": "Too much", "type": "percent", "value": 150})
    assert invalid.status_code == 422

    promo = client.post("/api/admin/promotions", params=params, headers=headers,
                        json={"name": "Lunes", "type": "percent", "value": 15, "weekdays": [1]}).json()

    patched = client.patch(f"/api/admin/promotions/{promo['id']}", params=params, headers=headers,
                           json={"active": False})
    assert patched.json()["active"] is False

    assert client.get("/api/promotions", params=params).json() == []


def test_admin_categories_group_the_menu(client, seed):
    business = seed.business()
    other = seed.business()
    headers = auth_headers("root-1", SUPER_ADMIN_EMAIL)
    params = {"tenant": business.slug}

    pizzas = client.post("/api/admin/categories", params=params, headers=headers,
                         json={"name": " Pizzas ", "sort_order": 1})
    assert pizzas.status_code == 201
    pizzas = pizzas.json()
    assert pizzas["name"] == "Pizzas"

    drinks = client.post("/api/admin/categories", params=params, headers=headers,
                         json={"name": "Bebidas", "sort_order": 2}).json()

    duplicate = client.post("/api/admin/categories", params=params, headers=headers, json={"name": "Pizzas"})
    assert duplicate.status_code == 409
    renamed_clash = client.patch(f"/api/admin/categories/{drinks['id']}", params=params, headers=headers,
                                 json={"name": "Pizzas"})
    assert renamed_clash.status_code == 409

    foreign = client.post("/api/admin/categories", params={"tenant": other.slug}, headers=headers,
                          json={"name": "Postres"}).json()
    rejected = client.post("/api/admin/products", params=params, headers=headers,
                           json={"name": "Tiramisú", "price_cents": 550, "category_id": foreign["id"]})
    assert rejected.status_code == 400

    client.post("/api/admin/products", params=params, headers=headers,
                json={"name": "Agua", "price_cents": 150, "category_id": drinks["id"]})
    client.post("/api/admin/products", params=params, headers=headers,
                json={"name": "Diavola", "price_cents": 1100, "category_id": pizzas["id"]})

    listed = client.get("/api/admin/categories", params=params, headers=headers).json()
    assert [c["name"] for c in listed] == ["Pizzas", "Bebidas"]

    menu = client.get("/api/products", params=params).json()["categories"]
    assert [(c["name"], [p["name"] for p in c["products"]]) for c in menu] == [
        ("Pizzas", ["Diavola"]),
        ("Bebidas", ["Agua"]),
    ]

    deleted = client.delete(f"/api/admin/categories/{drinks['id']}", params=params, headers=headers)
    assert deleted.status_code == 200
    missing = client.delete(f"/api/admin/categories/{drinks['id']}", params=params, headers=headers)
    assert missing.status_code == 404

    menu = client.get("/api/products", params=params).json()["categories"]
    assert [c["name"] for c in menu] == ["Pizzas", "Otros"]
