import pytest

from supplychain.core.security import SecurityManager


@pytest.mark.asyncio
async def test_health_endpoint(client):
    """Test health check endpoint"""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "OK"


@pytest.mark.asyncio
async def test_register_and_login(client, sample_user_data):
    """Регистрация пользователя и логин"""
    response = await client.post("/api/register", json=sample_user_data)
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["role"] == "user"
    assert "password" not in data

    response = await client.post("/api/login", json={
        "email": sample_user_data["email"],
        "password": sample_user_data["password"],
    })
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    payload = SecurityManager.verify_token(body["token"])
    assert payload["role"] == "user"
    assert payload["email"] == sample_user_data["email"]


@pytest.mark.asyncio
async def test_register_with_admin_key(client, sample_user_data):
    response = await client.post("/api/register", json={**sample_user_data, "key": "test-admin-key"})
    assert response.status_code == 201
    assert response.json()["data"]["role"] == "admin"

    response = await client.post("/api/login", json={
        "email": sample_user_data["email"],
        "password": sample_user_data["password"],
    })
    assert SecurityManager.verify_token(response.json()["token"])["role"] == "admin"


@pytest.mark.asyncio
async def test_create_duplicate_user(client, sample_user_data):
    """Создание дублирующего пользователя"""
    await client.post("/api/register", json=sample_user_data)

    response = await client.post("/api/register", json=sample_user_data)
    assert response.status_code == 409
    assert response.json() == {"success": False, "error": "user already exists"}


@pytest.mark.asyncio
async def test_register_short_password(client, sample_user_data):
    response = await client.post("/api/register", json={**sample_user_data, "password": "abc"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_login_wrong_password(client, sample_user_data):
    """Логин с неверным паролем"""
    await client.post("/api/register", json=sample_user_data)

    response = await client.post("/api/login", json={
        "email": sample_user_data["email"],
        "password": "WrongPassword123!",
    })
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_unknown_user(client):
    response = await client.post("/api/login", json={"email": "nobody@example.com", "password": "whatever"})
    assert response.status_code == 404
    assert response.json()["error"] == "User not found"


@pytest.mark.asyncio
async def test_products(client, user_headers):
    payload = {"name": "Milk", "category": "Food", "price": 1.5, "min_stock_level": 10}

    response = await client.post("/api/product", json=payload)
    assert response.status_code == 401

    response = await client.post("/api/product", json=payload, headers=user_headers)
    assert response.status_code == 201
    product_id = response.json()["data"]["id"]

    response = await client.get("/api/product")
    assert [p["id"] for p in response.json()["data"]] == [product_id]

    response = await client.get(f"/api/product/{product_id}")
    assert response.json()["data"]["name"] == "Milk"

    response = await client.get("/api/product/missing")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_orders(client, user_headers, other_user_headers, admin_headers):
    """Заказы: создаёт только user, чужой заказ не виден"""
    order = {
        "products": [{"product_id": "SKU001", "quantity": 2, "price": 9.5}],
        "delivery_address": {"lat": 28.6, "lng": 77.2, "address": "Main st 1"},
    }

    response = await client.post("/api/orders", json=order, headers=admin_headers)
    assert response.status_code == 403

    response = await client.post("/api/orders", json=order, headers=user_headers)
    assert response.status_code == 201
    order_id = response.json()["data"]["id"]

    response = await client.get(f"/api/orders/{order_id}", headers=other_user_headers)
    assert response.status_code == 403
    assert response.json()["error"] == "Unauthorized"

    response = await client.get("/api/orders", headers=other_user_headers)
    assert response.json()["data"] == []

    response = await client.get("/api/orders", headers=admin_headers)
    assert len(response.json()["data"]) == 1


@pytest.mark.asyncio
async def test_admin_routes_guarded(client, user_headers):
    response = await client.get("/api/inventory", headers=user_headers)
    assert response.status_code == 403
    assert response.json()["error"] == "Admin access only"

    response = await client.get("/api/inventory", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 403

    response = await client.get("/api/inventory")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_seed_and_tracking(client, admin_headers):
    """Сид демо-данных и чтение журналов"""
    response = await client.post("/api/simulation/seed", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["data"]["sales_data"] == 20

    inventory = (await client.get("/api/inventory", headers=admin_headers)).json()["data"]
    assert len(inventory) == 10

    deliveries = (await client.get("/api/delivery", headers=admin_headers)).json()["data"]
    assert len(deliveries) == 3

    response = await client.get("/api/delivery/ORDER001", headers=admin_headers)
    assert response.json()["data"]["order_id"] == "ORDER001"

    response = await client.get("/api/delivery/ORDER999", headers=admin_headers)
    assert response.status_code == 404

    sales = (await client.get("/api/analytics/sales?days=7", headers=admin_headers)).json()["data"]
    assert len(sales) == 20


@pytest.mark.asyncio
async def test_comprehensive_without_ai_uses_fallback(client, admin_headers):
    """Ключа модели нет -> статистический ответ той же формы"""
    body = {
        "sales": [{"date": f"2024-12-0{i + 1}T00:00:00Z", "quantity": q} for i, q in enumerate([10, 10, 10, 10, 20, 20, 20])],
        "inventory": [{"product_id": "SKU001", "current_stock": 1000, "reorder_level": 2000}],
    }

    response = await client.post("/api/analytics/comprehensive", json=body, headers=admin_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["stock_levels"]["status"] == "low"
    assert data["sales_volume"]["trend"] == "increasing"
    assert data["sales_quantity"]["prediction"] == 100
    assert data["accuracy"] == {"sales_model": 85, "inventory_model": 82, "overall_accuracy": 84}


@pytest.mark.asyncio
async def test_analytics_from_stored_data(client, admin_headers):
    await client.post("/api/simulation/seed", headers=admin_headers)

    response = await client.post("/api/analytics/stockout", json={}, headers=admin_headers)
    assert response.status_code == 200
    assert 0 <= response.json()["stockout_risk"]["probability"] <= 100

    response = await client.post("/api/analytics/sales-quantity", json={"days": 7}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["prediction"] > 0


@pytest.mark.asyncio
async def test_accuracy_endpoint(client, admin_headers):
    body = {
        "historical_predictions": [{"type": "sales", "product_id": "A", "date": "d", "value": 90}],
        "actual_results": [{"type": "sales", "product_id": "A", "date": "d", "value": 100}],
    }
    response = await client.post("/api/analytics/accuracy", json=body, headers=admin_headers)
    assert response.json() == {"sales_model": 90, "inventory_model": 82, "overall_accuracy": 86}


@pytest.mark.asyncio
async def test_shelf_image_without_vision_key(client, admin_headers):
    response = await client.post(
        "/api/analytics/shelf-image",
        files={"image": ("shelf.jpg", b"\xff\xd8fake", "image/jpeg")},
        headers=admin_headers,
    )
    assert response.status_code == 503
    assert response.json()["success"] is False
