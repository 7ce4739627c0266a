from fastapi.testclient import TestClient

from food_delivery.core.config import PROJECT_NAME
from food_delivery.main import app


def test_health_endpoint():
    """Test health endpoint"""
    client = TestClient(app)
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "app_name": PROJECT_NAME}


def test_routers_are_mounted():
    paths = {route.path for route in app.routes}
    for prefix in ("restaurants", "cart", "orders", "discounts", "notifications", "reviews", "restaurant", "admin"):
        assert any(p.startswith(f"/api/v1/{prefix}/") for p in paths), prefix
