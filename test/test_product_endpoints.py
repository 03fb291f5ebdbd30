import pytest
from httpx import AsyncClient, ASGITransport

from models.models import Product


def client_for(app):
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


def product_payload(**overrides):
    payload = {
        "name": "Classic Tee",
        "description": "Cotton t-shirt",
        "code": "TEE-001",
        "sku": "SKU-TEE-001",
        "price": 19.99,
        "price_sale": 14.99,
        "quantity": 40,
        "colors": ["red", "blue"],
        "sizes": ["S", "M", "L"],
        "tags": ["summer"],
        "gender": ["unisex"],
        "category": "Shirts",
        "new_label": {"enabled": True, "content": "NEW"},
        "is_published": True,
    }
    payload.update(overrides)
    return payload


def add_products(session, *rows):
    for name, price, quantity in rows:
        session.add(Product(
            name=name,
            description=f"{name} description",
            code=f"C-{name}",
            sku=f"S-{name}",
            price=price,
            quantity=quantity,
        ))
    session.commit()


@pytest.mark.asyncio
async def test_product_crud(app_with_overrides, session_for_tests, auth_headers):
    async with client_for(app_with_overrides) as client:
        # Create
        response = await client.post("/api/products", json=product_payload(), headers=auth_headers)
        assert response.status_code == 201
        created = response.json()["data"]
        product_id = created["id"]
        assert created["colors"] == ["red", "blue"]
        assert created["sizes"] == ["S", "M", "L"]
        assert created["images"] == []
        assert created["new_label"] == {"enabled": True, "content": "NEW"}
        assert created["sale_label"] is None
        assert created["price"] == pytest.approx(19.99)
        assert created["is_published"] is True

        stored = session_for_tests.query(Product).filter(Product.id == product_id).first()
        assert stored.tags == ["summer"]

        # Details
        response = await client.get(f"/api/products/details/{product_id}")
        assert response.status_code == 200
        assert response.json()["data"]["code"] == "TEE-001"

        # Update
        response = await client.put(
            f"/api/products/{product_id}",
            json=product_payload(name="Classic Tee v2", quantity=5, colors=["black"]),
            headers=auth_headers,
        )
        assert response.status_code == 200
        updated = response.json()["data"]
        assert updated["name"] == "Classic Tee v2"
        assert updated["quantity"] == 5
        assert updated["colors"] == ["black"]

        # Delete
        response = await client.delete(f"/api/products/{product_id}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["data"]["id"] == product_id

        response = await client.get(f"/api/products/details/{product_id}")
        assert response.status_code == 404

        response = await client.delete(f"/api/products/{product_id}", headers=auth_headers)
        assert response.status_code == 404


@pytest.mark.asyncio
async def test_product_mutations_require_auth(app_with_overrides):
    async with client_for(app_with_overrides) as client:
        response = await client.post("/api/products", json=product_payload())
        assert response.status_code == 401

        response = await client.put("/api/products/1", json=product_payload())
        assert response.status_code == 401

        response = await client.delete("/api/products/1")
        assert response.status_code == 401


@pytest.mark.asyncio
async def test_code_and_sku_are_unique(app_with_overrides, auth_headers):
    async with client_for(app_with_overrides) as client:
        response = await client.post("/api/products", json=product_payload(), headers=auth_headers)
        assert response.status_code == 201

        response = await client.post("/api/products", json=product_payload(sku="OTHER"), headers=auth_headers)
        assert response.status_code == 400

        response = await client.post("/api/products", json=product_payload(code="OTHER"), headers=auth_headers)
        assert response.status_code == 400

        response = await client.post(
            "/api/products", json=product_payload(code="TEE-002", sku="SKU-TEE-002"), headers=auth_headers
        )
        assert response.status_code == 201
        second_id = response.json()["data"]["id"]

        # Updating into another product's code is refused, keeping its own is fine
        response = await client.put(f"/api/products/{second_id}", json=product_payload(sku="SKU-TEE-002"), headers=auth_headers)
        assert response.status_code == 400

        response = await client.put(
            f"/api/products/{second_id}",
            json=product_payload(code="TEE-002", sku="SKU-TEE-002", name="Renamed"),
            headers=auth_headers,
        )
        assert response.status_code == 200


@pytest.mark.asyncio
async def test_create_product_missing_fields(app_with_overrides, auth_headers):
    payload = product_payload()
    del payload["sku"]
    del payload["price"]

    async with client_for(app_with_overrides) as client:
        response = await client.post("/api/products", json=payload, headers=auth_headers)

    assert response.status_code == 400
    assert set(response.json()["data"]["fields"]) == {"sku", "price"}


@pytest.mark.asyncio
async def test_update_missing_product(app_with_overrides, auth_headers):
    async with client_for(app_with_overrides) as client:
        response = await client.put("/api/products/999", json=product_payload(), headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_pagination(app_with_overrides, session_for_tests):
    add_products(session_for_tests, *[(f"p{i}", 10 + i, i) for i in range(5)])

    async with client_for(app_with_overrides) as client:
        response = await client.get("/api/products/list", params={"page": 2, "limit": 2})

    data = response.json()["data"]
    assert response.status_code == 200
    assert data["pagination"] == {"total": 5, "page": 2, "limit": 2, "totalPages": 3}
    assert [p["name"] for p in data["products"]] == ["p2", "p3"]


@pytest.mark.asyncio
async def test_list_sorting(app_with_overrides, session_for_tests):
    add_products(session_for_tests, ("banana", 3, 30), ("apple", 5, 10), ("cherry", 1, 20))

    async with client_for(app_with_overrides) as client:
        by_price = await client.get("/api/products/list", params={"sort": "price", "order": "desc"})
        by_name = await client.get("/api/products/list", params={"sort": "name"})
        fallback = await client.get("/api/products/list", params={"sort": "id; DROP TABLE products"})

    assert [p["name"] for p in by_price.json()["data"]["products"]] == ["apple", "banana", "cherry"]
    assert [p["name"] for p in by_name.json()["data"]["products"]] == ["apple", "banana", "cherry"]

    # Unknown fields fall back to creation order without error
    assert fallback.status_code == 200
    assert [p["name"] for p in fallback.json()["data"]["products"]] == ["banana", "apple", "cherry"]


@pytest.mark.asyncio
async def test_search(app_with_overrides, session_for_tests):
    add_products(session_for_tests, ("Red Shirt", 10, 1), ("Blue Jeans", 30, 2), ("Red Hat", 15, 3))

    async with client_for(app_with_overrides) as client:
        response = await client.get("/api/products/search", params={"query": "red"})
        by_code = await client.get("/api/products/search", params={"query": "C-Blue"})
        paged = await client.get("/api/products/search", params={"query": "red", "limit": 1, "page": 2})

    data = response.json()["data"]
    assert [p["name"] for p in data["products"]] == ["Red Shirt", "Red Hat"]
    assert data["pagination"]["total"] == 2

    assert [p["name"] for p in by_code.json()["data"]["products"]] == ["Blue Jeans"]

    paged_data = paged.json()["data"]
    assert [p["name"] for p in paged_data["products"]] == ["Red Hat"]
    assert paged_data["pagination"]["totalPages"] == 2


@pytest.mark.asyncio
async def test_pagination_bounds(app_with_overrides, session_for_tests):
    add_products(session_for_tests, ("Mug", 8, 3))

    async with client_for(app_with_overrides) as client:
        for params in (
            {"page": 10 ** 19, "limit": 10},
            {"limit": 10 ** 19},
            {"limit": 101},
            {"limit": 0},
            {"page": 0},
        ):
            response = await client.get("/api/products/list", params=params)
            assert response.status_code == 400, params
            assert response.json()["status"] == "error"

            response = await client.get("/api/products/search", params={"query": "mug", **params})
            assert response.status_code == 400, params

        response = await client.get("/api/products/list", params={"limit": 100})
        assert response.status_code == 200


@pytest.mark.asyncio
async def test_search_matches_wildcards_literally(app_with_overrides, session_for_tests):
    add_products(session_for_tests, ("Red Shirt", 10, 1), ("Blue Jeans", 30, 2), ("100% Cotton", 12, 4))

    async with client_for(app_with_overrides) as client:
        percent = await client.get("/api/products/search", params={"query": "%"})
        underscore = await client.get("/api/products/search", params={"query": "_"})

    assert [p["name"] for p in percent.json()["data"]["products"]] == ["100% Cotton"]
    assert underscore.json()["data"]["products"] == []
    assert underscore.json()["data"]["pagination"]["total"] == 0


@pytest.mark.asyncio
async def test_unique_constraint_reported_as_duplicate(app_with_overrides, session_for_tests, auth_headers, monkeypatch):
    # Simulate a concurrent writer: the pre-check sees nothing, the unique index still fires
    monkeypatch.setattr("endpoints.product.find_duplicate", lambda *args, **kwargs: None)

    async with client_for(app_with_overrides) as client:
        response = await client.post("/api/products", json=product_payload(), headers=auth_headers)
        assert response.status_code == 201

        response = await client.post("/api/products", json=product_payload(), headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Product with this code or SKU already exists"

        response = await client.post(
            "/api/products", json=product_payload(code="TEE-002", sku="SKU-TEE-002"), headers=auth_headers
        )
        assert response.status_code == 201
        second_id = response.json()["data"]["id"]

        response = await client.put(f"/api/products/{second_id}", json=product_payload(), headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Product with this code or SKU already exists"

    session_for_tests.expire_all()
    second = session_for_tests.query(Product).filter(Product.id == second_id).first()
    assert second.code == "TEE-002"
    assert session_for_tests.query(Product).count() == 2
