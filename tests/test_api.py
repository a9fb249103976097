def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_request_id_is_echoed(client):
    r = client.get("/health", headers={"X-Request-ID": "abc123"})
    assert r.headers["X-Request-ID"] == "abc123"
    assert client.get("/health").headers["X-Request-ID"]


def test_user_lifecycle(client):
    r = client.post("/api/users", json={"first_name": "Charlie", "last_name": "Day", "birth_date": "2001-04-05", "gender": "male"})
    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    assert body["message"] == "User created successfully"
    user = body["data"]
    assert user["firstName"] == "Charlie"
    assert user["birthDate"] == "2001-04-05"
    uid = user["id"]

    r = client.put(f"/api/users/{uid}", json={"last_name": "Night"})
    assert r.status_code == 200
    assert r.json()["data"]["lastName"] == "Night"

    r = client.delete(f"/api/users/{uid}")
    assert r.status_code == 200
    assert r.json()["message"] == "User deleted successfully (soft delete)"

    r = client.get(f"/api/users/{uid}")
    assert r.status_code == 404
    assert r.json() == {"success": False, "message": "User not found"}

    r = client.post(f"/api/users/{uid}/restore")
    assert r.status_code == 200
    r = client.post(f"/api/users/{uid}/restore")
    assert r.status_code == 404
    assert r.json()["message"] == "User not found or not deleted"

    r = client.delete(f"/api/users/{uid}/hard")
    assert r.status_code == 200
    assert r.json()["message"] == "User permanently deleted from database"
    assert client.delete(f"/api/users/{uid}/hard").status_code == 404


def test_user_validation_errors(client):
    r = client.post("/api/users", json={"first_name": "Tom", "last_name": "Hill", "gender": "male"})
    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert body["message"] == "Validation error"
    assert body["errors"]

    r = client.post("/api/users", json={"last_name": "Hill"})
    assert r.status_code == 400
    assert {"first_name"} <= {e["field"] for e in r.json()["errors"]}

    r = client.get("/api/users/abc")
    assert r.status_code == 400


def test_user_roles_include_and_fields(client):
    admin = client.post("/api/roles", json={"role_name": "admin"}).json()["data"]
    r = client.post("/api/users", json={"first_name": "Ann", "last_name": "Lee", "role_ids": [admin["id"]]})
    assert r.status_code == 201
    assert [role["roleName"] for role in r.json()["data"]["roles"]] == ["admin"]
    client.post("/api/users", json={"first_name": "Ben", "last_name": "Kim"})

    r = client.get("/api/users", params={"include": "roles", "fields": "id,firstName"})
    assert r.status_code == 200
    data = r.json()["data"]
    assert [sorted(u) for u in data] == [["firstName", "id", "roles"], ["firstName", "id", "roles"]]
    assert data[0]["roles"] == []
    assert data[1]["roles"] == [{"id": admin["id"], "roleName": "admin"}]

    r = client.get("/api/users", params={"fields": "lastName,bogus"})
    assert [sorted(u) for u in r.json()["data"]] == [["lastName"], ["lastName"]]


def test_user_with_unknown_roles_is_rejected(client):
    r = client.post("/api/users", json={"first_name": "Ann", "last_name": "Lee", "role_ids": [99]})
    assert r.status_code == 404
    assert r.json()["message"] == "Roles with IDs [99] not found"
    assert client.get("/api/users").json()["pagination"]["total"] == 0


def test_user_listing_pagination(client):
    for i in range(3):
        client.post("/api/users", json={"first_name": f"User{i}", "last_name": "Test"})

    r = client.get("/api/users", params={"page": 2, "limit": 2})
    body = r.json()
    assert [u["firstName"] for u in body["data"]] == ["User0"]
    assert body["pagination"] == {
        "page": 2,
        "limit": 2,
        "total": 3,
        "totalPages": 2,
        "hasNext": False,
        "hasPrev": True,
    }

    r = client.get("/api/users", params={"limit": 0})
    assert r.json()["pagination"]["limit"] == 3
    assert len(r.json()["data"]) == 3

    r = client.get("/api/users", params={"limit": 500})
    assert r.json()["pagination"]["limit"] == 100


def test_roles_api(client):
    r = client.post("/api/roles", json={"role_name": "support", "description": "Helpdesk"})
    assert r.status_code == 201
    role = r.json()["data"]
    assert role["roleName"] == "support"

    r = client.get("/api/roles", params={"search": "help"})
    assert [x["id"] for x in r.json()["data"]] == [role["id"]]

    r = client.put(f"/api/roles/{role['id']}", json={"role_name": "care"})
    assert r.json()["data"]["roleName"] == "care"

    assert client.delete(f"/api/roles/{role['id']}").status_code == 200
    assert client.get(f"/api/roles/{role['id']}").status_code == 404
    assert client.post("/api/roles", json={"role_name": ""}).status_code == 400


def test_products_api(client):
    r = client.post("/api/products", json={"name": "Lamp", "price": "12.50", "quantity": 4, "description": "Desk lamp"})
    assert r.status_code == 201
    product = r.json()["data"]
    assert product["price"] == "12.50"
    assert product["quantity"] == 4

    r = client.get("/api/products", params={"fields": "id,name,price"})
    assert r.json()["data"] == [{"id": product["id"], "name": "Lamp", "price": "12.50"}]

    r = client.put(f"/api/products/{product['id']}", json={"price": "15.00", "quantity": -3})
    assert r.json()["data"]["price"] == "15.00"
    assert r.json()["data"]["quantity"] == 4

    r = client.get("/api/products", params={"price_from": "20"})
    assert r.json()["data"] == []

    assert client.post("/api/products", json={"name": "Lamp", "price": "-1"}).status_code == 400
    assert client.get("/api/products/999").json()["message"] == "Product not found"


def test_database_errors_become_500(client):
    user = client.post("/api/users", json={"first_name": "Dee", "last_name": "Ray"}).json()["data"]
    product = client.post("/api/products", json={"name": "Cup", "price": "3.00", "quantity": 5}).json()["data"]
    r = client.post("/api/orders", json={"user_id": user["id"], "items": [{"product_id": product["id"], "quantity": 1}]})
    assert r.status_code == 201

    # the user still owns an order, the foreign key blocks removal
    r = client.delete(f"/api/users/{user['id']}/hard")
    assert r.status_code == 500
    assert r.json()["success"] is False
    assert client.get(f"/api/users/{user['id']}").status_code == 200
