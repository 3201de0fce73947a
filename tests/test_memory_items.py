def test_create_item_uses_settings_defaults(admin_client):
    admin_client.patch("/api/settings", json={"default_points_first": 20, "default_points_repeat": 8})

    response = admin_client.post("/api/memory-items", json={"reference": "Micah 6:8", "text": "He hath shewed thee"})

    assert response.status_code == 201
    body = response.json()
    assert (body["points_first"], body["points_repeat"]) == (20, 8)
    assert body["active"] is True


def test_create_item_requires_admin(leader_client):
    response = leader_client.post("/api/memory-items", json={"reference": "Micah 6:8"})
    assert response.status_code == 401
    assert response.json() == {"error": "Admin access required"}


def test_duplicate_active_item_conflicts(admin_client, make_item):
    make_item("Micah 6:8")
    response = admin_client.post("/api/memory-items", json={"reference": "Micah 6:8"})
    assert response.status_code == 409


def test_inactive_duplicate_is_reactivated(admin_client, make_item):
    item = make_item("Micah 6:8", active=False)

    response = admin_client.post("/api/memory-items", json={"reference": "Micah 6:8", "points_first": 15})

    assert response.json()["id"] == item["id"]
    assert response.json()["active"] is True
    assert response.json()["points_first"] == 15


def test_list_filters(client, make_item):
    make_item("John 3:16")
    make_item("John 1:1", active=False)
    make_item("Books of the Bible", item_type="custom")

    active = client.get("/api/memory-items", params={"active": "true"}).json()["items"]
    custom = client.get("/api/memory-items", params={"type": "custom"}).json()["items"]
    john = client.get("/api/memory-items", params={"q": "john"}).json()["items"]

    assert [i["reference"] for i in active] == ["Books of the Bible", "John 3:16"]
    assert [i["reference"] for i in custom] == ["Books of the Bible"]
    assert [i["reference"] for i in john] == ["John 1:1", "John 3:16"]


def test_patch_item(admin_client, make_item):
    item = make_item("John 3:16")

    response = admin_client.patch(f"/api/memory-items/{item['id']}", json={"active": False, "points_repeat": 7})

    assert response.status_code == 200
    assert response.json()["active"] is False
    assert response.json()["points_repeat"] == 7
    assert admin_client.patch(f"/api/memory-items/{item['id']}", json={}).status_code == 400
    assert admin_client.patch("/api/memory-items/999", json={"active": True}).status_code == 404


def test_delete_item_with_records_is_refused(admin_client, make_user, make_item):
    user = make_user("Ada")
    used = make_item("John 3:16")
    unused = make_item("John 1:1")
    admin_client.post("/api/records", json={"user_id": user["id"], "memory_item_id": used["id"]})

    refused = admin_client.delete(f"/api/memory-items/{used['id']}")
    deleted = admin_client.delete(f"/api/memory-items/{unused['id']}")

    assert refused.status_code == 400
    assert deleted.json() == {"success": True}
    assert admin_client.get(f"/api/memory-items/{unused['id']}").status_code == 404
    assert admin_client.get(f"/api/memory-items/{used['id']}").status_code == 200
