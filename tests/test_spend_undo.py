from db import database


def _give_points(user_id, points):
    with database.get_conn() as conn:
        conn.execute(
            """
            INSERT INTO bonus_records (user_id, points_awarded, reason, category)
            VALUES (?, ?, 'Starting balance', 'bonus')
            """,
            (user_id, points),
        )
        conn.commit()


def _spend_row(spend_id):
    with database.get_conn() as conn:
        return dict(conn.execute("SELECT * FROM spend_records WHERE id = ?", (spend_id,)).fetchone())


def test_spend_reduces_balance(leader_client, make_user):
    user = make_user("Eli")
    _give_points(user["id"], 20)

    response = leader_client.post(
        "/api/spend", json={"user_id": user["id"], "points_spent": 8, "note": "Candy"}
    )

    assert response.status_code == 201
    assert response.json()["undone"] is False
    assert leader_client.get(f"/api/users/{user['id']}").json()["current_points"] == 12


def test_overspend_is_rejected(leader_client, make_user):
    user = make_user("Eli")
    _give_points(user["id"], 5)

    response = leader_client.post("/api/spend", json={"user_id": user["id"], "points_spent": 6})

    assert response.status_code == 400
    assert response.json() == {"error": "Insufficient points. Current: 5, Requested: 6"}


def test_spend_must_be_positive(leader_client, make_user):
    user = make_user("Eli")
    response = leader_client.post("/api/spend", json={"user_id": user["id"], "points_spent": 0})
    assert response.status_code == 400


def test_undo_restores_balance(leader_client, make_user):
    user = make_user("Eli")
    _give_points(user["id"], 10)
    spend = leader_client.post("/api/spend", json={"user_id": user["id"], "points_spent": 4}).json()

    response = leader_client.post(f"/api/spend/{spend['id']}/undo")

    assert response.status_code == 200
    assert response.json()["undone"] is True
    assert leader_client.get(f"/api/users/{user['id']}").json()["current_points"] == 10


def test_second_undo_fails_without_changes(leader_client, make_user):
    user = make_user("Eli")
    _give_points(user["id"], 10)
    spend = leader_client.post("/api/spend", json={"user_id": user["id"], "points_spent": 4}).json()
    leader_client.post(f"/api/spend/{spend['id']}/undo")
    before = _spend_row(spend["id"])

    response = leader_client.post(f"/api/spend/{spend['id']}/undo")

    assert response.status_code == 400
    assert response.json() == {"error": "Record already undone"}
    assert _spend_row(spend["id"]) == before


def test_undo_missing_record(leader_client):
    response = leader_client.post("/api/spend/404/undo")
    assert response.status_code == 404
    assert response.json() == {"error": "Spend record not found"}


def test_undo_requires_session(client, make_user):
    user = make_user("Eli")
    _give_points(user["id"], 10)
    with database.get_conn() as conn:
        conn.execute("INSERT INTO spend_records (user_id, points_spent) VALUES (?, 3)", (user["id"],))
        conn.commit()

    response = client.post("/api/spend/1/undo")

    assert response.status_code == 401
    assert _spend_row(1)["undone"] == 0


def test_patch_rejects_undone_record(leader_client, make_user):
    user = make_user("Eli")
    _give_points(user["id"], 10)
    spend = leader_client.post("/api/spend", json={"user_id": user["id"], "points_spent": 4}).json()
    leader_client.post(f"/api/spend/{spend['id']}/undo")

    response = leader_client.patch(f"/api/spend/{spend['id']}", json={"note": "fixed"})

    assert response.status_code == 400
    assert _spend_row(spend["id"])["note"] is None


def test_patch_increase_checks_balance(leader_client, make_user):
    user = make_user("Eli")
    _give_points(user["id"], 10)
    spend = leader_client.post("/api/spend", json={"user_id": user["id"], "points_spent": 4}).json()

    ok = leader_client.patch(f"/api/spend/{spend['id']}", json={"points_spent": 10})
    too_much = leader_client.patch(f"/api/spend/{spend['id']}", json={"points_spent": 11})

    assert ok.status_code == 200
    assert ok.json()["points_spent"] == 10
    assert too_much.status_code == 400


def test_list_spend_filters_undone(leader_client, make_user):
    user = make_user("Eli")
    _give_points(user["id"], 10)
    first = leader_client.post("/api/spend", json={"user_id": user["id"], "points_spent": 1}).json()
    leader_client.post("/api/spend", json={"user_id": user["id"], "points_spent": 2})
    leader_client.post(f"/api/spend/{first['id']}/undo")

    body = leader_client.get("/api/spend", params={"user_id": user["id"], "undone": "false"}).json()

    assert body["total"] == 1
    assert body["items"][0]["points_spent"] == 2
