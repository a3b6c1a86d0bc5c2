import pytest

from taskboard.db import Card, ListModel


def create_board(client, headers, name="Sprint 1"):
    response = client.post("/boards", json={"name": name}, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()["board"]


def create_list(client, headers, board_id, name):
    response = client.post("/lists", json={"name": name, "boardId": board_id}, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()["list"]


def create_card(client, headers, list_id, title, **extra):
    response = client.post("/cards", json={"title": title, "listId": list_id, **extra}, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()["card"]


def card_titles(client, headers, list_id):
    response = client.get(f"/lists/{list_id}", headers=headers)
    assert response.status_code == 200, response.text
    return [c["title"] for c in response.json()["list"]["cards"]]


@pytest.fixture
def alice(auth_headers):
    return auth_headers("alice@example.com", "secret123", "Alice")


@pytest.fixture
def bob(auth_headers):
    return auth_headers("bob@example.com", "hunter22", "Bob")


def test_sprint_scenario(client, alice):
    board = create_board(client, alice)
    todo, doing, done = (create_list(client, alice, board["id"], n) for n in ("Todo", "Doing", "Done"))
    assert [todo["position"], doing["position"], done["position"]] == [0, 1, 2]

    a = create_card(client, alice, todo["id"], "A")
    b = create_card(client, alice, todo["id"], "B")
    assert [a["position"], b["position"]] == [0, 1]

    response = client.post(f"/cards/{b['id']}/move", json={"index": 0}, headers=alice)
    assert response.status_code == 200
    assert card_titles(client, alice, todo["id"]) == ["B", "A"]

    response = client.post(f"/cards/{a['id']}/move", json={"listId": doing["id"], "index": 0}, headers=alice)
    assert response.status_code == 200
    assert response.json()["card"]["listId"] == doing["id"]
    assert card_titles(client, alice, doing["id"]) == ["A"]
    assert card_titles(client, alice, todo["id"]) == ["B"]

    boards = client.get("/boards", headers=alice).json()["boards"]
    assert len(boards) == 1
    assert [lst["name"] for lst in boards[0]["lists"]] == ["Todo", "Doing", "Done"]
    assert [[c["title"] for c in lst["cards"]] for lst in boards[0]["lists"]] == [["B"], ["A"], []]


def test_move_with_drop_anchors(client, alice):
    board = create_board(client, alice)
    todo = create_list(client, alice, board["id"], "Todo")
    a, b, c = (create_card(client, alice, todo["id"], t) for t in "ABC")

    client.post(f"/cards/{a['id']}/move", json={"afterId": c["id"]}, headers=alice)
    assert card_titles(client, alice, todo["id"]) == ["B", "C", "A"]

    client.post(f"/cards/{a['id']}/move", json={"beforeId": b["id"]}, headers=alice)
    assert card_titles(client, alice, todo["id"]) == ["A", "B", "C"]

    response = client.post(f"/cards/{a['id']}/move", json={"index": 0, "beforeId": b["id"]}, headers=alice)
    assert response.status_code == 400

    response = client.post(f"/cards/{a['id']}/move", json={"index": -1}, headers=alice)
    assert response.status_code == 400

    response = client.post(f"/cards/{a['id']}/move", json={"listId": "", "index": 2}, headers=alice)
    assert response.status_code == 400
    assert response.json() == {"error": "listId is required"}
    assert card_titles(client, alice, todo["id"]) == ["A", "B", "C"]


def test_move_to_current_position_changes_nothing(client, alice):
    board = create_board(client, alice)
    todo = create_list(client, alice, board["id"], "Todo")
    create_card(client, alice, todo["id"], "A")
    b = create_card(client, alice, todo["id"], "B")

    response = client.post(f"/cards/{b['id']}/move", json={"index": 1}, headers=alice)
    assert response.status_code == 200
    assert response.json()["card"] == b

    response = client.post(f"/cards/{b['id']}/move", json={"listId": todo["id"], "beforeId": b["id"]}, headers=alice)
    assert response.json()["card"] == b


def test_reorder_lists(client, alice):
    board = create_board(client, alice)
    lists = [create_list(client, alice, board["id"], n) for n in ("Todo", "Doing", "Done")]

    response = client.post(f"/lists/{lists[2]['id']}/move", json={"index": 0}, headers=alice)
    assert response.status_code == 200

    names = [lst["name"] for lst in client.get(f"/boards/{board['id']}", headers=alice).json()["board"]["lists"]]
    assert names == ["Done", "Todo", "Doing"]


def test_update_list_and_card(client, alice):
    board = create_board(client, alice)
    todo = create_list(client, alice, board["id"], "Todo")
    card = create_card(client, alice, todo["id"], "A", description="first", dueDate="2026-11-01T12:00:00Z")
    assert card["description"] == "first"
    assert card["dueDate"].startswith("2026-11-01")

    response = client.put(f"/lists/{todo['id']}", json={"name": "Backlog"}, headers=alice)
    assert response.status_code == 200
    assert response.json()["list"]["name"] == "Backlog"
    assert response.json()["list"]["position"] == todo["position"]

    response = client.put(f"/cards/{card['id']}", json={"title": "A2"}, headers=alice)
    assert response.status_code == 200
    updated = response.json()["card"]
    assert updated["title"] == "A2"
    assert updated["description"] == "first"
    assert updated["position"] == card["position"]
    assert updated["createdAt"] == card["createdAt"]

    response = client.put(f"/cards/{card['id']}", json={"title": "A2", "description": None}, headers=alice)
    assert response.json()["card"]["description"] is None

    response = client.put(f"/cards/{card['id']}", json={"title": ""}, headers=alice)
    assert response.status_code == 400
    assert response.json() == {"error": "title is required"}


def test_validation_errors(client, alice):
    assert client.post("/boards", json={}, headers=alice).status_code == 400
    assert client.post("/boards", json={"name": "   "}, headers=alice).status_code == 400
    assert client.post("/lists", json={"name": "Todo"}, headers=alice).status_code == 400
    assert client.post("/cards", json={"title": "A"}, headers=alice).status_code == 400
    response = client.post("/boards", content="not json", headers={**alice, "Content-Type": "application/json"})
    assert response.status_code == 400


def test_default_organization_is_created_once(client, alice):
    first = create_board(client, alice, "One")
    second = create_board(client, alice, "Two")
    assert first["organizationId"] == second["organizationId"]

    third = client.post("/boards", json={"name": "Three", "organizationId": first["organizationId"]}, headers=alice)
    assert third.status_code == 200
    assert third.json()["board"]["organizationId"] == first["organizationId"]


def test_other_users_objects_look_missing(client, alice, bob):
    board = create_board(client, alice)
    todo = create_list(client, alice, board["id"], "Todo")
    card = create_card(client, alice, todo["id"], "Secret")
    bob_board = create_board(client, bob, "Bob's")
    bob_list = create_list(client, bob, bob_board["id"], "Mine")

    attempts = [
        ("get", f"/boards/{board['id']}", None, "Board"),
        ("put", f"/boards/{board['id']}", {"name": "Mine now"}, "Board"),
        ("delete", f"/boards/{board['id']}", None, "Board"),
        ("post", "/lists", {"name": "Sneaky", "boardId": board["id"]}, "Board"),
        ("get", f"/lists/{todo['id']}", None, "List"),
        ("put", f"/lists/{todo['id']}", {"name": "Sneaky"}, "List"),
        ("post", f"/lists/{todo['id']}/move", {"index": 0}, "List"),
        ("delete", f"/lists/{todo['id']}", None, "List"),
        ("post", "/cards", {"title": "Sneaky", "listId": todo["id"]}, "List"),
        ("get", f"/cards/{card['id']}", None, "Card"),
        ("put", f"/cards/{card['id']}", {"title": "Sneaky"}, "Card"),
        ("post", f"/cards/{card['id']}/move", {"listId": bob_list["id"]}, "Card"),
        ("delete", f"/cards/{card['id']}", None, "Card"),
        ("post", "/boards", {"name": "Sneaky", "organizationId": board["organizationId"]}, "Organization"),
    ]
    for method, path, body, entity in attempts:
        kwargs = {"headers": bob}
        if body is not None:
            kwargs["json"] = body
        response = client.request(method.upper(), path, **kwargs)
        assert response.status_code == 404, (method, path)
        assert response.json() == {"error": f"{entity} not found or access denied"}

    # Nonexistent ids get the very same answer
    response = client.get("/cards/does-not-exist", headers=bob)
    assert response.json() == {"error": "Card not found or access denied"}

    # Moving your own card into someone else's list is refused too
    own_card = create_card(client, bob, bob_list["id"], "Mine")
    response = client.post(f"/cards/{own_card['id']}/move", json={"listId": todo["id"]}, headers=bob)
    assert response.status_code == 404
    assert response.json() == {"error": "List not found or access denied"}

    assert card_titles(client, alice, todo["id"]) == ["Secret"]
    assert [b["name"] for b in client.get("/boards", headers=bob).json()["boards"]] == ["Bob's"]


def test_delete_board_cascades(client, alice, session):
    board = create_board(client, alice)
    todo = create_list(client, alice, board["id"], "Todo")
    doing = create_list(client, alice, board["id"], "Doing")
    cards = [create_card(client, alice, todo["id"], "A"), create_card(client, alice, doing["id"], "B")]

    response = client.delete(f"/boards/{board['id']}", headers=alice)
    assert response.status_code == 200
    assert response.json() == {"success": True}

    assert client.get(f"/boards/{board['id']}", headers=alice).status_code == 404
    for lst in (todo, doing):
        assert client.get(f"/lists/{lst['id']}", headers=alice).status_code == 404
    for card in cards:
        assert client.get(f"/cards/{card['id']}", headers=alice).status_code == 404

    assert session.query(ListModel).count() == 0
    assert session.query(Card).count() == 0


def test_delete_list_and_card(client, alice):
    board = create_board(client, alice)
    todo = create_list(client, alice, board["id"], "Todo")
    doing = create_list(client, alice, board["id"], "Doing")
    a = create_card(client, alice, todo["id"], "A")
    b = create_card(client, alice, doing["id"], "B")

    assert client.delete(f"/cards/{b['id']}", headers=alice).json() == {"success": True}
    assert client.get(f"/cards/{b['id']}", headers=alice).status_code == 404

    assert client.delete(f"/lists/{todo['id']}", headers=alice).json() == {"success": True}
    assert client.get(f"/cards/{a['id']}", headers=alice).status_code == 404

    # Positions keep growing after a delete; no duplicates with survivors
    new_list = create_list(client, alice, board["id"], "Done")
    assert new_list["position"] == doing["position"] + 1
