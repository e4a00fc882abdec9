import pytest
from fastapi.testclient import TestClient

from bullwhip.main import app

GAME = "/api/v1/game"


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def started(client):
    response = client.post(GAME, json={"external_actor": "Alice", "seed": 11})
    assert response.status_code == 201
    return client


def test_health_reports_game_state(client):
    assert client.get("/api/v1/health").json()["game"] == "none"
    client.post(GAME, json={"seed": 1})
    assert client.get("/api/v1/health").json()["game"] == "in_progress"


def test_requests_without_a_game_return_404(client):
    assert client.get(f"{GAME}/state/retailer").status_code == 404
    assert client.get(f"{GAME}/results").status_code == 404


def test_create_rejects_an_incomplete_chain(client):
    response = client.post(GAME, json={"roles": ["retailer", "supplier"]})
    assert response.status_code == 422


def test_turn_then_state(started):
    response = started.post(f"{GAME}/turn", json={"role": "retailer", "quantity": 5, "round": 1})
    assert response.status_code == 200
    body = response.json()
    assert set(body) == {"new_inventory", "stockout_cost", "holding_cost", "fulfilled", "unfulfilled"}

    state = started.get(f"{GAME}/state/retailer", params={"round": 1}).json()
    assert state["inventory"] == body["new_inventory"]
    assert len(state["order_history"]) == 1


def test_bad_turns_are_rejected(started):
    unknown = started.post(f"{GAME}/turn", json={"role": "warehouse", "quantity": 5, "round": 1})
    skipped = started.post(f"{GAME}/turn", json={"role": "retailer", "quantity": 5, "round": 3})
    negative = started.post(f"{GAME}/turn", json={"role": "retailer", "quantity": -1, "round": 1})

    assert unknown.status_code == 404
    assert skipped.status_code == 409
    assert negative.status_code == 422


def test_state_out_of_range(started):
    assert started.get(f"{GAME}/state/retailer", params={"round": 25}).status_code == 409


def test_assign_role_and_suggestion(started):
    assigned = started.post(f"{GAME}/rounds/1/assign-role").json()
    suggestion = started.get(f"{GAME}/suggestion/{assigned['role']}", params={"strategy": "predictive"})

    assert assigned["round"] == 1
    assert suggestion.status_code == 200
    assert suggestion.json()["strategy"] == "predictive"


def test_results_after_a_full_game(started):
    assert started.get(f"{GAME}/results").status_code == 409

    for round_number in range(1, 21):
        response = started.post(f"{GAME}/turn", json={"role": "wholesaler", "quantity": 6, "round": round_number})
        assert response.status_code == 200

    results = started.get(f"{GAME}/results").json()
    assert [row["rank"] for row in results["rankings"]] == [1, 2, 3, 4, 5]
    assert started.get(f"{GAME}/results").json() == results

    report = started.get(f"{GAME}/report").json()
    assert len(report["reports"]) == 5
    assert 0 <= report["reports"][0]["performance"]["performance_score"] <= 1000
