"""
End-to-end API flow: set up a camp, run a day, rebuild it mid-day and hand
it to an optimizer.
"""
import pytest

from campday.main import app
from campday.routes.rebuild import get_optimizer
from tests.fakes import RAINY_JUNIORS, REGULAR_JUNIORS

DAY = "2026-07-06"


class GagaOptimizer:
    def run(self, timeline, assignments):
        return {
            bunk: [e if e else {"activity_name": "Gaga", "resource_name": "Pit"} for e in row]
            for bunk, row in assignments.items()
        }


@pytest.fixture
def camp(client):
    """Juniors running the regular day with two bunks assigned for the morning"""
    assert client.put("/api/divisions/Juniors", json={"bunks": ["J1", "J2"]}).status_code == 200
    assert client.put("/api/templates/Regular", json={"blocks": REGULAR_JUNIORS}).status_code == 200
    assert client.put("/api/templates/Rainy Day", json={"blocks": RAINY_JUNIORS}).status_code == 200
    assert client.put("/api/settings", json={"rainy_day_template_name": "Rainy Day"}).status_code == 200
    assert client.put("/api/fields/Gym", json={"capacity": 1, "rainy_day_capacity": 3}).status_code == 200

    response = client.put(f"/api/days/{DAY}/timeline", json={"template_name": "Regular"})
    assert response.status_code == 200
    assert response.json()["template_name"] == "Regular"

    row = [{"activity_name": "Swim", "resource_name": "Pool"}] + [None] * 6
    response = client.put(f"/api/days/{DAY}/assignments", json={"assignments": {"J1": row, "J2": [None] * 7}})
    assert response.status_code == 200
    return client


def test_rebuild_optimize_flow(camp):
    response = camp.post(f"/api/days/{DAY}/rebuild", json={"transition_time": "10:12am", "template_name": "Rainy Day"})
    assert response.status_code == 200
    data = response.json()
    rebuild_id = data["rebuild_id"]
    assert data["success"] is True
    assert data["summary"]["effective_transition"] == 610
    assert data["remap"]["placed_count"] == 1

    day = camp.get(f"/api/days/{DAY}/timeline").json()
    assert day["template_name"] == "Rainy Day"
    assert day["pending_rebuild_id"] == rebuild_id

    # a second rebuild waits for the hand-off
    again = camp.post(f"/api/days/{DAY}/rebuild", json={"transition_time": 700, "template_name": "Regular"})
    assert again.status_code == 409
    assert again.json()["detail"].startswith("REBUILD_IN_PROGRESS")
    assert camp.put(f"/api/days/{DAY}/assignments", json={"assignments": {}}).status_code == 409

    assert camp.post(f"/api/days/{DAY}/rebuild/{rebuild_id}/optimize").status_code == 503

    app.dependency_overrides[get_optimizer] = GagaOptimizer
    response = camp.post(f"/api/days/{DAY}/rebuild/{rebuild_id}/optimize")
    assert response.status_code == 200
    handoff = response.json()
    assert handoff["pinned_count"] == 1
    assert handoff["assignments"]["J1"][0]["activity_name"] == "Swim"
    assert handoff["assignments"]["J1"][1]["activity_name"] == "Gaga"

    assert camp.get(f"/api/days/{DAY}/timeline").json()["pending_rebuild_id"] is None
    assert camp.post(f"/api/days/{DAY}/rebuild/{rebuild_id}/optimize").status_code == 404

    runs = camp.get(f"/api/days/{DAY}/rebuild/runs").json()
    assert [r["ok"] for r in runs] == [True]
    assert runs[0]["rebuild_id"] == rebuild_id
    assert runs[0]["template_name"] == "Rainy Day"


def test_preview_does_not_change_the_day(camp):
    response = camp.post(
        f"/api/days/{DAY}/rebuild/preview", json={"transition_time": "10:40am", "template_name": "Rainy Day"}
    )
    assert response.status_code == 200
    events = [b["event"] for b in response.json()["timeline"]]
    assert "Transition" in events

    day = camp.get(f"/api/days/{DAY}/timeline").json()
    assert day["template_name"] == "Regular"
    assert day["pending_rebuild_id"] is None
    assert camp.get(f"/api/days/{DAY}/rebuild/runs").json() == []


def test_unknown_template_is_404(camp):
    response = camp.post(f"/api/days/{DAY}/rebuild", json={"transition_time": 600, "template_name": "Snow Day"})
    assert response.status_code == 404
    assert response.json()["detail"].startswith("TEMPLATE_NOT_FOUND")
    assert camp.get(f"/api/days/{DAY}/timeline").json()["pending_rebuild_id"] is None


@pytest.mark.parametrize("bad", ["25:00", "noonish", -5, 1440])
def test_bad_transition_time_is_422(camp, bad):
    response = camp.post(f"/api/days/{DAY}/rebuild", json={"transition_time": bad, "template_name": "Rainy Day"})
    assert response.status_code == 422


def test_rain_start_abandon_and_clear(camp):
    response = camp.post(f"/api/days/{DAY}/rain/start", json={"transition_time": "10:00am"})
    assert response.status_code == 200
    started = response.json()
    assert started["summary"]["resource_overrides_applied"] is True
    assert camp.get("/api/fields/Gym").json()["capacity"] == 3

    day = camp.get(f"/api/days/{DAY}/timeline").json()
    assert day["is_rainy"] is True
    assert day["pre_rainy_template_name"] == "Regular"

    assert camp.delete(f"/api/days/{DAY}/rebuild/{started['rebuild_id']}").status_code == 200
    assert camp.delete(f"/api/days/{DAY}/rebuild/{started['rebuild_id']}").status_code == 404

    response = camp.post(f"/api/days/{DAY}/rain/clear", json={"transition_time": "12:00pm"})
    assert response.status_code == 200
    gym = camp.get("/api/fields/Gym").json()
    assert gym["capacity"] == 1
    assert gym["original_saved"] is False

    day = camp.get(f"/api/days/{DAY}/timeline").json()
    assert day["is_rainy"] is False
    assert day["template_name"] == "Regular"


def test_rain_start_without_rainy_template_is_400(camp):
    camp.put("/api/settings", json={"rainy_day_template_name": None})
    response = camp.post(f"/api/days/{DAY}/rain/start", json={"transition_time": "10:00am"})
    assert response.status_code == 400
    assert response.json()["detail"].startswith("NO_RAINY_TEMPLATE")


def test_division_timelines_expose_slot_indices(camp):
    data = camp.get(f"/api/days/{DAY}/timeline/divisions").json()
    slots = data["divisions"]["Juniors"]
    assert [s["slotIndex"] for s in slots] == list(range(7))
    assert slots[0]["event"] == "Swim"


def test_assignments_for_unknown_bunk_are_rejected(camp):
    response = camp.put(f"/api/days/{DAY}/assignments", json={"assignments": {"Z9": [None]}})
    assert response.status_code == 400
