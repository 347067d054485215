"""Tests for the /api and /admin blueprints."""
from datetime import datetime, timedelta, timezone

import pytest
from tests.factories import auth, make_group, make_match, make_prediction, make_user

from app import db
from app.models import Match
from app.models.user import ROLE_ADMIN


@pytest.fixture
def seeded(app):
    """Admin plus two members, one open match and one predicted match.

    Built in its own application context so every request resolves its own
    user from the bearer token.
    """
    with app.app_context():
        admin = make_user("admin", role=ROLE_ADMIN, display_name="Ana")
        bruno = make_user("bruno", display_name="Bruno")
        carla = make_user("carla", display_name="Carla")
        outsider = make_user("outsider")
        group = make_group(admin, bruno, carla)

        open_match = make_match(group)
        played = make_match(group, home="Racing", away="Independiente")
        make_prediction(played, bruno, "home-win")

        return {
            "group_id": group.id,
            "join_code": group.join_code,
            "open_match_id": open_match.id,
            "played_match_id": played.id,
            "admin": auth(admin.api_token),
            "bruno": auth(bruno.api_token),
            "carla": auth(carla.api_token),
            "outsider": auth(outsider.api_token),
            "bruno_id": bruno.id,
        }


class TestAuthentication:
    def test_missing_token_is_unauthorized(self, client, seeded):
        response = client.get("/api/groups")
        assert response.status_code == 401
        assert response.get_json() == {"error": "Authentication required"}

    def test_unknown_token_is_unauthorized(self, client, seeded):
        response = client.get("/api/groups", headers=auth("not-a-token"))
        assert response.status_code == 401

    def test_bearer_token_resolves_user(self, client, seeded):
        response = client.get("/api/groups", headers=seeded["bruno"])
        assert response.status_code == 200
        assert [g["id"] for g in response.get_json()] == [seeded["group_id"]]


class TestGroupsApi:
    def test_join_by_code(self, client, seeded):
        response = client.post(
            "/api/groups/join",
            json={"join_code": seeded["join_code"]},
            headers=seeded["outsider"],
        )
        assert response.status_code == 200
        assert response.get_json()["group"]["member_count"] == 4

    def test_join_unknown_code(self, client, seeded):
        response = client.post(
            "/api/groups/join", json={"join_code": "NOPE"}, headers=seeded["outsider"]
        )
        assert response.status_code == 404

    def test_matches_include_own_prediction(self, client, seeded):
        response = client.get(
            f"/api/groups/{seeded['group_id']}/matches", headers=seeded["bruno"]
        )
        matches = {m["id"]: m for m in response.get_json()["matches"]}

        assert matches[seeded["played_match_id"]]["my_prediction"]["outcome"] == "home-win"
        assert matches[seeded["open_match_id"]]["my_prediction"] is None
        assert matches[seeded["open_match_id"]]["status"] == "scheduled"

    def test_non_member_cannot_read_group(self, client, seeded):
        response = client.get(
            f"/api/groups/{seeded['group_id']}/matches", headers=seeded["outsider"]
        )
        assert response.status_code == 403


class TestPredictionApi:
    def test_create_and_update(self, client, seeded):
        url = f"/api/matches/{seeded['open_match_id']}/prediction"

        created = client.post(url, json={"outcome": "draw"}, headers=seeded["carla"])
        assert created.status_code == 201
        assert created.get_json()["created"] is True

        updated = client.post(url, json={"outcome": "away-win"}, headers=seeded["carla"])
        assert updated.status_code == 200
        assert updated.get_json()["prediction"]["outcome"] == "away-win"

    def test_invalid_outcome(self, client, seeded):
        response = client.post(
            f"/api/matches/{seeded['open_match_id']}/prediction",
            json={"outcome": "win"},
            headers=seeded["carla"],
        )
        assert response.status_code == 400

    def test_missing_body(self, client, seeded):
        response = client.post(
            f"/api/matches/{seeded['open_match_id']}/prediction",
            headers=seeded["carla"],
        )
        assert response.status_code == 400

    def test_closed_after_cutoff(self, app, client, seeded):
        with app.app_context():
            match = db.session.get(Match, seeded["open_match_id"])
            match.match_date = datetime.now(timezone.utc) + timedelta(minutes=5)
            db.session.commit()

        response = client.post(
            f"/api/matches/{seeded['open_match_id']}/prediction",
            json={"outcome": "draw"},
            headers=seeded["carla"],
        )
        assert response.status_code == 409

    def test_unknown_match(self, client, seeded):
        response = client.post(
            "/api/matches/9999/prediction", json={"outcome": "draw"}, headers=seeded["carla"]
        )
        assert response.status_code == 404


class TestResultAndRanking:
    def declare(self, client, seeded, **body):
        return client.post(
            f"/admin/matches/{seeded['played_match_id']}/result",
            json=body,
            headers=seeded["admin"],
        )

    def test_ranking_includes_every_member(self, client, seeded):
        assert self.declare(client, seeded, outcome="home-win").status_code == 200

        response = client.get(
            f"/api/groups/{seeded['group_id']}/ranking", headers=seeded["carla"]
        )
        data = response.get_json()

        assert response.status_code == 200
        assert len(data["rankings"]) == 3
        assert data["rankings"][0]["user_name"] == "Bruno"
        assert data["rankings"][0]["total_points"] == 1
        assert [r["total_predictions"] for r in data["rankings"][1:]] == [0, 0]
        assert data["user_position"] in (2, 3)

    def test_member_cannot_declare(self, client, seeded):
        response = client.post(
            f"/admin/matches/{seeded['played_match_id']}/result",
            json={"outcome": "draw"},
            headers=seeded["bruno"],
        )
        assert response.status_code == 403

    def test_second_declaration_needs_correction(self, client, seeded):
        self.declare(client, seeded, outcome="draw")

        assert self.declare(client, seeded, outcome="home-win").status_code == 409

        corrected = self.declare(client, seeded, outcome="home-win", correction=True)
        assert corrected.status_code == 200
        predictions = corrected.get_json()["match"]["predictions"]
        assert [p["points"] for p in predictions] == [1]

    def test_declare_from_score(self, client, seeded):
        response = self.declare(client, seeded, home_score=2, away_score=0)
        assert response.get_json()["match"]["outcome"] == "home-win"

    def test_contradictory_result_is_rejected(self, client, seeded):
        response = self.declare(
            client, seeded, outcome="draw", home_score=2, away_score=0
        )
        assert response.status_code == 400
        assert "does not match" in response.get_json()["error"]

    def test_correction_must_be_boolean(self, client, seeded):
        self.declare(client, seeded, outcome="draw")

        response = self.declare(client, seeded, outcome="home-win", correction="false")
        assert response.status_code == 400

        response = self.declare(client, seeded, outcome="home-win", correction=False)
        assert response.status_code == 409

    def test_user_rankings(self, client, seeded):
        response = client.get("/api/rankings", headers=seeded["bruno"])
        data = response.get_json()
        assert [item["group"]["id"] for item in data] == [seeded["group_id"]]
        assert len(data[0]["rankings"]) == 3


class TestJornadasApi:
    def test_jornada_flow(self, client, seeded):
        group_url = f"/admin/groups/{seeded['group_id']}"
        response = client.post(
            f"{group_url}/jornadas",
            json={"name": "Fecha 1", "start_date": "2024-08-01", "end_date": "2024-08-07"},
            headers=seeded["admin"],
        )
        assert response.status_code == 201
        jornada_id = response.get_json()["jornada"]["id"]

        response = client.post(
            f"{group_url}/matches",
            json={
                "home_team": "Lanus",
                "away_team": "Banfield",
                "match_date": "2030-08-03T18:00:00+00:00",
                "jornada_id": jornada_id,
            },
            headers=seeded["admin"],
        )
        assert response.status_code == 201

        ranking = client.get(
            f"/api/groups/{seeded['group_id']}/jornadas/{jornada_id}/ranking",
            headers=seeded["bruno"],
        ).get_json()
        assert len(ranking["rankings"]) == 3
        assert all(r["total_points"] == 0 for r in ranking["rankings"])

        all_rankings = client.get(
            f"/api/groups/{seeded['group_id']}/jornadas/ranking", headers=seeded["bruno"]
        ).get_json()
        assert [r["jornada_id"] for r in all_rankings] == [jornada_id]

        deleted = client.delete(f"/admin/jornadas/{jornada_id}", headers=seeded["admin"])
        assert deleted.status_code == 200

        actions = client.get(f"{group_url}/actions", headers=seeded["admin"]).get_json()
        assert [a["action_type"] for a in actions][:3] == [
            "delete_jornada",
            "create_match",
            "create_jornada",
        ]

    def test_invalid_dates(self, client, seeded):
        response = client.post(
            f"/admin/groups/{seeded['group_id']}/jornadas",
            json={"name": "Fecha 1", "start_date": "2024-08-09", "end_date": "first"},
            headers=seeded["admin"],
        )
        assert response.status_code == 400


class TestAdminGroups:
    def test_admin_creates_group(self, client, seeded):
        response = client.post(
            "/admin/groups", json={"name": "Oficina"}, headers=seeded["admin"]
        )
        assert response.status_code == 201
        assert response.get_json()["group"]["member_count"] == 1

    def test_plain_user_cannot_create_group(self, client, seeded):
        response = client.post(
            "/admin/groups", json={"name": "Oficina"}, headers=seeded["bruno"]
        )
        assert response.status_code == 403

    def test_delete_match(self, client, seeded):
        url = f"/admin/matches/{seeded['open_match_id']}"
        assert client.delete(url, headers=seeded["bruno"]).status_code == 403
        assert client.delete(url, headers=seeded["admin"]).status_code == 200
        assert client.delete(url, headers=seeded["admin"]).status_code == 404


class TestAchievementsApi:
    def test_catalog_with_progress(self, app, client, seeded):
        client.post(
            f"/admin/matches/{seeded['played_match_id']}/result",
            json={"outcome": "home-win"},
            headers=seeded["admin"],
        )

        data = client.get("/api/achievements", headers=seeded["bruno"]).get_json()
        achievements = {a["id"]: a for a in data["achievements"]}

        assert achievements["first_exact"]["unlocked"] is True
        assert achievements["exact_master"]["progress"] == 1
        assert achievements["exact_master"]["max_progress"] == 10
        assert "first_exact" in data["newly_unlocked"]

        with app.app_context():
            from app.models import User

            stored = db.session.get(User, seeded["bruno_id"]).achievements
            assert {a["id"] for a in stored} == {
                a["id"] for a in data["achievements"] if a["unlocked"]
            }

    def test_unlock_times_match_stored_ones(self, app, client, seeded):
        client.post(
            f"/admin/matches/{seeded['played_match_id']}/result",
            json={"outcome": "home-win"},
            headers=seeded["admin"],
        )
        first = client.get("/api/achievements", headers=seeded["bruno"]).get_json()
        second = client.get("/api/achievements", headers=seeded["bruno"]).get_json()

        def unlock_times(data):
            return {
                a["id"]: a["unlocked_at"] for a in data["achievements"] if a["unlocked"]
            }

        assert second["newly_unlocked"] == []
        assert unlock_times(second) == unlock_times(first)

        with app.app_context():
            from app.models import User

            stored = db.session.get(User, seeded["bruno_id"]).achievements
            assert {a["id"]: a["unlocked_at"] for a in stored} == unlock_times(second)
