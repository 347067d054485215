"""Tests that cached rankings are refreshed by every change they depend on."""
import pytest
from tests.factories import make_jornada, make_match, make_prediction, make_user

from app import db
from app.errors import JornadaNotFoundError
from app.services.group_service import join_group, remove_group_member
from app.services.jornada_service import delete_jornada
from app.services.match_service import delete_match, finalize_match
from app.services.ranking_service import get_group_ranking, get_jornada_ranking
from app.utils.cache_utils import get_group_version


def points_by_name(ranking):
    return {entry.user_name: entry.total_points for entry in ranking}


class TestRankingCache:
    def test_ranking_is_served_from_cache(self, ranking_cache, league):
        group = league["group"]
        assert len(get_group_ranking(group.id)) == 3

        # Roster change that bypasses the services
        group.add_member(make_user("dario", display_name="Dario"))
        db.session.commit()

        assert len(get_group_ranking(group.id)) == 3
        assert get_group_version(group.id) == 0

    def test_join_refreshes_ranking(self, ranking_cache, league):
        group = league["group"]
        assert len(get_group_ranking(group.id)) == 3

        join_group(group.join_code, make_user("dario", display_name="Dario"))

        ranking = get_group_ranking(group.id)
        assert len(ranking) == group.get_member_count() == 4
        assert "Dario" in points_by_name(ranking)

    def test_join_refreshes_jornada_ranking(self, ranking_cache, league):
        group = league["group"]
        jornada = make_jornada(group)
        assert len(get_jornada_ranking(group.id, jornada.id)) == 3

        join_group(group.join_code, make_user("dario"))

        assert len(get_jornada_ranking(group.id, jornada.id)) == 4

    def test_removal_and_rejoin_refresh_ranking(self, ranking_cache, league):
        group = league["group"]
        bruno = league["bruno"]
        assert len(get_group_ranking(group.id)) == 3

        remove_group_member(group, bruno)
        assert "Bruno" not in points_by_name(get_group_ranking(group.id))

        join_group(group.join_code, bruno)
        assert "Bruno" in points_by_name(get_group_ranking(group.id))

    def test_finalize_refreshes_ranking(self, ranking_cache, league):
        group = league["group"]
        match = make_match(group)
        make_prediction(match, league["bruno"], "home-win")
        assert points_by_name(get_group_ranking(group.id))["Bruno"] == 0

        finalize_match(match.id, league["admin"], outcome="home-win")

        ranking = get_group_ranking(group.id)
        assert ranking[0].user_name == "Bruno"
        assert ranking[0].total_points == 1

    def test_correction_refreshes_ranking(self, ranking_cache, league):
        group = league["group"]
        match = make_match(group)
        make_prediction(match, league["bruno"], "home-win")
        finalize_match(match.id, league["admin"], outcome="draw")
        assert points_by_name(get_group_ranking(group.id))["Bruno"] == 0

        finalize_match(match.id, league["admin"], outcome="home-win", correction=True)

        assert points_by_name(get_group_ranking(group.id))["Bruno"] == 1

    def test_match_delete_refreshes_ranking(self, ranking_cache, league):
        group = league["group"]
        match = make_match(group)
        make_prediction(match, league["carla"], "draw")
        finalize_match(match.id, league["admin"], outcome="draw")
        assert points_by_name(get_group_ranking(group.id))["Carla"] == 1

        delete_match(match.id, league["admin"])

        assert points_by_name(get_group_ranking(group.id))["Carla"] == 0

    def test_jornada_delete_drops_cached_ranking(self, ranking_cache, league):
        group = league["group"]
        jornada = make_jornada(group)
        jornada_id = jornada.id
        assert len(get_jornada_ranking(group.id, jornada_id)) == 3

        delete_jornada(jornada_id, league["admin"])

        with pytest.raises(JornadaNotFoundError):
            get_jornada_ranking(group.id, jornada_id)

    def test_versions_are_per_group(self, ranking_cache, league):
        group = league["group"]
        match = make_match(group)
        finalize_match(match.id, league["admin"], outcome="draw")

        assert get_group_version(group.id) == 1
        assert get_group_version(group.id + 1) == 0
