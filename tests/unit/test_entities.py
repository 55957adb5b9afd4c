"""Unit tests for the entity registry and load ordering."""

from dataclasses import replace

import pytest

from sports_warehouse.errors import LoadOrderError
from sports_warehouse.loading.converters import FieldKind
from sports_warehouse.loading.entities import (
    ENTITY_SPECS,
    LOAD_ORDER,
    EntityType,
    get_entity_spec,
    home_and_away_differ,
    resolve_load_order,
)
from sports_warehouse.models import League, LeagueStaging, Match, MatchStaging


class TestFieldTypeTable:
    """Test the per-entity field-type table."""

    def test_flag_fields(self):
        assert ENTITY_SPECS[EntityType.LEAGUE].fields_of_kind(FieldKind.FLAG) == ["is_active"]
        assert ENTITY_SPECS[EntityType.TEAM].fields_of_kind(FieldKind.FLAG) == ["is_active"]
        assert ENTITY_SPECS[EntityType.PLAYER].fields_of_kind(FieldKind.FLAG) == ["is_active"]
        assert ENTITY_SPECS[EntityType.MATCH].fields_of_kind(FieldKind.FLAG) == []

    def test_date_fields(self):
        assert ENTITY_SPECS[EntityType.LEAGUE].fields_of_kind(FieldKind.DATE) == []
        assert ENTITY_SPECS[EntityType.TEAM].fields_of_kind(FieldKind.DATE) == []
        assert ENTITY_SPECS[EntityType.PLAYER].fields_of_kind(FieldKind.DATE) == ["date_of_birth"]
        assert ENTITY_SPECS[EntityType.MATCH].fields_of_kind(FieldKind.DATE) == ["match_date"]

    def test_match_columns(self):
        assert ENTITY_SPECS[EntityType.MATCH].columns == [
            "match_id",
            "league_id",
            "season",
            "match_date",
            "home_team_id",
            "away_team_id",
            "home_score",
            "away_score",
            "stadium",
            "match_status",
            "attendance",
        ]

    @pytest.mark.parametrize("entity_type", list(EntityType))
    def test_columns_exist_on_models(self, entity_type):
        """Test every staged column exists on both production and staging models."""
        spec = ENTITY_SPECS[entity_type]
        for column in spec.columns:
            assert column in spec.model.model_fields
            assert column in spec.staging_model.model_fields
        assert spec.primary_key in spec.required

    def test_table_names(self):
        spec = ENTITY_SPECS[EntityType.LEAGUE]
        assert spec.model is League
        assert spec.staging_model is LeagueStaging
        assert spec.table_name == "leagues"
        assert spec.staging_table_name == "leagues_stg"


class TestForeignKeys:
    """Test declared dependencies between entities."""

    def test_dependencies(self):
        assert ENTITY_SPECS[EntityType.LEAGUE].dependencies() == set()
        assert ENTITY_SPECS[EntityType.TEAM].dependencies() == {EntityType.LEAGUE}
        assert ENTITY_SPECS[EntityType.PLAYER].dependencies() == {EntityType.TEAM}
        assert ENTITY_SPECS[EntityType.MATCH].dependencies() == {
            EntityType.LEAGUE,
            EntityType.TEAM,
        }

    def test_match_spec(self):
        spec = ENTITY_SPECS[EntityType.MATCH]
        assert spec.model is Match
        assert spec.staging_model is MatchStaging
        assert spec.defaults == {"match_status": "Completed"}


class TestHomeAndAwayDiffer:
    """Test the Match home/away invariant."""

    def test_same_team(self):
        assert home_and_away_differ({"home_team_id": 10, "away_team_id": 10}) is not None

    def test_different_teams(self):
        assert home_and_away_differ({"home_team_id": 10, "away_team_id": 11}) is None

    def test_missing_teams_left_to_required_check(self):
        assert home_and_away_differ({"home_team_id": None, "away_team_id": None}) is None


class TestGetEntitySpec:
    """Test get_entity_spec() lookups."""

    def test_by_enum_and_name(self):
        assert get_entity_spec(EntityType.TEAM) is ENTITY_SPECS[EntityType.TEAM]
        assert get_entity_spec("team") is ENTITY_SPECS[EntityType.TEAM]

    def test_unknown(self):
        with pytest.raises(LoadOrderError, match="Unknown entity type"):
            get_entity_spec("stadium")


class TestResolveLoadOrder:
    """Test resolve_load_order() topological sorting."""

    def test_full_order(self):
        assert resolve_load_order(reversed(LOAD_ORDER)) == [
            EntityType.LEAGUE,
            EntityType.TEAM,
            EntityType.PLAYER,
            EntityType.MATCH,
        ]

    def test_names_accepted(self):
        assert resolve_load_order(["match", "league", "team"]) == [
            EntityType.LEAGUE,
            EntityType.TEAM,
            EntityType.MATCH,
        ]

    def test_subset_without_dependencies(self):
        """Test dependencies outside the request are assumed committed."""
        assert resolve_load_order([EntityType.PLAYER]) == [EntityType.PLAYER]

    def test_duplicates_collapsed(self):
        assert resolve_load_order(["team", EntityType.TEAM]) == [EntityType.TEAM]

    def test_unknown_entity(self):
        with pytest.raises(LoadOrderError):
            resolve_load_order(["league", "venue"])

    def test_cycle_detected(self):
        """Test a dependency cycle is reported instead of looping."""
        specs = dict(ENTITY_SPECS)
        specs[EntityType.LEAGUE] = replace(
            ENTITY_SPECS[EntityType.LEAGUE],
            foreign_keys={"league_id": EntityType.TEAM},
        )
        with pytest.raises(LoadOrderError, match="Cyclic"):
            resolve_load_order([EntityType.LEAGUE, EntityType.TEAM], specs=specs)
