"""Tests for catalog assembly and the local catalog file."""

import json
from pathlib import Path

import pytest

from fleetbuilder.models.unit import Unit
from fleetbuilder.services.catalog import (
    catalog_to_export,
    join_catalog,
    load_catalog_file,
    stats_from_row,
    unit_from_row,
    write_catalog_file,
)


class TestStatsFromRow:
    def test_reads_effective_columns(self) -> None:
        row = {
            "unit_id": "u-1",
            "effective_gunnerytotal_0": 12,
            "effective_gunnerytotal_2": "4.5",
            "armor": 6,
        }

        assert stats_from_row(row) == {0: 12.0, 2: 4.5}

    def test_bad_values_read_as_zero(self) -> None:
        row = {"effective_gunnerytotal_0": None, "effective_gunnerytotal_1": "n/a"}

        assert stats_from_row(row) == {0: 0.0, 1: 0.0}

    def test_missing_row(self) -> None:
        assert stats_from_row(None) == {}


class TestUnitFromRow:
    def test_coerces_fields(self) -> None:
        unit = unit_from_row(
            {"id": 3, "name": "Scharnhorst", "nation": "Germany", "points": "32", "year": ""}
        )

        assert unit.id == "3"
        assert unit.points == 32
        assert unit.year is None
        assert unit.stats == {}

    def test_missing_points_default_to_zero(self) -> None:
        assert unit_from_row({"id": "u-1", "name": "x", "points": None}).points == 0


class TestJoinCatalog:
    def test_preserves_unit_order(self) -> None:
        units = [{"id": "b", "name": "B"}, {"id": "a", "name": "A"}]
        stats = [{"unit_id": "a", "effective_gunnerytotal_0": 3}]

        catalog = join_catalog(units, stats)

        assert [u.id for u in catalog] == ["b", "a"]
        assert catalog[0].stats == {}
        assert catalog[1].stats == {0: 3.0}

    def test_skips_rows_without_id(self) -> None:
        catalog = join_catalog([{"name": "Ghost"}, {"id": "a", "name": "A"}], [])

        assert [u.id for u in catalog] == ["a"]


class TestCatalogFile:
    def test_written_file_loads_back(self, tmp_path: Path, catalog: list[Unit]) -> None:
        path = tmp_path / "data" / "catalog.json"

        write_catalog_file(catalog, path)
        loaded = load_catalog_file(path)

        assert loaded == catalog

    def test_export_shape(self, bismarck: Unit) -> None:
        export = catalog_to_export([bismarck, Unit(id="u-bare", name="Bare")])

        assert export["units"][0]["name"] == "Bismarck"
        assert export["units"][1]["id"] == "u-bare"
        # Units without stats have no stat row
        assert export["unit_stats"] == [
            {
                "unit_id": "u-bismarck",
                "effective_gunnerytotal_0": 10,
                "effective_gunnerytotal_1": 8,
                "effective_gunnerytotal_2": 6,
                "effective_gunnerytotal_3": 4,
            }
        ]

    def test_loads_hand_written_export(self, tmp_path: Path) -> None:
        path = tmp_path / "catalog.json"
        path.write_text(
            json.dumps(
                {
                    "units": [{"id": "u-1", "name": "Tirpitz", "nation": "Germany", "points": 44}],
                    "unit_stats": [{"unit_id": "u-1", "effective_gunnerytotal_1": 9}],
                }
            )
        )

        units = load_catalog_file(path)

        assert units[0].name == "Tirpitz"
        assert units[0].effective(1) == 9.0

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_catalog_file(tmp_path / "nope.json")

    def test_non_object_file(self, tmp_path: Path) -> None:
        path = tmp_path / "catalog.json"
        path.write_text("[]")

        with pytest.raises(ValueError, match="JSON object"):
            load_catalog_file(path)
