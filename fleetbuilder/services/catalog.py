"""
Unit catalog assembly.

The catalog provider returns two row sets: unit rows and per-unit stat rows.
Stats are joined onto units by unit id; each `effective_gunnerytotal_{r}`
column becomes the unit's effective damage at range band r.
"""

import json
import logging
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any

from fleetbuilder.config import EFFECTIVE_RANGES
from fleetbuilder.models.unit import Unit

logger = logging.getLogger(__name__)

UNIT_COLUMNS = ("id", "name", "nation", "type", "year", "points", "set_name", "rarity", "abilities")
EFFECTIVE_STAT_COLUMN = "effective_gunnerytotal_{range_band}"


def _to_float(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def _to_int(value: Any, default: int | None = None) -> int | None:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def stats_from_row(row: Mapping[str, Any] | None) -> dict[int, float]:
    """Range band -> effective damage, for the columns present in a stat row."""
    if not row:
        return {}

    stats: dict[int, float] = {}
    for r in EFFECTIVE_RANGES:
        column = EFFECTIVE_STAT_COLUMN.format(range_band=r)
        if column in row:
            stats[r] = _to_float(row[column])
    return stats


def unit_from_row(row: Mapping[str, Any], stat_row: Mapping[str, Any] | None = None) -> Unit:
    return Unit(
        id=str(row["id"]),
        name=row.get("name") or "",
        nation=row.get("nation"),
        type=row.get("type"),
        year=_to_int(row.get("year")),
        points=_to_int(row.get("points"), default=0) or 0,
        set_name=row.get("set_name"),
        rarity=row.get("rarity"),
        abilities=row.get("abilities"),
        stats=stats_from_row(stat_row),
    )


def join_catalog(
    unit_rows: Iterable[Mapping[str, Any]],
    stat_rows: Iterable[Mapping[str, Any]],
) -> list[Unit]:
    """
    Join unit rows with their stat rows.

    Unit order is preserved. Units without a stat row get empty stats.
    Rows without an id are skipped.
    """
    stats_by_unit = {
        str(row["unit_id"]): row for row in stat_rows if row.get("unit_id") is not None
    }

    units: list[Unit] = []
    for row in unit_rows:
        if row.get("id") is None:
            continue
        units.append(unit_from_row(row, stats_by_unit.get(str(row["id"]))))
    return units


def load_catalog_file(path: Path) -> list[Unit]:
    """
    Load a catalog exported as JSON: {"units": [...], "unit_stats": [...]}.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is not a JSON object
    """
    if not path.exists():
        raise FileNotFoundError(f"Catalog file not found at {path}")

    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Catalog file {path} does not hold a JSON object")

    units = join_catalog(data.get("units", []), data.get("unit_stats", []))
    logger.info("Loaded %d units from %s", len(units), path)
    return units


def catalog_to_export(units: Sequence[Unit]) -> dict[str, list[dict[str, Any]]]:
    """Inverse of join_catalog: split units back into unit rows and stat rows."""
    unit_rows: list[dict[str, Any]] = []
    stat_rows: list[dict[str, Any]] = []
    for unit in units:
        unit_rows.append({column: getattr(unit, column) for column in UNIT_COLUMNS})
        if unit.stats:
            stat_row: dict[str, Any] = {"unit_id": unit.id}
            for r, value in unit.stats.items():
                stat_row[EFFECTIVE_STAT_COLUMN.format(range_band=r)] = value
            stat_rows.append(stat_row)
    return {"units": unit_rows, "unit_stats": stat_rows}


def write_catalog_file(units: Sequence[Unit], path: Path) -> None:
    """Write a catalog export readable by load_catalog_file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(catalog_to_export(units), f, indent=2)
    logger.info("Wrote %d units to %s", len(units), path)
