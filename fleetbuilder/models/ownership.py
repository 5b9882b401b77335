"""
Ownership records — per-identity copy caps.

A signed-in player owns some units, each with a number of copies they may
field. The map answers two questions:

- Is this unit owned? (drives the owned-only catalog filter)
- How many copies may a deck hold? (drives the copy cap)

INVARIANT: copies is never negative.

Missing records mean different things depending on enforcement:
  - enforcement off: unit is effectively uncapped (DEFAULT_COPY_LIMIT)
  - enforcement on: unit is not owned, cap is 0
"""

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from fleetbuilder.config import DEFAULT_COPY_LIMIT


@dataclass(frozen=True, slots=True)
class OwnershipRecord:
    """Ownership of one unit by one identity."""

    unit_id: str
    owned: bool = False
    copies: int = 0

    def __post_init__(self) -> None:
        if self.copies < 0:
            raise ValueError(
                f"Unit '{self.unit_id}' has invalid copies {self.copies} (must be >= 0)"
            )

    @property
    def is_owned(self) -> bool:
        return self.owned or self.copies > 0


@dataclass(frozen=True, slots=True)
class OwnershipMap:
    """
    Immutable unit_id -> OwnershipRecord mapping.

    An empty map is what an anonymous visitor has.
    """

    _records: Mapping[str, OwnershipRecord] = field(default_factory=dict)

    @classmethod
    def from_records(cls, records: Iterable[OwnershipRecord]) -> "OwnershipMap":
        return cls(_records={record.unit_id: record for record in records})

    @classmethod
    def from_rows(cls, rows: Iterable[Mapping[str, Any]]) -> "OwnershipMap":
        """
        Build from raw `{unit_id, owned, copies}` rows.

        Null owned/copies values are read as False/0. Later rows for the same
        unit replace earlier ones.
        """
        records = []
        for row in rows:
            unit_id = row.get("unit_id")
            if unit_id is None:
                continue
            records.append(
                OwnershipRecord(
                    unit_id=str(unit_id),
                    owned=bool(row.get("owned") or False),
                    copies=max(0, int(row.get("copies") or 0)),
                )
            )
        return cls.from_records(records)

    def __contains__(self, unit_id: str) -> bool:
        return unit_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def get(self, unit_id: str) -> OwnershipRecord | None:
        return self._records.get(unit_id)

    def is_owned(self, unit_id: str) -> bool:
        """True if the record says owned or grants at least one copy."""
        record = self._records.get(unit_id)
        return record is not None and record.is_owned

    def copy_limit(self, unit_id: str, enforce: bool = False) -> int:
        """
        Maximum copies of a unit a deck may hold.

        Args:
            unit_id: Unit to look up
            enforce: Whether ownership enforcement (owned-only mode) is active

        Returns:
            The record's copies when a record exists; otherwise 0 under
            enforcement and DEFAULT_COPY_LIMIT without it.
        """
        record = self._records.get(unit_id)
        if record is not None:
            return record.copies
        return 0 if enforce else DEFAULT_COPY_LIMIT

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {
            unit_id: {"owned": record.owned, "copies": record.copies}
            for unit_id, record in self._records.items()
        }
