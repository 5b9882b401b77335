import pytest

from fleetbuilder.models import failure as failure_module
from fleetbuilder.models.unit import Unit


@pytest.fixture(autouse=True)
def clear_finalized_responses():
    """Clear the finalized responses set between tests.

    This prevents test isolation issues where Python reuses memory
    addresses for new objects, causing id() collisions with previously
    finalized responses.
    """
    failure_module._finalized_responses.clear()
    yield
    failure_module._finalized_responses.clear()


def _make_unit(
    unit_id: str,
    nation: str = "Germany",
    points: int = 10,
    stats: dict[int, float] | None = None,
    name: str | None = None,
    unit_type: str = "Destroyer",
    abilities: str | None = None,
) -> Unit:
    """Build a catalog unit with sensible defaults."""
    return Unit(
        id=unit_id,
        name=name or unit_id,
        nation=nation,
        type=unit_type,
        points=points,
        abilities=abilities,
        stats=stats or {},
    )


@pytest.fixture
def bismarck() -> Unit:
    return _make_unit(
        "u-bismarck",
        nation="Germany",
        points=45,
        stats={0: 10, 1: 8, 2: 6, 3: 4},
        name="Bismarck",
        unit_type="Battleship",
        abilities="Flagship 1",
    )


@pytest.fixture
def u47() -> Unit:
    return _make_unit(
        "u-u47",
        nation="Germany",
        points=10,
        stats={0: 3, 1: 2},
        name="U-47",
        unit_type="Submarine",
        abilities="Torpedo Attack",
    )


@pytest.fixture
def zara() -> Unit:
    return _make_unit(
        "u-zara",
        nation="Italy",
        points=20,
        stats={0: 5, 1: 4, 2: 3},
        name="Zara",
        unit_type="Cruiser",
    )


@pytest.fixture
def hood() -> Unit:
    return _make_unit(
        "u-hood",
        nation="United Kingdom",
        points=40,
        stats={0: 8, 1: 7, 2: 5, 3: 3},
        name="HMS Hood",
        unit_type="Battlecruiser",
    )


@pytest.fixture
def fletcher() -> Unit:
    return _make_unit(
        "u-fletcher",
        nation="USA",
        points=12,
        stats={0: 4, 1: 3},
        name="USS Fletcher",
        unit_type="Destroyer",
        abilities="Torpedo Attack",
    )


@pytest.fixture
def catalog(bismarck: Unit, u47: Unit, zara: Unit, hood: Unit, fletcher: Unit) -> list[Unit]:
    """Small mixed catalog in provider order."""
    return [bismarck, u47, zara, hood, fletcher]


@pytest.fixture
def units_by_id(catalog: list[Unit]) -> dict[str, Unit]:
    return {unit.id: unit for unit in catalog}


@pytest.fixture
def make_unit():
    """Factory for one-off units: make_unit("u-1", nation="Japan", points=30)."""
    return _make_unit
