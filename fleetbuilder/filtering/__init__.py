"""
Catalog filtering.

Deterministic narrowing of the unit catalog by text, nation, type,
faction rule and ownership.
"""

from fleetbuilder.filtering.catalog_filter import (
    ALL,
    CatalogFilterMetrics,
    CatalogFilters,
    filter_catalog,
    nation_options,
    type_options,
)

__all__ = [
    "ALL",
    "CatalogFilterMetrics",
    "CatalogFilters",
    "filter_catalog",
    "nation_options",
    "type_options",
]
