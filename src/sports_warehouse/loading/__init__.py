"""Staging-to-production loading: conversion, validation and commit.

Usage:
    from sports_warehouse.loading import EntityLoader, SQLModelProductionStore

    loader = EntityLoader(SQLModelProductionStore(config))
    report = loader.load("team", staged_rows)
    print(report.accepted_count, report.rejection_pairs())
"""

from .converters import (
    Conversion,
    FieldKind,
    clean_text,
    convert_field,
    parse_boolean_flag,
    parse_date,
    parse_int,
)
from .entities import (
    ENTITY_SPECS,
    LOAD_ORDER,
    EntitySpec,
    EntityType,
    get_entity_spec,
    resolve_load_order,
)
from .loader import EntityLoader
from .report import LoadReport, Rejection, RejectionReason
from .store import (
    InMemoryProductionStore,
    InsertOutcome,
    ProductionStore,
    SQLModelProductionStore,
)

__all__ = [
    # Converters
    "Conversion",
    "FieldKind",
    "clean_text",
    "convert_field",
    "parse_boolean_flag",
    "parse_date",
    "parse_int",
    # Entities
    "ENTITY_SPECS",
    "LOAD_ORDER",
    "EntitySpec",
    "EntityType",
    "get_entity_spec",
    "resolve_load_order",
    # Loading
    "EntityLoader",
    "LoadReport",
    "Rejection",
    "RejectionReason",
    # Storage
    "InMemoryProductionStore",
    "InsertOutcome",
    "ProductionStore",
    "SQLModelProductionStore",
]
