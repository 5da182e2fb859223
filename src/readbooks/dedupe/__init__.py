"""Deduplication and placement of extracted artifacts."""

from .engine import DedupEngine, DedupStore, PlacementDecision, ReconciliationReport

__all__ = ["DedupEngine", "DedupStore", "PlacementDecision", "ReconciliationReport"]
