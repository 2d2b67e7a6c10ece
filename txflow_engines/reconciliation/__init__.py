"""Document reconciliation: zone merge, parse, and field comparison."""

from txflow_engines.reconciliation.amounts import amount_in_text, normalize_amount
from txflow_engines.reconciliation.matcher import (
    ReconciliationEngine,
    ReconciliationThresholds,
)
from txflow_engines.reconciliation.parser import parse_merged_text
from txflow_engines.reconciliation.similarity import similarity
from txflow_engines.reconciliation.types import (
    ExpectedRecord,
    ExtractionPass,
    FieldResult,
    MergedDocument,
    ParsedDocument,
    ReconciledField,
    ReconciliationReport,
    SemanticZone,
    Severity,
)
from txflow_engines.reconciliation.zones import ZoneMerger, render_merged_text

__all__ = [
    "ExpectedRecord",
    "ExtractionPass",
    "FieldResult",
    "MergedDocument",
    "ParsedDocument",
    "ReconciledField",
    "ReconciliationEngine",
    "ReconciliationReport",
    "ReconciliationThresholds",
    "SemanticZone",
    "Severity",
    "ZoneMerger",
    "amount_in_text",
    "normalize_amount",
    "parse_merged_text",
    "render_merged_text",
    "similarity",
]
