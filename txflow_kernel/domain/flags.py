"""
TransactionFlags -- versioned, explicit replacement for a free-form flag bag.

Every flag a transaction can carry is a named, typed field here.  The
struct is frozen; services derive a new instance with ``evolve``-style
helpers and write it back inside the same conditional UPDATE that moves
the status.  Unknown keys in stored JSON are rejected so that a schema
drift is loud, not silent.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Mapping

from txflow_kernel.domain.lifecycle import EditableSection

FLAGS_SCHEMA_VERSION = 1


class ReconciliationOutcome(str, Enum):
    MATCH = "MATCH"
    MISMATCH = "MISMATCH"


@dataclass(frozen=True)
class TransactionFlags:
    """Lock state, edit grants and reconciliation markers for one transaction."""

    schema_version: int = FLAGS_SCHEMA_VERSION
    locked: bool = False
    permanently_locked: bool = False
    editable_sections: frozenset[EditableSection] | None = None
    reconciliation_outcome: ReconciliationOutcome | None = None
    exception_patch: tuple[tuple[str, str], ...] = field(default=())

    def lock(self, *, permanent: bool = False) -> TransactionFlags:
        return replace(
            self,
            locked=True,
            permanently_locked=self.permanently_locked or permanent,
            editable_sections=None,
        )

    def unlock_for_revision(self, sections: frozenset[EditableSection]) -> TransactionFlags:
        if self.permanently_locked:
            raise ValueError("Permanently locked transactions cannot be reopened")
        return replace(self, locked=False, editable_sections=frozenset(sections))

    def with_outcome(self, outcome: ReconciliationOutcome) -> TransactionFlags:
        return replace(self, reconciliation_outcome=outcome)

    def with_exception_patch(self, patch: Mapping[str, str]) -> TransactionFlags:
        return replace(self, exception_patch=tuple(sorted(patch.items())))

    def allows(self, section: EditableSection) -> bool:
        return self.editable_sections is not None and section in self.editable_sections

    @property
    def patch_map(self) -> dict[str, str]:
        return dict(self.exception_patch)

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "locked": self.locked,
            "permanently_locked": self.permanently_locked,
            "editable_sections": (
                sorted(s.value for s in self.editable_sections)
                if self.editable_sections is not None
                else None
            ),
            "reconciliation_outcome": (
                self.reconciliation_outcome.value if self.reconciliation_outcome else None
            ),
            "exception_patch": dict(self.exception_patch) or None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> TransactionFlags:
        if not data:
            return cls()
        unknown = set(data) - {
            "schema_version",
            "locked",
            "permanently_locked",
            "editable_sections",
            "reconciliation_outcome",
            "exception_patch",
        }
        if unknown:
            raise ValueError(f"Unknown transaction flag keys: {sorted(unknown)}")
        version = int(data.get("schema_version", FLAGS_SCHEMA_VERSION))
        if version != FLAGS_SCHEMA_VERSION:
            raise ValueError(f"Unsupported transaction flags schema version: {version}")
        sections = data.get("editable_sections")
        outcome = data.get("reconciliation_outcome")
        patch = data.get("exception_patch") or {}
        return cls(
            schema_version=version,
            locked=bool(data.get("locked", False)),
            permanently_locked=bool(data.get("permanently_locked", False)),
            editable_sections=(
                frozenset(EditableSection(s) for s in sections) if sections is not None else None
            ),
            reconciliation_outcome=ReconciliationOutcome(outcome) if outcome else None,
            exception_patch=tuple(sorted((str(k), str(v)) for k, v in patch.items())),
        )
