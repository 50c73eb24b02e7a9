"""ErrorSet — per-instance failure records with flat and grouped views.

Each validated entity owns one ErrorSet. Records are reset at the start of
every public run and accumulate across the groups evaluated in that run.
The set also remembers which groups were evaluated, so the grouped view
can tell "evaluated and clean" apart from "never evaluated".
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from pydantic import BaseModel


class ErrorRecord(BaseModel):
    """A single failed rule evaluation."""

    model_config = {"frozen": True}

    field: str
    message: str
    group: str | None = None
    kind: str | None = None


class GroupedErrors(dict[str | None, dict[str, list[str]]]):
    """Failures partitioned by group, ``None`` keying ungrouped rules.

    Only groups with failures are stored, so a fully valid entity yields an
    empty mapping. Indexing a group that was evaluated but produced no
    failures returns ``{}``; indexing a name that was never evaluated raises
    ``KeyError`` (``get`` returns the default).
    """

    def __init__(self, partitions: dict[str | None, dict[str, list[str]]], evaluated: frozenset[str | None]) -> None:
        super().__init__(partitions)
        self.evaluated = evaluated

    def __missing__(self, key: str | None) -> dict[str, list[str]]:
        if key in self.evaluated:
            return {}
        raise KeyError(key)

    def get(self, key: str | None, default: Any = None) -> Any:  # type: ignore[override]
        try:
            return self[key]
        except KeyError:
            return default


class ErrorSet:
    """Ordered failure records for one entity instance."""

    def __init__(self) -> None:
        self._records: list[ErrorRecord] = []
        self._evaluated: dict[str | None, None] = {}
        self._has_run = False

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def add(self, field: str, message: str, *, group: str | None = None, kind: str | None = None) -> ErrorRecord:
        record = ErrorRecord(field=field, message=message, group=group, kind=kind)
        self._records.append(record)
        return record

    def mark_evaluated(self, group: str | None) -> None:
        self._evaluated.setdefault(group, None)
        self._has_run = True

    def clear(self) -> None:
        self._records.clear()
        self._evaluated.clear()
        self._has_run = False

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def has_run(self) -> bool:
        """Whether any group (or the ungrouped set) populated this snapshot."""
        return self._has_run

    @property
    def evaluated_groups(self) -> list[str | None]:
        return list(self._evaluated)

    @property
    def records(self) -> tuple[ErrorRecord, ...]:
        return tuple(self._records)

    @property
    def count(self) -> int:
        return len(self._records)

    @property
    def is_empty(self) -> bool:
        return not self._records

    @property
    def fields(self) -> list[str]:
        return list(dict.fromkeys(r.field for r in self._records))

    def flat(self) -> dict[str, list[str]]:
        """Map each failing field to its messages, regardless of group."""
        flat: dict[str, list[str]] = {}
        for record in self._records:
            flat.setdefault(record.field, []).append(record.message)
        return flat

    def grouped(self) -> GroupedErrors:
        """Partition the records by the group whose evaluation produced them."""
        partitions: dict[str | None, dict[str, list[str]]] = {}
        for record in self._records:
            partitions.setdefault(record.group, {}).setdefault(record.field, []).append(record.message)
        return GroupedErrors(partitions, frozenset(self._evaluated))

    def full_messages(self) -> list[str]:
        """Human-readable messages, e.g. ``"first_name can't be blank"``."""
        return [f"{r.field} {r.message}" for r in self._records]

    def __getitem__(self, field: str) -> list[str]:
        return [r.message for r in self._records if r.field == field]

    def __iter__(self) -> Iterator[ErrorRecord]:
        return iter(list(self._records))

    def __len__(self) -> int:
        return len(self._records)

    def __bool__(self) -> bool:
        return bool(self._records)

    def __repr__(self) -> str:
        return f"ErrorSet({self.flat()!r})"
