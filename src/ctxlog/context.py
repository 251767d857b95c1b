"""
Immutable log context value.

A ``LogContext`` bundles the metadata that gets attached to every log entry
emitted while it is active: correlation ids, the originating service, tags,
a category, free-form metadata and source-record provenance.

Every ``with_*``/``without_*`` method returns a new ``LogContext`` and leaves
the receiver untouched, so a context can be shared freely between execution
branches and stored in a ``ContextVar`` without copying.

Usage:
    ctx = (
        LogContext.create(session_id="req-123", category="http")
        .with_tags("api", "users")
        .with_metadata(user_id="456")
        .with_source_records([("orders", "o-1")])
    )
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, NamedTuple

SourceRecordsInput = Iterable[tuple[str, str]] | Mapping[str, Iterable[str]]


class SourceRecordIdentifier(NamedTuple):
    """Reference to an upstream record that contributed to the unit of work."""

    source_context: str
    source_id: str

    def __str__(self) -> str:
        return f"{self.source_context}:{self.source_id}"


def _freeze_metadata(metadata: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(metadata))


def _iter_source_records(records: SourceRecordsInput) -> Iterable[tuple[str, str]]:
    if isinstance(records, Mapping):
        for source_context, source_ids in records.items():
            for source_id in source_ids:
                yield source_context, source_id
    else:
        for source_context, source_id in records:
            yield source_context, source_id


def _freeze_source_records(records: SourceRecordsInput) -> Mapping[str, frozenset[str]]:
    # Inner sets are rebuilt so a derived context never shares them with its parent
    grouped: dict[str, set[str]] = {}
    for source_context, source_id in _iter_source_records(records):
        grouped.setdefault(source_context, set()).add(source_id)
    return MappingProxyType({source_context: frozenset(ids) for source_context, ids in grouped.items()})


@dataclass(frozen=True)
class LogContext:
    """
    Contextual fields attached to log entries.

    Build instances with ``LogContext.create()`` or ``LogContext.empty()``.
    Collections passed to the constructor are copied and frozen, so a context
    never aliases caller-owned data.

    Hashing covers every field but only the keys of ``metadata``, whose
    values may be unhashable; contexts that compare equal always hash equal.

    Correlation:
        session_id: Logical session/request identifier
        transaction_id: Logical transaction identifier

    Classification:
        service: Originating component
        category: Single free-form category
        tags: Set of tags

    Payload:
        metadata: Read-only mapping of arbitrary values
        source_record_ids_by_source_context: Provenance, source context -> ids
    """

    tags: frozenset[str] = frozenset()
    category: str | None = None
    session_id: str | None = None
    transaction_id: str | None = None
    service: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    source_record_ids_by_source_context: Mapping[str, frozenset[str]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "tags", frozenset(self.tags))
        object.__setattr__(self, "metadata", _freeze_metadata(self.metadata))
        object.__setattr__(
            self,
            "source_record_ids_by_source_context",
            _freeze_source_records(self.source_record_ids_by_source_context),
        )

    def __hash__(self) -> int:
        return hash(
            (
                self.tags,
                self.category,
                self.session_id,
                self.transaction_id,
                self.service,
                frozenset(self.metadata),
                frozenset(self.source_record_ids_by_source_context.items()),
            )
        )

    @classmethod
    def create(
        cls,
        *,
        tags: Iterable[str] | None = None,
        category: str | None = None,
        session_id: str | None = None,
        transaction_id: str | None = None,
        service: str | None = None,
        metadata: Mapping[str, Any] | None = None,
        source_records: SourceRecordsInput | None = None,
    ) -> "LogContext":
        """Create a context from a partial set of fields; the rest default to empty."""
        return cls(
            tags=tags or (),
            category=category,
            session_id=session_id,
            transaction_id=transaction_id,
            service=service,
            metadata=metadata or {},
            source_record_ids_by_source_context=source_records or {},
        )

    @classmethod
    def empty(cls) -> "LogContext":
        """Return the canonical "no context" value."""
        return EMPTY_CONTEXT

    @property
    def is_empty(self) -> bool:
        return self == EMPTY_CONTEXT

    # -- scalar fields -------------------------------------------------------

    def with_category(self, category: str | None) -> "LogContext":
        return replace(self, category=category)

    def with_session_id(self, session_id: str) -> "LogContext":
        return replace(self, session_id=session_id)

    def with_transaction_id(self, transaction_id: str) -> "LogContext":
        return replace(self, transaction_id=transaction_id)

    def with_service(self, service: str) -> "LogContext":
        return replace(self, service=service)

    # -- tags ----------------------------------------------------------------

    def with_tags(self, *tags: str) -> "LogContext":
        return replace(self, tags=self.tags | frozenset(tags))

    def without_tags(self, *tags: str) -> "LogContext":
        """Remove the given tags, or all tags when called without arguments."""
        if not tags:
            return replace(self, tags=frozenset())
        return replace(self, tags=self.tags - frozenset(tags))

    # -- metadata ------------------------------------------------------------

    def with_metadata(self, entries: Mapping[str, Any] | None = None, /, **kwargs: Any) -> "LogContext":
        """Merge entries into metadata; existing keys are overwritten."""
        merged = dict(self.metadata)
        if entries:
            merged.update(entries)
        merged.update(kwargs)
        return replace(self, metadata=merged)

    def without_metadata(self, *keys: str) -> "LogContext":
        """Remove the given keys, or all metadata when called without arguments."""
        if not keys:
            return replace(self, metadata={})
        remaining = {k: v for k, v in self.metadata.items() if k not in keys}
        return replace(self, metadata=remaining)

    # -- source records ------------------------------------------------------

    def with_source_records(self, records: SourceRecordsInput) -> "LogContext":
        """Add (source_context, source_id) pairs."""
        updated = {ctx: set(ids) for ctx, ids in self.source_record_ids_by_source_context.items()}
        for source_context, source_id in _iter_source_records(records):
            updated.setdefault(source_context, set()).add(source_id)
        return replace(self, source_record_ids_by_source_context=updated)

    def without_source_records(self, records: SourceRecordsInput | None = None) -> "LogContext":
        """
        Remove (source_context, source_id) pairs.

        A source context whose last id is removed disappears entirely.
        Called with ``None`` it clears all source records.
        """
        if records is None:
            return replace(self, source_record_ids_by_source_context={})
        updated = {ctx: set(ids) for ctx, ids in self.source_record_ids_by_source_context.items()}
        for source_context, source_id in _iter_source_records(records):
            if source_context in updated:
                updated[source_context].discard(source_id)
        return replace(self, source_record_ids_by_source_context=updated)

    def source_record_identifiers(self) -> tuple[SourceRecordIdentifier, ...]:
        """Flatten source records, source contexts in insertion order, ids sorted."""
        return tuple(
            SourceRecordIdentifier(source_context, source_id)
            for source_context, source_ids in self.source_record_ids_by_source_context.items()
            for source_id in sorted(source_ids)
        )

    def to_dict(self) -> dict[str, Any]:
        """Return non-default fields keyed by their output names."""
        result: dict[str, Any] = {}
        if self.session_id:
            result["sessionId"] = self.session_id
        if self.transaction_id:
            result["transactionId"] = self.transaction_id
        if self.tags:
            result["tags"] = sorted(self.tags)
        if self.service:
            result["service"] = self.service
        if self.category:
            result["category"] = self.category
        source_records = self.source_record_identifiers()
        if source_records:
            result["sourceRecords"] = [str(record) for record in source_records]
        if self.metadata:
            result["metadata"] = dict(self.metadata)
        return result


EMPTY_CONTEXT = LogContext()
