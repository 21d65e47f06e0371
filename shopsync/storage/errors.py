"""Storage-layer error types."""

from __future__ import annotations


class TimezoneAwareRequiredError(ValueError):
    """Raised when a naive datetime is bound to a UTC column."""

    def __init__(self, context: str) -> None:
        """Name the column type that rejected the value."""
        super().__init__(f"{context} values must be timezone aware")


class UnknownFieldError(ValueError):
    """Raised when a write names a column the resource table lacks."""

    def __init__(self, kind: str, fields: list[str]) -> None:
        """Record the offending field names."""
        self.fields = fields
        super().__init__(f"{kind} has no field(s): {', '.join(sorted(fields))}")


class DuplicateRecordError(RuntimeError):
    """Raised when ``insert`` targets an id that already exists."""

    def __init__(self, kind: str, record_id: str) -> None:
        """Record which resource id collided."""
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} {record_id} already exists")
