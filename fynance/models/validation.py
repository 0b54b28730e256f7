"""
Snapshot Validation Models

The validator never throws on bad input. It parses what it can, excludes
what it cannot, and reports every exclusion or inconsistency here.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from fynance.models.snapshot import Snapshot


class ValidationIssue(BaseModel):
    """A single problem found in a raw snapshot record."""

    field: str = Field(
        ...,
        description="Location of the issue (e.g. 'transactions[3].amount')"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'invalid_record', 'type_mismatch', 'duplicate_id')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    record_id: Optional[str] = Field(
        default=None,
        description="Id of the offending record when it could be read"
    )


class SnapshotValidationResult(BaseModel):
    """
    Result of parsing a raw snapshot.

    `snapshot` holds only the records that passed. Records with an
    error-level issue were excluded; warnings were kept.
    """

    validated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    snapshot: Snapshot
    issues: list[ValidationIssue] = Field(default_factory=list)
    skipped_count: int = Field(
        default=0,
        ge=0,
        description="Number of records excluded from the snapshot"
    )

    @property
    def has_errors(self) -> bool:
        """Check if any record was excluded."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]
