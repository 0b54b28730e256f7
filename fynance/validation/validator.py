"""
Two-Stage Snapshot Validation

DESIGN DECISION: The snapshot comes from an aggregator sync we don't
control, so it is parsed in two distinct stages:

STAGE 1 - SCHEMA VALIDATION (per record):
- Required fields present
- Amounts numeric and finite (no NaN / Infinity)
- Dates parseable
- A record that fails is EXCLUDED from the snapshot

STAGE 2 - SEMANTIC VALIDATION (over the parsed snapshot):
- Transaction `type` contradicting the amount sign
- Duplicate ids within a collection
- Goals whose target can't produce a progress ratio
- These are warnings; the records stay in

IMPORTANT: Validation never raises for bad data and never repairs it.
Bad records are dropped and reported, so no garbage value can leak into
an aggregate and silently flip a comparison.
"""

from collections import Counter
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ValidationError

from fynance.models.snapshot import (
    Account,
    CreditCard,
    Goal,
    Snapshot,
    Transaction,
)
from fynance.models.validation import SnapshotValidationResult, ValidationIssue


# (snapshot field, accepted raw keys, record model)
COLLECTIONS: tuple[tuple[str, tuple[str, ...], type[BaseModel]], ...] = (
    ("accounts", ("accounts",), Account),
    ("credit_cards", ("creditCards", "credit_cards"), CreditCard),
    ("transactions", ("transactions",), Transaction),
    ("goals", ("goals",), Goal),
)


class SnapshotValidator:
    """
    Parses raw snapshot data into a typed `Snapshot`.

    Stage 1 runs per record; stage 2 runs on whatever survived stage 1.
    """

    def _validate_schema(
        self,
        raw: Mapping[str, Any],
    ) -> tuple[dict[str, list], list[ValidationIssue], int]:
        """
        Stage 1: Schema validation.

        Returns: (parsed_collections, list_of_issues, skipped_count)
        """
        parsed: dict[str, list] = {}
        issues = []
        skipped = 0

        for field_name, keys, model in COLLECTIONS:
            records = self._find_collection(raw, keys)
            parsed[field_name] = []

            if records is None:
                continue

            if not isinstance(records, (list, tuple)):
                issues.append(ValidationIssue(
                    field=field_name,
                    issue_type="invalid_collection",
                    message=f"Expected a list of {field_name}, got {type(records).__name__}",
                    severity="error",
                ))
                continue

            for index, record in enumerate(records):
                location = f"{field_name}[{index}]"
                record_id = self._record_id(record)

                try:
                    parsed[field_name].append(model.model_validate(record))
                except ValidationError as e:
                    skipped += 1
                    issues.append(ValidationIssue(
                        field=location,
                        issue_type="invalid_record",
                        message=self._describe_errors(location, e),
                        severity="error",
                        record_id=record_id,
                    ))

        return parsed, issues, skipped

    def _validate_semantic(
        self,
        snapshot: Snapshot,
    ) -> list[ValidationIssue]:
        """
        Stage 2: Semantic validation.

        Checks:
        - Transaction type vs amount sign
        - Duplicate ids
        - Non-positive goal targets

        Returns: list_of_issues (warnings only)
        """
        issues = []

        for index, transaction in enumerate(snapshot.transactions):
            if not transaction.type_matches_sign:
                issues.append(ValidationIssue(
                    field=f"transactions[{index}].type",
                    issue_type="type_mismatch",
                    message=(
                        f"Transaction {transaction.id} is marked '{transaction.type.value}' "
                        f"but its amount is {transaction.amount}; the amount sign is used"
                    ),
                    severity="warning",
                    record_id=transaction.id,
                ))

        for field_name, _, _ in COLLECTIONS:
            counts = Counter(record.id for record in getattr(snapshot, field_name))
            for record_id, count in counts.items():
                if count > 1:
                    issues.append(ValidationIssue(
                        field=field_name,
                        issue_type="duplicate_id",
                        message=f"Id {record_id} appears {count} times in {field_name}",
                        severity="warning",
                        record_id=record_id,
                    ))

        for index, goal in enumerate(snapshot.goals):
            if goal.progress is None:
                issues.append(ValidationIssue(
                    field=f"goals[{index}].target_amount",
                    issue_type="suspicious_value",
                    message=f"Goal {goal.id} has a non-positive target; progress can't be tracked",
                    severity="warning",
                    record_id=goal.id,
                ))

        return issues

    def validate(self, raw: Mapping[str, Any]) -> SnapshotValidationResult:
        """
        Run both stages and build the snapshot.

        Args:
            raw: Mapping with any of accounts / creditCards / transactions / goals
                 (camelCase or snake_case keys)

        Returns:
            SnapshotValidationResult whose snapshot holds only valid records
        """
        parsed, issues, skipped = self._validate_schema(raw)
        snapshot = Snapshot(**parsed)
        issues.extend(self._validate_semantic(snapshot))

        return SnapshotValidationResult(
            snapshot=snapshot,
            issues=issues,
            skipped_count=skipped,
        )

    def check(self, snapshot: Snapshot) -> list[ValidationIssue]:
        """Run only the semantic stage on an already typed snapshot."""
        return self._validate_semantic(snapshot)

    def get_user_friendly_summary(self, result: SnapshotValidationResult) -> str:
        """Short summary the host can show after a sync."""
        if not result.issues:
            return "✅ All records were imported."

        lines = []
        if result.skipped_count:
            lines.append(f"❌ {result.skipped_count} records could not be read and were ignored:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")

        if result.warnings:
            lines.append("")
            lines.append("⚠️ Please check the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines).strip()

    @staticmethod
    def _find_collection(raw: Mapping[str, Any], keys: tuple[str, ...]) -> Optional[Any]:
        for key in keys:
            if key in raw:
                return raw[key]
        return None

    @staticmethod
    def _record_id(record: Any) -> Optional[str]:
        if isinstance(record, Mapping) and record.get("id") is not None:
            return str(record["id"])
        return None

    @staticmethod
    def _describe_errors(location: str, error: ValidationError) -> str:
        parts = []
        for detail in error.errors():
            field = ".".join(str(part) for part in detail["loc"]) or "record"
            parts.append(f"{field}: {detail['msg']}")
        return f"{location} excluded ({'; '.join(parts)})"
