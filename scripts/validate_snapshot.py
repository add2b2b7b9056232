"""
Snapshot validation script for publish quality checks.

This script validates a published snapshot directory to ensure:
1. latest.json, the dated snapshot and meta.json exist and are readable
2. Metadata indicates a successful run
3. Row counts agree with the metadata
4. Rows carry the identifying fields and no orderbook id appears twice

Exit codes:
  0 - All validations passed
  1 - Validation failed (data has problems)

Validation errors are written to stderr for capture by workflow.
"""
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

import pandas as pd

from nordic_stocks.models import Quote
from nordic_stocks.standardize import quotes_to_frame

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


REQUIRED_TEXT_COLUMNS = ["symbol", "fullName", "currency", "orderbookId"]


class ValidationError(Exception):
    """Raised when a validation check fails."""
    pass


def validate_file_exists(path: Path, file_type: str) -> None:
    if not path.exists():
        raise ValidationError(f"{file_type} file not found: {path}")
    if not path.is_file():
        raise ValidationError(f"{file_type} path is not a file: {path}")
    if path.stat().st_size == 0:
        raise ValidationError(f"{file_type} file is empty: {path}")
    logger.info(f"✓ {file_type} file exists: {path}")


def validate_metadata_status(meta_path: Path) -> dict[str, Any]:
    """Validate metadata JSON exists and indicates success."""
    validate_file_exists(meta_path, "Metadata")

    try:
        with open(meta_path, encoding="utf-8") as f:
            meta = json.load(f)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Metadata JSON is invalid: {e}")

    run_status = meta.get("run_status")
    if run_status != "success":
        error_info = meta.get("error", {})
        raise ValidationError(
            f"Metadata indicates failed run: status={run_status}, "
            f"stage={error_info.get('stage')}, "
            f"error={error_info.get('message')}"
        )

    logger.info("✓ Metadata status is 'success'")
    return meta


def load_snapshot_frame(path: Path, file_type: str) -> pd.DataFrame:
    """Read a snapshot row array through the tolerant decoder."""
    validate_file_exists(path, file_type)
    try:
        with open(path, encoding="utf-8") as f:
            rows = json.load(f)
    except json.JSONDecodeError as e:
        raise ValidationError(f"{file_type} JSON is invalid: {e}")
    if not isinstance(rows, list):
        raise ValidationError(f"{file_type} is not a JSON array")
    try:
        quotes = [Quote.from_row(r) for r in rows]
    except ValueError as e:
        raise ValidationError(f"{file_type} has malformed rows: {e}")

    df = quotes_to_frame(quotes)
    logger.info(f"✓ {file_type} is readable: {len(df)} rows")
    return df


def validate_row_count(df: pd.DataFrame, meta: dict[str, Any]) -> None:
    actual_rows = len(df)
    if actual_rows == 0:
        raise ValidationError("Snapshot is empty (0 rows)")
    meta_rows = (meta.get("summary") or {}).get("rows")
    if meta_rows is not None and actual_rows != meta_rows:
        raise ValidationError(f"Row count mismatch: snapshot has {actual_rows} rows, metadata says {meta_rows}")
    logger.info(f"✓ Row count matches metadata: {actual_rows}")


def validate_required_fields(df: pd.DataFrame) -> None:
    for col in REQUIRED_TEXT_COLUMNS:
        blank = int((df[col].str.strip() == "").sum())
        if blank:
            raise ValidationError(f"{blank} rows have an empty {col}")
    logger.info("✓ Required fields present")


def validate_no_duplicates(df: pd.DataFrame) -> None:
    dup_count = int(df.duplicated(subset=["orderbookId"], keep=False).sum())
    if dup_count > 0:
        raise ValidationError(f"Found {dup_count} rows sharing an orderbookId")
    logger.info("✓ No duplicate orderbookId values")


def validate_snapshot_dir(snapshot_dir: Path) -> list[str]:
    """Run every check; returns the list of error messages (empty when valid)."""
    errors: list[str] = []
    try:
        meta = validate_metadata_status(snapshot_dir / "meta.json")
        latest = load_snapshot_frame(snapshot_dir / "latest.json", "Latest snapshot")
        validate_row_count(latest, meta)
        validate_required_fields(latest)
        validate_no_duplicates(latest)

        date_label = meta.get("date")
        if date_label:
            dated = load_snapshot_frame(snapshot_dir / f"{date_label}.json", "Dated snapshot")
            if len(dated) != len(latest):
                raise ValidationError(f"Dated snapshot has {len(dated)} rows, latest has {len(latest)}")
    except ValidationError as e:
        errors.append(str(e))
        logger.error(f"✗ {e}")
    return errors


def main():
    parser = argparse.ArgumentParser(description="Validate a published stock snapshot directory")
    parser.add_argument("--snapshot-dir", type=str, default="data", help="Snapshot directory (default: data)")
    args = parser.parse_args()

    snapshot_dir = Path(args.snapshot_dir)
    if not snapshot_dir.exists():
        logger.error(f"Snapshot directory does not exist: {snapshot_dir}")
        sys.exit(1)

    errors = validate_snapshot_dir(snapshot_dir)
    if errors:
        for error in errors:
            print(error, file=sys.stderr)
        sys.exit(1)
    logger.info("✓ ALL VALIDATIONS PASSED")
    sys.exit(0)


if __name__ == "__main__":
    main()
