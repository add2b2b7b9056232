"""Tests for snapshot validation script."""
import datetime as dt
import json
import sys
from pathlib import Path

import pytest

from nordic_stocks.models import FetchResult, Quote, StopReason
from nordic_stocks.orchestrator import PublishConfig, run_publish

# Import validation functions
sys.path.insert(0, str(Path(__file__).parent.parent / "scripts"))
from validate_snapshot import (
    ValidationError,
    load_snapshot_frame,
    validate_file_exists,
    validate_metadata_status,
    validate_no_duplicates,
    validate_snapshot_dir,
)


class _Provider:
    name = "fake"

    def __init__(self, quotes):
        self._quotes = quotes

    def fetch(self, *, cancel_event=None):
        return FetchResult(quotes=self._quotes, pages_fetched=1, stop_reason=StopReason.SHORT_PAGE)


def _quote(symbol, orderbook_id):
    return Quote(full_name=f"{symbol} Corp", symbol=symbol, currency="SEK", orderbook_id=orderbook_id)


def _publish(tmp_path, quotes):
    cfg = PublishConfig(output_dir=str(tmp_path))
    run_publish(cfg, provider=_Provider(quotes), now=dt.datetime(2025, 3, 14, tzinfo=dt.timezone.utc))
    return tmp_path


def test_validate_file_exists_failures(tmp_path):
    with pytest.raises(ValidationError, match="not found"):
        validate_file_exists(tmp_path / "missing.json", "Test file")

    empty = tmp_path / "empty.json"
    empty.write_text("")
    with pytest.raises(ValidationError, match="empty"):
        validate_file_exists(empty, "Test file")


def test_published_snapshot_passes(tmp_path):
    snapshot_dir = _publish(tmp_path, [_quote("VOLV-B", "SSE1"), _quote("ERIC-B", "SSE2")])
    assert validate_snapshot_dir(snapshot_dir) == []


def test_duplicate_orderbook_ids_fail(tmp_path):
    snapshot_dir = _publish(tmp_path, [_quote("VOLV-B", "SSE1"), _quote("VOLV-A", "SSE1")])
    errors = validate_snapshot_dir(snapshot_dir)
    assert len(errors) == 1
    assert "orderbookId" in errors[0]


def test_blank_required_field_fails(tmp_path):
    snapshot_dir = _publish(tmp_path, [_quote("", "SSE1")])
    errors = validate_snapshot_dir(snapshot_dir)
    assert errors and "symbol" in errors[0]


def test_failed_run_metadata(tmp_path):
    meta_path = tmp_path / "meta.json"
    meta_path.write_text(json.dumps({"run_status": "failed", "error": {"stage": "fetch", "message": "boom"}}))

    with pytest.raises(ValidationError, match="failed run"):
        validate_metadata_status(meta_path)


def test_row_count_mismatch(tmp_path):
    snapshot_dir = _publish(tmp_path, [_quote("VOLV-B", "SSE1")])
    meta_path = snapshot_dir / "meta.json"
    meta = json.loads(meta_path.read_text(encoding="utf-8"))
    meta["summary"]["rows"] = 5
    meta_path.write_text(json.dumps(meta))

    errors = validate_snapshot_dir(snapshot_dir)
    assert errors and "Row count mismatch" in errors[0]


def test_non_array_snapshot_is_rejected(tmp_path):
    path = tmp_path / "latest.json"
    path.write_text(json.dumps({"rows": []}))
    with pytest.raises(ValidationError, match="not a JSON array"):
        load_snapshot_frame(path, "Latest snapshot")


def test_validate_no_duplicates_passes_on_unique_ids(tmp_path):
    df = load_snapshot_frame(_publish(tmp_path, [_quote("A", "1"), _quote("B", "2")]) / "latest.json", "Latest")
    validate_no_duplicates(df)
