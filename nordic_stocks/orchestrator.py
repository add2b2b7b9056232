from __future__ import annotations

from dataclasses import dataclass
import datetime as dt
import os
import threading
from time import perf_counter

from .provider import QuoteProvider
from .standardize import quotes_to_frame, summarize_frame
from .io_utils import write_json, write_parquet, write_snapshot
from .meta import build_env_meta, build_source_meta


@dataclass(frozen=True)
class PublishConfig:
    output_dir: str = "data"
    meta_output_path: str | None = None
    parquet_output_path: str | None = None
    min_rows: int = 1

    @property
    def resolved_meta_path(self) -> str:
        return self.meta_output_path or os.path.join(self.output_dir, "meta.json")


def _file_size_mb(path: str) -> float | None:
    try:
        size = os.path.getsize(path)
        return round(size / (1024 * 1024), 4)
    except OSError:
        return None


def build_failure_meta(
    *,
    cfg: PublishConfig,
    provider: QuoteProvider,
    started_at_utc: dt.datetime,
    stage: str,
    error: BaseException,
    timing_seconds: dict | None = None,
) -> dict:
    return {
        "generated_at_utc": started_at_utc.isoformat(),
        "run_status": "failed",
        "provider": build_source_meta(provider),
        "error": {
            "stage": stage,
            "type": type(error).__name__,
            "message": str(error),
            "cause": repr(error.__cause__) if error.__cause__ is not None else None,
        },
        "args": {
            "output_dir": cfg.output_dir,
            "meta_output": cfg.resolved_meta_path,
            "parquet_output": cfg.parquet_output_path,
            "min_rows": cfg.min_rows,
        },
        "timing_seconds": timing_seconds or {},
        "env": build_env_meta(),
    }


def run_publish(
    cfg: PublishConfig,
    *,
    provider: QuoteProvider,
    cancel_event: threading.Event | None = None,
    now: dt.datetime | None = None,
) -> dict:
    """
    Publish pipeline (fail-fast).

    Fetches the full listing, writes `latest.json` and `<UTC date>.json`
    (camelCase row arrays), an optional parquet export and the meta record.
    Raises on any error; callers (CLI) catch at the boundary to write failure meta.
    """
    t0 = perf_counter()
    started_at = now or dt.datetime.now(dt.timezone.utc)
    date_label = started_at.date().isoformat()

    # 1) Fetch
    print(f"[TIMING] Fetching listing from provider '{provider.name}'...")
    t_fetch0 = perf_counter()
    result = provider.fetch(cancel_event=cancel_event)
    t_fetch1 = perf_counter()
    print(
        f"[TIMING] Listing fetched: {t_fetch1 - t_fetch0:.2f}s "
        f"({len(result)} stocks, {result.pages_fetched} pages)"
    )

    if len(result) < cfg.min_rows:
        raise ValueError(f"provider returned {len(result)} stocks (expected at least {cfg.min_rows})")

    # 2) Snapshot files
    t_write0 = perf_counter()
    rows = [q.to_dict() for q in result]
    paths = write_snapshot(rows, output_dir=cfg.output_dir, date_label=date_label)
    for p in paths:
        print(f"[INFO] Stock data written to: {p}")
    t_write1 = perf_counter()

    # 3) Frame summary + optional parquet
    df = quotes_to_frame(result)
    summary = summarize_frame(df)
    if cfg.parquet_output_path:
        write_parquet(df, cfg.parquet_output_path)
        print(f"[INFO] Parquet written to: {cfg.parquet_output_path}")

    meta = {
        "generated_at_utc": started_at.isoformat(),
        "run_status": "success",
        "date": date_label,
        "provider": build_source_meta(provider),
        "pagination": {
            "pages_fetched": result.pages_fetched,
            "total_pages": result.total_pages,
            "stop_reason": result.stop_reason.value if result.stop_reason else None,
        },
        "summary": summary,
        "data_files": [{"path": p, "size_mb": _file_size_mb(p)} for p in paths],
        "parquet_file": (
            {"path": cfg.parquet_output_path, "size_mb": _file_size_mb(cfg.parquet_output_path)}
            if cfg.parquet_output_path
            else None
        ),
        "timing_seconds": {
            "fetch": round(t_fetch1 - t_fetch0, 4),
            "write_snapshot": round(t_write1 - t_write0, 4),
            "total": round(perf_counter() - t0, 4),
        },
        "env": build_env_meta(),
    }
    write_json(meta, cfg.resolved_meta_path)

    print(f"[INFO] Successfully updated {len(result)} stocks for {date_label}")
    return meta
