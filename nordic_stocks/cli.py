"""
Command line entry point.

  nordic-stocks publish [--output-dir data] [--parquet-output path]
  nordic-stocks show [--date YYYY-MM-DD] [--limit 20]
"""
from __future__ import annotations

import argparse
import datetime as dt
import logging
import os
import signal
import sys
import threading

from dotenv import load_dotenv

from .cache import TieredCache
from .errors import FetchCancelled, NordicStocksError
from .io_utils import write_json
from .orchestrator import PublishConfig, build_failure_meta, run_publish
from .providers import HttpTransport, NasdaqScreenerProvider, SnapshotClient
from .providers.snapshot_client import DEFAULT_BASE_URL
from .standardize import quotes_to_frame

logger = logging.getLogger("nordic_stocks")


def _build_transport(args: argparse.Namespace) -> HttpTransport:
    return HttpTransport(
        timeout_seconds=args.timeout,
        max_retries=args.max_retries,
        max_requests_per_second=args.max_rps,
    )


def _install_cancel_handler(cancel_event: threading.Event):
    def _on_sigint(signum, frame):
        logger.warning("Cancellation requested by user")
        cancel_event.set()

    return signal.signal(signal.SIGINT, _on_sigint)


def cmd_publish(args: argparse.Namespace, *, provider=None) -> int:
    cfg = PublishConfig(
        output_dir=args.output_dir,
        meta_output_path=args.meta_output or None,
        parquet_output_path=args.parquet_output or None,
        min_rows=args.min_rows,
    )
    provider = provider or NasdaqScreenerProvider(transport=_build_transport(args))
    started_at = dt.datetime.now(dt.timezone.utc)

    cancel_event = threading.Event()
    previous_handler = None
    if threading.current_thread() is threading.main_thread():
        previous_handler = _install_cancel_handler(cancel_event)

    logger.info("Starting Nordic stocks publisher...")
    try:
        run_publish(cfg, provider=provider, cancel_event=cancel_event, now=started_at)
        return 0
    except FetchCancelled:
        logger.warning("Operation cancelled by user")
        return 1
    except OSError as e:
        logger.error(f"I/O error occurred while writing stock data files: {e}")
        stage = "write"
        error: Exception = e
    except Exception as e:
        logger.error(f"Fatal error occurred while publishing stock data: {e}")
        stage = "fetch" if isinstance(e, NordicStocksError) else "publish"
        error = e
    finally:
        if previous_handler is not None:
            signal.signal(signal.SIGINT, previous_handler)

    failure_meta = build_failure_meta(cfg=cfg, provider=provider, started_at_utc=started_at, stage=stage, error=error)
    try:
        write_json(failure_meta, cfg.resolved_meta_path)
    except OSError as e:
        logger.error(f"Could not write failure meta to {cfg.resolved_meta_path}: {e}")
    return 1


def cmd_show(args: argparse.Namespace, *, client: SnapshotClient | None = None) -> int:
    at = dt.date.fromisoformat(args.date) if args.date else None
    client = client or SnapshotClient(_build_transport(args), TieredCache(), base_url=args.base_url)
    try:
        quotes = client.get_quotes(at)
    except NordicStocksError as e:
        logger.error(str(e))
        return 1

    df = quotes_to_frame(quotes)
    print(f"{len(df)} stocks ({args.date or 'latest'})")
    if not df.empty:
        cols = ["symbol", "fullName", "currency", "lastSalePrice", "percentageChange", "volume"]
        print(df[cols].head(args.limit).to_string(index=False))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="nordic-stocks", description="Nordic stock listing publisher and client")
    parser.add_argument("--timeout", type=float, default=float(os.getenv("NORDIC_STOCKS_TIMEOUT", "30")), help="HTTP timeout (seconds)")
    parser.add_argument("--max-retries", type=int, default=int(os.getenv("NORDIC_STOCKS_MAX_RETRIES", "3")), help="Transport retries")
    parser.add_argument("--max-rps", type=float, default=float(os.getenv("NORDIC_STOCKS_MAX_RPS", "0")), help="Max upstream requests per second (0 = unthrottled)")
    parser.add_argument("--log-level", type=str, default="INFO", help="Logging level")
    sub = parser.add_subparsers(dest="command", required=True)

    p_pub = sub.add_parser("publish", help="Fetch the Nasdaq Nordic listing and write snapshot files")
    p_pub.add_argument("--output-dir", type=str, default=os.getenv("NORDIC_STOCKS_OUTPUT_DIR", "data"), help="Snapshot directory")
    p_pub.add_argument("--meta-output", type=str, default="", help="Meta json path (default: <output-dir>/meta.json)")
    p_pub.add_argument("--parquet-output", type=str, default="", help="Optional parquet export path")
    p_pub.add_argument("--min-rows", type=int, default=1, help="Fail when fewer stocks are returned")

    p_show = sub.add_parser("show", help="Print quotes from a published snapshot")
    p_show.add_argument("--date", type=str, default="", help="Snapshot date (YYYY-MM-DD); latest when omitted")
    p_show.add_argument("--base-url", type=str, default=os.getenv("NORDIC_STOCKS_BASE_URL", DEFAULT_BASE_URL), help="Snapshot CDN base URL")
    p_show.add_argument("--limit", type=int, default=20, help="Rows to print")
    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.INFO), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.command == "publish":
        return cmd_publish(args)
    return cmd_show(args)


if __name__ == "__main__":
    sys.exit(main())
