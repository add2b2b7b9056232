from __future__ import annotations

import os

import pandas as pd
import simplejson


def dumps_json(data, *, sort_keys: bool = True) -> str:
    # Decimal is written as its exact text, never through float
    return simplejson.dumps(data, ensure_ascii=False, indent=2, sort_keys=sort_keys, use_decimal=True)


def write_parquet(df: pd.DataFrame, path: str) -> None:
    out_dir = os.path.dirname(path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    df.to_parquet(path, compression="zstd")


def write_json(data, path: str, *, sort_keys: bool = True) -> None:
    out_dir = os.path.dirname(path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(dumps_json(data, sort_keys=sort_keys))


def write_snapshot(rows: list[dict], *, output_dir: str, date_label: str) -> list[str]:
    """Write the same row array to `latest.json` and `<date_label>.json`; returns both paths."""
    paths = [
        os.path.join(output_dir, "latest.json"),
        os.path.join(output_dir, f"{date_label}.json"),
    ]
    for path in paths:
        write_json(rows, path, sort_keys=False)
    return paths
