from __future__ import annotations

from typing import Iterable

import pandas as pd

from .models import FIELD_ORDER, Quote


_PRICE_COLS = ["netChange", "bidPrice", "askPrice", "lastSalePrice", "high", "low", "turnover"]
_TEXT_COLS = [
    "fullName",
    "symbol",
    "currency",
    "percentageChange",
    "orderbookId",
    "assetClass",
    "sector",
    "isin",
    "deltaIndicator",
]


def quotes_to_frame(quotes: Iterable[Quote]) -> pd.DataFrame:
    """
    Build the canonical quote frame.

    Canonical columns are the snapshot field names in snapshot order.
    Prices become Float64, volume Int64 (missing values stay <NA>).
    """
    rows = [q.to_dict() for q in quotes]
    df = pd.DataFrame(rows, columns=FIELD_ORDER)

    for c in _PRICE_COLS:
        df[c] = pd.to_numeric(df[c].map(lambda v: None if v is None else float(v)), errors="coerce").astype("Float64")
    df["volume"] = pd.to_numeric(df["volume"], errors="coerce").astype("Int64")
    for c in _TEXT_COLS:
        df[c] = df[c].fillna("").astype(str)

    return df[FIELD_ORDER].copy()


def summarize_frame(df: pd.DataFrame) -> dict:
    """Counts used in the publish meta record."""
    if df.empty:
        return {"rows": 0, "by_currency": {}, "by_asset_class": {}, "missing_last_sale_price": 0}
    return {
        "rows": int(len(df)),
        "by_currency": {str(k): int(v) for k, v in df["currency"].value_counts().sort_index().items()},
        "by_asset_class": {str(k): int(v) for k, v in df["assetClass"].value_counts().sort_index().items()},
        "missing_last_sale_price": int(df["lastSalePrice"].isna().sum()),
    }
