# metrics.py
"""
Metrics over beta series.

Functions:
- resolve_date_window: (start, end) bounds for a date-range selection
- filter_date_range: inclusive date filter for a grouped series
- top_beta_changes: largest single-factor % moves over the trailing 4 weeks
- group_statistics: mean / population std / min / max per factor group
"""

import logging

import numpy as np
import pandas as pd

from beta_groups import FACTOR_COLUMNS, factor_category

CHANGE_WINDOW_DAYS = 28
TOP_N_CHANGES = 10

PRESET_OFFSETS = {
    "month": pd.DateOffset(months=1),
    "6months": pd.DateOffset(months=6),
    "year": pd.DateOffset(years=1),
    "2years": pd.DateOffset(years=2),
    "3years": pd.DateOffset(years=3),
}

CHANGE_COLUMNS = [
    "beta_index",
    "pct_change",
    "abs_pct_change",
    "category",
    "color",
    "current_value",
    "previous_value",
    "current_date",
    "previous_date",
]

logger = logging.getLogger(__name__)


def resolve_date_window(date_range, now=None):
    """
    date_range: {"type": ..., "start_date": ..., "end_date": ...}
    now: reference instant for relative presets (defaults to the current time)
    Returns (start, end) Timestamps; None means unbounded on that side.
    """
    date_range = date_range or {"type": "all"}
    kind = date_range.get("type", "all")
    now = pd.Timestamp.now() if now is None else pd.Timestamp(now)

    if kind == "all":
        return None, None

    if kind == "custom":
        start = date_range.get("start_date")
        end = date_range.get("end_date")
        start = pd.Timestamp(start) if start else None
        end = pd.Timestamp(end) if end else now
        return start, end

    offset = PRESET_OFFSETS.get(kind)
    if offset is None:
        logger.warning(f"Unknown date range type {kind!r}; using one year")
        offset = PRESET_OFFSETS["year"]
    return now.normalize() - offset, now


def filter_date_range(series_df, date_range, now=None):
    """Rows with start <= date <= end. The 'all' window returns the series untouched."""
    if (date_range or {}).get("type", "all") == "all":
        return series_df

    start, end = resolve_date_window(date_range, now=now)
    mask = np.ones(len(series_df), dtype=bool)
    if start is not None:
        mask &= series_df.index >= start
    if end is not None:
        mask &= series_df.index <= end
    return series_df.loc[mask]


def _empty_changes():
    return pd.DataFrame(columns=CHANGE_COLUMNS)


def top_beta_changes(raw_df, date_range=None, top_n=TOP_N_CHANGES, groups=None):
    """
    Largest single-factor percentage changes between the oldest and newest raw rows
    inside the 28 days ending at the reference date.

    Reference date: the custom window's end date when one is set, else the latest row date.
    Factors whose oldest value is 0 are skipped. An empty frame means not enough data
    (fewer than 2 rows in the window), not an error.
    """
    if len(raw_df) < 2:
        return _empty_changes()

    stamps = pd.to_datetime(raw_df["date"])
    order = np.argsort(stamps.to_numpy(), kind="stable")
    ordered = raw_df.iloc[order]
    stamps = stamps.iloc[order]

    date_range = date_range or {"type": "all"}
    if date_range.get("type") == "custom" and date_range.get("end_date"):
        reference = pd.Timestamp(date_range["end_date"])
    else:
        reference = stamps.iloc[-1]
    window_start = reference - pd.Timedelta(days=CHANGE_WINDOW_DAYS)

    in_window = ((stamps >= window_start) & (stamps <= reference)).to_numpy()
    recent = ordered.loc[in_window]
    if len(recent) < 2:
        return _empty_changes()

    oldest = recent.iloc[0]
    newest = recent.iloc[-1]

    records = []
    for beta_index, col in enumerate(FACTOR_COLUMNS, start=1):
        previous = float(oldest[col])
        current = float(newest[col])
        if previous == 0:
            continue
        pct = (current - previous) / abs(previous) * 100
        category, color = factor_category(beta_index, groups)
        records.append({
            "beta_index": beta_index,
            "pct_change": pct,
            "abs_pct_change": abs(pct),
            "category": category,
            "color": color,
            "current_value": current,
            "previous_value": previous,
            "current_date": newest["date"],
            "previous_date": oldest["date"],
        })

    if not records:
        return _empty_changes()
    changes = pd.DataFrame(records, columns=CHANGE_COLUMNS)
    changes = changes.sort_values("abs_pct_change", ascending=False, kind="mergesort")
    return changes.head(top_n).reset_index(drop=True)


def group_statistics(series_df):
    """Summary per group column: mean, population std, min, max."""
    return pd.DataFrame({
        "mean": series_df.mean(),
        "std": series_df.std(ddof=0),
        "min": series_df.min(),
        "max": series_df.max(),
    })
