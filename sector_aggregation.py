# sector_aggregation.py
import logging

import pandas as pd

from beta_groups import FACTOR_COLUMNS, apply_factor_grouping, empty_grouped_frame

logger = logging.getLogger(__name__)


def to_date_index(values):
    """Parse date strings into a DatetimeIndex named 'date'. Raises ValueError on bad dates."""
    return pd.DatetimeIndex(pd.to_datetime(pd.Index(values)), name="date")


def effective_sector_weights(raw_df):
    """
    Per-row weight normalized against every row sharing the same date string.
    Rows on a date whose weights sum to 0 get NaN (that date is excluded from the universe series).
    """
    total = raw_df.groupby("date", sort=False)["sector_weight"].transform("sum")
    return (raw_df["sector_weight"] / total).where(total != 0)


def aggregate_sp_weighted(raw_df, groups=None):
    """
    Universe series: one row per date, each of the 88 factors is the sum of
    value * (sector_weight / total weight of that date), then reduced to groups.

    raw_df: DataFrame from data_pipeline.parse_beta_csv
    returns: DataFrame indexed by date (ascending), one column per factor group
    """
    if raw_df.empty:
        return empty_grouped_frame(groups)

    weights = effective_sector_weights(raw_df)
    valid = weights.notna()
    if not valid.all():
        dropped = raw_df.loc[~valid, "date"].unique()
        logger.info(f"Dropping {len(dropped)} date(s) with zero total sector weight: {list(dropped)[:5]}")

    rows = raw_df.loc[valid]
    # sum_i value_i * w_i per date, in order of first appearance
    weighted = rows[FACTOR_COLUMNS].mul(weights[valid], axis=0).groupby(rows["date"], sort=False).sum()

    grouped = apply_factor_grouping(weighted, groups)
    grouped.index = to_date_index(grouped.index)
    return grouped.sort_index(kind="mergesort")


def compute_sector_breakdown(raw_df, groups=None):
    """
    Unweighted per-sector series: every raw row is reduced to its group means on its own.
    Rows sharing a date inside one sector are all kept.

    returns: dict sector -> DataFrame indexed by date (ascending)
    """
    sector_series = {}
    for sector, rows in raw_df.groupby("sector", sort=False):
        grouped = apply_factor_grouping(rows[FACTOR_COLUMNS], groups)
        grouped.index = to_date_index(rows["date"])
        sector_series[sector] = grouped.sort_index(kind="mergesort")
    return sector_series


def aggregate_weekly_averages(series_df):
    """
    Bucket a grouped series by the Sunday on or before each date and average every group column.
    Weeks without observations produce no row.
    """
    if series_df.empty:
        return series_df.copy()

    dates = pd.DatetimeIndex(series_df.index).normalize()
    # pandas: Monday=0 .. Sunday=6
    days_since_sunday = (dates.dayofweek + 1) % 7
    week_start = dates - pd.to_timedelta(days_since_sunday, unit="D")

    weekly = series_df.groupby(week_start).mean()
    weekly.index = pd.DatetimeIndex(weekly.index, name="date")
    return weekly.sort_index()
