# sector_aggregation_weighted.py
"""
Sector-weighted sector breakdown.

Usage:
    from sector_aggregation_weighted import compute_sp_weighted_sector_breakdown

Notes:
- Each row's group means are multiplied by that row's own sector_weight.
- This is a per-row scaling, not a weighted average: weights are NOT normalized
  against other rows. The universe series (sector_aggregation.aggregate_sp_weighted)
  normalizes by the total weight of each date instead, so a sector's weighted
  breakdown is generally much smaller in magnitude than the universe numbers.
  Exports and change rankings depend on each view's exact numbers, so the two
  stay separate.
"""

from beta_groups import FACTOR_COLUMNS, apply_factor_grouping
from sector_aggregation import to_date_index


def compute_sp_weighted_sector_breakdown(raw_df, groups=None):
    """
    Args:
      raw_df : DataFrame from data_pipeline.parse_beta_csv
      groups : factor group table (defaults to beta_groups.BETA_GROUPS)

    Returns:
      dict sector -> DataFrame indexed by date (ascending), group means * sector_weight
    """
    sector_series = {}
    for sector, rows in raw_df.groupby("sector", sort=False):
        grouped = apply_factor_grouping(rows[FACTOR_COLUMNS], groups)
        # same index as rows, so the multiply aligns row by row
        grouped = grouped.mul(rows["sector_weight"], axis=0)
        grouped.index = to_date_index(rows["date"])
        sector_series[sector] = grouped.sort_index(kind="mergesort")
    return sector_series
