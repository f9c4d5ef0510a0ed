# csv_export.py
import csv
import re

import pandas as pd

from beta_groups import BETA_GROUPS


class ExportError(ValueError):
    """Raised when there is nothing to export."""


def export_to_csv(series_df, selected_groups, groups=None):
    """
    CSV text for a grouped series: header 'Date,<selected groups in table order>',
    every field quoted, values with 6 decimals.
    """
    groups = BETA_GROUPS if groups is None else groups
    if series_df.empty:
        raise ExportError("No data to export")

    chosen = [g["name"] for g in groups if g["name"] in selected_groups]
    if not chosen:
        raise ExportError("Please select at least one group to export")

    out = series_df[chosen].copy()
    out.insert(0, "Date", pd.DatetimeIndex(series_df.index).strftime("%Y-%m-%d"))
    return out.to_csv(index=False, quoting=csv.QUOTE_ALL, float_format="%.6f", lineterminator="\n")


def _slug(text):
    return re.sub(r"\s+", "_", text.lower())


def generate_export_filename(selected_groups, date_range, view_mode, today=None):
    """
    beta_export_<view>_<groups>_<range>_<YYYY-MM-DD>.csv

    e.g. beta_export_total_sp_weighted_growth_value_6months_2024-05-01.csv
    """
    today = pd.Timestamp.today() if today is None else pd.Timestamp(today)

    names = sorted(selected_groups)
    groups_part = _slug("_".join(names)) if len(names) <= 3 else f"{len(names)}groups"

    range_part = (date_range or {}).get("type", "all")
    if range_part == "custom" and date_range.get("start_date") and date_range.get("end_date"):
        range_part = f"custom_{date_range['start_date']}_to_{date_range['end_date']}"

    view_part = ""
    if view_mode.get("type") == "total_sp":
        view_part = "total_sp_weighted"
    elif view_mode.get("type") == "sector_breakdown" and view_mode.get("selected_sector"):
        sector = re.sub(r"[^a-z0-9_]", "", _slug(view_mode["selected_sector"]))
        weighting = "sp_weighted" if view_mode.get("sp_weighted") else "unweighted"
        view_part = f"sector_{sector}_{weighting}"

    parts = ["beta_export", view_part, groups_part, range_part, today.strftime("%Y-%m-%d")]
    return "_".join(p for p in parts if p) + ".csv"
