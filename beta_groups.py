# beta_groups.py
"""
Factor group definitions and the 88 -> 8 reduction.

Each group is a plain dict: {"name", "color", "indices" (1-based factor positions), "description"}.
Every function takes the table as an explicit ``groups`` argument and falls back to BETA_GROUPS.
"""

import pandas as pd

FACTOR_COUNT = 88
FACTOR_COLUMNS = [f"beta_{i}" for i in range(1, FACTOR_COUNT + 1)]
UNKNOWN_CATEGORY = ("Unknown", "#64748b")

BETA_GROUPS = [
    {
        "name": "Value",
        "color": "#3B82F6",
        "indices": [1, 2, 3, 4, 5, 6, 7, 29, 64, 65, 66, 67, 68],
        "description": "Value-oriented factors and strategies",
    },
    {
        "name": "Growth",
        "color": "#10B981",
        "indices": [8, 24, 25, 26, 27, 28],
        "description": "Growth-focused investment factors",
    },
    {
        "name": "Volatility",
        "color": "#F59E0B",
        "indices": [9, 10, 11, 12, 13, 14, 15, 16, 17, 18, 19, 20, 21, 22, 23, 42, 70, 71, 72],
        "description": "Volatility and risk-related measures",
    },
    {
        "name": "Commodities",
        "color": "#8B5CF6",
        "indices": [30, 31, 73, 74, 75, 76, 77, 78],
        "description": "Commodity and natural resource exposure",
    },
    {
        "name": "Fixed Income",
        "color": "#EF4444",
        "indices": [32, 33, 34, 35, 36, 37, 38, 39, 40, 41, 54, 55, 56],
        "description": "Bond and fixed income factors",
    },
    {
        "name": "Index",
        "color": "#06B6D4",
        "indices": [43, 44, 45, 46, 47, 48, 49, 50, 51, 52, 53],
        "description": "Broad market index exposures",
    },
    {
        "name": "Macro",
        "color": "#84CC16",
        "indices": [57, 58, 59, 60, 61, 62, 63],
        "description": "Macroeconomic factors and indicators",
    },
    {
        "name": "Sector",
        "color": "#F97316",
        "indices": [79, 80, 81, 82, 83, 84, 85, 86, 87, 88],
        "description": "Sector-specific exposures",
    },
]


def factor_column(index):
    """Column name for a 1-based factor position."""
    return f"beta_{index}"


def group_names(groups=None):
    groups = BETA_GROUPS if groups is None else groups
    return [g["name"] for g in groups]


def group_colors(groups=None):
    groups = BETA_GROUPS if groups is None else groups
    return {g["name"]: g["color"] for g in groups}


def check_beta_groups(groups=None):
    """
    Raise ValueError if the table has duplicate names, positions outside 1..FACTOR_COUNT,
    or a position claimed by more than one group. Full coverage of 1..88 is not required.
    """
    groups = BETA_GROUPS if groups is None else groups
    seen_names = set()
    owner = {}
    for g in groups:
        name = g["name"]
        if name in seen_names:
            raise ValueError(f"Duplicate factor group name: {name}")
        seen_names.add(name)
        for idx in g["indices"]:
            if not 1 <= int(idx) <= FACTOR_COUNT:
                raise ValueError(f"Group {name} references factor {idx} outside 1..{FACTOR_COUNT}")
            if idx in owner and owner[idx] != name:
                raise ValueError(f"Factor {idx} is listed in both {owner[idx]} and {name}")
            owner[idx] = name
    return owner


def factor_category(index, groups=None):
    """(group name, color) for a 1-based factor position; first matching group wins."""
    groups = BETA_GROUPS if groups is None else groups
    for g in groups:
        if index in g["indices"]:
            return g["name"], g["color"]
    return UNKNOWN_CATEGORY


def apply_factor_grouping(betas, groups=None):
    """
    Reduce factor columns to one mean per group.

    betas: DataFrame whose columns include beta_1..beta_88 (one row per observation),
           or a Series indexed by those column names (a single vector).
    Returns a DataFrame (same index, one column per group) or a Series for Series input.
    A position missing from the input counts as 0; a group with no positions is 0.
    """
    groups = BETA_GROUPS if groups is None else groups
    single = isinstance(betas, pd.Series)
    frame = betas.to_frame().T if single else betas

    out = pd.DataFrame(index=frame.index)
    for g in groups:
        cols = [factor_column(i) for i in g["indices"]]
        if not cols:
            out[g["name"]] = 0.0
            continue
        values = frame.reindex(columns=cols, fill_value=0.0).astype(float).fillna(0.0)
        out[g["name"]] = values.mean(axis=1)

    if single:
        return out.iloc[0]
    return out


def empty_grouped_frame(groups=None):
    """Empty SeriesByDate with the group columns and a DatetimeIndex named 'date'."""
    return pd.DataFrame(
        columns=group_names(groups),
        index=pd.DatetimeIndex([], name="date"),
        dtype=float,
    )
