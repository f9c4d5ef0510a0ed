# validate_beta_data.py
"""
Run quick validation of a beta CSV and print sample metrics.
Usage:
    python validate_beta_data.py [path/to/beta.csv]
Outputs:
 - number of rows accepted and sectors found
 - date ranges per sector (first/last)
 - factor group statistics for the sector-weighted universe (weekly)
 - top 10 single-factor changes over the last 4 weeks
 - correlation of the standardized index overlay with each factor group
"""

import sys

import pandas as pd

from data_pipeline import DEFAULT_BETA_CSV, available_sectors, configure_logging, load_beta_csv
from index_prices import INDEX_SYMBOL, align_index_prices
from metrics import group_statistics, top_beta_changes


def show_date_ranges(raw_df):
    rows = []
    for sector, g in raw_df.groupby("sector", sort=False):
        dates = pd.to_datetime(g["date"])
        rows.append({"Sector": sector, "start": str(dates.min().date()), "end": str(dates.max().date()), "rows": len(g)})
    return pd.DataFrame(rows).sort_values("Sector")


def compare_index(total_sp):
    """Correlate the standardized index overlay with every group of the universe series."""
    combined = align_index_prices(total_sp)
    if combined.empty:
        print(f"Could not fetch {INDEX_SYMBOL} for comparison.")
        return None
    corr = combined[total_sp.columns].corrwith(combined["standardized_price"])
    print(f"{INDEX_SYMBOL} matched on {len(combined)} of {len(total_sp)} weeks")
    print(f"Correlation of standardized {INDEX_SYMBOL} with each group:")
    print(corr.round(4).to_string())
    return corr


def main(path=None, compare=True):
    print("=== Beta data validation ===")
    path = path or DEFAULT_BETA_CSV
    views = load_beta_csv(path)
    raw = views["raw"]
    print(f"Loaded {len(raw)} rows from {path}")
    print(f"Sectors: {', '.join(map(str, available_sectors(views)))}")

    print("\nSector date ranges:")
    print(show_date_ranges(raw).to_string(index=False))

    total_sp = views["total_sp"]
    print(f"\nSector-weighted universe: {len(total_sp)} weeks")
    print(group_statistics(total_sp).round(4).to_string())

    changes = top_beta_changes(raw)
    if changes.empty:
        print("\nInsufficient data to calculate changes (need at least 2 rows in the last 4 weeks)")
    else:
        print(f"\nTop {len(changes)} beta changes ({changes.loc[0, 'previous_date']} -> {changes.loc[0, 'current_date']}):")
        print(changes[["beta_index", "category", "pct_change", "current_value", "previous_value"]].round(4).to_string(index=False))

    if compare:
        try:
            compare_index(total_sp)
        except Exception as e:
            print("Index comparison skipped due to error:", e)

    print("\nValidation complete.")
    return views


if __name__ == "__main__":
    configure_logging()
    main(sys.argv[1] if len(sys.argv) > 1 else None)
