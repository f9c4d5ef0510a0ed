# data_pipeline.py
import logging
import os
from pathlib import Path

import pandas as pd

from beta_groups import FACTOR_COLUMNS, FACTOR_COUNT, empty_grouped_frame
from sector_aggregation import aggregate_sp_weighted, aggregate_weekly_averages, compute_sector_breakdown
from sector_aggregation_weighted import compute_sp_weighted_sector_breakdown

# CONFIG
ROOT = Path(__file__).parent
DATA_DIR = ROOT / "data"
DEFAULT_BETA_CSV = DATA_DIR / "beta_data.csv"
LOG_LEVEL = os.getenv("BETA_LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("BETA_LOG_FILE")
LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"

RAW_COLUMNS = ["date", "sector", "sector_weight"] + FACTOR_COLUMNS

logger = logging.getLogger(__name__)


class BetaCSVError(ValueError):
    """Raised when an uploaded CSV cannot be turned into any beta series."""


def configure_logging(level=None, log_file=None):
    """Entry points call this once; library modules only use getLogger."""
    level = level or LOG_LEVEL
    log_file = log_file or LOG_FILE
    kwargs = {"level": getattr(logging, str(level).upper(), logging.INFO), "format": LOG_FORMAT}
    if log_file:
        kwargs["filename"] = str(log_file)
    logging.basicConfig(**kwargs)


def parse_beta_csv(csv_text):
    """
    Best-effort parse of 'date,sector,sector_weight,beta_1..beta_88[,...]' text.

    - first line is a header and is skipped without checks
    - plain comma split, no quoting
    - unparsable weight / beta cells become 0
    - rows with fewer than 88 beta cells are dropped; cells past the 88th are ignored
    Returns a DataFrame in file order with RAW_COLUMNS.
    """
    lines = csv_text.strip().split("\n")
    records = []
    dropped = 0
    for lineno, line in enumerate(lines[1:], start=2):
        line = line.strip()
        if not line:
            continue
        cells = line.split(",")
        betas = cells[3:]
        if len(betas) < FACTOR_COUNT:
            logger.debug(f"line {lineno}: {len(betas)} beta values, need {FACTOR_COUNT}; dropped")
            dropped += 1
            continue
        records.append(cells[:3] + betas[:FACTOR_COUNT])

    if dropped:
        logger.info(f"Parsed {len(records)} beta rows, dropped {dropped} short row(s)")

    numeric_cols = ["sector_weight"] + FACTOR_COLUMNS
    if not records:
        return pd.DataFrame(columns=RAW_COLUMNS).astype({c: float for c in numeric_cols})

    df = pd.DataFrame(records, columns=RAW_COLUMNS)
    df[numeric_cols] = (
        df[numeric_cols]
        .apply(lambda col: pd.to_numeric(col.str.strip(), errors="coerce"))
        .fillna(0.0)
        .astype(float)
    )
    return df


def build_beta_views(csv_text, groups=None):
    """
    Run the full transformation for one CSV upload.

    Returns dict:
      raw                 : parsed rows (DataFrame)
      total_sp            : weekly universe series, weights normalized per date
      sectors             : dict sector -> weekly unweighted series
      sp_weighted_sectors : dict sector -> weekly series scaled by each row's sector weight
    Raises BetaCSVError if nothing usable is found.
    """
    raw = parse_beta_csv(csv_text)
    if raw.empty:
        raise BetaCSVError(
            f"No rows with at least {FACTOR_COUNT} beta values were found. "
            "Expected columns: Date, Sector, Sector_Weight, Beta 1..88"
        )

    try:
        total_sp = aggregate_weekly_averages(aggregate_sp_weighted(raw, groups))
        sectors = {
            sector: aggregate_weekly_averages(series)
            for sector, series in compute_sector_breakdown(raw, groups).items()
        }
        sp_weighted_sectors = {
            sector: aggregate_weekly_averages(series)
            for sector, series in compute_sp_weighted_sector_breakdown(raw, groups).items()
        }
    except (ValueError, TypeError) as e:
        # unparsable date cells surface here
        raise BetaCSVError(f"Error processing beta CSV data: {e}") from e

    logger.info(
        f"Built beta views: {len(raw)} rows, {len(total_sp)} universe weeks, {len(sectors)} sectors"
    )
    return {
        "raw": raw,
        "total_sp": total_sp,
        "sectors": sectors,
        "sp_weighted_sectors": sp_weighted_sectors,
    }


def load_beta_csv(path=DEFAULT_BETA_CSV, groups=None):
    """Read a CSV file from disk and build its views."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing beta CSV at {path}")
    return build_beta_views(path.read_text(encoding="utf-8-sig"), groups=groups)


def available_sectors(views):
    return list(views["sectors"].keys())


def select_series(views, view_mode, groups=None):
    """Weekly series for the active view; empty when a sector view has no sector picked."""
    kind = view_mode.get("type", "total_sp")
    if kind == "total_sp":
        return views["total_sp"]
    if kind == "sector_breakdown":
        sector = view_mode.get("selected_sector")
        source = views["sp_weighted_sectors"] if view_mode.get("sp_weighted") else views["sectors"]
        if sector and sector in source:
            return source[sector]
        return empty_grouped_frame(groups)
    raise ValueError(f"Unknown view type: {kind}")


def select_raw_rows(views, view_mode):
    """Raw rows scoped to the active view (all sectors for the universe view)."""
    raw = views["raw"]
    kind = view_mode.get("type", "total_sp")
    if kind == "total_sp":
        return raw
    if kind == "sector_breakdown":
        sector = view_mode.get("selected_sector")
        if not sector:
            return raw.iloc[0:0]
        return raw.loc[raw["sector"] == sector]
    raise ValueError(f"Unknown view type: {kind}")
