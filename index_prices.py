# index_prices.py
"""
Market index overlay for beta charts.

Fetch the index's daily closes once for the whole span of a series (widened by 7 days
on each side), match every series date to the nearest close within 7 days, and
standardize the matched closes so they share the beta axis:

    standardized = (price - mean) / std * 0.3

Fetch problems (bad status, malformed JSON, network errors, yfinance failures) are
logged and give an empty result; nothing here raises to the caller.
"""

import logging
import os
from urllib.parse import quote

import numpy as np
import pandas as pd
import requests
import yfinance as yf

# CONFIG
INDEX_SYMBOL = os.getenv("BETA_INDEX_SYMBOL", "^GSPC")
PRICE_SOURCE = os.getenv("BETA_PRICE_SOURCE", "chart")
CHART_API_BASE = os.getenv("BETA_CHART_API_BASE", "https://query1.finance.yahoo.com").rstrip("/")
HTTP_TIMEOUT = float(os.environ["BETA_HTTP_TIMEOUT"]) if os.getenv("BETA_HTTP_TIMEOUT") else None
HEADERS = {"User-Agent": "Mozilla/5.0 (beta-factor-dashboard)"}

MATCH_TOLERANCE_DAYS = 7
FETCH_BUFFER_DAYS = 7
SCALE_FACTOR = 0.3

_EPOCH = pd.Timestamp("1970-01-01")

logger = logging.getLogger(__name__)

_http_get = requests.get


def _empty_prices():
    return pd.Series(dtype=float, index=pd.DatetimeIndex([], name="date"), name="price")


def _empty_matches():
    return pd.DataFrame(
        {"price_date": pd.Series(dtype="datetime64[ns]"), "price": pd.Series(dtype=float),
         "days_away": pd.Series(dtype=float)},
        index=pd.DatetimeIndex([], name="date"),
    )


def _unix_seconds(day):
    # naive Timestamps are treated as UTC
    return int(pd.Timestamp(day).timestamp())


def _day_numbers(index):
    return ((pd.DatetimeIndex(index) - _EPOCH) / pd.Timedelta(days=1)).to_numpy(dtype=float)


def parse_chart_payload(payload):
    """
    Closing prices from a chart JSON payload:
      {"chart": {"result": [{"timestamp": [...], "indicators": {"quote": [{"close": [...]}]}}]}}
    Missing / non-positive closes are dropped. Any structural deviation gives an empty series.
    """
    try:
        result = payload["chart"]["result"][0]
        timestamps = result["timestamp"]
        closes = result["indicators"]["quote"][0]["close"]
    except (KeyError, IndexError, TypeError):
        logger.warning("No chart result in price payload")
        return _empty_prices()

    if not isinstance(timestamps, list) or not isinstance(closes, list):
        logger.warning("Invalid timestamp or quote data in price payload")
        return _empty_prices()

    closes = (list(closes) + [None] * len(timestamps))[: len(timestamps)]
    try:
        dates = pd.to_datetime(pd.Series(timestamps, dtype=object), unit="s").dt.normalize()
    except (ValueError, TypeError, OverflowError) as e:
        logger.warning(f"Unreadable timestamps in price payload: {e}")
        return _empty_prices()

    prices = pd.to_numeric(pd.Series(closes, dtype=object), errors="coerce").astype(float)
    prices.index = pd.DatetimeIndex(dates, name="date")
    prices.name = "price"
    return prices[(prices > 0) & prices.index.notna()]


def _fetch_chart_prices(symbol, start, end, session=None):
    url = f"{CHART_API_BASE}/v8/finance/chart/{quote(symbol, safe='')}"
    params = {"period1": _unix_seconds(start), "period2": _unix_seconds(end), "interval": "1d"}
    getter = session.get if session is not None else _http_get
    try:
        response = getter(url, params=params, headers=HEADERS, timeout=HTTP_TIMEOUT)
    except requests.RequestException as e:
        logger.warning(f"Network error fetching {symbol} prices: {e}")
        return _empty_prices()

    if not response.ok:
        logger.warning(
            f"Price endpoint returned status {response.status_code} for {symbol} "
            f"{start:%Y-%m-%d} to {end:%Y-%m-%d}"
        )
        return _empty_prices()

    try:
        payload = response.json()
    except ValueError as e:
        logger.warning(f"Malformed price payload for {symbol}: {e}")
        return _empty_prices()
    return parse_chart_payload(payload)


def _fetch_yfinance_prices(symbol, start, end):
    try:
        # yfinance treats end as exclusive
        raw = yf.download(
            symbol,
            start=start.strftime("%Y-%m-%d"),
            end=(end + pd.Timedelta(days=1)).strftime("%Y-%m-%d"),
            interval="1d",
            progress=False,
            auto_adjust=False,
        )
    except Exception as e:
        logger.warning(f"yfinance download failed for {symbol}: {e}")
        return _empty_prices()

    if raw is None or raw.empty or "Close" not in raw.columns.get_level_values(0):
        logger.warning(f"No yfinance data for {symbol}")
        return _empty_prices()

    close = raw["Close"]
    if isinstance(close, pd.DataFrame):
        close = close.iloc[:, 0]
    prices = pd.to_numeric(close, errors="coerce").astype(float)
    stamps = pd.DatetimeIndex(close.index)
    if stamps.tz is not None:
        stamps = stamps.tz_localize(None)
    prices.index = pd.DatetimeIndex(stamps.normalize(), name="date")
    prices.name = "price"
    return prices[prices > 0]


def fetch_index_prices(start, end, symbol=None, source=None, session=None):
    """
    Daily closes for [start, end] with a single outbound call.
    Returns a Series named 'price' indexed by date (ascending); empty on any failure.
    """
    symbol = symbol or INDEX_SYMBOL
    source = source or PRICE_SOURCE
    start, end = pd.Timestamp(start), pd.Timestamp(end)

    if source == "yfinance":
        prices = _fetch_yfinance_prices(symbol, start, end)
    else:
        if source != "chart":
            logger.warning(f"Unknown price source {source!r}; using chart endpoint")
        prices = _fetch_chart_prices(symbol, start, end, session=session)

    if not prices.empty:
        logger.info(f"Retrieved {len(prices)} {symbol} closes from {start:%Y-%m-%d} to {end:%Y-%m-%d}")
    return prices.sort_index(kind="mergesort")


def match_closest_prices(dates, prices, tolerance_days=MATCH_TOLERANCE_DAYS):
    """
    For each target date, the price whose date is nearest, accepted if at most
    tolerance_days away. Ties go to the earlier price date. Unmatched dates are absent.

    Returns DataFrame indexed by target date with columns price_date, price, days_away.
    """
    if prices is None or prices.empty or len(dates) == 0:
        return _empty_matches()

    prices = prices.sort_index(kind="mergesort")
    price_days = _day_numbers(prices.index)
    targets = pd.DatetimeIndex(pd.to_datetime(pd.Index(dates))).unique()
    target_days = _day_numbers(targets)
    positions = np.searchsorted(price_days, target_days, side="left")

    records = []
    matched_dates = []
    for target, day, pos in zip(targets, target_days, positions):
        best, best_gap = None, None
        for candidate in (pos - 1, pos):
            if 0 <= candidate < len(price_days):
                gap = abs(day - price_days[candidate])
                if gap <= tolerance_days and (best is None or gap < best_gap):
                    best, best_gap = candidate, gap
        if best is None:
            logger.debug(f"{target:%Y-%m-%d}: no price within {tolerance_days} days")
            continue
        logger.debug(
            f"{target:%Y-%m-%d}: using price from {prices.index[best]:%Y-%m-%d} "
            f"({best_gap:.0f} days away): {prices.iloc[best]:.2f}"
        )
        matched_dates.append(target)
        records.append({
            "price_date": prices.index[best],
            "price": float(prices.iloc[best]),
            "days_away": float(best_gap),
        })

    logger.info(f"Matched {len(records)} out of {len(targets)} requested dates")
    if not records:
        return _empty_matches()
    return pd.DataFrame(records, index=pd.DatetimeIndex(matched_dates, name="date"))


def fetch_index_prices_for_dates(dates, symbol=None, source=None, session=None):
    """Fetch the widened span covering all dates in one call, then match each date."""
    if len(dates) == 0:
        return _empty_matches()

    stamps = pd.DatetimeIndex(pd.to_datetime(pd.Index(dates)))
    start = (stamps.min() - pd.Timedelta(days=FETCH_BUFFER_DAYS)).normalize()
    end = (stamps.max() + pd.Timedelta(days=FETCH_BUFFER_DAYS)).normalize()

    prices = fetch_index_prices(start, end, symbol=symbol, source=source, session=session)
    if prices.empty:
        logger.warning(f"No index price data retrieved for {start:%Y-%m-%d} to {end:%Y-%m-%d}")
        return _empty_matches()
    return match_closest_prices(stamps, prices)


def standardize_prices(prices, scale_factor=SCALE_FACTOR):
    """
    z-score with population std, times scale_factor.
    A zero (or undefined) std gives all zeros instead of inf/NaN.
    """
    prices = pd.Series(prices, dtype=float)
    if prices.empty:
        return prices.copy()

    mean = prices.mean()
    std = prices.std(ddof=0)
    logger.info(f"Index price stats: mean={mean:.2f}, std={std:.2f}, scale={scale_factor}")
    if not np.isfinite(std) or std == 0:
        logger.warning("Index prices have zero spread; standardized values set to 0")
        return pd.Series(0.0, index=prices.index, name=prices.name)
    return (prices - mean) / std * scale_factor


def combine_beta_with_prices(series_df, matches, scale_factor=SCALE_FACTOR):
    """
    Inner join of a grouped series with matched prices, adding
    price_date, price and standardized_price next to the group columns.
    """
    if series_df.empty or matches.empty:
        out = series_df.iloc[0:0].copy()
        for col in ("price_date", "price", "standardized_price"):
            out[col] = pd.Series(dtype=float)
        return out

    combined = series_df.join(matches[["price_date", "price"]], how="inner")
    combined["standardized_price"] = standardize_prices(combined["price"], scale_factor)
    logger.info(f"Combined {len(combined)} data points")
    return combined


def align_index_prices(series_df, symbol=None, source=None, session=None, scale_factor=SCALE_FACTOR):
    """fetch -> match -> combine for the dates of one displayed series."""
    matches = fetch_index_prices_for_dates(series_df.index, symbol=symbol, source=source, session=session)
    return combine_beta_with_prices(series_df, matches, scale_factor)
