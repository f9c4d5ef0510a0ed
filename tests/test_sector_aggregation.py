import pandas as pd
import pytest

from data_pipeline import parse_beta_csv
from sector_aggregation import (
    aggregate_sp_weighted,
    aggregate_weekly_averages,
    compute_sector_breakdown,
    effective_sector_weights,
)
from sector_aggregation_weighted import compute_sp_weighted_sector_breakdown

FIRST = [{"name": "First", "color": "#000", "indices": [1], "description": ""}]


def test_universe_weighting_matches_hand_calculation(beta_csv):
    raw = parse_beta_csv(beta_csv([
        ("2024-01-02", "Tech", 0.6, {1: 10}),
        ("2024-01-02", "Energy", 0.4, {1: 20}),
    ]))
    universe = aggregate_sp_weighted(raw, FIRST)
    assert len(universe) == 1
    assert universe["First"].iloc[0] == pytest.approx(0.6 * 10 + 0.4 * 20)


def test_weights_normalize_per_date(beta_csv):
    raw = parse_beta_csv(beta_csv([
        ("2024-01-02", "A", 3),
        ("2024-01-02", "B", 1),
        ("2024-01-02", "C", 4),
        ("2024-01-03", "A", 0.25),
        ("2024-01-03", "B", 0.5),
    ]))
    weights = effective_sector_weights(raw)
    sums = weights.groupby(raw["date"]).sum()
    assert sums.to_numpy() == pytest.approx([1.0, 1.0])

    # un-normalized weights still give a proper average
    universe = aggregate_sp_weighted(raw, FIRST)
    assert universe["First"].to_numpy() == pytest.approx([1.0, 1.0])


def test_zero_weight_date_is_dropped_and_output_sorted(beta_csv):
    raw = parse_beta_csv(beta_csv([
        ("2024-02-01", "A", 1, {1: 5}),
        ("2024-01-15", "A", 0),
        ("2024-01-15", "B", 0),
        ("2024-01-01", "A", 2, {1: 7}),
    ]))
    universe = aggregate_sp_weighted(raw, FIRST)

    assert list(universe.index) == [pd.Timestamp("2024-01-01"), pd.Timestamp("2024-02-01")]
    assert universe.index.name == "date"
    assert universe["First"].tolist() == pytest.approx([7.0, 5.0])


def test_empty_input_gives_empty_universe():
    raw = parse_beta_csv("")
    universe = aggregate_sp_weighted(raw)
    assert universe.empty
    assert len(universe.columns) == 8


def test_unweighted_breakdown_keeps_every_row(beta_csv):
    raw = parse_beta_csv(beta_csv([
        ("2024-01-09", "Tech", 0.5, {1: 3}),
        ("2024-01-02", "Tech", 0.5, {1: 1}),
        ("2024-01-09", "Tech", 0.5, {1: 5}),
        ("2024-01-02", "Energy", 0.5, {1: 9}),
    ]))
    sectors = compute_sector_breakdown(raw, FIRST)

    assert list(sectors) == ["Tech", "Energy"]
    tech = sectors["Tech"]
    assert len(tech) == 3
    assert tech.index.is_monotonic_increasing
    # same-date rows stay in file order
    assert tech["First"].tolist() == [1.0, 3.0, 5.0]


def test_weighted_breakdown_scales_each_row_by_its_own_weight(beta_csv):
    raw = parse_beta_csv(beta_csv([
        ("2024-01-02", "Tech", 0.25, {1: 8}),
        ("2024-01-03", "Tech", 0.5, {1: 8}),
        ("2024-01-02", "Energy", 0.75, {1: 8}),
    ]))
    weighted = compute_sp_weighted_sector_breakdown(raw, FIRST)

    assert weighted["Tech"]["First"].tolist() == pytest.approx([2.0, 4.0])
    # not normalized against other sectors on the same date
    assert weighted["Energy"]["First"].tolist() == pytest.approx([6.0])


def test_weekly_buckets_start_on_sunday():
    index = pd.DatetimeIndex(
        ["2024-01-07", "2024-01-08", "2024-01-13", "2024-01-14", "2024-01-03"], name="date"
    )
    series = pd.DataFrame({"Value": [1.0, 2.0, 3.0, 10.0, 7.0]}, index=index)

    weekly = aggregate_weekly_averages(series)

    assert list(weekly.index) == [
        pd.Timestamp("2023-12-31"),
        pd.Timestamp("2024-01-07"),
        pd.Timestamp("2024-01-14"),
    ]
    assert (weekly.index.dayofweek == 6).all()
    assert weekly.index.is_unique and weekly.index.is_monotonic_increasing
    assert weekly["Value"].tolist() == pytest.approx([7.0, 2.0, 10.0])


def test_weekly_skips_empty_weeks_and_handles_empty_series():
    index = pd.DatetimeIndex(["2024-01-01", "2024-03-01"], name="date")
    weekly = aggregate_weekly_averages(pd.DataFrame({"Value": [1.0, 2.0]}, index=index))
    assert len(weekly) == 2

    empty = pd.DataFrame({"Value": []}, index=pd.DatetimeIndex([], name="date"))
    assert aggregate_weekly_averages(empty).empty
