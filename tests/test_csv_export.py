import pandas as pd
import pytest

from csv_export import ExportError, export_to_csv, generate_export_filename


@pytest.fixture
def series():
    index = pd.DatetimeIndex(["2024-01-07", "2024-01-14"], name="date")
    return pd.DataFrame(
        {"Value": [0.1, -0.25], "Growth": [0.2, 1.0 / 3], "Macro": [5.0, 6.0]}, index=index
    )


def test_export_quotes_fields_and_keeps_group_order(series):
    text = export_to_csv(series, ["Growth", "Value"])
    assert text.splitlines() == [
        '"Date","Value","Growth"',
        '"2024-01-07","0.100000","0.200000"',
        '"2024-01-14","-0.250000","0.333333"',
    ]


def test_export_ignores_unknown_group_names(series):
    text = export_to_csv(series, ["Macro", "Not A Group"])
    assert text.splitlines()[0] == '"Date","Macro"'


def test_export_errors(series):
    with pytest.raises(ExportError, match="No data"):
        export_to_csv(series.iloc[0:0], ["Value"])
    with pytest.raises(ExportError, match="at least one group"):
        export_to_csv(series, [])


def test_filename_total_view():
    name = generate_export_filename(
        ["Value", "Growth"], {"type": "6months"}, {"type": "total_sp"}, today="2024-05-01"
    )
    assert name == "beta_export_total_sp_weighted_growth_value_6months_2024-05-01.csv"


def test_filename_sector_view_and_custom_range():
    view = {"type": "sector_breakdown", "selected_sector": "Information Technology", "sp_weighted": False}
    window = {"type": "custom", "start_date": "2024-01-01", "end_date": "2024-03-01"}
    name = generate_export_filename(["Fixed Income"], window, view, today="2024-05-01")
    assert name == (
        "beta_export_sector_information_technology_unweighted_fixed_income_"
        "custom_2024-01-01_to_2024-03-01_2024-05-01.csv"
    )


def test_filename_many_groups_collapses_to_count():
    view = {"type": "sector_breakdown", "selected_sector": "Energy", "sp_weighted": True}
    name = generate_export_filename(["Value", "Growth", "Macro", "Index"], {"type": "all"}, view, today="2024-05-01")
    assert name == "beta_export_sector_energy_sp_weighted_4groups_all_2024-05-01.csv"
