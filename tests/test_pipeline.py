"""
End-to-end tests for the batch report, run against synthetic CSSE files
"""

import geopandas as gpd
import matplotlib.pyplot as mplt
import numpy as np
import pandas as pd
import pytest
from shapely.geometry import box

from rtscope.pipeline import load_timeseries, main, project, run, slug

DAYS = 30

# combined key, county, state, R, initial daily cases
COUNTIES = [
    ("Adams, Northland, US",  "Adams",  "Northland", 1.4,  60),
    ("Baker, Northland, US",  "Baker",  "Northland", 1.4,  40),
    ("Clark, Southland, US",  "Clark",  "Southland", 0.85, 300),
    ("Dolan, Quietland, US",  "Dolan",  "Quietland", 1.0,  1),
]


def wide_dates(start = "2020-03-01", periods = DAYS):
    return [f"{d.month}/{d.day}/{d:%y}" for d in pd.date_range(start, periods = periods)]


def write_csse(data):
    t = np.arange(DAYS)
    ids = {
        "Admin2":         [c[1] for c in COUNTIES],
        "Province_State": [c[2] for c in COUNTIES],
        "Country_Region": ["US"] * len(COUNTIES),
        "Lat":            [40.0] * len(COUNTIES),
        "Long_":          [-100.0] * len(COUNTIES),
        "Combined_Key":   [c[0] for c in COUNTIES],
    }
    confirmed = np.array([np.round(np.cumsum(c[4] * np.exp((c[3] - 1) * t / 7))) for c in COUNTIES])
    deaths = np.round(confirmed * 0.01)
    dates = wide_dates()
    pd.DataFrame({**ids, **dict(zip(dates, confirmed.T))}).to_csv(data / "time_series_covid19_confirmed_US.csv", index = False)
    pd.DataFrame({**ids, "Population": 1e6, **dict(zip(dates, deaths.T))}).to_csv(data / "time_series_covid19_deaths_US.csv", index = False)
    pd.DataFrame({
        "Admin2":         [np.nan, np.nan] + [c[1] for c in COUNTIES],
        "Province_State": ["Northland", "Southland"] + [c[2] for c in COUNTIES],
        "Country_Region": ["US"] * (2 + len(COUNTIES)),
        "Combined_Key":   ["Northland, US", "Southland, US"] + [c[0] for c in COUNTIES],
        "Population":     [2e6, 5e6] + [1e6] * len(COUNTIES),
    }).to_csv(data / "UID_ISO_FIPS_LookUp_Table.csv", index = False)


@pytest.fixture
def root(tmp_path):
    (tmp_path / "data").mkdir()
    (tmp_path / "figs").mkdir()
    write_csse(tmp_path / "data")
    return tmp_path


@pytest.fixture(autouse = True)
def close_figures():
    yield
    mplt.close("all")


@pytest.fixture
def geography(tmp_path):
    path = tmp_path / "states.geojson"
    gpd.GeoDataFrame(
        {"NAME": ["Northland", "Southland", "Quietland", "Farland"]},
        geometry = [box(0, 1, 2, 2), box(0, 0, 1, 1), box(1, 0, 2, 1), box(2, 0, 3, 2)],
        crs = "EPSG:4326"
    ).to_file(path, driver = "GeoJSON")
    return path


def test_slug():
    assert slug("Kings, New York, US") == "Kings_New_York_US"


def test_load_timeseries(root, caplog):
    with caplog.at_level("WARNING"):
        ts = load_timeseries(root / "data", "US", "state", fetch_data = False)

    assert set(ts.state) == {"Northland", "Southland", "Quietland"}
    assert {"new_confirmed", "new_deaths_ma7", "new_confirmed_ma7_per_100k", "confirmed_per_100k"} <= set(ts.columns)
    assert ts[ts.state == "Northland"]["population"].eq(2e6).all()
    assert ts[ts.state == "Quietland"]["new_confirmed_ma7_per_100k"].isna().all()
    assert "Quietland" in caplog.text


def test_load_timeseries_without_lookup(root, caplog):
    (root / "data" / "UID_ISO_FIPS_LookUp_Table.csv").unlink()
    with caplog.at_level("WARNING"):
        ts = load_timeseries(root / "data", "US", "county", fetch_data = False)

    assert len(ts) == len(COUNTIES) * DAYS
    assert ts["population"].isna().all()
    assert "no population lookup" in caplog.text


def test_project():
    index = pd.MultiIndex.from_product([["A"], pd.date_range("2020-04-01", periods = 7)], names = ["state", "date"])
    single = pd.MultiIndex.from_tuples([("B", pd.Timestamp("2020-04-07"))], names = ["state", "date"])
    results = pd.DataFrame({"ML": np.r_[1.0 + 0.1 * np.arange(7), 0.9]}, index = index.append(single))
    projected = project(results, "state")

    assert projected["A"] == pytest.approx(2.3, abs = 1e-6)
    assert np.isnan(projected["B"])
    assert projected.name == "Rt_proj"


def test_run_writes_report(root, geography):
    results = run(root / "data", root / "figs",
        level = "state", fetch_data = False, progress = False,
        geography = geography, animate = True)
    figs = root / "figs"

    assert set(results.index.get_level_values("state")) == {"Northland", "Southland"}
    latest = results.groupby(level = "state").tail(1).droplevel("date")
    assert latest.loc["Northland", "ML"] > 1
    assert latest.loc["Southland", "ML"] < 1

    assert (root / "data" / "timeseries.csv").exists()
    saved = pd.read_csv(root / "data" / "rt_estimates.csv")
    assert {"state", "date", "ML", "Low_90", "High_90"} <= set(saved.columns)

    for name in ["Northland_Rt.png", "Northland_cases.png", "Southland_Rt.png", "standings.png",
                 "rt_heatmap.png", "cases_per_capita.png", "rt_choropleth.png", "rt_animation.gif"]:
        assert (figs / name).exists(), name
    assert not (figs / "Quietland_Rt.png").exists()


def test_run_selected_entities(root):
    results = run(root / "data", root / "figs", entities = ["Southland"], fetch_data = False, progress = False, CI = 0.5)

    assert set(results.index.get_level_values("state")) == {"Southland"}
    assert {"Low_50", "High_50"} <= set(results.columns)
    assert not (root / "figs" / "rt_choropleth.png").exists()


def test_run_unknown_entities(root):
    with pytest.raises(ValueError, match = "none of the requested entities"):
        run(root / "data", root / "figs", entities = ["Atlantis"], fetch_data = False, progress = False)


def test_run_without_estimates(root, caplog):
    with caplog.at_level("WARNING"):
        results = run(root / "data", root / "figs", cutoff = 1e9, fetch_data = False, progress = False)

    assert results.empty
    assert (root / "data" / "rt_estimates.csv").exists()
    assert not (root / "figs" / "standings.png").exists()
    assert "skipping figures" in caplog.text


def test_main(root):
    results = main(["--root", str(root), "--no-fetch", "--entity-level", "county", "--entities", "Clark, Southland, US", "--window", "5", "--level", "warning"])

    assert set(results.index.get_level_values("county")) == {"Clark, Southland, US"}
    assert (root / "figs" / "Clark_Southland_US_Rt.png").exists()
