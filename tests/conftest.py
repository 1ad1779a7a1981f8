"""
Pytest configuration and fixtures for rtscope tests
"""

import matplotlib
matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

GAMMA = 1/7


def exponential_cumulative(R: float, days: int = 60, initial: float = 100, start: str = "2020-03-01", name: str = "cases") -> pd.Series:
    """ cumulative counts whose daily increments grow at the rate implied by a constant R """
    t = np.arange(days)
    daily = initial * np.exp(GAMMA * (R - 1) * t)
    return pd.Series(
        np.round(np.cumsum(daily)),
        index = pd.date_range(start, periods = days, freq = "D", name = "date"),
        name = name
    )


@pytest.fixture
def growing_cases():
    return exponential_cumulative(1.5, name = "growing")


@pytest.fixture
def flat_cases():
    return exponential_cumulative(1.0, name = "flat")


@pytest.fixture
def long_table():
    """ long-format cumulative counts for two entities plus one that never takes off """
    frames = []
    for (state, R) in [("Alpha", 1.5), ("Beta", 0.8)]:
        confirmed = exponential_cumulative(R, days = 40, initial = 200)
        frames.append(pd.DataFrame({
            "state": state,
            "date": confirmed.index,
            "confirmed": confirmed.values,
            "deaths": np.round(confirmed.values * 0.02),
        }))
    dates = pd.date_range("2020-03-01", periods = 40, freq = "D")
    frames.append(pd.DataFrame({"state": "Gamma", "date": dates, "confirmed": np.arange(40), "deaths": 0}))
    return pd.concat(frames, ignore_index = True)


DATES = ["3/1/20", "3/2/20", "3/3/20", "3/4/20"]


@pytest.fixture
def csse_dir(tmp_path):
    """ miniature copies of the JHU CSSE time series and lookup files """
    us_ids = {
        "UID": [84036061, 84036047, 84006037],
        "iso2": ["US"] * 3,
        "iso3": ["USA"] * 3,
        "code3": [840] * 3,
        "FIPS": [36061.0, 36047.0, 6037.0],
        "Admin2": ["New York", "Kings", "Los Angeles"],
        "Province_State": ["New York", "New York", "California"],
        "Country_Region": ["US"] * 3,
        "Lat": [40.77, 40.64, 34.31],
        "Long_": [-73.97, -73.95, -118.23],
        "Combined_Key": ["New York, New York, US", "Kings, New York, US", "Los Angeles, California, US"],
    }
    confirmed = pd.DataFrame({**us_ids, **dict(zip(DATES, [[1, 2, 1], [3, 5, 2], [6, 9, 2], [10, 8, 4]]))})
    deaths = pd.DataFrame({**us_ids, "Population": [1628706, 2559903, 10039107], **dict(zip(DATES, [[0, 0, 0], [0, 1, 0], [1, 1, 0], [1, 2, 1]]))})
    confirmed.to_csv(tmp_path / "time_series_covid19_confirmed_US.csv", index = False)
    deaths.to_csv(tmp_path / "time_series_covid19_deaths_US.csv", index = False)

    global_ids = {
        "Province/State": [np.nan, "Ontario", "Quebec"],
        "Country/Region": ["Italy", "Canada", "Canada"],
        "Lat": [41.87, 51.25, 52.94],
        "Long": [12.57, -85.32, -73.55],
    }
    pd.DataFrame({**global_ids, **dict(zip(DATES, [[100, 1, 2], [150, 2, 2], [200, 4, 3], [260, 5, 6]]))})\
        .to_csv(tmp_path / "time_series_covid19_confirmed_global.csv", index = False)
    pd.DataFrame({**global_ids, **dict(zip(DATES, [[1, 0, 0], [3, 0, 0], [6, 0, 1], [9, 1, 1]]))})\
        .to_csv(tmp_path / "time_series_covid19_deaths_global.csv", index = False)

    pd.DataFrame({
        "UID": [380, 124, 12409, 12410, 840, 84000036, 84000006, 84036061, 84036047, 84006037],
        "iso2": ["IT", "CA", "CA", "CA", "US", "US", "US", "US", "US", "US"],
        "iso3": ["ITA", "CAN", "CAN", "CAN", "USA", "USA", "USA", "USA", "USA", "USA"],
        "code3": [380, 124, 124, 124, 840, 840, 840, 840, 840, 840],
        "FIPS": [np.nan, np.nan, np.nan, np.nan, np.nan, 36.0, 6.0, 36061.0, 36047.0, 6037.0],
        "Admin2": [np.nan] * 7 + ["New York", "Kings", "Los Angeles"],
        "Province_State": [np.nan, np.nan, "Ontario", "Quebec", np.nan, "New York", "California", "New York", "New York", "California"],
        "Country_Region": ["Italy", "Canada", "Canada", "Canada", "US", "US", "US", "US", "US", "US"],
        "Lat": [41.87, 56.13, 51.25, 52.94, 40.0, 42.17, 36.12, 40.77, 40.64, 34.31],
        "Long_": [12.57, -106.35, -85.32, -73.55, -100.0, -74.95, -119.68, -73.97, -73.95, -118.23],
        "Combined_Key": ["Italy", "Canada", "Ontario, Canada", "Quebec, Canada", "US", "New York, US", "California, US",
                         "New York, New York, US", "Kings, New York, US", "Los Angeles, California, US"],
        "Population": [60461826, 37855702, 14826276, 8604495, 329466283, 19453561, 39512223, 1628706, 2559903, 10039107],
    }).to_csv(tmp_path / "UID_ISO_FIPS_LookUp_Table.csv", index = False)
    return tmp_path
