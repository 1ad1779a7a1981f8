import logging
import re
from pathlib import Path
from typing import Dict, List

import pandas as pd

from .commons import download_data, standardize_column_headers

""" tools to download, reshape and aggregate JHU CSSE cumulative time series """

logger = logging.getLogger(__name__)

CSSE_TIMESERIES_URL = "https://raw.githubusercontent.com/CSSEGISandData/COVID-19/master/csse_covid_19_data/csse_covid_19_time_series/"
DATE_FMT = "%m/%d/%y"
DATE_COLUMN = re.compile(r"^\d{1,2}/\d{1,2}/\d{2}$")

METRICS = ("confirmed", "deaths")
SCOPES  = ("global", "US")

# columns identifying a row in each scope's files
KEYS: Dict[str, List[str]] = {
    "global": ["province_state", "country_region"],
    "US"    : ["combined_key"],
}

# entity level -> identifier column
LEVELS = {
    "country": "country_region",
    "state"  : "province_state",
    "county" : "combined_key",
}

renamed_columns = {
    "long_"  : "long",
    "admin2" : "county_name",
}

def timeseries_filename(metric: str, scope: str) -> str:
    if metric not in METRICS:
        raise ValueError(f"unknown metric {metric!r}; expected one of {METRICS}")
    if scope not in SCOPES:
        raise ValueError(f"unknown scope {scope!r}; expected one of {SCOPES}")
    return f"time_series_covid19_{metric}_{scope}.csv"

def fetch(dst: Path, metric: str, scope: str, overwrite: bool = False) -> Path:
    filename = timeseries_filename(metric, scope)
    if overwrite or not (dst/filename).exists():
        download_data(dst, filename, CSSE_TIMESERIES_URL)
    else:
        logger.debug("using cached %s", dst/filename)
    return dst/filename

def fetch_all(dst: Path, scope: str, overwrite: bool = False) -> List[Path]:
    return [fetch(dst, metric, scope, overwrite) for metric in METRICS]

def tidy(wide: pd.DataFrame, metric: str) -> pd.DataFrame:
    """ melt a wide (one column per date) cumulative table into long format """
    dates = [col for col in wide.columns if DATE_COLUMN.match(str(col))]
    ids   = [col for col in wide.columns if col not in dates]
    long  = wide.melt(id_vars = ids, value_vars = dates, var_name = "date", value_name = metric)
    long["date"]  = pd.to_datetime(long["date"], format = DATE_FMT)
    long[metric]  = long[metric].fillna(0).astype(int)
    standardize_column_headers(long)
    return long.rename(columns = renamed_columns)

def load(dst: Path, scope: str) -> pd.DataFrame:
    """ load confirmed cases and deaths for a scope into a single long table """
    confirmed, deaths = (
        tidy(pd.read_csv(dst/timeseries_filename(metric, scope)), metric)
        for metric in METRICS
    )
    keys = KEYS[scope] + ["date"]
    merged = confirmed.merge(deaths[keys + ["deaths"]], on = keys, how = "left")
    merged["deaths"] = merged["deaths"].fillna(0).astype(int)
    logger.info("loaded %s rows for %s locations (%s)", len(merged), merged[KEYS[scope]].drop_duplicates().shape[0], scope)
    return merged

def aggregate(df: pd.DataFrame, level: str) -> pd.DataFrame:
    """ sum cumulative counts up to an entity level """
    if level not in LEVELS:
        raise ValueError(f"unknown level {level!r}; expected one of {sorted(LEVELS)}")
    col = LEVELS[level]
    if col not in df.columns:
        raise ValueError(f"level {level!r} needs a {col!r} column, which this table does not have")
    return df.dropna(subset = [col])\
        .groupby([col, "date"])[list(METRICS)]\
        .sum()\
        .reset_index()\
        .rename(columns = {col: level})\
        .sort_values([level, "date"])\
        .reset_index(drop = True)
