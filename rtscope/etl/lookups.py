import logging
from pathlib import Path

import geopandas as gpd
import pandas as pd

from .commons import download_data, standardize_column_headers
from .csse import LEVELS, renamed_columns

""" population and geography lookups to join against entity time series """

logger = logging.getLogger(__name__)

CSSE_LOOKUP_URL = "https://raw.githubusercontent.com/CSSEGISandData/COVID-19/master/csse_covid_19_data/"
LOOKUP_FILENAME = "UID_ISO_FIPS_LookUp_Table.csv"

state_code_lookup = {
    'AK': 'Alaska',
    'AL': 'Alabama',
    'AR': 'Arkansas',
    'AS': 'American Samoa',
    'AZ': 'Arizona',
    'CA': 'California',
    'CO': 'Colorado',
    'CT': 'Connecticut',
    'DC': 'District of Columbia',
    'DE': 'Delaware',
    'FL': 'Florida',
    'GA': 'Georgia',
    'GU': 'Guam',
    'HI': 'Hawaii',
    'IA': 'Iowa',
    'ID': 'Idaho',
    'IL': 'Illinois',
    'IN': 'Indiana',
    'KS': 'Kansas',
    'KY': 'Kentucky',
    'LA': 'Louisiana',
    'MA': 'Massachusetts',
    'MD': 'Maryland',
    'ME': 'Maine',
    'MI': 'Michigan',
    'MN': 'Minnesota',
    'MO': 'Missouri',
    'MP': 'Northern Mariana Islands',
    'MS': 'Mississippi',
    'MT': 'Montana',
    'NC': 'North Carolina',
    'ND': 'North Dakota',
    'NE': 'Nebraska',
    'NH': 'New Hampshire',
    'NJ': 'New Jersey',
    'NM': 'New Mexico',
    'NV': 'Nevada',
    'NY': 'New York',
    'OH': 'Ohio',
    'OK': 'Oklahoma',
    'OR': 'Oregon',
    'PA': 'Pennsylvania',
    'PR': 'Puerto Rico',
    'RI': 'Rhode Island',
    'SC': 'South Carolina',
    'SD': 'South Dakota',
    'TN': 'Tennessee',
    'TX': 'Texas',
    'UT': 'Utah',
    'VA': 'Virginia',
    'VI': 'Virgin Islands',
    'VT': 'Vermont',
    'WA': 'Washington',
    'WI': 'Wisconsin',
    'WV': 'West Virginia',
    'WY': 'Wyoming',
}

state_name_lookup = {name: code for (code, name) in state_code_lookup.items()}

# territories with sparse reporting, excluded from most state-level analyses
territories = {"AS", "GU", "MP", "PR", "VI"}

def fetch_lookup(dst: Path, overwrite: bool = False) -> Path:
    if overwrite or not (dst/LOOKUP_FILENAME).exists():
        download_data(dst, LOOKUP_FILENAME, CSSE_LOOKUP_URL)
    return dst/LOOKUP_FILENAME

def load_lookup(path: Path) -> pd.DataFrame:
    lookup = pd.read_csv(path)
    standardize_column_headers(lookup)
    return lookup.rename(columns = renamed_columns)

def populations(lookup: pd.DataFrame, level: str) -> pd.Series:
    """ population by entity name at the given level """
    if level == "country":
        rows = lookup[lookup.province_state.isna() & lookup.county_name.isna()]
    elif level == "state":
        rows = lookup[lookup.province_state.notna() & lookup.county_name.isna()]
    elif level == "county":
        rows = lookup[lookup.county_name.notna()]
    else:
        raise ValueError(f"unknown level {level!r}; expected one of {sorted(LEVELS)}")
    key = LEVELS[level]
    duplicated = rows[key].duplicated()
    if duplicated.any():
        logger.debug("dropping %s duplicate %s population rows", duplicated.sum(), level)
    return rows[~duplicated]\
        .set_index(key)["population"]\
        .dropna()\
        .rename_axis(level)

def attach_population(df: pd.DataFrame, population: pd.Series, level: str) -> pd.DataFrame:
    joined = df.merge(population.rename("population").reset_index(), on = level, how = "left")
    missing = joined.loc[joined.population.isna(), level].unique()
    if len(missing):
        logger.warning("no population for %s %s entities: %s", len(missing), level, ", ".join(map(str, missing)))
    return joined

def load_geography(path: Path) -> gpd.GeoDataFrame:
    return gpd.read_file(path)

def join_geography(gdf: gpd.GeoDataFrame, frame: pd.DataFrame, left_on: str, right_on: str) -> gpd.GeoDataFrame:
    """ attribute join that keeps every geometry, unmatched geometries get missing values """
    return gdf.merge(frame, left_on = left_on, right_on = right_on, how = "left")
