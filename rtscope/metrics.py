from typing import Sequence

import pandas as pd

from .utils import million, thousand

""" derived per-entity statistics over long-format time series """

def _sorted(df: pd.DataFrame, by: str) -> pd.DataFrame:
    return df.sort_values([by, "date"]).reset_index(drop = True)

def daily(df: pd.DataFrame, by: str, columns: Sequence[str] = ("confirmed", "deaths")) -> pd.DataFrame:
    """ daily changes from cumulative counts; downward revisions are clipped to 0 """
    df = _sorted(df, by)
    grouped = df.groupby(by)
    for col in columns:
        df[f"new_{col}"] = grouped[col].diff().fillna(0).clip(lower = 0)
    return df

def moving_average(df: pd.DataFrame, by: str, columns: Sequence[str], window: int = 7) -> pd.DataFrame:
    """ trailing moving average per entity """
    df = _sorted(df, by)
    grouped = df.groupby(by)
    for col in columns:
        df[f"{col}_ma{window}"] = grouped[col]\
            .transform(lambda ts: ts.rolling(window, min_periods = 1).mean())
    return df

def scale_suffix(scale: float) -> str:
    if scale == 100*thousand:
        return "per_100k"
    if scale == million:
        return "per_1m"
    return f"per_{scale:g}"

def per_capita(df: pd.DataFrame, columns: Sequence[str], population: str = "population", scale: float = 100*thousand) -> pd.DataFrame:
    """ rates per `scale` residents; missing or non-positive populations give NaN """
    df = df.copy()
    N = df[population].where(df[population] > 0)
    suffix = scale_suffix(scale)
    for col in columns:
        df[f"{col}_{suffix}"] = scale * df[col]/N
    return df

def latest(df: pd.DataFrame, by: str) -> pd.DataFrame:
    return _sorted(df, by).groupby(by).tail(1).set_index(by)
