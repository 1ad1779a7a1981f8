import argparse
import logging
import re
from pathlib import Path
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from . import metrics, plots
from .estimators import CI, CUTOFF, WINDOW, estimate_all, linear_projection
from .etl import csse, lookups
from .utils import fmt_params, setup, weeks

""" batch report: cumulative counts -> tidy table -> per-capita metrics -> Rt -> figures """

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

def slug(name: str) -> str:
    return re.sub(r"[^A-Za-z0-9]+", "_", str(name)).strip("_")

def load_timeseries(data: Path, scope: str, level: str, window: int = WINDOW, fetch_data: bool = True) -> pd.DataFrame:
    """ tidy entity-level table with daily counts, moving averages and per-capita rates """
    if fetch_data:
        csse.fetch_all(data, scope)
        lookups.fetch_lookup(data)
    ts = csse.aggregate(csse.load(data, scope), level)

    lookup_path = data/lookups.LOOKUP_FILENAME
    if lookup_path.exists():
        population = lookups.populations(lookups.load_lookup(lookup_path), level)
        ts = lookups.attach_population(ts, population, level)
    else:
        logger.warning("no population lookup at %s, per-capita rates will be missing", lookup_path)
        ts["population"] = np.nan

    ts = metrics.daily(ts, level)
    ts = metrics.moving_average(ts, level, ["new_confirmed", "new_deaths"], window)
    return metrics.per_capita(ts, [f"new_confirmed_ma{window}", f"new_deaths_ma{window}", "confirmed", "deaths"])

def project(results: pd.DataFrame, level: str, window: int = WINDOW, period: int = 1*weeks) -> pd.Series:
    """ one-week linear projection of the most likely Rt per entity """
    def _project(ML: pd.Series) -> float:
        if len(ML) < 2:
            return np.nan
        return linear_projection(ML.index.get_level_values("date"), ML.values, window, period)
    return results["ML"].groupby(level = level).apply(_project).rename("Rt_proj")

def plot_entities(results: pd.DataFrame, level: str, figs: Path, CI: float = CI):
    for (entity, result) in results.groupby(level = level):
        result = result.droplevel(level)
        plots.Rt(result, CI)\
            .l_title(f"$R_t$ for {entity}")\
            .axis_labels(x = "date", y = "$R_t$")\
            .size(11, 6)\
            .save(figs/f"{slug(entity)}_Rt.png")\
            .close()
        plots.daily_cases(result["cases"], result["smoothed"])\
            .l_title(f"daily cases for {entity}")\
            .axis_labels(x = "date", y = "new cases")\
            .size(11, 6)\
            .save(figs/f"{slug(entity)}_cases.png")\
            .close()

def plot_summaries(ts: pd.DataFrame, results: pd.DataFrame, latest: pd.DataFrame, level: str, figs: Path, window: int = WINDOW, CI: float = CI):
    plots.standings(latest, CI)\
        .title(f"most recent $R_t$ by {level}")\
        .size(max(6, 0.35 * len(latest)), 5)\
        .save(figs/"standings.png")\
        .close()
    plots.rt_heatmap(results, level)\
        .title(f"$R_t$ by {level}")\
        .size(14, max(4, 0.3 * len(latest)))\
        .save(figs/"rt_heatmap.png")\
        .close()
    plots.per_capita(ts, level, f"new_confirmed_ma{window}_per_100k")\
        .title(f"daily cases per 100k ({window}-day average)")\
        .size(11, 6)\
        .save(figs/"cases_per_capita.png")\
        .close()

def plot_maps(results: pd.DataFrame, latest: pd.DataFrame, level: str, figs: Path, geography: Path, geography_key: str, window: int = WINDOW, animate: bool = False):
    gdf = lookups.load_geography(geography)
    current = latest[["ML"]].rename(columns = {"ML": "Rt"}).join(project(results, level, window))
    joined = lookups.join_geography(gdf, current.reset_index(), left_on = geography_key, right_on = level)
    plots.double_choropleth(joined)\
        .size(16, 6)\
        .save(figs/"rt_choropleth.png")\
        .close()
    if animate:
        frames = results["ML"].unstack(level)
        plots.animate_choropleth(gdf, frames, geography_key, figs/"rt_animation.gif")

def run(
        data:          Path,
        figs:          Path,
        scope:         str = "US",
        level:         str = "state",
        entities:      Optional[Sequence[str]] = None,
        start:         Optional[str] = None,
        end:           Optional[str] = None,
        cutoff:        float = CUTOFF,
        window:        int = WINDOW,
        CI:            float = CI,
        fetch_data:    bool = True,
        geography:     Optional[Path] = None,
        geography_key: str = "NAME",
        animate:       bool = False,
        progress:      bool = True
    ) -> pd.DataFrame:
    """ run the full report and return the Rt estimates, indexed by (entity, date) """
    logger.info("report settings: %s", fmt_params(scope = scope, level = level, start = start, end = end, cutoff = cutoff, window = window, CI = CI))
    ts = load_timeseries(data, scope, level, window, fetch_data)
    if entities:
        ts = ts[ts[level].isin(entities)]
        if ts.empty:
            raise ValueError(f"none of the requested entities are present at {level} level: {', '.join(entities)}")
    ts.to_csv(data/"timeseries.csv", index = False)

    results = estimate_all(ts, level, "confirmed", progress = progress, cutoff = cutoff, window = window, CI = CI, start = start, end = end)
    results.to_csv(data/"rt_estimates.csv")
    if results.empty:
        logger.warning("no entity had enough cases to estimate Rt, skipping figures")
        return results

    latest = results.groupby(level = level).tail(1).droplevel("date")
    plot_entities(results, level, figs, CI)
    plot_summaries(ts, results, latest, level, figs, window, CI)
    if geography:
        plot_maps(results, latest, level, figs, geography, geography_key, window, animate)
    return results

def main(argv: Optional[Sequence[str]] = None):
    parser = argparse.ArgumentParser(description = "estimate Rt from JHU CSSE case counts and render report figures")
    parser.add_argument("--root",          type = Path, default = Path.cwd(), help = "directory holding data/ and figs/")
    parser.add_argument("--scope",         choices = csse.SCOPES, default = "US")
    parser.add_argument("--entity-level",  choices = sorted(csse.LEVELS), default = "state")
    parser.add_argument("--entities",      nargs = "*")
    parser.add_argument("--start",         type = str)
    parser.add_argument("--end",           type = str)
    parser.add_argument("--cutoff",        type = float, default = CUTOFF)
    parser.add_argument("--window",        type = int,   default = WINDOW)
    parser.add_argument("--CI",            type = float, default = CI)
    parser.add_argument("--no-fetch",      action = "store_true", help = "use files already in data/")
    parser.add_argument("--geography",     type = Path, help = "vector file of entity boundaries for choropleths")
    parser.add_argument("--geography-key", default = "NAME", help = "geography column matching entity names")
    parser.add_argument("--animate",       action = "store_true")
    parser.add_argument("--level",         default = "INFO", help = "logging level")
    flags = parser.parse_args(argv)

    (data, figs) = setup(flags.root, argv = ["--level", flags.level], format = LOG_FORMAT)
    return run(data, figs,
        scope         = flags.scope,
        level         = flags.entity_level,
        entities      = flags.entities,
        start         = flags.start,
        end           = flags.end,
        cutoff        = flags.cutoff,
        window        = flags.window,
        CI            = flags.CI,
        fetch_data    = not flags.no_fetch,
        geography     = flags.geography,
        geography_key = flags.geography_key,
        animate       = flags.animate
    )

if __name__ == "__main__":
    main()
