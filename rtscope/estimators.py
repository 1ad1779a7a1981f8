import logging
from typing import Callable, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy.stats import gamma as Gamma
from scipy.stats import norm, poisson
from statsmodels.regression.linear_model import OLS
from statsmodels.tools import add_constant
from tqdm import tqdm

from .smoothing import gaussian
from .utils import days, normalize, weeks

logger = logging.getLogger(__name__)

# candidate grid for Rt
R_T_MAX   = 12
R_T_RANGE = np.linspace(0, R_T_MAX, R_T_MAX*100 + 1)

# reciprocal of the serial interval
GAMMA = 1/(7*days)

CUTOFF = 25         # smoothed daily cases needed before estimation starts
WINDOW = 1*weeks    # days of likelihood accumulated into each posterior
CI     = 0.9        # credible interval mass

# expected-count floor so days following a zero count keep a finite likelihood
LAMBDA_FLOOR = 0.1

class InsufficientData(ValueError):
    """ raised when a case series is too short or too small to estimate Rt from """

def gamma_prior(a: float = 3) -> Callable[[np.ndarray], np.ndarray]:
    """ log-density of a Gamma(a) prior over the Rt grid """
    return lambda r_t_range: np.log(Gamma(a = a).pdf(r_t_range) + 1e-14)

def interval_labels(p: float) -> Tuple[str, str]:
    return (f"Low_{p*100:.0f}", f"High_{p*100:.0f}")

def prepare_cases(
        cases:     pd.Series,
        cutoff:    float = CUTOFF,
        smoothing: Optional[Callable] = None,
        start:     Optional[str] = None,
        end:       Optional[str] = None
    ) -> Tuple[pd.Series, pd.Series]:
    """ daily new cases from cumulative counts, smoothed and trimmed to start once the smoothed count reaches cutoff """
    if smoothing is None:
        smoothing = gaussian()
    cases = cases.sort_index().loc[start:end]
    new_cases = cases.diff().iloc[1:].clip(lower = 0)
    if len(new_cases) < 2:
        raise InsufficientData(f"{cases.name}: need at least 3 days of cumulative counts, got {len(cases)}")

    try:
        values = np.asarray(smoothing(new_cases), dtype = float)
    except ValueError as e:
        raise InsufficientData(f"{cases.name}: {len(new_cases)} days is too short to smooth: {e}") from e
    if len(values) != len(new_cases):
        raise InsufficientData(f"{cases.name}: smoothing {len(new_cases)} days returned {len(values)} values")

    # the Poisson likelihood needs whole, non-negative counts whatever the filter returns
    smoothed = pd.Series(values, index = new_cases.index, name = cases.name)\
        .clip(lower = 0)\
        .round()
    above = (smoothed >= cutoff).to_numpy()
    if not above.any():
        raise InsufficientData(f"{cases.name}: smoothed daily cases never reach {cutoff}")

    idx_start = above.argmax()
    smoothed  = smoothed.iloc[idx_start:]
    if len(smoothed) < 2:
        raise InsufficientData(f"{cases.name}: only {len(smoothed)} day(s) left after cutoff")
    logger.debug("%s: estimating from %s (%s days)", cases.name, smoothed.index[0], len(smoothed))
    return (new_cases.loc[smoothed.index], smoothed)

def log_likelihoods(smoothed: pd.Series, gamma: float = GAMMA, r_t_range: np.ndarray = R_T_RANGE, floor: float = LAMBDA_FLOOR) -> pd.DataFrame:
    """ Poisson log-likelihood of each day's count given the previous day's count, for every candidate Rt """
    previous = np.maximum(smoothed.to_numpy()[:-1], floor)
    lam = previous * np.exp(gamma * (r_t_range[:, None] - 1))
    return pd.DataFrame(
        data    = poisson.logpmf(smoothed.to_numpy()[1:], lam),
        index   = pd.Index(r_t_range, name = "Rt"),
        columns = smoothed.index[1:]
    )

def posteriors(
        smoothed:    pd.Series,
        window:      int = WINDOW,
        gamma:       float = GAMMA,
        r_t_range:   np.ndarray = R_T_RANGE,
        prior:       Optional[Callable[[np.ndarray], np.ndarray]] = gamma_prior(),
        min_periods: int = 1,
        normalized:  bool = True,
        floor:       float = LAMBDA_FLOOR
    ) -> pd.DataFrame:
    """
    Posterior over the Rt grid for each date, from a trailing sum of `window` days of log-likelihoods.

    If a prior is given, its log-density occupies the first date's column and so only informs the
    first `window` posteriors. Each column is exponentiated relative to its own maximum, so the
    unnormalized density peaks at 1; by default columns are then scaled to unit mass.
    """
    if window < 1:
        raise ValueError(f"window must be at least 1 day, got {window}")
    likelihoods = log_likelihoods(smoothed, gamma, r_t_range, floor)
    if prior is not None:
        likelihoods.insert(0, smoothed.index[0], prior(r_t_range))

    # rolling over dates, which are columns here
    summed = likelihoods.T.rolling(window, min_periods = min_periods).sum().T
    density = np.exp(summed - summed.max(axis = 0))
    if normalized:
        density = pd.DataFrame(normalize(density.to_numpy(), axis = 0), index = density.index, columns = density.columns)
    return density

def most_likely(posteriors: pd.DataFrame) -> pd.Series:
    return posteriors.idxmax().rename("ML")

def highest_density_interval(pmf, p: float = CI):
    """
    Credible interval around the mode: starting from the most likely value, repeatedly take in the
    neighbouring grid point with more mass (upper neighbour on ties) until the interval holds p.
    """
    if not (0 < p < 1):
        raise ValueError(f"interval mass must be between 0 and 1, got {p}")
    # for a DataFrame, compute an interval per column
    if isinstance(pmf, pd.DataFrame):
        return pd.DataFrame(
            [highest_density_interval(pmf[col], p = p) for col in pmf],
            index = pmf.columns
        )

    labels = interval_labels(p)
    values = pmf.to_numpy(dtype = float)
    total  = np.nansum(values)
    if not total > 0:
        return pd.Series([np.nan, np.nan], index = labels)

    values = np.nan_to_num(values)/total
    low = high = int(values.argmax())
    mass = values[low]
    last = len(values) - 1
    while mass < p and (low > 0 or high < last):
        below = values[low - 1]  if low  > 0    else -1
        above = values[high + 1] if high < last else -1
        if above >= below:
            high += 1
            mass += above
        else:
            low  -= 1
            mass += below
    return pd.Series([pmf.index[low], pmf.index[high]], index = labels)

def estimate(
        cases:     pd.Series,
        cutoff:    float = CUTOFF,
        window:    int = WINDOW,
        CI:        float = CI,
        gamma:     float = GAMMA,
        smoothing: Optional[Callable] = None,
        start:     Optional[str] = None,
        end:       Optional[str] = None,
        r_t_range: np.ndarray = R_T_RANGE,
        floor:     float = LAMBDA_FLOOR
    ) -> pd.DataFrame:
    """ most likely Rt and credible interval for each date of a cumulative case series """
    original, smoothed = prepare_cases(cases, cutoff, smoothing, start, end)
    posterior = posteriors(smoothed, window = window, gamma = gamma, r_t_range = r_t_range, floor = floor)
    # the first date carries only the prior
    posterior = posterior.iloc[:, 1:]
    result = pd.concat([
        original.rename("cases"),
        smoothed.rename("smoothed"),
        most_likely(posterior),
        highest_density_interval(posterior, p = CI)
    ], axis = 1).iloc[1:]
    result.index.name = "date"
    return result

def estimate_all(
        df:       pd.DataFrame,
        by:       str,
        column:   str = "confirmed",
        entities: Optional[Sequence[str]] = None,
        progress: bool = True,
        **kwargs
    ) -> pd.DataFrame:
    """ run the Rt estimator for every entity in a long table of cumulative counts """
    if entities is None:
        entities = df[by].unique()
    estimates = {}
    for entity in tqdm(entities, disable = not progress):
        cases = df.loc[df[by] == entity].set_index("date")[column].rename(entity)
        try:
            estimates[entity] = estimate(cases, **kwargs)
        except InsufficientData as e:
            logger.warning("skipping %s: %s", entity, e)
            continue
        logger.info("%s: latest Rt %.2f", entity, estimates[entity]["ML"].iloc[-1])
    if not estimates:
        return pd.DataFrame(
            columns = ["cases", "smoothed", "ML", *interval_labels(kwargs.get("CI", CI))],
            index = pd.MultiIndex.from_arrays([[], []], names = [by, "date"])
        )
    return pd.concat(estimates, names = [by, "date"])

def bayesian_filter(
        smoothed:  pd.Series,
        sigma:     float = 0.25,
        gamma:     float = GAMMA,
        r_t_range: np.ndarray = R_T_RANGE,
        floor:     float = LAMBDA_FLOOR
    ) -> Tuple[pd.DataFrame, float]:
    """
    Sequential alternative to the windowed accumulator: Rt follows a gaussian random walk with
    standard deviation sigma, and each day's posterior becomes the next day's prior.

    Returns the daily posteriors and the log of the total evidence, which can be used to choose sigma.
    """
    likelihoods = np.exp(log_likelihoods(smoothed, gamma, r_t_range, floor))

    # column j holds the distribution of tomorrow's Rt given today's Rt = r_t_range[j]
    process_matrix = norm(loc = r_t_range, scale = sigma).pdf(r_t_range[:, None])
    process_matrix /= process_matrix.sum(axis = 0)

    prior0 = np.ones_like(r_t_range)/len(r_t_range)
    posterior = np.zeros((len(r_t_range), len(smoothed)))
    posterior[:, 0] = prior0

    log_likelihood = 0.0
    for (t, current_day) in enumerate(smoothed.index[1:], start = 1):
        current_prior = process_matrix @ posterior[:, t - 1]
        numerator = likelihoods[current_day].to_numpy() * current_prior
        denominator = numerator.sum()
        if denominator <= 0:
            raise InsufficientData(f"{smoothed.name}: observation on {current_day} has zero probability under every Rt")
        posterior[:, t] = numerator/denominator
        log_likelihood += np.log(denominator)

    return (pd.DataFrame(posterior, index = pd.Index(r_t_range, name = "Rt"), columns = smoothed.index), log_likelihood)

def select_sigma(smoothed: pd.Series, sigmas: Sequence[float] = np.linspace(1/20, 1, 20), **kwargs) -> float:
    """ random walk scale with the highest evidence for a series """
    evidence = [bayesian_filter(smoothed, sigma = sigma, **kwargs)[1] for sigma in sigmas]
    best = sigmas[int(np.argmax(evidence))]
    logger.debug("%s: selected sigma %.3f", smoothed.name, best)
    return best

def linear_projection(dates: pd.DatetimeIndex, values: Sequence[float], window: int = WINDOW, period: int = 1*weeks) -> float:
    """ OLS projection of the last `window` values, `period` days past the last date """
    julian_dates = [_.to_julian_date() for _ in pd.DatetimeIndex(dates)[-window:]]
    return OLS(
        np.asarray(values)[-window:],
        add_constant(julian_dates)
    )\
    .fit()\
    .predict([1, julian_dates[-1] + period])[0]
