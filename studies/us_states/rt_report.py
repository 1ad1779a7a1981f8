from pathlib import Path

import rtscope.plots as plt
from rtscope.estimators import estimate, posteriors, prepare_cases, select_sigma, bayesian_filter, most_likely, highest_density_interval
from rtscope.pipeline import load_timeseries, run
from rtscope.smoothing import notched_smoothing
from rtscope.utils import setup

""" state-level Rt report for the US, with a closer look at a handful of states """

# parameters
CI     = 0.9
window = 7
cutoff = 25
start  = "March 1, 2020"
end    = "December 31, 2020"
focus_states = ["New York", "California", "Texas", "Florida"]

# shapefile from the Census cartographic boundary files (cb_2018_us_state_20m), if downloaded
geography = Path("./data/cb_2018_us_state_20m.shp")

(data, figs) = setup(Path(__file__).resolve().parent, format = "%(asctime)s %(name)s %(levelname)s %(message)s")
plt.set_theme("minimal")

results = run(data, figs,
    scope     = "US",
    level     = "state",
    start     = start,
    end       = end,
    cutoff    = cutoff,
    window    = window,
    CI        = CI,
    geography = geography if geography.exists() else None,
    animate   = True
)

# compare the windowed estimate against the sequential filter and a notch-filtered input
ts = load_timeseries(data, "US", "state", window, fetch_data = False)
for state in focus_states:
    cases = ts[ts.state == state].set_index("date")["confirmed"].rename(state)

    (original, smoothed) = prepare_cases(cases, cutoff, start = start, end = end)
    plt.posterior_curves(posteriors(smoothed, window = window))\
        .l_title(f"daily posteriors for $R_t$ in {state}")\
        .size(9.5, 6)\
        .save(figs / f"{state}_posteriors.png")\
        .close()

    sigma = select_sigma(smoothed)
    (filtered, _) = bayesian_filter(smoothed, sigma = sigma)
    sequential = highest_density_interval(filtered, p = CI).join(most_likely(filtered))
    plt.Rt(sequential.iloc[1:], CI)\
        .l_title(f"$R_t$ for {state} (sequential filter, $\\sigma$ = {sigma:.2f})")\
        .size(11, 6)\
        .save(figs / f"{state}_Rt_sequential.png")\
        .close()

    notched = estimate(cases, cutoff, window, CI, smoothing = notched_smoothing(window), start = start, end = end)
    plt.Rt(notched, CI)\
        .l_title(f"$R_t$ for {state} (notch-filtered cases)")\
        .size(11, 6)\
        .save(figs / f"{state}_Rt_notched.png")\
        .close()
