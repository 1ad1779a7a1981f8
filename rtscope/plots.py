from collections import namedtuple
from pathlib import Path
from typing import Optional

import matplotlib as mpl
import matplotlib.dates as mdates
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from matplotlib.animation import FuncAnimation, PillowWriter
from matplotlib.patheffects import Normal, Stroke
from matplotlib.pyplot import *

from .estimators import CI as default_CI
from .estimators import interval_labels

_ = plt # make mpl package available in rtscope.plots

# default settings
mpl.rcParams["savefig.dpi"]     = 300
mpl.rcParams["xtick.labelsize"] = "large"
mpl.rcParams["ytick.labelsize"] = "large"
mpl.rcParams["svg.fonttype"]    = "none"

# palettes
## Rt
### core plot
BLK    = "#292f36"
BLK_CI = "#aeb7c2"

### stoplight
RED = "#D63231"
YLW = "#FD8B5A"
GRN = "#38AE66"

## new cases
OBS_BLK  = BLK
CASE_BLU = "#335970"

# container class for different theme
Aesthetics = namedtuple(
    "Aesthetics",
    ["title", "label", "note", "ticks", "style", "palette", "accent", "despine", "framealpha", "handlelength"]
)

twitter_settings = Aesthetics(
    title   = {"size": 28, "family": "Overpass", "weight": "bold"},
    label   = {"size": 20, "family": "Overpass", "weight": "regular"},
    note    = {"size": 14, "family": "Overpass", "weight": "regular"},
    ticks   = {"size": 12, "family": "Overpass", "weight": "regular"},
    style   = "white",
    accent  = "dimgrey",
    palette = "bright",
    despine = True,
    framealpha = 0,
    handlelength = 0.5
)

theme = default_settings = Aesthetics(
    title   = {"size": 28, "family": "DejaVu Sans", "weight": "regular"},
    label   = {"size": 20, "family": "DejaVu Sans", "weight": "regular"},
    note    = {"size": 14, "family": "DejaVu Sans", "weight": "regular"},
    ticks   = {"size": 10, "family": "DejaVu Sans"},
    style   = "whitegrid",
    palette = "bright",
    accent  = "dimgrey",
    despine = False,
    framealpha = 1,
    handlelength = 1
)

minimal_settings = Aesthetics(
    title   = {"size": 28, "family": "DejaVu Sans", "weight": "regular"},
    label   = {"size": 20, "family": "DejaVu Sans", "weight": "regular"},
    note    = {"size": 14, "family": "DejaVu Sans", "weight": "regular"},
    ticks   = {"size": 12, "family": "DejaVu Sans"},
    style   = "white",
    palette = "bright",
    accent  = "dimgrey",
    despine = True,
    framealpha = 0,
    handlelength = 0.5
)

plt.rcParams['mathtext.default'] = 'regular'
DATE_FMT = mdates.DateFormatter('%d %b')
bY_FMT   = mdates.DateFormatter('%b %Y')

def set_theme(name):
    global theme
    if   name == "twitter":
        theme = twitter_settings
    elif name == "minimal":
        theme = minimal_settings
    else: # default
        theme = default_settings
    sns.set_theme(style = theme.style, palette = theme.palette, font = theme.ticks["family"])
    mpl.rcParams.update({"font.size": 22})
    if theme.despine:
        plt.rc("axes.spines", top = False, right = False)
    return theme

set_theme("default")


# from https://towardsdatascience.com/beautiful-custom-colormaps-with-matplotlib-5bab3d1f0e72
def hex_to_rgb(value):
    '''
    Converts hex to rgb colours
    value: string of 6 characters representing a hex colour.
    Returns: list length 3 of RGB values'''
    value = value.strip("#") # removes hash symbol if present
    lv = len(value)
    return tuple(int(value[i:i + lv // 3], 16) for i in range(0, lv, lv // 3))

def rgb_to_dec(value):
    '''
    Converts rgb to decimal colours (i.e. divides each value by 256)
    value: list (length 3) of RGB values
    Returns: list (length 3) of decimal values'''
    return [v/256 for v in value]

def get_continuous_cmap(hex_list, float_list=None, name="Rt"):
    ''' creates and returns a color map that can be used in heat map figures.
        If float_list is not provided, colour map graduates linearly between each color in hex_list.
        If float_list is provided, each color in hex_list is mapped to the respective location in float_list.

        Parameters
        ----------
        hex_list: list of hex code strings
        float_list: list of floats between 0 and 1, same length as hex_list. Must start with 0 and end with 1.
        name: name to register the colour map under

        Returns
        ----------
        colour map'''
    rgb_list = [rgb_to_dec(hex_to_rgb(i)) for i in hex_list]
    if not float_list:
        float_list = list(np.linspace(0,1,len(rgb_list)))

    cdict = dict()
    for num, col in enumerate(['red', 'green', 'blue']):
        col_list = [[float_list[i], rgb_list[i][num], rgb_list[i][num]] for i in range(len(float_list))]
        cdict[col] = col_list
    cmp = mpl.colors.LinearSegmentedColormap(name, segmentdata=cdict, N=256)
    mpl.colormaps.register(cmp, name = name, force = True)
    return cmp


# DEFAULT COLOR MAPPING
default_cmap = get_continuous_cmap([GRN, YLW, RED, RED], [0, 0.8, 0.9, 1])
def get_cmap(vmin = 0, vmax = 3, cmap = default_cmap):
    return mpl.cm.ScalarMappable(
        norm = mpl.colors.Normalize(vmin, vmax),
        cmap = cmap
    )

sm = get_cmap()

def set_tick_size(size: int):
    plt.xticks(fontsize=size)
    plt.yticks(fontsize=size)

# simple wrapper over plt to help chain commands
class PlotDevice():
    def __init__(self, fig: Optional[mpl.figure.Figure] = None):
        self.figure = fig if fig else plt.gcf()
        if theme.despine:
            sns.despine(top = True, right = True)

    def axis_labels(self, x, y, enforce_spacing = True, **kwargs):
        kwargs["fontdict"] = kwargs.get("fontdict", theme.label)
        if enforce_spacing and not x.startswith("\n"):
            x = "\n" + x
        if enforce_spacing and not y.endswith("\n"):
            y = y + "\n"
        return self.xlabel(x, **kwargs).ylabel(y, **kwargs)

    def xlabel(self, xl: str, **kwargs):
        kwargs["fontdict"] = kwargs.get("fontdict", theme.label)
        plt.xlabel(xl, **kwargs)
        plt.gca().xaxis.label.set_color("dimgray")
        return self

    def ylabel(self, yl: str, **kwargs):
        kwargs["fontdict"] = kwargs.get("fontdict", theme.label)
        plt.ylabel(yl, **kwargs)
        plt.gca().yaxis.label.set_color("dimgray")
        return self

    # stack title/subtitle vertically
    def title(self, text: str, **kwargs):
        try:
            kwargs["x"]  = kwargs.get("x", self.figure.get_axes()[0].get_position().bounds[0])
        except IndexError:
            kwargs["x"]  = kwargs.get("x", plt.gca().get_position().bounds[0])
        kwargs["ha"] = kwargs.get("ha", "left")
        kwargs["va"] = kwargs.get("va", "top")
        kwargs["fontsize"]   = kwargs.get("fontsize", theme.title["size"])
        kwargs["fontweight"] = kwargs.get("fontweight", theme.title["weight"])
        self.figure.suptitle(text, **kwargs)
        return self

    # stack title/subtitle horizontally
    def l_title(self, text: str, **kwargs):
        kwargs["loc"]        = "left"
        kwargs["ha"]         = kwargs.get("ha", "left")
        kwargs["va"]         = kwargs.get("va", "bottom")
        kwargs["fontsize"]   = kwargs.get("fontsize",   theme.title["size"])
        kwargs["fontweight"] = kwargs.get("fontweight", theme.title["weight"])
        plt.title(text, **kwargs)
        return self

    def size(self, w, h):
        self.figure.set_size_inches(w, h)
        return self

    def legend(self, *args, **kwargs):
        kwargs["framealpha"]   = kwargs.get("framealpha",   theme.framealpha)
        kwargs["handlelength"] = kwargs.get("handlelength", theme.handlelength)
        plt.legend(*args, **kwargs)
        return self

    def format_xaxis(self, fmt = DATE_FMT):
        plt.gca().xaxis.set_major_formatter(fmt)
        plt.gca().xaxis.set_minor_formatter(fmt)
        return self

    def save(self, filename: Path, **kwargs):
        kwargs["transparent"] = kwargs.get("transparent", str(filename).endswith("svg"))
        self.figure.savefig(filename, **kwargs)
        return self

    def close(self):
        plt.close(self.figure)
        return self

def Rt(result: pd.DataFrame, CI: float = default_CI, ymin = 0.5, ymax = 3, yaxis_colors = True, format_dates = True, critical_threshold = True, legend = True, legend_loc = "best"):
    """ plot most likely Rt and associated credible intervals over time """
    (low, high) = interval_labels(CI)
    dates = result.index
    CI_marker  = plt.fill_between(dates, result[low], result[high], color = BLK, alpha = 0.3)
    Rt_marker, = plt.plot(dates, result["ML"], color = BLK, linewidth = 2, zorder = 5, solid_capstyle = "butt")
    if yaxis_colors:
        plt.plot([dates[0], dates[0]], [2.5, ymax], color = RED, linewidth = 6, alpha = 0.9, solid_capstyle="butt", zorder = 10)
        plt.plot([dates[0], dates[0]], [1,    2.5], color = YLW, linewidth = 6, alpha = 0.9, solid_capstyle="butt", zorder = 10)
        plt.plot([dates[0], dates[0]], [ymin,   1], color = GRN, linewidth = 6, alpha = 0.9, solid_capstyle="butt", zorder = 10)
        plt.plot([dates[0], dates[0]], [ymin, ymax], color = "white", linewidth = 10, alpha = 1, solid_capstyle="butt", zorder = 9)
    if critical_threshold:
        plt.hlines(1, xmin=dates[0], xmax=dates[-1], zorder = 11, color = "black", linestyles = "dotted")
    plt.ylim(ymin, ymax)
    plt.xlim(left=dates[0], right=dates[-1])
    pd = PlotDevice()
    if legend:
        pd.legend([(CI_marker, Rt_marker)], [f"Estimated $R_t$ ({100*CI:.0f}% CI)"], loc = legend_loc)
    if format_dates:
        pd.format_xaxis()
    set_tick_size(theme.ticks["size"])
    pd.markers = {"Rt" : (CI_marker, Rt_marker)}
    return pd

def daily_cases(original: pd.Series, smoothed: pd.Series):
    """ plots raw daily case counts against the smoothed series used for estimation """
    observed_marker, = plt.plot(original.index, original.values, color = OBS_BLK, linestyle = ":", alpha = 0.5, zorder = 8)
    smoothed_marker, = plt.plot(smoothed.index, smoothed.values, color = CASE_BLU, linewidth = 2, zorder = 10)
    plt.ylim(bottom = 0)
    plt.xlim(left = smoothed.index[0], right = smoothed.index[-1])
    plt.legend([observed_marker, smoothed_marker], ["observed cases", "smoothed cases"], prop = {'size': 14}, framealpha = theme.framealpha, handlelength = theme.handlelength, loc = "best")
    plt.gca().xaxis.set_major_formatter(DATE_FMT)
    plt.gca().xaxis.set_minor_formatter(DATE_FMT)
    set_tick_size(14)
    return PlotDevice()

def posterior_curves(posteriors: pd.DataFrame, xlim = (0.4, 6)):
    """ overlay every day's posterior density for Rt """
    plt.plot(posteriors.index, posteriors.values, color = BLK, linewidth = 1, alpha = 0.3)
    plt.xlim(*xlim)
    plt.xlabel("$R_t$")
    return PlotDevice()

def standings(latest: pd.DataFrame, CI: float = default_CI, mappable = sm, ymax = 3):
    """ bar chart of the most recent Rt per entity with credible intervals, coloured by stoplight band """
    (low, high) = interval_labels(CI)
    latest = latest.sort_values("ML")
    err = latest[[low, high]].sub(latest["ML"], axis = 0).abs()
    fig, ax = plt.subplots()
    ax.bar(
        latest.index.astype(str),
        latest["ML"],
        width    = 0.825,
        color    = [mappable.to_rgba(_) for _ in latest["ML"]],
        ecolor   = BLK_CI,
        capsize  = 2,
        error_kw = {"alpha": 0.5, "lw": 1},
        yerr     = err.values.T
    )
    ax.set_xticks(range(len(latest)))
    ax.set_xticklabels(latest.index.astype(str), rotation = 90, fontsize = 11)
    ax.margins(0)
    ax.set_ylim(0, ymax)
    ax.axhline(1.0, linestyle = ":", color = "black", lw = 1)
    return PlotDevice(fig)

def rt_heatmap(results: pd.DataFrame, by: str, mappable = sm, label_every: int = 7):
    """ entity-by-date heatmap of most likely Rt """
    grid = results["ML"].unstack("date")
    grid.columns = pd.DatetimeIndex(grid.columns).strftime("%d %b")
    fig, ax = plt.subplots()
    sns.heatmap(grid,
        cmap = mappable.cmap,
        vmin = mappable.norm.vmin,
        vmax = mappable.norm.vmax,
        xticklabels = label_every,
        yticklabels = True,
        cbar_kws = {"label": "$R_t$"},
        ax = ax
    )
    ax.set_xlabel(None)
    ax.set_ylabel(None)
    return PlotDevice(fig)

def per_capita(df: pd.DataFrame, by: str, column: str, max_legend: int = 10):
    """ plot a per-capita metric over time, one line per entity """
    fig, ax = plt.subplots()
    for (entity, grp) in df.groupby(by):
        ax.plot(grp["date"], grp[column], linewidth = 1.5, label = entity)
    if df[by].nunique() <= max_legend:
        ax.legend(framealpha = theme.framealpha, handlelength = theme.handlelength, loc = "best")
    ax.set_ylim(bottom = 0)
    ax.xaxis.set_major_formatter(bY_FMT)
    return PlotDevice(fig)

def _map(gdf, col, ax, mappable):
    ax.grid(False)
    ax.set_xticks([])
    ax.set_yticks([])
    gdf.plot(column = col, cmap = mappable.cmap, vmin = mappable.norm.vmin, vmax = mappable.norm.vmax, ax = ax, edgecolor = "black", linewidth = 0.5, missing_kwds = {"color": theme.accent, "edgecolor": "white"})

def _label(gdf, col, ax, label_fn, label_kwargs):
    for (_, row) in gdf.iterrows():
        if pd.isna(row[col]):
            continue
        ax.annotate(
            text = f"{label_fn(row)}{round(row[col], 2)}",
            xy = list(row["pt"].coords)[0],
            ha = "center",
            fontfamily = theme.note["family"],
            color = "black",
            fontweight = "semibold",
            size = 12,
            **label_kwargs)\
            .set_path_effects([Stroke(linewidth = 2, foreground = "white"), Normal()])

def choropleth(gdf, label_fn = lambda _: "", col = "Rt", title = "$R_t$", label_kwargs = {}, mappable = sm, fig = None, ax = None):
    """ display choropleth of locations by metric """
    gdf = gdf.assign(pt = gdf["geometry"].representative_point())
    if not fig:
        fig, ax = plt.subplots()
    if title:
        ax.set_title(title, loc="left", fontdict = theme.label)
    _map(gdf, col, ax, mappable)
    if label_fn is not None:
        _label(gdf, col, ax, label_fn, label_kwargs)
    cbar_ax = fig.add_axes([0.90, 0.25, 0.01, 0.5])
    fig.colorbar(mappable = mappable, orientation = "vertical", cax = cbar_ax)
    cbar_ax.set_title("$R_t$", fontdict = theme.note)
    return PlotDevice(fig)

def double_choropleth(gdf, label_fn = lambda _: "", Rt_col = "Rt", Rt_proj_col = "Rt_proj", titles = ["Current $R_t$", "Projected $R_t$ (1 Week)"], arrangement = (1, 2), label_kwargs = {}, mappable = sm):
    """ plot two choropleths side-by-side based on multiple metrics """
    gdf = gdf.assign(pt = gdf["geometry"].representative_point())
    fig, (ax1, ax2) = plt.subplots(*arrangement)
    for (ax, title, col) in zip((ax1, ax2), titles, (Rt_col, Rt_proj_col)):
        ax.set_title(title, loc="left", fontdict = theme.label)
        _map(gdf, col, ax, mappable)
        if label_fn is not None:
            _label(gdf, col, ax, label_fn, label_kwargs)
    cbar_ax = fig.add_axes([0.95, 0.25, 0.01, 0.5])
    fig.colorbar(mappable = mappable, orientation = "vertical", cax = cbar_ax)
    cbar_ax.set_title("$R_t$", fontdict = theme.note)
    return PlotDevice(fig)

def animate_choropleth(gdf, frames: pd.DataFrame, key: str, dst: Path, fps: int = 4, dpi: int = 100, title = "$R_t$", mappable = sm) -> Path:
    """
    Render one choropleth per row of `frames` (dates by entities, columns matching gdf[key]) and write
    the sequence to dst. GIFs are written with Pillow; other suffixes use matplotlib's default movie writer.
    """
    fig, ax = plt.subplots()
    cbar_ax = fig.add_axes([0.90, 0.25, 0.01, 0.5])
    fig.colorbar(mappable = mappable, orientation = "vertical", cax = cbar_ax)
    cbar_ax.set_title("$R_t$", fontdict = theme.note)

    def draw(i):
        date = frames.index[i]
        ax.clear()
        _map(gdf.assign(value = gdf[key].map(frames.loc[date])), "value", ax, mappable)
        ax.set_title(f"{title} {pd.Timestamp(date):%d %b %Y}", loc = "left", fontdict = theme.label)
        return ax.collections

    animation = FuncAnimation(fig, draw, frames = len(frames), interval = 1000/fps, blit = False)
    if str(dst).endswith(".gif"):
        animation.save(dst, writer = PillowWriter(fps = fps), dpi = dpi)
    else:
        animation.save(dst, fps = fps, dpi = dpi)
    plt.close(fig)
    return dst
