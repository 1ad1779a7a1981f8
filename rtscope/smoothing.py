from functools import wraps
from typing import Callable, Sequence

import numpy as np
import pandas as pd
from scipy.signal import convolve, filtfilt, iirnotch
from statsmodels.nonparametric.smoothers_lowess import lowess as sm_lowess

# supported kernels for convolution smoothing
kernels = {
    "hanning"  : np.hanning,
    "hamming"  : np.hamming,
    "bartlett" : np.bartlett,
    "blackman" : np.blackman,
    "uniform"  : np.ones
}

def preserve_index(smooth: Callable) -> Callable:
    """ re-attach the index of a pandas Series input to the smoothed output """
    @wraps(smooth)
    def wrapper(data):
        if isinstance(data, pd.Series):
            return pd.Series(smooth(data.to_numpy(dtype = float)), index = data.index, name = data.name)
        return smooth(np.asarray(data, dtype = float))
    return wrapper

def gaussian(window: int = 7, std: float = 2, center: bool = True, rounded: bool = True):
    """ gaussian-weighted rolling mean over a fixed window, rounded to whole cases by default """
    @preserve_index
    def smooth(data: np.ndarray):
        smoothed = pd.Series(data)\
            .rolling(window, win_type = "gaussian", min_periods = 1, center = center)\
            .mean(std = std)
        return (smoothed.round() if rounded else smoothed).to_numpy()
    return smooth

def notched_smoothing(window: int = 7):
    """ Removes weekly and twice-weekly periodicity before convolving a time-reversed padded signal with a uniform moving average window"""
    fs, f0, Q = 1, 1/7, 1
    b1, a1 = iirnotch(f0, Q, fs)
    b2, a2 = iirnotch(2*f0, 2*Q, fs)
    b = convolve(b1, b2)
    a = convolve(a1, a2)
    kernel = np.ones(window)/window
    @preserve_index
    def smooth(data: np.ndarray):
        notched = filtfilt(b, a, data)
        return convolve(np.concatenate([notched, notched[:-window-1:-1]]), kernel, mode="same")[:-window]
    return smooth

def convolution(key: str = "hamming", window: int = 7):
    """ entry point for all convolution operations """
    if key not in kernels:
        raise ValueError(f"unknown kernel {key!r}; expected one of {sorted(kernels)}")
    kernel = kernels[key](window)
    @preserve_index
    def smooth(data: np.ndarray):
        # pad the data with time reversal windows of signal at ends since all kernels here are apodizing
        padded = np.r_[data[window-1:0:-1], data, data[-2:-window-1:-1]]
        return np.convolve(kernel/kernel.sum(), padded, mode="valid")[:-window+1]
    return smooth

def lowess(**kwargs):
    """ wrapper over statsmodels lowess implementation to return a callable """
    kwargs["return_sorted"] = False
    @preserve_index
    def smooth(data: Sequence[float]):
        return sm_lowess(data, np.arange(len(data)), **kwargs)
    return smooth
