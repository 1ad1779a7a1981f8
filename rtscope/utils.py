import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence, Tuple

import numpy as np

# code readability
days     = 1
weeks    = 7
thousand = 1e3
million  = 1e6

def fmt_params(**kwargs) -> str:
    """  get useful experiment tag from a dictionary of experiment settings """
    return ", ".join(f"{k.replace('_', ' ')}: {v}" for (k, v) in kwargs.items())

def mkdir(p: Path, exist_ok: bool = True) -> Path:
    p.mkdir(parents = True, exist_ok = exist_ok)
    return p

def setup(root: Optional[Path] = None, argv: Optional[Sequence[str]] = None, **kwargs) -> Tuple[Path, ...]:
    """ configure logging (optionally from a --level flag) and create data and figure directories under root """
    root = Path(root) if root else Path.cwd()
    parser = argparse.ArgumentParser(add_help = False)
    parser.add_argument("--level", type = str)
    (flags, _) = parser.parse_known_args(args = argv if argv is not None else sys.argv[1:])
    if flags.level:
        kwargs["level"] = flags.level.upper()
    logging.basicConfig(**kwargs)
    return (mkdir(root / "data"), mkdir(root / "figs"))

def fillna(array):
    return np.nan_to_num(array, nan = 0, posinf = 0, neginf = 0)

def normalize(array, axis = 0):
    """ scale array so that it sums to 1 along axis; slices with no mass are zeroed """
    array = np.asarray(array, dtype = float)
    with np.errstate(divide = "ignore", invalid = "ignore"):
        return fillna(array/np.expand_dims(array.sum(axis = axis), axis))
