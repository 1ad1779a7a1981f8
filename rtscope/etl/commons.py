import logging
from pathlib import Path

import pandas as pd
import requests

logger = logging.getLogger(__name__)

def download_data(data_path: Path, filename: str, base_url: str) -> Path:
    """ download a file with filename from the base_url to the directory at data_path  """
    url = base_url + filename
    logger.info("downloading %s", url)
    response = requests.get(url, timeout = 60)
    response.raise_for_status()
    dst = data_path/filename
    with dst.open('wb') as f:
        f.write(response.content)
    return dst

def standardize_column_headers(df: pd.DataFrame):
    df.columns = df.columns.str.lower().str.strip()\
        .str.replace(r"[ /]", "_", regex = True)\
        .str.replace(r"[^a-z0-9_]", "", regex = True)
