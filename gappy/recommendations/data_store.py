from __future__ import annotations

from pathlib import Path

import pandas as pd

from ..config import DEFAULT_SERVER_CONFIG

_df: pd.DataFrame | None = None


def _load(path: Path) -> pd.DataFrame:
    df = pd.read_csv(path)

    # Pre-parse pipe-separated place types into lists
    df["types_list"] = (
        df["types"]
        .fillna("")
        .apply(lambda s: [t.strip() for t in s.split("|") if t.strip()])
    )
    df["place_id"] = df["place_id"].astype(str)
    df["vicinity"] = df["vicinity"].fillna("")

    return df


def get_places(path: Path | None = None) -> pd.DataFrame:
    """Return the in-memory places DataFrame, loading it on first call."""
    global _df
    if path is not None:
        return _load(path)
    if _df is None:
        _df = _load(DEFAULT_SERVER_CONFIG.places_csv)
    return _df
