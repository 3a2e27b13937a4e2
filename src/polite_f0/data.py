"""
Loading and cleaning the raw F0 table.

Expected input: a tab-delimited text file with a header row and at least
the columns

    speaker, lang, gend, item, inform, f0md

where `inform` is "pol" (polite) or "inform" (informal) and `f0md` is the
median F0 of the utterance in Hz (may be NA).
"""

from pathlib import Path

import numpy as np
import pandas as pd

from polite_f0 import config

LABEL_COLUMNS = ["speaker", "lang", "gend", "item", "inform"]


def check_columns(df: pd.DataFrame, required=None) -> None:
    """Raise ValueError if any required column is missing."""
    required = config.REQUIRED_COLUMNS if required is None else required
    missing_cols = [c for c in required if c not in df.columns]
    if missing_cols:
        raise ValueError(
            f"Missing expected columns: {missing_cols}. "
            f"Found: {list(df.columns)}"
        )


def check_missing_labels(df: pd.DataFrame, columns=LABEL_COLUMNS) -> None:
    """Raise ValueError if any identifier or condition cell is empty."""
    n_missing = df[columns].isna().sum()
    n_missing = n_missing[n_missing > 0]
    if len(n_missing):
        raise ValueError(
            f"Missing values in required columns: {n_missing.to_dict()}"
        )


def check_conditions(df: pd.DataFrame) -> None:
    unknown = sorted(set(df["inform"].dropna().unique()) - set(config.CONDITIONS))
    if unknown:
        raise ValueError(
            f"Unexpected values in 'inform': {unknown}. "
            f"Expected only {config.CONDITIONS}."
        )


def check_speakers_unique_to_language(df: pd.DataFrame) -> None:
    """Every speaker must belong to exactly one language."""
    n_langs = df.groupby("speaker")["lang"].nunique()
    shared = n_langs[n_langs > 1].index.tolist()
    if shared:
        raise ValueError(
            f"Speakers recorded under more than one language: {shared}"
        )


def load_data(path) -> pd.DataFrame:
    """
    Read the tab-delimited F0 file and validate its structure.

    Every column is read as text so that item codes like "012" keep their
    leading zeros; `f0md` is then converted to float, with NA / empty cells
    kept as NaN.
    """
    path = Path(path)
    print(f"[INFO] Reading data from: {path.resolve()}")
    df = pd.read_csv(path, sep="\t", dtype=str)

    check_columns(df)

    for col in LABEL_COLUMNS:
        df[col] = df[col].str.strip().replace("", np.nan)
    df["lang"] = df["lang"].str.lower()
    df["inform"] = df["inform"].str.lower()
    df["f0md"] = pd.to_numeric(df["f0md"]).astype(float)

    check_missing_labels(df)
    check_conditions(df)
    check_speakers_unique_to_language(df)

    n_missing = int(df["f0md"].isna().sum())
    print(f"[INFO] Loaded {len(df)} rows, {df['lang'].nunique()} languages, "
          f"{df['speaker'].nunique()} speakers ({n_missing} missing f0md).")
    return df


def drop_excluded_items(df: pd.DataFrame, pattern: str = config.EXCLUDED_ITEM_PATTERN) -> pd.DataFrame:
    """Return a copy of `df` without the rows whose item matches `pattern`."""
    mask = df["item"].str.contains(pattern, case=False, regex=True, na=False)
    n_dropped = int(np.sum(mask))
    print(f"[INFO] Dropping {n_dropped} rows matching excluded task '{pattern}'.")
    return df.loc[~mask].reset_index(drop=True)
