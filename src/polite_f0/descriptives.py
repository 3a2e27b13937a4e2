"""
Descriptive summaries of F0 by politeness condition.

Means skip missing F0 values (pandas default), so NA never counts as zero.
A speaker "lowered" F0 when their polite mean is strictly below their
informal mean; a difference of exactly zero is not lowering.
"""

from pathlib import Path

import pandas as pd

from polite_f0 import config


def condition_means(df: pd.DataFrame) -> pd.DataFrame:
    """Global mean F0 per politeness condition."""
    return (
        df.groupby("inform")["f0md"]
        .mean()
        .reindex(config.CONDITIONS)
        .rename_axis("inform")
        .rename("f0_mean")
        .reset_index()
    )


def _condition_table(df: pd.DataFrame, keys) -> pd.DataFrame:
    wide = (
        df.groupby(keys + ["inform"])["f0md"]
        .mean()
        .unstack("inform")
        .reindex(columns=config.CONDITIONS)
    )
    wide.columns.name = None
    wide["diff"] = wide[config.POLITE] - wide[config.INFORMAL]
    return wide.reset_index()


def language_condition_means(df: pd.DataFrame) -> pd.DataFrame:
    """Per-language mean F0 in each condition and the polite - informal difference."""
    return _condition_table(df, ["lang"])


def speaker_differences(df: pd.DataFrame) -> pd.DataFrame:
    """
    Per-speaker polite - informal difference with a 0/1 `lowered` flag.

    Speakers without a mean in both conditions have no defined difference
    and are dropped.
    """
    diffs = _condition_table(df, ["lang", "speaker"])
    undefined = diffs["diff"].isna()
    if undefined.any():
        print(f"[WARN] Dropping {int(undefined.sum())} speaker(s) without F0 in both "
              f"conditions: {diffs.loc[undefined, 'speaker'].tolist()}")
        diffs = diffs.loc[~undefined].reset_index(drop=True)
    diffs["lowered"] = (diffs["diff"] < 0).astype(int)
    return diffs


def proportion_lowered(speaker_diffs: pd.DataFrame, decimals: int = config.PROPORTION_DECIMALS) -> pd.DataFrame:
    """Count and proportion of speakers per language who lowered F0 when polite."""
    table = (
        speaker_diffs.groupby("lang")
        .agg(n_lowered=("lowered", "sum"), n_speakers=("speaker", "nunique"))
        .reset_index()
    )
    table["n_lowered"] = table["n_lowered"].astype(int)
    table["proportion_lowered"] = (table["n_lowered"] / table["n_speakers"]).round(decimals)
    return table


def write_proportion_lowered(table: pd.DataFrame, path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    print(f"Saving proportion of speakers lowering F0 to: {path}")
    table.to_csv(path, index=False, float_format="%.2f")
    return path


def summarize_descriptives(df: pd.DataFrame, outdir) -> dict:
    """Compute all descriptive tables and write them to `outdir`."""
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    by_condition = condition_means(df)
    by_language = language_condition_means(df)
    by_speaker = speaker_differences(df)
    lowered = proportion_lowered(by_speaker)

    print("Mean F0 by condition:")
    print(by_condition.to_string(index=False))
    print("\nMean F0 by language and condition:")
    print(by_language.to_string(index=False))
    print("\nSpeakers lowering F0 in the polite condition:")
    print(lowered.to_string(index=False))

    by_condition.to_csv(outdir / "condition_means.csv", index=False)
    by_language.to_csv(outdir / "language_condition_means.csv", index=False)
    write_proportion_lowered(lowered, outdir / "proportion_lowered.csv")

    return {
        "condition_means": by_condition,
        "language_condition_means": by_language,
        "speaker_differences": by_speaker,
        "proportion_lowered": lowered,
    }
