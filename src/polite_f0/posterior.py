"""
Posterior quantities derived draw by draw from the fitted model.

Sign convention: the reported "probability the politeness effect is >= 0"
is

    P(b >= 0) = 1 - (number of draws below zero) / (number of draws)

and P(b < 0) is its complement. Effects are always combined per draw
before summarizing; never by adding two posterior means.
"""

from pathlib import Path

import numpy as np
import pandas as pd
import arviz as az

from polite_f0 import config

SLOPE = "polite"


def get_samples(idata: az.InferenceData, var_name: str, **sel) -> np.ndarray:
    """Posterior draws of one (sub-)parameter, flattened over chains."""
    post = idata.posterior[var_name]
    if sel:
        post = post.sel(**sel)
    return post.values.reshape(-1)


def prob_negative(samples) -> float:
    samples = np.asarray(samples, dtype=float)
    return float(np.mean(samples < 0))


def prob_nonnegative(samples) -> float:
    """Probability the effect is >= 0: 1 - share of draws below zero."""
    return 1.0 - prob_negative(samples)


def prob_greater(a, b) -> float:
    """Share of draws in which a exceeds b (paired by draw)."""
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    if a.shape != b.shape:
        raise ValueError(f"Sample arrays differ in shape: {a.shape} vs {b.shape}")
    return float(np.mean(a > b))


def combine_effect(fixed, deviation) -> np.ndarray:
    """Draw-wise sum of a population effect and one group's deviation."""
    fixed = np.asarray(fixed, dtype=float)
    deviation = np.asarray(deviation, dtype=float)
    if fixed.shape != deviation.shape:
        raise ValueError(
            f"Fixed-effect and deviation draws differ in shape: "
            f"{fixed.shape} vs {deviation.shape}"
        )
    return fixed + deviation


def summarize_samples(samples, interval=config.CREDIBLE_INTERVAL) -> dict:
    """Mean, SD, central credible interval and P(>= 0) for 1D draws."""
    samples = np.asarray(samples, dtype=float)
    lower, upper = np.percentile(samples, interval)
    return {
        "mean": float(np.mean(samples)),
        "sd": float(np.std(samples, ddof=1)) if samples.size > 1 else 0.0,
        "lower": float(lower),
        "upper": float(upper),
        "prob>=0": prob_nonnegative(samples),
    }


def language_effects(idata: az.InferenceData, interval=config.CREDIBLE_INTERVAL) -> pd.DataFrame:
    """
    Politeness effect per language: b_polite + that language's slope
    deviation, summarized per language and sorted by posterior mean.
    """
    fixed = get_samples(idata, "b_polite")
    rows = []
    for lang in idata.posterior["lang"].values.tolist():
        deviation = get_samples(idata, "lang_effects", lang=lang, effect=SLOPE)
        rows.append({"lang": lang, **summarize_samples(combine_effect(fixed, deviation), interval)})
    return (
        pd.DataFrame(rows)
        .sort_values("mean", kind="mergesort")
        .reset_index(drop=True)
    )


def posterior_report(idata: az.InferenceData) -> dict:
    """Headline posterior numbers for the politeness effect."""
    b_polite = get_samples(idata, "b_polite")
    sd_speaker_slope = get_samples(idata, "sd_speaker", effect=SLOPE)
    sd_lang_slope = get_samples(idata, "sd_lang", effect=SLOPE)

    report = {
        "n_draws": int(b_polite.size),
        "b_polite_mean": float(np.mean(b_polite)),
        "prob_b_polite_nonnegative": prob_nonnegative(b_polite),
        "prob_b_polite_negative": prob_negative(b_polite),
        "prob_sd_speaker_slope_gt_sd_lang_slope": prob_greater(sd_speaker_slope, sd_lang_slope),
    }

    print(f"[INFO] Posterior mean of politeness effect: {report['b_polite_mean']:.2f} Hz")
    print(f"[INFO] P(politeness effect >= 0) = {report['prob_b_polite_nonnegative']:.3f} "
          f"(P(< 0) = {report['prob_b_polite_negative']:.3f})")
    print(f"[INFO] P(speaker slope SD > language slope SD) = "
          f"{report['prob_sd_speaker_slope_gt_sd_lang_slope']:.3f}")
    return report


def write_posterior_tables(idata: az.InferenceData, outdir) -> dict:
    """Write the headline report and per-language effects as CSV."""
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    report = posterior_report(idata)
    effects = language_effects(idata)

    outpath = outdir / "posterior_summary.csv"
    print(f"Saving posterior summary to: {outpath}")
    pd.DataFrame([report]).to_csv(outpath, index=False)

    outpath2 = outdir / "language_effects.csv"
    print(f"Saving per-language politeness effects to: {outpath2}")
    effects.to_csv(outpath2, index=False)

    return {"report": report, "language_effects": effects}
