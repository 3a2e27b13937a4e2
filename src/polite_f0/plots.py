"""
Figures: per-language politeness effects and the posterior-predictive check.
"""

from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import arviz as az
import matplotlib.pyplot as plt
import pandas as pd

from polite_f0 import config


def save_fig(fig, path, dpi: int = 300) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=dpi, bbox_inches="tight", facecolor="white")
    print(f"Saving figure to: {path}")
    return path


def plot_language_effects(effects: pd.DataFrame, lang_means: pd.DataFrame, path) -> Path:
    """
    Model-estimated politeness effect per language (mean and 95% interval)
    with the raw polite - informal difference overlaid.

    Languages are ordered bottom to top by ascending posterior mean.
    """
    effects = effects.sort_values("mean", kind="mergesort").reset_index(drop=True)
    raw = lang_means.set_index("lang")["diff"].reindex(effects["lang"])
    labels = [
        config.LANGUAGE_CONFIG.get(lang, {}).get("pretty_name", lang)
        for lang in effects["lang"]
    ]
    y = list(range(len(effects)))

    fig, ax = plt.subplots(figsize=(7, 0.6 * len(effects) + 1.5))
    ax.axvline(0, color="#999999", linestyle="--", linewidth=1)
    ax.errorbar(
        effects["mean"],
        y,
        xerr=[effects["mean"] - effects["lower"], effects["upper"] - effects["mean"]],
        fmt="o",
        color="#4C72B0",
        ecolor="#4C72B0",
        capsize=4,
        linewidth=2,
        label="Model estimate (95% CrI)",
    )
    ax.scatter(
        raw.to_numpy(),
        y,
        marker="x",
        s=60,
        color="#C44E52",
        zorder=3,
        label="Raw difference",
    )

    ax.set_yticks(y)
    ax.set_yticklabels(labels)
    ax.set_xlabel("Polite - informal F0 (Hz)")
    ax.set_title("Effect of politeness on F0 by language")
    ax.legend(loc="best", frameon=False)
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)
    fig.tight_layout()

    path = save_fig(fig, path)
    plt.close(fig)
    return path


def plot_ppc(idata: az.InferenceData, stem, num_pp_samples: int = 100) -> list:
    """Posterior-predictive check of f0md, saved as <stem>.png and <stem>.pdf."""
    if "posterior_predictive" not in idata:
        raise ValueError("InferenceData has no posterior_predictive group; sample it first.")

    pp = idata.posterior_predictive
    num_pp_samples = min(num_pp_samples, pp.sizes["chain"] * pp.sizes["draw"])

    stem = Path(stem)
    ax = az.plot_ppc(idata, var_names=["f0md"], num_pp_samples=num_pp_samples, random_seed=config.RANDOM_SEED)
    fig = ax.figure if hasattr(ax, "figure") else ax.ravel()[0].figure
    fig.suptitle("Posterior predictive check: f0md")

    paths = [
        save_fig(fig, stem.with_suffix(".png")),
        save_fig(fig, stem.with_suffix(".pdf")),
    ]
    plt.close(fig)
    return paths
