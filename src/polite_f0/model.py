"""
Bayesian hierarchical regression of F0 on politeness.

Model (raw Hz scale)
--------------------
For utterance i by speaker s, language l, item j:

    f0md_i ~ Normal(mu_i, sigma)
    mu_i   = Intercept
             + b_polite * polite_i
             + b_gend . gend_i
             + u_speaker[s, 0] + u_speaker[s, 1] * polite_i
             + u_lang[l, 0]    + u_lang[l, 1]    * polite_i
             + u_item[j]

with

    b_polite, b_gend         ~ Normal(0, PRIOR_B_SD)
    Intercept                ~ Normal(mean(f0md), PRIOR_INTERCEPT_SD)
    u_speaker[s, :]          ~ MvNormal(0, Sigma_speaker)   (LKJ Cholesky)
    u_lang[l, :]             ~ MvNormal(0, Sigma_lang)      (LKJ Cholesky)
    u_item[j]                ~ Normal(0, sd_item)
    sigma                    ~ HalfNormal(PRIOR_SIGMA_SD)

polite_i is 1 for "pol" and 0 for "inform", so b_polite is the polite minus
informal shift in Hz. Gender is treatment coded against its first sorted
level. Intercept/slope pairs are non-centered and allowed to correlate.
"""

from pathlib import Path

import numpy as np
import pandas as pd
import arviz as az
import pymc as pm
import pytensor
import pytensor.tensor as pt

from polite_f0 import config
from polite_f0.data import check_missing_labels

EFFECTS = ["intercept", "polite"]

FIXED_EFFECTS = ["Intercept", "b_polite", "b_gend"]
GROUP_SDS = ["sd_speaker", "sd_lang", "sd_item", "corr_speaker", "corr_lang", "sigma"]


def configure_pytensor(pure_python: bool = False) -> None:
    """
    Optionally switch PyTensor to pure-Python mode (no C compilation).

    Slow, but avoids linker problems on machines without a working
    compiler toolchain.
    """
    if pure_python:
        pytensor.config.cxx = ""
        pytensor.config.mode = "FAST_COMPILE"
        pytensor.config.exception_verbosity = "high"
        print("[INFO] PyTensor C compilation disabled (pure-Python mode).")


# ---------- Data preparation ----------

def prepare_model_data(df: pd.DataFrame) -> dict:
    """
    Build arrays, integer indices and coords for the model.

    Rows with missing f0md are dropped here: the likelihood only sees
    observed values.
    """
    check_missing_labels(df, ["speaker", "lang", "gend", "inform", "unique_item"])
    n_missing = int(df["f0md"].isna().sum())
    if n_missing:
        print(f"[INFO] Excluding {n_missing} rows with missing f0md from the model.")
    df = df.dropna(subset=["f0md"]).reset_index(drop=True)
    if df.empty:
        raise ValueError("No rows with observed f0md left to model.")

    speaker_cat = pd.Categorical(df["speaker"])
    lang_cat = pd.Categorical(df["lang"])
    item_cat = pd.Categorical(df["unique_item"])
    gend_cat = pd.Categorical(df["gend"])

    gend_levels = gend_cat.categories.tolist()
    # Treatment coding: one indicator per non-reference gender level
    X_gend = np.column_stack(
        [(gend_cat == level).astype(float) for level in gend_levels[1:]]
    ) if len(gend_levels) > 1 else np.zeros((len(df), 0))

    y = df["f0md"].to_numpy(dtype=float)

    coords = {
        "obs_id": np.arange(len(df)),
        "speaker": speaker_cat.categories.tolist(),
        "lang": lang_cat.categories.tolist(),
        "item": item_cat.categories.tolist(),
        "effect": EFFECTS,
    }
    if len(gend_levels) > 1:
        coords["gend_effect"] = [f"gend[{level}]" for level in gend_levels[1:]]

    print(f"[INFO] Modeling {len(df)} observations: {len(coords['speaker'])} speakers, "
          f"{len(coords['lang'])} languages, {len(coords['item'])} items.")

    return {
        "y": y,
        "polite": (df["inform"] == config.POLITE).to_numpy(dtype=float),
        "X_gend": X_gend,
        "speaker_idx": speaker_cat.codes.astype("int64"),
        "lang_idx": lang_cat.codes.astype("int64"),
        "item_idx": item_cat.codes.astype("int64"),
        "gend_reference": gend_levels[0],
        "y_mean": float(np.mean(y)),
        "coords": coords,
    }


# ---------- Model ----------

def _correlated_effects(name: str, group: str, prior_group_sd: float, lkj_eta: float):
    """Non-centered correlated intercept/slope deviations for one grouping factor."""
    chol, corr, stds = pm.LKJCholeskyCov(
        f"chol_{name}",
        n=len(EFFECTS),
        eta=lkj_eta,
        sd_dist=pm.HalfNormal.dist(sigma=prior_group_sd, shape=len(EFFECTS)),
        compute_corr=True,
    )
    pm.Deterministic(f"sd_{name}", stds, dims="effect")
    pm.Deterministic(f"corr_{name}", corr[0, 1])
    z = pm.Normal(f"z_{name}", 0.0, 1.0, dims=("effect", group))
    return pm.Deterministic(f"{name}_effects", pt.dot(chol, z).T, dims=(group, "effect"))


def build_model(
    data: dict,
    prior_b_sd: float = config.PRIOR_B_SD,
    prior_intercept_sd: float = config.PRIOR_INTERCEPT_SD,
    prior_sigma_sd: float = config.PRIOR_SIGMA_SD,
    prior_group_sd: float = config.PRIOR_GROUP_SD,
    lkj_eta: float = config.LKJ_ETA,
) -> pm.Model:
    """Build (but do not sample) the hierarchical F0 model."""
    speaker_idx = data["speaker_idx"]
    lang_idx = data["lang_idx"]
    item_idx = data["item_idx"]
    X_gend = data["X_gend"]

    with pm.Model(coords=data["coords"]) as model:
        polite = pm.Data("polite", data["polite"], dims="obs_id")

        # Fixed effects
        intercept = pm.Normal("Intercept", mu=data["y_mean"], sigma=prior_intercept_sd)
        b_polite = pm.Normal("b_polite", mu=0.0, sigma=prior_b_sd)
        if X_gend.shape[1]:
            b_gend = pm.Normal("b_gend", mu=0.0, sigma=prior_b_sd, dims="gend_effect")
            gend_term = pt.dot(X_gend, b_gend)
        else:
            gend_term = 0.0

        # Group-level effects
        u_speaker = _correlated_effects("speaker", "speaker", prior_group_sd, lkj_eta)
        u_lang = _correlated_effects("lang", "lang", prior_group_sd, lkj_eta)

        sd_item = pm.HalfNormal("sd_item", sigma=prior_group_sd)
        z_item = pm.Normal("z_item", 0.0, 1.0, dims="item")
        u_item = pm.Deterministic("item_effects", z_item * sd_item, dims="item")

        # Linear predictor
        mu = (
            intercept
            + b_polite * polite
            + gend_term
            + u_speaker[speaker_idx, 0]
            + u_speaker[speaker_idx, 1] * polite
            + u_lang[lang_idx, 0]
            + u_lang[lang_idx, 1] * polite
            + u_item[item_idx]
        )

        sigma = pm.HalfNormal("sigma", sigma=prior_sigma_sd)
        pm.Normal("f0md", mu=mu, sigma=sigma, observed=data["y"], dims="obs_id")

    return model


# ---------- Sampling ----------

def fit_model(
    model: pm.Model,
    draws: int = config.DRAWS,
    tune: int = config.TUNE,
    chains: int = config.CHAINS,
    cores: int = config.CORES,
    target_accept: float = config.TARGET_ACCEPT,
    max_treedepth: int = config.MAX_TREEDEPTH,
    random_seed: int = config.RANDOM_SEED,
    nuts_sampler: str = config.NUTS_SAMPLER,
) -> az.InferenceData:
    """
    Sample the posterior with NUTS.

    Chains run in parallel on `cores` processes; with a fixed random_seed
    the draws are reproducible for identical data and settings.
    """
    print(f"[INFO] Sampling: {draws} draws, {tune} tune, {chains} chains on {cores} cores")
    print(f"[INFO] target_accept={target_accept}, max_treedepth={max_treedepth}, "
          f"seed={random_seed}, sampler={nuts_sampler}")

    with model:
        if nuts_sampler == "nutpie":
            idata = pm.sample(
                draws=draws,
                tune=tune,
                chains=chains,
                target_accept=target_accept,
                random_seed=random_seed,
                nuts_sampler="nutpie",
                nuts_sampler_kwargs={"maxdepth": max_treedepth, "cores": cores},
            )
        elif nuts_sampler == "pymc":
            idata = pm.sample(
                draws=draws,
                tune=tune,
                chains=chains,
                cores=cores,
                random_seed=random_seed,
                init="jitter+adapt_diag",
                nuts={"target_accept": target_accept, "max_treedepth": max_treedepth},
                return_inferencedata=True,
            )
        else:
            raise ValueError(f"Unknown NUTS sampler: {nuts_sampler!r} (use 'pymc' or 'nutpie')")

    return idata


def sample_posterior_predictive(
    model: pm.Model,
    idata: az.InferenceData,
    random_seed: int = config.RANDOM_SEED,
) -> az.InferenceData:
    """Add posterior-predictive draws of f0md to `idata` (in place) and return it."""
    print("[INFO] Sampling posterior predictive...")
    with model:
        pm.sample_posterior_predictive(idata, random_seed=random_seed, extend_inferencedata=True)
    return idata


# ---------- Diagnostics & summaries ----------

def check_convergence(
    idata: az.InferenceData,
    var_names=None,
    rhat_max: float = config.RHAT_MAX,
    ess_min: float = config.ESS_MIN,
    max_divergences: int = config.MAX_DIVERGENCES,
) -> dict:
    """
    Check R-hat, bulk ESS and divergences.

    Returns a dict with per-variable worst values and an overall
    `converged` flag. Failures are printed as [WARN]; deciding whether
    they are fatal is left to the caller.
    """
    if var_names is None:
        var_names = [v for v in FIXED_EFFECTS + GROUP_SDS if v in idata.posterior]

    diag = {"rhat": {}, "ess_bulk": {}}

    rhat = az.rhat(idata, var_names=var_names)
    ess = az.ess(idata, var_names=var_names, method="bulk")
    for var in var_names:
        diag["rhat"][var] = float(rhat[var].max())
        diag["ess_bulk"][var] = float(ess[var].min())
        rhat_ok = diag["rhat"][var] <= rhat_max
        ess_ok = diag["ess_bulk"][var] >= ess_min
        status = "OK" if rhat_ok and ess_ok else "WARNING"
        print(f"  {var}: R-hat max = {diag['rhat'][var]:.4f}, "
              f"ESS min = {diag['ess_bulk'][var]:.0f}  {status}")

    if "sample_stats" in idata and "diverging" in idata.sample_stats:
        diag["divergences"] = int(idata.sample_stats["diverging"].sum().values)
    else:
        diag["divergences"] = 0
    print(f"  Divergences: {diag['divergences']}")

    diag["converged"] = (
        all(v <= rhat_max for v in diag["rhat"].values())
        and all(v >= ess_min for v in diag["ess_bulk"].values())
        and diag["divergences"] <= max_divergences
    )
    if diag["converged"]:
        print("[INFO] Convergence: all checks passed.")
    else:
        print("[WARN] Convergence: some checks failed; do not trust these estimates "
              "without inspecting the trace.")
    return diag


def summarize_fit(idata: az.InferenceData) -> pd.DataFrame:
    """
    Point estimates, intervals and diagnostics for every fixed effect,
    group-level SD / correlation and group-level deviation.

    `hdi_2.5%`/`hdi_97.5%` are the 95% highest-density interval; `q2.5%`/
    `q97.5%` are the central percentile interval used in posterior.py.
    """
    var_names = [
        v for v in FIXED_EFFECTS + GROUP_SDS + ["speaker_effects", "lang_effects", "item_effects"]
        if v in idata.posterior
    ]
    lower, upper = config.CREDIBLE_INTERVAL
    stat_funcs = {
        f"q{lower}%": lambda x: np.percentile(x, lower),
        f"q{upper}%": lambda x: np.percentile(x, upper),
    }
    return az.summary(idata, var_names=var_names, hdi_prob=0.95, stat_funcs=stat_funcs, extend=True)


def save_trace(idata: az.InferenceData, path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    print(f"Saving posterior trace to: {path}")
    az.to_netcdf(idata, path)
    return path


def load_trace(path) -> az.InferenceData:
    path = Path(path)
    print(f"Loading existing posterior trace from: {path.resolve()}")
    return az.from_netcdf(path)


def trace_matches_data(idata: az.InferenceData, coords: dict, dims=("speaker", "lang", "item")) -> list:
    """Return the dims whose levels in a saved trace differ from `coords`."""
    mismatched = []
    for dim in dims:
        saved = idata.posterior[dim].values.tolist() if dim in idata.posterior.coords else None
        if saved != list(coords[dim]):
            mismatched.append(dim)
    return mismatched
