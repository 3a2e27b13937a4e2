#!/usr/bin/env python
"""
Cross-linguistic analysis of F0 under polite vs. informal speech.

Run with something like:
    python code/run_analysis.py --data data/f0_data.txt --outdir results

Steps
-----
1. Load the tab-delimited F0 table and check its columns.
2. Drop the filler task, normalize item labels per language and build
   `unique_item` (lang + "_" + item_fixed).
3. Descriptive summaries -> condition_means.csv,
   language_condition_means.csv, proportion_lowered.csv
4. Fit the hierarchical model (or reload trace_hierarchical.nc)
   -> model_summary.csv
5. Posterior analysis -> posterior_summary.csv, language_effects.csv
6. Figures -> ppc.png, ppc.pdf, language_effects.pdf
"""

import argparse
from pathlib import Path

from polite_f0 import config
from polite_f0.data import load_data, drop_excluded_items
from polite_f0.labels import (
    build_rule_table,
    check_item_pairs,
    check_rule_coverage,
    normalize_items,
)
from polite_f0.descriptives import summarize_descriptives
from polite_f0.model import (
    build_model,
    check_convergence,
    configure_pytensor,
    fit_model,
    load_trace,
    prepare_model_data,
    sample_posterior_predictive,
    save_trace,
    summarize_fit,
    trace_matches_data,
)
from polite_f0.posterior import write_posterior_tables
from polite_f0.plots import plot_language_effects, plot_ppc


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Bayesian hierarchical analysis of politeness effects on F0 across languages."
    )
    parser.add_argument(
        "--data", type=str, default=str(config.DATA_PATH),
        help="Tab-delimited input file (speaker, lang, gend, item, inform, f0md).",
    )
    parser.add_argument(
        "--outdir", type=str, default=str(config.RESULTS_DIR),
        help="Directory for tables, trace and figures.",
    )
    parser.add_argument("--draws", type=int, default=config.DRAWS,
                        help="Number of posterior draws per chain.")
    parser.add_argument("--tune", type=int, default=config.TUNE,
                        help="Number of warmup iterations per chain (discarded).")
    parser.add_argument("--chains", type=int, default=config.CHAINS,
                        help="Number of independent chains.")
    parser.add_argument("--cores", type=int, default=config.CORES,
                        help="Number of processes for parallel chains.")
    parser.add_argument("--target_accept", type=float, default=config.TARGET_ACCEPT,
                        help="Target accept rate for NUTS.")
    parser.add_argument("--max_treedepth", type=int, default=config.MAX_TREEDEPTH,
                        help="Maximum NUTS tree depth.")
    parser.add_argument("--seed", type=int, default=config.RANDOM_SEED,
                        help="Random seed for reproducibility.")
    parser.add_argument("--sampler", choices=["pymc", "nutpie"], default=config.NUTS_SAMPLER,
                        help="NUTS implementation.")
    parser.add_argument("--reuse-trace", action="store_true",
                        help="Load trace_hierarchical.nc from --outdir instead of re-fitting.")
    parser.add_argument("--skip-model", action="store_true",
                        help="Only run the descriptive summaries.")
    parser.add_argument("--strict", action="store_true",
                        help="Treat uncovered languages and failed convergence as errors.")
    parser.add_argument("--pure-python", action="store_true",
                        help="Disable PyTensor C compilation.")
    return parser.parse_args(argv)


def prepare_data(data_path, strict: bool = False):
    """Load, filter and normalize the raw table."""
    df = load_data(data_path)
    df = drop_excluded_items(df)

    rules = build_rule_table()
    check_rule_coverage(df, rules, strict=strict)
    df = normalize_items(df, rules)
    check_item_pairs(df)
    return df


def run_model(df, args, outdir: Path, lang_means):
    configure_pytensor(args.pure_python)

    model_data = prepare_model_data(df)
    model = build_model(model_data)

    trace_path = outdir / "trace_hierarchical.nc"
    idata = None
    if args.reuse_trace and trace_path.exists():
        idata = load_trace(trace_path)
        mismatched = trace_matches_data(idata, model_data["coords"])
        if mismatched:
            print(f"[WARN] Saved trace does not match the data ({mismatched} differ); "
                  "fitting from scratch.")
            idata = None
    elif args.reuse_trace:
        print(f"[WARN] No trace at {trace_path}; fitting from scratch.")

    if idata is None:
        idata = fit_model(
            model,
            draws=args.draws,
            tune=args.tune,
            chains=args.chains,
            cores=args.cores,
            target_accept=args.target_accept,
            max_treedepth=args.max_treedepth,
            random_seed=args.seed,
            nuts_sampler=args.sampler,
        )
        idata = sample_posterior_predictive(model, idata, random_seed=args.seed)
        save_trace(idata, trace_path)

    print("\nChecking convergence...")
    diag = check_convergence(idata)
    if not diag["converged"] and args.strict:
        raise ValueError("Sampler did not converge; see diagnostics above.")

    summary = summarize_fit(idata)
    outpath = outdir / "model_summary.csv"
    print(f"Saving model summary to: {outpath}")
    summary.to_csv(outpath)

    print("\nRunning posterior analysis...")
    posterior = write_posterior_tables(idata, outdir)

    print("\nRendering figures...")
    plot_ppc(idata, outdir / "ppc")
    plot_language_effects(posterior["language_effects"], lang_means, outdir / "language_effects.pdf")

    return {"idata": idata, "diagnostics": diag, "summary": summary, **posterior}


def main(argv=None):
    args = parse_args(argv)
    outdir = Path(args.outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    print("==============================================")
    print("        Politeness and F0: analysis")
    print("==============================================")
    print(f"Input file: {Path(args.data).resolve()}")
    print(f"Output directory: {outdir.resolve()}")
    print("")

    df = prepare_data(args.data, strict=args.strict)

    print("\nRunning descriptive summaries...")
    descriptives = summarize_descriptives(df, outdir)

    results = {"data": df, **descriptives}
    if args.skip_model:
        print("[INFO] --skip-model given; stopping after descriptives.")
    else:
        print("\nFitting hierarchical model...")
        results.update(run_model(df, args, outdir, descriptives["language_condition_means"]))

    print("\n==============================================")
    print("        analysis COMPLETED")
    print("==============================================")
    return results


if __name__ == "__main__":
    main()
