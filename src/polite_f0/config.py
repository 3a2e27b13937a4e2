"""
Run-wide constants for the politeness / F0 analysis.

Everything here can be overridden from the command line (see
polite_f0.analysis); functions take these values as keyword defaults.
"""

import os
from pathlib import Path

# ---------- Paths ----------

DATA_PATH = Path("data") / "f0_data.txt"
RESULTS_DIR = Path("results")

# ---------- Input schema ----------

REQUIRED_COLUMNS = ["speaker", "lang", "gend", "item", "inform", "f0md"]

POLITE = "pol"
INFORMAL = "inform"
CONDITIONS = [POLITE, INFORMAL]

# Filler task unrelated to the politeness contrast; matched against `item`.
EXCLUDED_ITEM_PATTERN = "filler"

# ---------- CONFIG: language → item-label rule ----------
#
# item_rule is one of:
#   "strip_suffix"            12a / 12b  -> 12
#   ("extract_segment", i)    s03_dct_7_pol -> segment i of the "_" split
#   "identity"                label already identifies the item

LANGUAGE_CONFIG = {
    "korean": {
        "item_rule": "strip_suffix",
        "pretty_name": "Korean",
    },
    "catalan": {
        "item_rule": ("extract_segment", 1),
        "pretty_name": "Catalan",
    },
    "japanese": {
        "item_rule": ("extract_segment", 2),
        "pretty_name": "Japanese",
    },
    "german": {
        "item_rule": "identity",
        "pretty_name": "German",
    },
    "spanish": {
        "item_rule": "identity",
        "pretty_name": "Spanish",
    },
}

# ---------- Model ----------

# SDs in Hz. Fixed-effect coefficients get Normal(0, PRIOR_B_SD).
PRIOR_B_SD = 50.0
PRIOR_INTERCEPT_SD = 100.0
PRIOR_SIGMA_SD = 50.0
PRIOR_GROUP_SD = 30.0
LKJ_ETA = 2.0

# ---------- Sampler ----------

DRAWS = 2000
TUNE = 2000
CHAINS = 4
CORES = os.cpu_count() or 1
TARGET_ACCEPT = 0.99
MAX_TREEDEPTH = 13
RANDOM_SEED = 123
NUTS_SAMPLER = "pymc"  # or "nutpie"

# ---------- Convergence thresholds ----------

RHAT_MAX = 1.01
ESS_MIN = 400
MAX_DIVERGENCES = 0

# ---------- Reporting ----------

CREDIBLE_INTERVAL = (2.5, 97.5)
PROPORTION_DECIMALS = 2
