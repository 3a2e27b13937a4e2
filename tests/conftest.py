"""
Test configuration and shared fixtures.
"""

from __future__ import annotations

from pathlib import Path

import arviz as az
import numpy as np
import pandas as pd
import pytest

SAMPLE_TSV = """speaker\tlang\tgend\titem\tinform\tf0md
K1\tkorean\tF\t1a\tpol\t200
K1\tkorean\tF\t2b\tpol\t210
K1\tkorean\tF\t1a\tinform\t220
K1\tkorean\tF\t2b\tinform\t230
K1\tkorean\tF\tfiller_3\tinform\t999
G1\tgerman\tM\t1\tpol\t120
G1\tgerman\tM\t2\tpol\t130
G1\tgerman\tM\t1\tinform\t110
G1\tgerman\tM\t2\tinform\t120
"""


@pytest.fixture
def sample_tsv(tmp_path: Path) -> Path:
    """Two languages, one speaker each, two items per condition, one filler row."""
    path = tmp_path / "f0_data.txt"
    path.write_text(SAMPLE_TSV)
    return path


@pytest.fixture
def normalized_df() -> pd.DataFrame:
    """A small cleaned table with item keys, as produced by the label step."""
    rows = []
    values = {
        ("korean", "K1", "F"): {"pol": [200.0, 210.0], "inform": [220.0, 230.0]},
        ("korean", "K2", "M"): {"pol": [110.0, np.nan], "inform": [118.0, 122.0]},
        ("german", "G1", "M"): {"pol": [120.0, 130.0], "inform": [110.0, 120.0]},
        ("german", "G2", "F"): {"pol": [190.0, 200.0], "inform": [195.0, 205.0]},
    }
    for (lang, speaker, gend), by_cond in values.items():
        for cond, f0s in by_cond.items():
            for item, f0 in zip(["1", "2"], f0s):
                rows.append(
                    {
                        "speaker": speaker,
                        "lang": lang,
                        "gend": gend,
                        "item": item,
                        "inform": cond,
                        "f0md": f0,
                        "item_fixed": item,
                        "unique_item": f"{lang}_{item}",
                    }
                )
    return pd.DataFrame(rows)


@pytest.fixture
def fake_idata() -> az.InferenceData:
    """
    Hand-made posterior with one chain of four draws.

    b_polite draws are [-1, -0.5, 0.2, 0.7]; language slope deviations are
    chosen so per-language sums are easy to check by hand.
    """
    b_polite = np.array([[-1.0, -0.5, 0.2, 0.7]])
    # (chain, draw, lang, effect)
    lang_effects = np.zeros((1, 4, 2, 2))
    lang_effects[0, :, 0, 1] = [1.0, 1.0, 1.0, 1.0]      # catalan slope
    lang_effects[0, :, 1, 1] = [-2.0, -2.0, -2.0, -2.0]  # korean slope
    sd_speaker = np.array([[[5.0, 3.0], [5.0, 1.0], [5.0, 3.0], [5.0, 0.5]]])
    sd_lang = np.array([[[2.0, 2.0], [2.0, 2.0], [2.0, 2.0], [2.0, 2.0]]])

    return az.from_dict(
        posterior={
            "b_polite": b_polite,
            "lang_effects": lang_effects,
            "sd_speaker": sd_speaker,
            "sd_lang": sd_lang,
        },
        coords={"lang": ["catalan", "korean"], "effect": ["intercept", "polite"]},
        dims={
            "lang_effects": ["lang", "effect"],
            "sd_speaker": ["effect"],
            "sd_lang": ["effect"],
        },
    )
