"""
Item-label normalization.

Each source dataset names its elicitation items differently. For the
polite and informal versions of the same item to line up, every language
gets one rule from config.LANGUAGE_CONFIG:

    strip_suffix        "12a", "12b"          -> "12"
    extract_segment(i)  "s03_dct_7_pol" (i=2) -> "7"
    identity            "7"                   -> "7"

The normalized label is stored as `item_fixed`, and the global key
`unique_item = lang + "_" + item_fixed` keeps items from different
languages apart.
"""

import re
from dataclasses import dataclass
from typing import Optional

import pandas as pd

from polite_f0 import config
from polite_f0.data import check_missing_labels

STRIP_SUFFIX = "strip_suffix"
EXTRACT_SEGMENT = "extract_segment"
IDENTITY = "identity"

_VARIANT_SUFFIX = re.compile(r"(?<=\d)[ab]$", re.IGNORECASE)


@dataclass(frozen=True)
class ItemRule:
    kind: str
    index: Optional[int] = None

    @classmethod
    def strip_suffix(cls) -> "ItemRule":
        return cls(STRIP_SUFFIX)

    @classmethod
    def extract_segment(cls, index: int) -> "ItemRule":
        return cls(EXTRACT_SEGMENT, int(index))

    @classmethod
    def identity(cls) -> "ItemRule":
        return cls(IDENTITY)

    @classmethod
    def from_config(cls, entry) -> "ItemRule":
        """Build a rule from a LANGUAGE_CONFIG `item_rule` entry."""
        if isinstance(entry, (tuple, list)):
            kind, index = entry
            if kind != EXTRACT_SEGMENT:
                raise ValueError(f"Only '{EXTRACT_SEGMENT}' takes an index, got {entry!r}")
            return cls.extract_segment(index)
        if entry == STRIP_SUFFIX:
            return cls.strip_suffix()
        if entry == IDENTITY:
            return cls.identity()
        raise ValueError(f"Unknown item rule: {entry!r}")

    def apply(self, item: str) -> str:
        if self.kind == STRIP_SUFFIX:
            return _VARIANT_SUFFIX.sub("", item)
        if self.kind == EXTRACT_SEGMENT:
            segments = item.split("_")
            if self.index >= len(segments) or self.index < -len(segments):
                raise ValueError(
                    f"Item '{item}' has {len(segments)} '_' segments; "
                    f"cannot take segment {self.index}"
                )
            return segments[self.index]
        if self.kind == IDENTITY:
            return item
        raise ValueError(f"Unknown item rule kind: {self.kind!r}")


def build_rule_table(language_config=None) -> dict:
    """Map each configured language label to its ItemRule."""
    language_config = config.LANGUAGE_CONFIG if language_config is None else language_config
    return {
        lang: ItemRule.from_config(cfg["item_rule"])
        for lang, cfg in language_config.items()
    }


def check_rule_coverage(df: pd.DataFrame, rules: dict, strict: bool = False) -> list:
    """
    Return the languages in `df` that have no explicit rule.

    Such languages fall back to the identity rule, which silently breaks
    polite/informal pairing if their labels carry variant noise, so they are
    always reported. With strict=True they are an error instead.
    """
    present = sorted(df["lang"].dropna().unique())
    uncovered = [lang for lang in present if lang not in rules]
    if uncovered:
        msg = (
            f"No item rule configured for language(s) {uncovered}; "
            "their item labels pass through unchanged."
        )
        if strict:
            raise ValueError(msg)
        print(f"[WARN] {msg}")
    return uncovered


def normalize_items(df: pd.DataFrame, rules: dict) -> pd.DataFrame:
    """
    Return a copy of `df` with `item_fixed` and `unique_item` columns.

    Rows whose language has no rule keep their raw item label.
    """
    check_missing_labels(df, ["lang", "item"])
    out = df.copy()
    identity = ItemRule.identity()
    out["item_fixed"] = [
        rules.get(lang, identity).apply(item)
        for lang, item in zip(out["lang"], out["item"])
    ]
    out["unique_item"] = out["lang"] + "_" + out["item_fixed"]
    return out


def check_item_pairs(df: pd.DataFrame) -> pd.DataFrame:
    """
    Report normalized items observed in only one politeness condition.

    Each elicitation item is recorded in both conditions, so an unpaired
    `unique_item` usually means the language's rule is wrong.
    """
    n_cond = df.groupby("unique_item")["inform"].nunique()
    unpaired = n_cond[n_cond < len(config.CONDITIONS)]
    if len(unpaired):
        print(f"[WARN] {len(unpaired)} item(s) appear in only one condition, "
              f"e.g. {unpaired.index[:5].tolist()}")
    return unpaired.reset_index().rename(columns={"inform": "n_conditions"})
