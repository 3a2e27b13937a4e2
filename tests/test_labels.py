"""Tests for polite_f0.labels module."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from polite_f0.labels import (
    ItemRule,
    build_rule_table,
    check_item_pairs,
    check_rule_coverage,
    normalize_items,
)


class TestItemRule:
    def test_strip_suffix(self) -> None:
        rule = ItemRule.strip_suffix()
        assert rule.apply("12a") == "12"
        assert rule.apply("12b") == "12"
        assert rule.apply("12A") == "12"
        assert rule.apply("12") == "12"

    def test_strip_suffix_pairs_collide(self) -> None:
        rule = ItemRule.strip_suffix()
        assert rule.apply("7a") == rule.apply("7b")
        assert rule.apply("7a") != rule.apply("17a")

    def test_extract_segment(self) -> None:
        rule = ItemRule.extract_segment(2)
        assert rule.apply("s03_dct_7_pol") == "7"

    def test_extract_segment_ignores_other_segments(self) -> None:
        rule = ItemRule.extract_segment(1)
        assert rule.apply("s01_4_pol") == rule.apply("s99_4_inf") == "4"

    def test_extract_segment_too_few_segments(self) -> None:
        with pytest.raises(ValueError, match="segment"):
            ItemRule.extract_segment(3).apply("s01_4")

    def test_identity(self) -> None:
        assert ItemRule.identity().apply("12a_x") == "12a_x"

    def test_from_config(self) -> None:
        assert ItemRule.from_config("strip_suffix") == ItemRule.strip_suffix()
        assert ItemRule.from_config(("extract_segment", 2)) == ItemRule.extract_segment(2)
        assert ItemRule.from_config("identity") == ItemRule.identity()

    def test_from_config_unknown(self) -> None:
        with pytest.raises(ValueError):
            ItemRule.from_config("lowercase")


class TestRuleTable:
    def test_default_table_builds(self) -> None:
        rules = build_rule_table()
        assert rules["korean"] == ItemRule.strip_suffix()

    def test_custom_table(self) -> None:
        rules = build_rule_table({"x": {"item_rule": ("extract_segment", 0)}})
        assert rules == {"x": ItemRule.extract_segment(0)}


class TestCoverage:
    def test_uncovered_language_warns(self, capsys) -> None:
        df = pd.DataFrame({"lang": ["korean", "klingon"]})
        uncovered = check_rule_coverage(df, {"korean": ItemRule.strip_suffix()})
        assert uncovered == ["klingon"]
        assert "[WARN]" in capsys.readouterr().out

    def test_uncovered_language_strict(self) -> None:
        df = pd.DataFrame({"lang": ["klingon"]})
        with pytest.raises(ValueError, match="klingon"):
            check_rule_coverage(df, {}, strict=True)

    def test_full_coverage(self) -> None:
        df = pd.DataFrame({"lang": ["korean"]})
        assert check_rule_coverage(df, {"korean": ItemRule.identity()}, strict=True) == []


class TestNormalizeItems:
    @pytest.fixture
    def raw(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "lang": ["korean", "korean", "catalan", "catalan", "german", "german"],
                "item": ["3a", "3b", "s1_3_pol", "s2_3_inf", "3", "3"],
                "inform": ["pol", "inform", "pol", "inform", "pol", "inform"],
            }
        )

    @pytest.fixture
    def rules(self) -> dict:
        return {
            "korean": ItemRule.strip_suffix(),
            "catalan": ItemRule.extract_segment(1),
            "german": ItemRule.identity(),
        }

    def test_item_fixed(self, raw, rules) -> None:
        out = normalize_items(raw, rules)
        assert out["item_fixed"].tolist() == ["3", "3", "3", "3", "3", "3"]

    def test_unique_item_is_lang_plus_item_fixed(self, raw, rules) -> None:
        out = normalize_items(raw, rules)
        assert (out["unique_item"] == out["lang"] + "_" + out["item_fixed"]).all()

    def test_no_collision_across_languages(self, raw, rules) -> None:
        out = normalize_items(raw, rules)
        per_key = out.groupby("unique_item")["lang"].nunique()
        assert (per_key == 1).all()
        assert out["unique_item"].nunique() == 3

    def test_input_not_mutated(self, raw, rules) -> None:
        before = raw.copy()
        normalize_items(raw, rules)
        pd.testing.assert_frame_equal(raw, before)

    def test_uncovered_language_passes_through(self, raw) -> None:
        out = normalize_items(raw, {})
        assert out["item_fixed"].tolist() == raw["item"].tolist()

    def test_missing_item_rejected(self, raw, rules) -> None:
        raw.loc[0, "item"] = np.nan
        with pytest.raises(ValueError, match="Missing values"):
            normalize_items(raw, rules)


class TestItemPairs:
    def test_unpaired_items_reported(self, capsys) -> None:
        df = pd.DataFrame(
            {
                "unique_item": ["korean_1", "korean_1", "korean_2"],
                "inform": ["pol", "inform", "pol"],
            }
        )
        unpaired = check_item_pairs(df)
        assert unpaired["unique_item"].tolist() == ["korean_2"]
        assert "[WARN]" in capsys.readouterr().out
