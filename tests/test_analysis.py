"""End-to-end tests for the analysis pipeline."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from polite_f0.analysis import main, parse_args, prepare_data


class TestPrepareData:
    def test_filters_and_normalizes(self, sample_tsv: Path) -> None:
        df = prepare_data(sample_tsv)
        assert len(df) == 8
        assert not df["item"].str.contains("filler").any()
        korean = df[df["lang"] == "korean"]
        assert sorted(korean["unique_item"].unique()) == ["korean_1", "korean_2"]
        german = df[df["lang"] == "german"]
        assert sorted(german["unique_item"].unique()) == ["german_1", "german_2"]


class TestDescriptiveRun:
    def test_skip_model_outputs(self, sample_tsv: Path, tmp_path: Path) -> None:
        outdir = tmp_path / "results"
        results = main(["--data", str(sample_tsv), "--outdir", str(outdir), "--skip-model"])

        means = results["condition_means"].set_index("inform")["f0_mean"]
        assert means["pol"] == pytest.approx(165.0)
        assert means["inform"] == pytest.approx(170.0)

        by_lang = results["language_condition_means"].set_index("lang")
        assert by_lang.loc["korean", "pol"] == pytest.approx(205.0)
        assert by_lang.loc["korean", "inform"] == pytest.approx(225.0)
        assert by_lang.loc["korean", "diff"] == pytest.approx(-20.0)
        assert by_lang.loc["german", "diff"] == pytest.approx(10.0)

        table = pd.read_csv(outdir / "proportion_lowered.csv").set_index("lang")
        assert table.loc["korean", "n_lowered"] == 1
        assert table.loc["korean", "proportion_lowered"] == 1.0
        assert table.loc["german", "n_lowered"] == 0
        assert table.loc["german", "n_speakers"] == 1

        assert (outdir / "condition_means.csv").exists()
        assert (outdir / "language_condition_means.csv").exists()
        assert "idata" not in results

    def test_deterministic(self, sample_tsv: Path, tmp_path: Path) -> None:
        first = main(["--data", str(sample_tsv), "--outdir", str(tmp_path / "a"), "--skip-model"])
        second = main(["--data", str(sample_tsv), "--outdir", str(tmp_path / "b"), "--skip-model"])
        pd.testing.assert_frame_equal(first["proportion_lowered"], second["proportion_lowered"])
        pd.testing.assert_frame_equal(
            first["language_condition_means"], second["language_condition_means"]
        )


class TestModelRun:
    """Short MCMC runs; the settings are far too small for inference."""

    SAMPLING = ["--draws", "60", "--tune", "30", "--chains", "2", "--cores", "1"]

    def _run(self, data: Path, outdir: Path, *extra: str) -> dict:
        return main(["--data", str(data), "--outdir", str(outdir), *self.SAMPLING, *extra])

    def test_same_seed_same_draws(self, sample_tsv: Path, tmp_path: Path) -> None:
        first = self._run(sample_tsv, tmp_path / "a")
        second = self._run(sample_tsv, tmp_path / "b")
        np.testing.assert_array_equal(
            first["idata"].posterior["b_polite"].values,
            second["idata"].posterior["b_polite"].values,
        )
        assert first["idata"].posterior.sizes["draw"] == 60

        for name in [
            "trace_hierarchical.nc",
            "model_summary.csv",
            "posterior_summary.csv",
            "language_effects.csv",
            "ppc.png",
            "ppc.pdf",
            "language_effects.pdf",
        ]:
            assert (tmp_path / "a" / name).exists(), name

        summary = pd.read_csv(tmp_path / "a" / "model_summary.csv", index_col=0)
        assert {"q2.5%", "q97.5%"} <= set(summary.columns)

    def test_reuse_trace_loads_saved_fit(self, sample_tsv: Path, tmp_path: Path, capsys) -> None:
        fitted = self._run(sample_tsv, tmp_path)
        capsys.readouterr()
        reused = self._run(sample_tsv, tmp_path, "--reuse-trace")
        assert "Loading existing posterior trace" in capsys.readouterr().out
        np.testing.assert_array_equal(
            fitted["idata"].posterior["b_polite"].values,
            reused["idata"].posterior["b_polite"].values,
        )


class TestParseArgs:
    def test_defaults(self) -> None:
        args = parse_args([])
        assert args.chains == 4
        assert args.target_accept == 0.99
        assert args.max_treedepth == 13
        assert args.seed == 123
        assert args.sampler == "pymc"
        assert not args.skip_model
