"""Tests for the end-to-end pipeline, its configuration and the CLI."""

import numpy as np
import pytest

from proteomiss.cli import main, parse_args
from proteomiss.config import PipelineConfig, load_config, save_config
from proteomiss.core import InsufficientDataError, InvalidConfigError
from proteomiss.io import load_completed, load_ensemble, write_matrix
from proteomiss.pipeline import PipelineResult, run_pipeline

# =============================================================================
# Configuration
# =============================================================================


class TestPipelineConfig:
    """YAML configuration loading."""

    def test_defaults(self):
        config = PipelineConfig()
        assert config.threshold == 0.20
        assert config.method == "rf"
        assert config.m == 3
        assert config.max_iterations == 5
        assert config.select == 0
        assert config.normalization == "scale"

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_config(tmp_path / "absent.yaml") == PipelineConfig()

    def test_load_partial_file(self, tmp_path):
        path = tmp_path / "pipeline.yaml"
        path.write_text("m: 5\nmethod: pmm\nmethod_params:\n  donors: 3\n")
        config = load_config(path)
        assert config.m == 5
        assert config.method == "pmm"
        assert config.method_params == {"donors": 3}
        assert config.threshold == 0.20

    def test_empty_file(self, tmp_path):
        path = tmp_path / "pipeline.yaml"
        path.write_text("")
        assert load_config(path) == PipelineConfig()

    def test_save_then_load(self, tmp_path):
        config = PipelineConfig(threshold=0.3, seed=None, select="median", log_base=2.0)
        path = tmp_path / "nested" / "pipeline.yaml"
        save_config(config, path)
        assert load_config(path) == config

    @pytest.mark.parametrize(
        "content",
        [
            "imputer: rf\n",
            "- 1\n- 2\n",
            "m: [1, 2\n",
            "method_params: 3\n",
            "method_params: []\n",
            "method_params: ''\n",
        ],
    )
    def test_invalid_files(self, tmp_path, content):
        path = tmp_path / "pipeline.yaml"
        path.write_text(content)
        with pytest.raises(InvalidConfigError):
            load_config(path)


# =============================================================================
# Pipeline
# =============================================================================


class TestRunPipeline:
    """Chaining of filtering, MCAR test, imputation and combination."""

    def test_full_run(self, make_matrix):
        matrix = make_matrix(n_proteins=60, n_samples=5, missing_rate=0.1)
        config = PipelineConfig(method="cart", m=2, max_iterations=2, seed=1)

        result = run_pipeline(matrix, config)

        assert isinstance(result, PipelineResult)
        kept = [matrix.protein_ids.index(p) for p in result.filtered.protein_ids]
        assert np.all(result.missingness.values[kept] <= 0.20)
        assert result.mcar is not None
        assert result.mcar_error is None
        assert result.ensemble.m == 2
        assert result.completed.shape == result.filtered.shape
        assert not np.isnan(result.completed.X).any()
        assert matrix.history == []

    def test_log_transform_first(self, make_matrix):
        matrix = make_matrix(n_proteins=40, n_samples=4, missing_rate=0.1)
        config = PipelineConfig(log_base=2.0, method="norm", m=1, max_iterations=1, normalization="none")

        result = run_pipeline(matrix, config)

        actions = [log.action for log in result.filtered.history]
        assert actions[:2] == ["log_transform", "filter_by_threshold"]
        assert np.nanmax(result.filtered.X) < np.log2(np.nanmax(matrix.X) + 1.0) + 1e-9

    def test_mcar_failure_does_not_stop_pipeline(self, sparse_rows_matrix):
        # With threshold 0 only complete rows remain: one pattern, no MCAR test
        config = PipelineConfig(threshold=0.0, method="cart", m=1, max_iterations=1)
        with pytest.warns(UserWarning, match="MCAR test skipped"):
            result = run_pipeline(sparse_rows_matrix, config)

        assert result.mcar is None
        assert "pattern" in result.mcar_error
        assert result.completed.shape == (9, 5)

    def test_unobserved_sample_stops_imputation(self, sparse_rows_matrix):
        X = np.array(sparse_rows_matrix.X)
        X[:, 0] = np.nan
        matrix = sparse_rows_matrix.with_values(X)
        with pytest.warns(UserWarning), pytest.raises(InsufficientDataError):
            run_pipeline(matrix, PipelineConfig())

    def test_select_out_of_range(self, make_matrix):
        matrix = make_matrix(n_proteins=30, n_samples=4, missing_rate=0.1)
        config = PipelineConfig(method="cart", m=2, max_iterations=1, select=2)
        with pytest.raises(IndexError):
            run_pipeline(matrix, config)


# =============================================================================
# Command line
# =============================================================================


@pytest.fixture
def table_path(tmp_path, make_matrix):
    path = tmp_path / "proteins.tsv"
    write_matrix(make_matrix(n_proteins=40, n_samples=4, missing_rate=0.1), path)
    return path


class TestCli:
    """proteomiss command line interface."""

    def test_parse_run_arguments(self):
        args = parse_args(["run", "data.tsv", "-o", "out.npz", "-c", "cfg.yaml"])
        assert args.command == "run"
        assert args.output == "out.npz"
        assert args.config == "cfg.yaml"
        assert args.completed is None

    def test_missingness(self, table_path, capsys):
        assert main(["missingness", str(table_path)]) == 0
        lines = capsys.readouterr().out.strip().splitlines()
        assert lines[0] == "protein_id\tmissing_rate"
        assert len(lines) == 41

    def test_mcar(self, table_path, capsys):
        assert main(["mcar", str(table_path), "--threshold", "0.5"]) == 0
        out = capsys.readouterr().out
        assert "p_value\t" in out
        assert "conclusion\t" in out

    def test_run(self, tmp_path, table_path, capsys):
        config_path = tmp_path / "pipeline.yaml"
        save_config(PipelineConfig(method="cart", m=2, max_iterations=2, seed=3), config_path)
        ensemble_path = tmp_path / "ensemble.npz"
        completed_path = tmp_path / "completed.npz"
        csv_path = tmp_path / "completed.tsv"

        code = main(
            [
                "run",
                str(table_path),
                "--config",
                str(config_path),
                "--output",
                str(ensemble_path),
                "--completed",
                str(completed_path),
                "--completed-csv",
                str(csv_path),
            ]
        )

        assert code == 0
        assert load_ensemble(ensemble_path).m == 2
        assert load_completed(completed_path).normalization == "scale"
        assert csv_path.read_text().startswith("protein_id\t")
        assert "Kept" in capsys.readouterr().out

    def test_missing_input(self, tmp_path, capsys):
        assert main(["missingness", str(tmp_path / "absent.tsv")]) == 1
        assert "error:" in capsys.readouterr().err

    def test_invalid_config(self, tmp_path, table_path, capsys):
        config_path = tmp_path / "pipeline.yaml"
        config_path.write_text("m: 0\n")
        code = main(["run", str(table_path), "-c", str(config_path), "-o", str(tmp_path / "e.npz")])
        assert code == 1
        assert "m must be" in capsys.readouterr().err
