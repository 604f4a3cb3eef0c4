"""Tests for vaxnet.cli — argument handling, exports and exit codes."""

import logging
from pathlib import Path

import pytest

from vaxnet.cli import build_parser, configure_logging, main
from vaxnet.report import read_trial_rows

SMALL = ["--animals", "30", "--trials", "2", "--seed", "1"]


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    logging.getLogger("vaxnet").handlers.clear()


class TestParser:
    def test_defaults_leave_config_untouched(self):
        args = build_parser().parse_args([])
        assert args.trials is None
        assert args.graph is None
        assert args.verbose == 0

    def test_unknown_graph_model(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--graph", "lattice"])


class TestMain:
    def test_writes_csv(self, tmp_path, capsys):
        csv_path = tmp_path / "out.csv"
        assert main(SMALL + ["--csv", str(csv_path)]) == 0
        rows = read_trial_rows(csv_path)
        assert len(rows) == 6
        out = capsys.readouterr().out
        assert "RESULTS (averages over runs)" in out
        assert "=== HighRiskArea Strategy Runs ===" in out

    def test_config_file(self, tmp_path):
        cfg = tmp_path / "exp.yaml"
        cfg.write_text(
            "network:\n  model: random\n  n_animals: 25\n  edge_prob: 0.1\n"
            "vaccination:\n  policies: [HighDegree]\n"
            "experiment:\n  n_trials: 3\n  seed: 4\n"
        )
        csv_path = tmp_path / "out.csv"
        assert main(["--config", str(cfg), "--csv", str(csv_path)]) == 0
        rows = read_trial_rows(csv_path)
        assert {r.policy for r in rows} == {"HighDegree"}
        assert len(rows) == 3

    def test_flags_override_config(self, tmp_path):
        cfg = tmp_path / "exp.yaml"
        cfg.write_text("experiment:\n  n_trials: 9\n")
        csv_path = tmp_path / "out.csv"
        assert main(["--config", str(cfg), "--trials", "1", "--animals", "20",
                     "--csv", str(csv_path)]) == 0
        assert len(read_trial_rows(csv_path)) == 3

    def test_invalid_parameters_exit_2(self, tmp_path):
        assert main(["--trials", "0", "--csv", str(tmp_path / "x.csv")]) == 2
        assert not (tmp_path / "x.csv").exists()

    def test_missing_config_exit_2(self, tmp_path):
        assert main(["--config", str(tmp_path / "missing.yaml")]) == 2

    def test_export_failure_exit_1(self, tmp_path):
        # A directory can't be opened as the CSV file.
        assert main(SMALL + ["--csv", str(tmp_path)]) == 1

    def test_plots(self, tmp_path):
        plot_dir = tmp_path / "figs"
        assert main(SMALL + ["--csv", str(tmp_path / "out.csv"),
                             "--plots", str(plot_dir)]) == 0
        names = sorted(p.name for p in plot_dir.glob("*.png"))
        assert names == [
            "contact_network.png",
            "degree_distribution.png",
            "infection_waves.png",
            "policy_comparison.png",
            "trial_distribution.png",
        ]

    def test_same_seed_same_csv(self, tmp_path):
        a, b = tmp_path / "a.csv", tmp_path / "b.csv"
        main(SMALL + ["--csv", str(a)])
        main(SMALL + ["--workers", "2", "--csv", str(b)])
        assert Path(a).read_text() == Path(b).read_text()


class TestLogging:
    def test_verbosity_levels(self):
        configure_logging(0)
        assert logging.getLogger("vaxnet").level == logging.WARNING
        configure_logging(1)
        assert logging.getLogger("vaxnet").level == logging.INFO
        configure_logging(2)
        assert logging.getLogger("vaxnet").level == logging.DEBUG

    def test_single_handler(self):
        configure_logging(1)
        configure_logging(1)
        assert len(logging.getLogger("vaxnet").handlers) == 1
