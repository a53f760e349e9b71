"""
End-to-end tests for the command-line interface.

Runs the CLI entry point in-process on local files (--local mode, no Spark).
"""

import json

import pytest

from outlier_validation.cli.batch_cli import main


@pytest.mark.e2e
class TestValidateCommand:
    """validate subcommand"""

    def test_validate_local(self, job_yaml, input_dir, tmp_path):
        output = tmp_path / "out.txt"
        code = main([
            "--config", str(job_yaml),
            "validate", "--input", str(input_dir), "--output", str(output), "--local",
        ])

        assert code == 0
        assert output.read_text() == "A,C,55\n"

    def test_validate_with_overrides(self, job_yaml, input_dir, tmp_path):
        """Test that -D options override the configuration file"""
        output = tmp_path / "out.txt"
        code = main([
            "--config", str(job_yaml),
            "-D", "output.type=valid",
            "-D", "std.dev.mult=1.0",
            "validate", "--input", str(input_dir), "--output", str(output), "--local",
        ])

        # multiplier 1.0: A,B bounds [95, 105], A,C bounds [48, 52]
        assert code == 0
        assert output.read_text() == ""

    def test_validate_without_config_file(self, input_dir, tmp_path):
        output = tmp_path / "out.txt"
        code = main([
            "-D", "quantity.attr.ordinals=2",
            "-D", "std.dev.mult=2.0",
            "-D", "incremental.file.prefix=incr",
            "-D", "output.type=all",
            "validate", "--input", str(input_dir), "--output", str(output), "--local",
        ])

        assert code == 0
        assert sorted(output.read_text().splitlines()) == ["A,B,109,", "A,C,55,2"]

    def test_missing_incremental_prefix(self, input_dir, tmp_path):
        """Test that file ingestion without the prefix fails before processing"""
        output = tmp_path / "out.txt"
        code = main([
            "-D", "quantity.attr.ordinals=2",
            "validate", "--input", str(input_dir), "--output", str(output), "--local",
        ])

        assert code == 1
        assert not output.exists()

    def test_malformed_configuration(self, input_dir, tmp_path):
        code = main([
            "-D", "quantity.attr.ordinals=3,2",
            "validate", "--input", str(input_dir), "--output", str(tmp_path / "out.txt"), "--local",
        ])
        assert code == 1

    def test_missing_input(self, job_yaml, tmp_path):
        code = main([
            "--config", str(job_yaml),
            "validate", "--input", str(tmp_path / "missing"), "--output", str(tmp_path / "out.txt"), "--local",
        ])
        assert code == 1

    def test_no_command(self):
        assert main([]) == 1


@pytest.mark.e2e
class TestBuildStatsCommand:
    """build-stats subcommand"""

    def test_build_stats(self, job_yaml, tmp_path):
        records = tmp_path / "incr_0002.txt"
        records.write_text("A,B,10\nA,B,20\n")
        output = tmp_path / "stats" / "aggr_0002.txt"

        code = main([
            "--config", str(job_yaml),
            "build-stats", "--input", str(records), "--output", str(output),
        ])

        assert code == 0
        assert output.read_text() == "A,B,20,2,2,30,500,15,5.0\n"

    def test_build_stats_then_validate(self, job_yaml, tmp_path):
        """Test that built statistics drive the next validation run"""
        history = tmp_path / "history.txt"
        history.write_text("\n".join(f"A,B,{value}" for value in (90, 95, 100, 105, 110)) + "\n")
        input_dir = tmp_path / "input"

        assert main([
            "--config", str(job_yaml),
            "build-stats", "--input", str(history), "--output", str(input_dir / "aggr_0001.txt"),
        ]) == 0

        # avg 100, std dev sqrt(50) ~ 7.07, mult 2.0: bounds [86, 114]
        (input_dir / "incr_0001.txt").write_text("A,B,120\n")
        output = tmp_path / "out.txt"
        assert main([
            "--config", str(job_yaml),
            "validate", "--input", str(input_dir), "--output", str(output), "--local",
        ]) == 0
        assert output.read_text() == "A,B,120\n"


@pytest.mark.e2e
class TestHistogramCommand:
    """histogram subcommand"""

    def test_histogram(self, job_yaml, tmp_path, capsys):
        data = tmp_path / "values.txt"
        data.write_text("A,B,5\nA,C,5\nA,D,15\nA,E,25\n")

        code = main([
            "--config", str(job_yaml),
            "histogram", "--input", str(data), "--ordinal", "2", "--confidence", "100",
        ])

        assert code == 0
        result = json.loads(capsys.readouterr().out)
        assert result["mean"] == 12
        assert result["count"] == 4
        assert (result["lower"], result["upper"]) == (5, 25)
        assert result["bins"] == [[0, 2], [1, 1], [2, 1]]

    def test_histogram_without_values(self, job_yaml, tmp_path):
        data = tmp_path / "values.txt"
        data.write_text("A,B\n")

        code = main([
            "--config", str(job_yaml),
            "histogram", "--input", str(data), "--ordinal", "2",
        ])
        assert code == 1
