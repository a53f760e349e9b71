"""
Command-line interface for outlier validation jobs.

Usage:
    python -m outlier_validation.cli.batch_cli validate --config job.yaml --input <dir> --output <dir> [options]
    python -m outlier_validation.cli.batch_cli build-stats --config job.yaml --input <file> --output <file>
    python -m outlier_validation.cli.batch_cli histogram --config job.yaml --input <file> --ordinal 2
"""

import argparse
import json
import signal
import sys
from typing import Any

from outlier_validation.core.errors import ConfigurationError, EmptyHistogramError
from outlier_validation.core.rules import JobConfig, JobConfigLoader, parse_overrides
from outlier_validation.observability.logger import get_logger
from outlier_validation.observability.metrics import start_metrics_server
from outlier_validation.utils.validation import validate_file_path

logger = get_logger(__name__)

# Active Spark session, cancelled as a whole on SIGINT/SIGTERM
_active_spark = None


def signal_handler(signum, frame):  # type: ignore[no-untyped-def]
    """
    Abort the whole run on SIGINT/SIGTERM; partial output is discarded.

    Args:
        signum: Signal number
        frame: Current stack frame
    """
    signal_name = signal.Signals(signum).name
    logger.warning(f"Received {signal_name} signal, cancelling run")
    if _active_spark is not None:
        _active_spark.sparkContext.cancelAllJobs()
    sys.exit(130)


def create_spark_session(app_name: str, num_partitions: int):
    """
    Create Spark session for batch validation.

    Args:
        app_name: Application name
        num_partitions: Shuffle partitions

    Returns:
        SparkSession
    """
    # Lazy import: --local runs do not start a JVM
    from pyspark.sql import SparkSession

    spark = SparkSession.builder \
        .appName(app_name) \
        .master("local[*]") \
        .config("spark.sql.shuffle.partitions", str(num_partitions)) \
        .config("spark.ui.enabled", "false") \
        .getOrCreate()

    spark.sparkContext.setLogLevel("WARN")
    return spark


def load_config(args: argparse.Namespace) -> JobConfig:
    """
    Load the job configuration from --config and -D overrides.

    Raises:
        ConfigurationError: If the configuration is missing or malformed
    """
    overrides = parse_overrides(args.define)
    if args.config:
        return JobConfigLoader(args.config).load(overrides)
    return JobConfig.from_mapping(overrides)


def _print_summary(title: str, result: dict[str, Any]) -> None:
    logger.info("=" * 60)
    logger.info(title)
    logger.info("=" * 60)
    for name in ("output_records", "valid_records", "invalid_records", "record_errors", "duplicate_records"):
        logger.info(f"{name.replace('_', ' ').capitalize()}: {result.get(name, 0)}")
    logger.info("=" * 60)


def validate_command(args: argparse.Namespace, config: JobConfig) -> int:
    """
    Execute the outlier validation job.

    Args:
        args: Command-line arguments
        config: Job configuration

    Returns:
        Exit status
    """
    global _active_spark

    input_path = validate_file_path(args.input, "--input")
    output_path = validate_file_path(args.output, "--output")
    config.require_incremental_prefix()

    if args.local:
        from outlier_validation.batch.local_runner import LocalValidationRunner

        runner = LocalValidationRunner(config, job_name=args.job_name)
        result = runner.run(input_path, output_path)
    else:
        from outlier_validation.batch.pipeline import OutlierValidationPipeline

        logger.info("Creating Spark session...")
        spark = create_spark_session(f"OutlierValidation-{args.job_name}", config.num_partitions)
        _active_spark = spark
        try:
            pipeline = OutlierValidationPipeline(spark, config, job_name=args.job_name)
            result = pipeline.run(input_path, output_path)
        finally:
            _active_spark = None
            spark.stop()

    _print_summary("VALIDATION COMPLETE", result)
    return 0


def build_stats_command(args: argparse.Namespace, config: JobConfig) -> int:
    """Compute running statistics (aggregate lines) from incremental records."""
    from outlier_validation.batch.local_runner import build_running_stats
    from outlier_validation.batch.readers import iter_input_files, iter_lines
    from outlier_validation.batch.writers import TextOutputWriter

    records = [line for path in iter_input_files(validate_file_path(args.input, "--input")) for line in iter_lines(path)]
    previous: list[str] = []
    if args.previous:
        previous = [
            line for path in iter_input_files(validate_file_path(args.previous, "--previous"))
            for line in iter_lines(path)
        ]

    lines = build_running_stats(config, records, previous)
    count = TextOutputWriter().write_lines(lines, validate_file_path(args.output, "--output"))
    logger.info(f"Wrote {count} aggregate lines to {args.output}")
    return 0


def histogram_command(args: argparse.Namespace, config: JobConfig) -> int:
    """Print the mean and confidence bounds of one integer field."""
    from outlier_validation.batch.local_runner import field_histogram
    from outlier_validation.batch.readers import iter_input_files, iter_lines

    lines = [line for path in iter_input_files(validate_file_path(args.input, "--input")) for line in iter_lines(path)]
    histogram = field_histogram(config, lines, args.ordinal)

    confidence = args.confidence if args.confidence is not None else config.hist_confidence_percent
    try:
        mean = histogram.mean()
        lower, upper = histogram.confidence_bounds(confidence)
    except EmptyHistogramError as e:
        logger.error(f"No observations for field {args.ordinal}: {e}")
        return 1

    print(json.dumps({
        "ordinal": args.ordinal,
        "bin_width": histogram.bin_width,
        "count": histogram.total_count,
        "mean": mean,
        "confidence_percent": confidence,
        "lower": lower,
        "upper": upper,
        "bins": histogram.bins(),
    }))
    return 0


COMMANDS = {
    "validate": validate_command,
    "build-stats": build_stats_command,
    "histogram": histogram_command,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Outlier based data validation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Validate incremental records against running statistics with Spark
  python -m outlier_validation.cli.batch_cli validate --config config/job.yaml \\
      --input data/in --output data/out

  # Validate locally, emitting every record with its invalid ordinals
  python -m outlier_validation.cli.batch_cli validate --config config/job.yaml \\
      --input data/in --output out.txt --local -D output.type=all

  # Refresh running statistics
  python -m outlier_validation.cli.batch_cli build-stats --config config/job.yaml \\
      --input data/in/incr_0001.txt --previous data/in/aggr.txt --output data/stats/aggr.txt

  # Histogram of field 2
  python -m outlier_validation.cli.batch_cli histogram --config config/job.yaml \\
      --input data/in/incr_0001.txt --ordinal 2 --confidence 90
        """
    )
    parser.add_argument(
        "--config",
        help="Path to job configuration YAML file"
    )
    parser.add_argument(
        "-D", "--define",
        action="append",
        metavar="KEY=VALUE",
        help="Override a configuration option (repeatable), e.g. -D std.dev.mult=2.0"
    )
    parser.add_argument(
        "--metrics-port",
        type=int,
        help="Expose Prometheus metrics on this port"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    validate_parser = subparsers.add_parser("validate", help="Validate incremental records")
    validate_parser.add_argument("--input", required=True, help="Input directory with aggregate and incremental files")
    validate_parser.add_argument("--output", required=True, help="Output directory (Spark) or file (--local)")
    validate_parser.add_argument("--local", action="store_true", help="Run in-process without Spark")
    validate_parser.add_argument("--job-name", default="outlier-validation", help="Job name used in metrics")

    stats_parser = subparsers.add_parser("build-stats", help="Compute running statistics")
    stats_parser.add_argument("--input", required=True, help="Incremental record file or directory")
    stats_parser.add_argument("--previous", help="Previous aggregate file or directory to merge")
    stats_parser.add_argument("--output", required=True, help="Aggregate output file")

    hist_parser = subparsers.add_parser("histogram", help="Histogram mean and confidence bounds of a field")
    hist_parser.add_argument("--input", required=True, help="Record file or directory")
    hist_parser.add_argument("--ordinal", type=int, required=True, help="Ordinal of the integer field")
    hist_parser.add_argument("--confidence", type=int, help="Confidence percent (default: hist.confidence.percent)")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        config = load_config(args)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    if args.metrics_port:
        start_metrics_server(args.metrics_port)

    try:
        return COMMANDS[args.command](args, config)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except FileNotFoundError as e:
        logger.error(f"Input not found: {e}")
        return 1
    except Exception as e:
        logger.error(f"Error during {args.command}: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
