"""
Spark outlier validation pipeline.

Coordinates the flow: read -> map to composite keys -> group -> validate -> write

Groups are partitioned by the grouping scheme's stable hash of the
identifying prefix and validated partition by partition. Counters are
collected with a Spark accumulator and published to Prometheus on the
driver once the output was written.
"""

from collections import Counter
from typing import Any, Iterable, Iterator

from pyspark import RDD
from pyspark.accumulators import AccumulatorParam
from pyspark.sql import DataFrame, SparkSession

from outlier_validation.batch.grouping import CompositeKeyGroupingScheme
from outlier_validation.batch.local_runner import summarize
from outlier_validation.batch.readers import TextLineReader
from outlier_validation.batch.writers import TextOutputWriter
from outlier_validation.core.aggregation import GroupValidationAggregator
from outlier_validation.core.aggregation.group_aggregator import ERROR_COUNTER_PREFIX
from outlier_validation.core.errors import RecordError
from outlier_validation.core.rules import JobConfig
from outlier_validation.observability import metrics
from outlier_validation.observability.logger import get_logger, log_operation, log_record_error

logger = get_logger(__name__)

OUTPUT_RECORDS_COUNTER = "output_records"


class CounterAccumulatorParam(AccumulatorParam):
    """Merges collections.Counter values from executors."""

    def zero(self, value: Counter) -> Counter:
        return Counter()

    def addInPlace(self, value1: Counter, value2: Counter) -> Counter:
        value1.update(value2)
        return value1


def _map_partition(config: JobConfig, counters):
    """Build the per-partition map function run on the executors."""
    scheme = CompositeKeyGroupingScheme(config)

    def map_rows(rows: Iterable[Any]) -> Iterator[tuple[tuple[str, ...], Any]]:
        local = Counter()
        for row in rows:
            is_aggregate = scheme.is_aggregate_file(row.source_file)
            try:
                key, payload = scheme.map_line(row.value, is_aggregate)
            except RecordError as e:
                local[ERROR_COUNTER_PREFIX + e.error_type] += 1
                log_record_error(logger, e, "Skipping unparseable line", source_file=row.source_file)
                continue
            yield key.group_key, payload
        counters.add(local)

    return map_rows


def _validate_partition(config: JobConfig, counters):
    """Build the per-partition validation function."""

    def validate_groups(groups: Iterable[tuple[tuple[str, ...], Iterable[Any]]]) -> Iterator[str]:
        aggregator = GroupValidationAggregator(config)
        output_records = 0
        for line in aggregator.run((key, list(payloads)) for key, payloads in groups):
            output_records += 1
            yield line
        aggregator.counters[OUTPUT_RECORDS_COUNTER] += output_records
        counters.add(aggregator.counters)

    return validate_groups


class OutlierValidationPipeline:
    """
    Orchestrates the outlier validation job on Spark.

    Flow:
    1. Read aggregate and incremental files, tagging lines with their file
    2. Map each line to (identifying prefix, payload)
    3. Group by prefix, partitioned by the grouping scheme
    4. Validate each group and apply the output policy
    5. Write output lines
    """

    def __init__(self, spark: SparkSession, config: JobConfig, job_name: str = "outlier-validation"):
        """
        Initialize the pipeline.

        Args:
            spark: Active Spark session
            config: Validated job configuration

        Raises:
            ConfigurationError: If incremental.file.prefix is missing
        """
        self.spark = spark
        self.config = config
        self.job_name = job_name
        self.config.require_incremental_prefix()

        self.scheme = CompositeKeyGroupingScheme(config)
        self.reader = TextLineReader(spark)
        self.writer = TextOutputWriter()

    def build(self, df: DataFrame) -> tuple[RDD, Any]:
        """
        Build the validation RDD for an input DataFrame (lazy).

        Args:
            df: DataFrame with `value` and `source_file` columns

        Returns:
            Tuple of (RDD of output lines, counter accumulator)
        """
        counters = self.spark.sparkContext.accumulator(Counter(), CounterAccumulatorParam())
        scheme = self.scheme

        mapped = df.rdd.mapPartitions(_map_partition(self.config, counters))
        grouped = mapped.groupByKey(
            numPartitions=self.config.num_partitions,
            partitionFunc=scheme.partition
        )
        output = grouped.mapPartitions(_validate_partition(self.config, counters))
        return output, counters

    def validate(self, input_path: str | list[str]) -> tuple[list[str], Counter]:
        """
        Validate input files and collect the output lines on the driver.

        Intended for small inputs and tests.

        Returns:
            Tuple of (output lines, counters)
        """
        output, counters = self.build(self.reader.read(input_path))
        lines = output.collect()
        totals = Counter(counters.value)
        totals.pop(OUTPUT_RECORDS_COUNTER, None)
        return lines, totals

    def run(self, input_path: str | list[str], output_path: str) -> dict[str, Any]:
        """
        Validate input files and write the output directory.

        Args:
            input_path: Directory, file or glob holding aggregate and incremental files
            output_path: Output directory (must not exist)

        Returns:
            Dictionary with processing results:
            - output_records: Lines written
            - valid_records / invalid_records: Classified groups
            - record_errors: Records skipped because of errors
            - duplicate_records: Groups with more than one raw record
            - counters: All counters
        """
        with log_operation("Spark outlier validation", logger=logger, input_path=str(input_path)) as op:
            output, counters = self.build(self.reader.read(input_path))
            self.writer.write_rdd(output, output_path)

        totals = Counter(counters.value)
        output_records = totals.pop(OUTPUT_RECORDS_COUNTER, 0)

        logger.info(
            f"Validation complete: {totals.get('valid', 0)} valid, {totals.get('invalid', 0)} invalid, "
            f"{output_records} written"
        )
        metrics.record_validation_run(
            job=self.job_name,
            mode="spark",
            output_type=self.config.output_type,
            counters=totals,
            output_records=output_records,
            duration_seconds=op.duration,
        )
        return summarize(totals, output_records)
