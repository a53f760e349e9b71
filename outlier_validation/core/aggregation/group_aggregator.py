"""
Per-group outlier validation.

A group holds every payload sharing one identifying-field prefix: any number
of StatPayloads (pre-computed running statistics) and the RawRecord to
validate. The aggregator makes one full pass collecting statistics before it
evaluates the record, so the result does not depend on arrival order.
"""

from collections import Counter
from typing import Iterable, Iterator

from outlier_validation.core.errors import MissingStatisticsError, RecordError
from outlier_validation.core.models import RawRecord, RunningStats, StatPayload, ValidationResult
from outlier_validation.core.rules import JobConfig
from outlier_validation.core.validators import StdDevBoundValidator, parse_quantity
from outlier_validation.observability.logger import get_logger, log_record_error

logger = get_logger(__name__)

# Counter names exposed to the execution framework
INVALID_COUNTER = "invalid"
DUPLICATE_COUNTER = "duplicate_records"
NO_RECORD_COUNTER = "no_record"
VALID_COUNTER = "valid"
ERROR_COUNTER_PREFIX = "record_errors."

Payload = StatPayload | RawRecord


class GroupValidationAggregator:
    """
    Merges running statistics with the raw record of a group and applies the outlier rule.

    Output policy (config.output_type):
    - valid: emit records whose quantitative fields are all within bounds
    - invalid: emit records with at least one field out of bounds
    - all: emit every record, followed by the colon-joined invalid ordinals

    Counters are owned by the instance; one instance serves one partition or
    one local run.
    """

    def __init__(self, config: JobConfig):
        """
        Initialize the aggregator.

        Args:
            config: Validated job configuration
        """
        self.config = config
        self.quantity_ordinals = sorted(config.quantity_attr_ordinals)
        self.counters: Counter[str] = Counter()

    def merge(
        self,
        group_key: tuple[str, ...],
        payloads: Iterable[Payload]
    ) -> tuple[dict[int, RunningStats], RawRecord | None]:
        """
        Collect all statistics and the raw record of a group.

        Statistics for the same ordinal overwrite earlier ones. A second raw
        record is a misconfiguration: it is logged and counted, and the last
        one wins.

        Returns:
            Tuple of (ordinal -> RunningStats, raw record or None)
        """
        running_stats: dict[int, RunningStats] = {}
        record: RawRecord | None = None

        for payload in payloads:
            if isinstance(payload, StatPayload):
                for entry in payload.entries:
                    running_stats[entry.ordinal] = entry
            elif isinstance(payload, RawRecord):
                if record is not None:
                    self.counters[DUPLICATE_COUNTER] += 1
                    logger.warning(
                        "Duplicate raw record in group, keeping the last one",
                        extra={"group_key": ",".join(group_key)}
                    )
                record = payload
            else:
                raise TypeError(f"Unsupported payload type: {type(payload).__name__}")

        return running_stats, record

    def process_group(
        self,
        group_key: tuple[str, ...],
        payloads: Iterable[Payload]
    ) -> ValidationResult | None:
        """
        Classify the raw record of a group.

        Args:
            group_key: Identifying prefix of the group
            payloads: All payloads of the group, in any order

        Returns:
            ValidationResult, or None when the group holds no raw record

        Raises:
            MissingStatisticsError: If a quantitative ordinal has no statistics
            MalformedRecordError: If a quantitative field is not an integer or its bound is not finite
        """
        running_stats, record = self.merge(group_key, payloads)
        if record is None:
            return None

        invalid_fields = []
        for ordinal in self.quantity_ordinals:
            stats = running_stats.get(ordinal)
            if stats is None:
                raise MissingStatisticsError(
                    "no running statistics for quantitative field",
                    group_key=group_key,
                    ordinal=ordinal,
                )
            validator = StdDevBoundValidator(stats, self.config.std_dev_mult, group_key)
            value = parse_quantity(record, ordinal, group_key)
            if not validator.is_valid(value):
                invalid_fields.append(ordinal)

        return ValidationResult(
            group_key=group_key,
            record=record,
            invalid_field_ordinals=invalid_fields,
        )

    def should_output(self, result: ValidationResult) -> bool:
        output_type = self.config.output_type
        return (
            (output_type == "valid" and result.valid)
            or (output_type == "invalid" and not result.valid)
            or output_type == "all"
        )

    def format_output(self, result: ValidationResult) -> str:
        """Join the record with the output delimiter, plus invalid ordinals for output type 'all'."""
        delim = self.config.field_delim_out
        line = delim.join(result.record.fields)
        if self.config.output_type == "all":
            line = line + delim + ":".join(str(ordinal) for ordinal in result.invalid_field_ordinals)
        return line

    def emit(self, group_key: tuple[str, ...], payloads: Iterable[Payload]) -> str | None:
        """
        Validate a group and apply the output policy.

        The invalid counter is incremented for every invalid record,
        whatever the output policy.

        Returns:
            Output line, or None if nothing is emitted

        Raises:
            RecordError: If the record cannot be validated
        """
        result = self.process_group(group_key, payloads)
        if result is None:
            self.counters[NO_RECORD_COUNTER] += 1
            return None

        if result.valid:
            self.counters[VALID_COUNTER] += 1
        else:
            self.counters[INVALID_COUNTER] += 1

        if self.should_output(result):
            return self.format_output(result)
        return None

    def run(self, groups: Iterable[tuple[tuple[str, ...], Iterable[Payload]]]) -> Iterator[str]:
        """
        Validate many groups, isolating per-record errors.

        A failing group is logged with its key and ordinal, counted under
        record_errors.<error_type>, and produces no output.

        Args:
            groups: (group_key, payloads) pairs

        Yields:
            Output lines
        """
        for group_key, payloads in groups:
            try:
                line = self.emit(group_key, payloads)
            except RecordError as e:
                self.counters[ERROR_COUNTER_PREFIX + e.error_type] += 1
                log_record_error(logger, e, "Skipping record")
                continue
            if line is not None:
                yield line

    @property
    def invalid_count(self) -> int:
        return self.counters[INVALID_COUNTER]

    @property
    def error_count(self) -> int:
        return sum(count for name, count in self.counters.items() if name.startswith(ERROR_COUNTER_PREFIX))
