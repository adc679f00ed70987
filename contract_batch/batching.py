from collections.abc import Callable, Iterable
import logging
import reprlib

from contract_batch.schemas import BatchState, NormalizedRecord, RawRecord, RejectionRecord
from contract_batch.validation import process_record


logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1000

BatchSink = Callable[[list[NormalizedRecord], list[RejectionRecord]], None]


def log_batch(accepted: list[NormalizedRecord], rejected: list[RejectionRecord]) -> None:
    logger.info("rejected records count=%d records=%s", len(rejected), reprlib.repr(rejected))
    logger.info("accepted records count=%d records=%s", len(accepted), reprlib.repr(accepted))


class BatchAccumulator:
    """Buffers validation outcomes and hands them to a sink once per batch.

    The accumulator owns its ``BatchState`` exclusively. ``flush`` passes the
    current collections to the sink and starts a fresh state, so the sink may
    keep the lists it receives.
    """

    def __init__(self, batch_size: int | None = None, sink: BatchSink = log_batch) -> None:
        if batch_size is not None and batch_size < 0:
            raise ValueError(f"batch size must be positive, got {batch_size}")
        self.batch_size = batch_size or DEFAULT_BATCH_SIZE
        self.sink = sink
        self.total_submitted = 0
        self.flush_count = 0
        self.state = BatchState()

    def reset(self) -> None:
        self.state = BatchState()

    def submit(self, record: RawRecord) -> None:
        self.state.processed_count += 1
        self.total_submitted += 1

        normalized, reason = process_record(record)
        if reason is not None:
            self.state.rejected.append(RejectionRecord(reason=reason, record=record, row_number=self.total_submitted))
            return
        self.state.accepted.append(normalized)

    def is_full(self) -> bool:
        return self.state.processed_count >= self.batch_size

    def flush(self) -> None:
        state = self.state
        self.sink(state.accepted, state.rejected)
        self.flush_count += 1
        self.reset()


def run_batches(rows: Iterable[RawRecord], accumulator: BatchAccumulator) -> int:
    """Feed every row through the accumulator; returns the number of rows submitted.

    A flush happens whenever a batch fills and once more when the rows run out,
    even if that final batch is empty. If iterating ``rows`` raises, the
    buffered batch is left unflushed.
    """
    accumulator.total_submitted = 0
    accumulator.flush_count = 0
    accumulator.reset()
    for row in rows:
        accumulator.submit(row)
        if accumulator.is_full():
            accumulator.flush()

    accumulator.flush()
    return accumulator.total_submitted
