from datetime import UTC, datetime
import json
import logging
from pathlib import Path

from sqlalchemy.orm import Session, sessionmaker

from contract_batch.batching import BatchAccumulator, run_batches
from contract_batch.config import Settings
from contract_batch.db_models import ImportRun
from contract_batch.row_source import read_rows
from contract_batch.run_store import (
    create_run,
    mark_run_failed,
    mark_run_succeeded,
    record_batch_totals,
    store_accepted,
    store_rejected,
)
from contract_batch.schemas import ImportResult, NormalizedRecord, RejectionRecord


logger = logging.getLogger(__name__)


def default_run_key(input_path: Path) -> str:
    return f"{input_path.stem}-{datetime.now(UTC).strftime('%Y%m%dT%H%M%S%f')}"


def append_jsonl(path: Path, rows: list[dict[str, object]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as outfile:
        for row in rows:
            outfile.write(json.dumps(row, ensure_ascii=False, sort_keys=True))
            outfile.write("\n")


def write_json(path: Path, payload: dict[str, object]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as outfile:
        json.dump(payload, outfile, indent=2, sort_keys=True)
        outfile.write("\n")


class ImportRunner:
    def __init__(self, settings: Settings, session_factory: sessionmaker[Session]) -> None:
        self.settings = settings
        self.session_factory = session_factory

    def run(
        self,
        *,
        input_path: Path | None = None,
        run_key: str | None = None,
        batch_size: int | None = None,
    ) -> ImportResult:
        input_path = Path(input_path or self.settings.input_path)
        run_key = run_key or default_run_key(input_path)

        with self.session_factory() as db:
            accumulator = BatchAccumulator(batch_size or self.settings.batch_size)
            run = create_run(db, run_key=run_key, input_path=str(input_path), batch_size=accumulator.batch_size)
            accumulator.sink = lambda accepted, rejected: self._flush_batch(db, run, accepted, rejected)
            logger.info(
                "import run started",
                extra={"run_key": run_key, "input_path": str(input_path), "batch_size": accumulator.batch_size},
            )

            rows = read_rows(
                input_path,
                delimiter=self.settings.csv_delimiter,
                encoding=self.settings.csv_encoding,
            )
            try:
                run_batches(rows, accumulator)
            except Exception as exc:
                mark_run_failed(db, run, error=str(exc))
                logger.exception(
                    "import run failed",
                    extra={"run_key": run_key, "discarded_records": accumulator.state.processed_count},
                )
                return self._result_from_run(run, report_path=None)

            mark_run_succeeded(db, run)
            report_path = self._write_report(run)
            logger.info(
                "import run succeeded",
                extra={
                    "run_key": run_key,
                    "total_records": run.total_records,
                    "accepted_records": run.accepted_records,
                    "rejected_records": run.rejected_records,
                    "batches_flushed": run.batches_flushed,
                },
            )
            return self._result_from_run(run, report_path=str(report_path))

    def _flush_batch(
        self,
        db: Session,
        run: ImportRun,
        accepted: list[NormalizedRecord],
        rejected: list[RejectionRecord],
    ) -> None:
        batch_number = run.batches_flushed + 1
        store_accepted(db, run_id=run.id, batch_number=batch_number, records=accepted)
        store_rejected(db, run_id=run.id, batch_number=batch_number, rejections=rejected)
        record_batch_totals(db, run, accepted=len(accepted), rejected=len(rejected))

        output_root = Path(self.settings.output_dir)
        append_jsonl(output_root / "accepted" / f"{run.run_key}.jsonl", accepted)
        append_jsonl(
            output_root / "rejected" / f"{run.run_key}.jsonl",
            [
                {
                    "row_number": rejection.row_number,
                    "reason": rejection.reason,
                    "record": rejection.record,
                }
                for rejection in rejected
            ],
        )
        logger.info(
            "batch flushed",
            extra={
                "run_key": run.run_key,
                "batch_number": batch_number,
                "accepted": len(accepted),
                "rejected": len(rejected),
            },
        )

    def _write_report(self, run: ImportRun) -> Path:
        output_root = Path(self.settings.output_dir)
        report_path = output_root / "reports" / f"{run.run_key}.json"
        write_json(
            report_path,
            {
                "run_key": run.run_key,
                "input_path": run.input_path,
                "batch_size": run.batch_size,
                "total_records": run.total_records,
                "accepted_records": run.accepted_records,
                "rejected_records": run.rejected_records,
                "batches_flushed": run.batches_flushed,
                "accepted_output": str(output_root / "accepted" / f"{run.run_key}.jsonl"),
                "rejected_output": str(output_root / "rejected" / f"{run.run_key}.jsonl"),
            },
        )
        return report_path

    def _result_from_run(self, run: ImportRun, report_path: str | None) -> ImportResult:
        return ImportResult(
            run_id=run.id,
            run_key=run.run_key,
            input_path=run.input_path,
            status=run.status,
            total_records=run.total_records,
            accepted_records=run.accepted_records,
            rejected_records=run.rejected_records,
            batches_flushed=run.batches_flushed,
            report_path=report_path,
            error=run.error,
        )
