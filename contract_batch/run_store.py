import json

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from contract_batch.db_models import AcceptedInstallment, ImportRun, RejectedRecord, utc_now
from contract_batch.schemas import NormalizedRecord, RejectionRecord


def get_run_by_key(db: Session, run_key: str) -> ImportRun | None:
    stmt = select(ImportRun).where(ImportRun.run_key == run_key)
    return db.execute(stmt).scalar_one_or_none()


def create_run(db: Session, *, run_key: str, input_path: str, batch_size: int) -> ImportRun:
    run = ImportRun(run_key=run_key, input_path=input_path, batch_size=batch_size, status="running")
    db.add(run)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ValueError(f"run key already used: {run_key}") from exc

    db.refresh(run)
    return run


def record_batch_totals(db: Session, run: ImportRun, *, accepted: int, rejected: int) -> None:
    run.total_records += accepted + rejected
    run.accepted_records += accepted
    run.rejected_records += rejected
    run.batches_flushed += 1
    db.commit()


def mark_run_succeeded(db: Session, run: ImportRun) -> None:
    run.status = "succeeded"
    run.completed_at = utc_now()
    run.error = None
    db.commit()


def mark_run_failed(db: Session, run: ImportRun, *, error: str) -> None:
    # Totals keep only what was flushed before the failure.
    db.rollback()
    run.status = "failed"
    run.error = error
    run.completed_at = utc_now()
    db.commit()


def store_accepted(db: Session, *, run_id: int, batch_number: int, records: list[NormalizedRecord]) -> None:
    for record in records:
        db.add(
            AcceptedInstallment(
                run_id=run_id,
                batch_number=batch_number,
                contract_number=int(record["nrContrato"]),
                installment_number=int(record["nrPresta"]),
                taxpayer_id=str(record["nrCpfCnpj"]),
                payload=json.dumps(record, ensure_ascii=False, sort_keys=True),
            )
        )


def store_rejected(db: Session, *, run_id: int, batch_number: int, rejections: list[RejectionRecord]) -> None:
    for rejection in rejections:
        db.add(
            RejectedRecord(
                run_id=run_id,
                batch_number=batch_number,
                row_number=rejection.row_number,
                reason=rejection.reason,
                raw_record=json.dumps(rejection.record, ensure_ascii=False, sort_keys=True),
            )
        )
