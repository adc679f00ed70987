import argparse
import logging
from pathlib import Path

from contract_batch.config import get_settings
from contract_batch.database import build_session_factory
from contract_batch.pipeline import ImportRunner


def positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer: {value}")
    return number


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Validate and batch contract installment records")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="import one delimited input file")
    run_parser.add_argument("--input", required=False, help="Path of the delimited input file")
    run_parser.add_argument("--run-key", required=False, help="Unique key for this import run")
    run_parser.add_argument("--batch-size", type=positive_int, required=False, help="Records per flushed batch")

    return parser.parse_args()


def main() -> None:
    args = parse_args()
    settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    session_factory = build_session_factory(settings.database_url)
    runner = ImportRunner(settings, session_factory)
    result = runner.run(
        input_path=Path(args.input) if args.input else None,
        run_key=args.run_key,
        batch_size=args.batch_size,
    )

    print(
        "run_id={run_id} run_key={run_key} status={status} total={total} accepted={accepted} rejected={rejected} batches={batches} report={report}".format(
            run_id=result.run_id,
            run_key=result.run_key,
            status=result.status,
            total=result.total_records,
            accepted=result.accepted_records,
            rejected=result.rejected_records,
            batches=result.batches_flushed,
            report=result.report_path,
        )
    )
    if result.status == "failed":
        raise SystemExit(1)


if __name__ == "__main__":
    main()
