from collections.abc import Iterator
import csv
from pathlib import Path

from contract_batch.schemas import RawRecord


SURPLUS_KEY = "__surplus__"


def read_rows(input_path: Path, *, delimiter: str = ",", encoding: str = "utf-8-sig") -> Iterator[RawRecord]:
    if not input_path.exists():
        raise FileNotFoundError(f"input file not found: {input_path}")

    with input_path.open("r", encoding=encoding, newline="") as infile:
        # Short rows get empty strings for missing columns; surplus columns are dropped.
        reader = csv.DictReader(infile, delimiter=delimiter, restkey=SURPLUS_KEY, restval="")
        for row in reader:
            row.pop(SURPLUS_KEY, None)
            yield dict(row)
