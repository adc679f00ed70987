from collections.abc import Callable, Generator
import csv
from pathlib import Path

import pytest

from contract_batch.config import Settings
from contract_batch.database import build_session_factory
from contract_batch.pipeline import ImportRunner
from contract_batch.schemas import CSV_FIELDS


BASE_RECORD = {
    "nrInst": "533",
    "nrAgencia": "32",
    "cdClient": "56133",
    "nmClient": "CLIENTE 1",
    "nrCpfCnpj": "11144477735",
    "nrContrato": "733067",
    "dtContrato": "20221227",
    "qtPrestacoes": "10",
    "vlTotal": "1000.00",
    "cdProduto": "777",
    "dsProduto": "CDC PESSOA JURIDICA",
    "cdCarteira": "17",
    "dsCarteira": "CRÉDITO DIRETO AO CONSUMIDOR",
    "nrProposta": "798586",
    "nrPresta": "2",
    "tpPresta": "Original",
    "nrSeqPre": "0",
    "dtVctPre": "20220406",
    "vlPresta": "100.00",
    "vlMora": "1.50",
    "vlMulta": "2.00",
    "vlOutAcr": "0",
    "vlIof": "0",
    "vlDescon": "0",
    "vlAtual": "103.50",
    "idSituac": "Aberta",
    "idSitVen": "Vencida",
}


@pytest.fixture()
def make_record() -> Callable[..., dict[str, str]]:
    def _make(**overrides: str) -> dict[str, str]:
        record = dict(BASE_RECORD)
        record.update(overrides)
        return record

    return _make


def write_csv(path: Path, records: list[dict[str, str]], delimiter: str = ",") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as outfile:
        writer = csv.DictWriter(outfile, fieldnames=CSV_FIELDS, delimiter=delimiter)
        writer.writeheader()
        writer.writerows(records)
    return path


@pytest.fixture()
def temp_workspace(tmp_path: Path) -> Path:
    (tmp_path / "data" / "input").mkdir(parents=True, exist_ok=True)
    (tmp_path / "outputs").mkdir(parents=True, exist_ok=True)
    return tmp_path


@pytest.fixture()
def test_settings(temp_workspace: Path) -> Settings:
    return Settings(
        app_name="contract-batch",
        database_url=f"sqlite:///{temp_workspace / 'test.db'}",
        log_level="INFO",
        input_path=str(temp_workspace / "data" / "input" / "contracts.csv"),
        output_dir=str(temp_workspace / "outputs"),
        batch_size=2,
        csv_delimiter=",",
        csv_encoding="utf-8-sig",
    )


@pytest.fixture()
def runner(test_settings: Settings) -> Generator[ImportRunner, None, None]:
    session_factory = build_session_factory(test_settings.database_url)
    yield ImportRunner(test_settings, session_factory)
