from dataclasses import dataclass, field


# Column order of the contract installment export.
CSV_FIELDS = (
    "nrInst",
    "nrAgencia",
    "cdClient",
    "nmClient",
    "nrCpfCnpj",
    "nrContrato",
    "dtContrato",
    "qtPrestacoes",
    "vlTotal",
    "cdProduto",
    "dsProduto",
    "cdCarteira",
    "dsCarteira",
    "nrProposta",
    "nrPresta",
    "tpPresta",
    "nrSeqPre",
    "dtVctPre",
    "vlPresta",
    "vlMora",
    "vlMulta",
    "vlOutAcr",
    "vlIof",
    "vlDescon",
    "vlAtual",
    "idSituac",
    "idSitVen",
)

INTEGER_FIELDS = (
    "nrInst",
    "nrAgencia",
    "cdClient",
    "nrContrato",
    "qtPrestacoes",
    "cdProduto",
    "cdCarteira",
    "nrProposta",
    "nrPresta",
    "nrSeqPre",
)

CURRENCY_FIELDS = (
    "vlTotal",
    "vlPresta",
    "vlMora",
    "vlMulta",
    "vlOutAcr",
    "vlIof",
    "vlDescon",
    "vlAtual",
)

REASON_INVALID_ID_FORMAT = "Invalid CPF or CNPJ"
REASON_INVALID_CPF = "Invalid CPF"
REASON_INVALID_CNPJ = "Invalid CNPJ"
REASON_INVALID_INSTALLMENTS = "Invalid Installments"
REASON_INVALID_FIELDS = "Invalid Field Format"

RawRecord = dict[str, str]
NormalizedRecord = dict[str, object]


@dataclass(frozen=True)
class RejectionRecord:
    reason: str
    record: RawRecord
    row_number: int | None = None


@dataclass
class BatchState:
    processed_count: int = 0
    accepted: list[NormalizedRecord] = field(default_factory=list)
    rejected: list[RejectionRecord] = field(default_factory=list)


@dataclass(frozen=True)
class ImportResult:
    run_id: int
    run_key: str
    input_path: str
    status: str
    total_records: int
    accepted_records: int
    rejected_records: int
    batches_flushed: int
    report_path: str | None
    error: str | None = None
