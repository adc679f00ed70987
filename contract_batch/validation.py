from decimal import Decimal, InvalidOperation
import re

from babel.numbers import format_currency as babel_format_currency

from contract_batch.schemas import (
    CURRENCY_FIELDS,
    INTEGER_FIELDS,
    REASON_INVALID_CNPJ,
    REASON_INVALID_CPF,
    REASON_INVALID_FIELDS,
    REASON_INVALID_ID_FORMAT,
    REASON_INVALID_INSTALLMENTS,
    NormalizedRecord,
    RawRecord,
)


NON_DIGITS = re.compile(r"\D")
INTEGER_TEXT = re.compile(r"[0-9]+")

CPF_FIRST_WEIGHTS = (10, 9, 8, 7, 6, 5, 4, 3, 2)
CPF_SECOND_WEIGHTS = (11, 10, 9, 8, 7, 6, 5, 4, 3, 2)
CNPJ_FIRST_WEIGHTS = (5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2)
CNPJ_SECOND_WEIGHTS = (6, 5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2)

CURRENCY_CODE = "BRL"
CURRENCY_LOCALE = "pt_BR"


def strip_digits(value: str) -> str:
    return NON_DIGITS.sub("", value)


def parse_integer(value: str) -> int:
    if not isinstance(value, str) or not INTEGER_TEXT.fullmatch(value):
        raise ValueError(f"not a base-10 integer: {value!r}")
    return int(value, 10)


def _check_digit(digits: str, weights: tuple[int, ...]) -> int:
    total = sum(int(digit) * weight for digit, weight in zip(digits, weights))
    remainder = total % 11
    return 0 if remainder < 2 else 11 - remainder


def _validate_check_digits(digits: str, first_weights: tuple[int, ...], second_weights: tuple[int, ...]) -> bool:
    size = len(second_weights) + 1
    if len(digits) != size or len(set(digits)) == 1:
        return False

    first = _check_digit(digits[: size - 2], first_weights)
    if int(digits[size - 2]) != first:
        return False

    second = _check_digit(digits[: size - 1], second_weights)
    return int(digits[size - 1]) == second


def validate_cpf(value: str) -> bool:
    return _validate_check_digits(strip_digits(value), CPF_FIRST_WEIGHTS, CPF_SECOND_WEIGHTS)


def validate_cnpj(value: str) -> bool:
    return _validate_check_digits(strip_digits(value), CNPJ_FIRST_WEIGHTS, CNPJ_SECOND_WEIGHTS)


def validate_taxpayer_id(value: str) -> bool:
    digits = strip_digits(value)
    if len(digits) == 11:
        return validate_cpf(digits)
    if len(digits) == 14:
        return validate_cnpj(digits)
    return False


def validate_installments(record: RawRecord) -> bool:
    """Check that the total divided by the installment count equals the installment value.

    Values are compared as exact decimals with no tolerance, so ``1000.00 / 3``
    never matches ``333.33`` while ``0.30 / 3`` does match ``0.10``.
    """
    try:
        total = Decimal(record["vlTotal"])
        count = parse_integer(record["qtPrestacoes"])
        installment = Decimal(record["vlPresta"])
    except (InvalidOperation, TypeError, ValueError):
        return False

    if count <= 0 or not total.is_finite() or not installment.is_finite():
        return False
    return total / count == installment


def format_currency(value: str) -> str:
    amount = Decimal(value)
    if not amount.is_finite():
        raise ValueError(f"not a monetary amount: {value!r}")
    return babel_format_currency(
        amount,
        CURRENCY_CODE,
        locale=CURRENCY_LOCALE,
        decimal_quantization=True,
    )


def normalize_record(record: RawRecord) -> NormalizedRecord:
    normalized: NormalizedRecord = dict(record)
    for name in INTEGER_FIELDS:
        normalized[name] = parse_integer(record[name])
    for name in CURRENCY_FIELDS:
        normalized[name] = format_currency(record[name])
    return normalized


def rejection_reason(record: RawRecord) -> str | None:
    digits = strip_digits(record["nrCpfCnpj"] or "")

    if len(digits) not in (11, 14):
        return REASON_INVALID_ID_FORMAT
    # Branch on the stripped digits so punctuated ids take the right checksum.
    if len(digits) == 11 and not validate_cpf(digits):
        return REASON_INVALID_CPF
    if len(digits) == 14 and not validate_cnpj(digits):
        return REASON_INVALID_CNPJ
    if not validate_installments(record):
        return REASON_INVALID_INSTALLMENTS
    return None


def process_record(record: RawRecord) -> tuple[NormalizedRecord | None, str | None]:
    reason = rejection_reason(record)
    if reason is not None:
        return None, reason

    try:
        return normalize_record(record), None
    except (InvalidOperation, TypeError, ValueError):
        return None, REASON_INVALID_FIELDS
