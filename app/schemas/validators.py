"""Field rules shared by request schemas.

Each rule raises a ``PydanticCustomError`` whose type is the error code the
client translates (``not_empty``, ``not_number``, ``required_length_8``...), so
a failing field always reports the precise corrective message.
"""

import re

from pydantic_core import PydanticCustomError

DNI_LENGTH = 8
PHONE_NUMBER_LENGTH = 9

_DIGITS = re.compile(r"[0-9]+")


def _error(code: str) -> PydanticCustomError:
    return PydanticCustomError(code, code)


def validate_numeric_code(value: str | None, length: int) -> str:
    """Required, ASCII digits only, exact length. Checked in that order."""
    if value is None or value == "":
        raise _error("not_empty")
    if not _DIGITS.fullmatch(value):
        raise _error("not_number")
    if len(value) != length:
        raise _error(f"required_length_{length}")
    return value


def validate_dni(value: str | None) -> str:
    """Peruvian DNI: an 8 digit string. Leading zeros are significant."""
    return validate_numeric_code(value, DNI_LENGTH)


def validate_phone_number(value: str | None) -> str:
    """Peruvian mobile number without country code."""
    return validate_numeric_code(value, PHONE_NUMBER_LENGTH)


def validate_min_length(value: str, length: int) -> str:
    if len(value) < length:
        raise _error(f"min_length_{length}")
    return value


def require_digit_string(value: object) -> object:
    """Numeric codes travel as strings; a bare number loses its leading zeros."""
    if value is not None and not isinstance(value, str):
        raise _error("not_number")
    return value
