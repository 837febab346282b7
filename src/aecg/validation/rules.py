"""Vocabulary rules consulted by the validators.

``DOMAIN_RULES`` maps each closed coded domain to its allowed codes and to the
element name under which a violation is reported. Every domain has its own
element name, so for example a bad gender code and a bad race code are never
confused with each other.
"""

from collections.abc import Collection
from typing import NamedTuple

from .. import numeric
from ..constants import (
    ALLOWED_LEAD_CODES,
    CONFIDENTIALITY_CODES,
    GENDER_CODES,
    RACE_CODES,
    REASON_CODES,
    ROI_CODES,
    SERIES_TYPE_CODES,
    SUBJECT_ROLE_CODES,
)

# Exclusive bounds of accepted Unix epoch timestamps: 1970-01-01 and 2100-01-01
EPOCH_MIN = 0
EPOCH_MAX = 4_102_444_800

# Length of a timestamp with second precision, YYYYMMDDHHmmss
SECOND_PRECISION = 14


class DomainRule(NamedTuple):
    """Allowed codes of a coded domain and how violations are reported.

    Attributes:
        allowed: Codes accepted in the domain.
        field: Element name reported for a violation.
        advisory: Whether a violation is only a warning outside strict mode.
    """

    allowed: Collection[str]
    field: str
    advisory: bool = False


DOMAIN_RULES: dict[str, DomainRule] = {
    "confidentiality": DomainRule(CONFIDENTIALITY_CODES, "confidentialityCode"),
    "reason": DomainRule(REASON_CODES, "reasonCode"),
    "subject_role": DomainRule(SUBJECT_ROLE_CODES, "code"),
    "gender": DomainRule(GENDER_CODES, "administrativeGenderCode"),
    "race": DomainRule(RACE_CODES, "raceCode"),
    "roi": DomainRule(ROI_CODES, "code"),
    "series_type": DomainRule(SERIES_TYPE_CODES, "code", advisory=True),
    "lead": DomainRule(ALLOWED_LEAD_CODES, "code", advisory=True),
}


def is_valid_timestamp(text: str) -> bool:
    """Return True if ``text`` is an accepted timestamp.

    Accepted are the HL7 layouts ``YYYYMMDDHHmmss[.S]``, ``YYYYMMDD``,
    ``YYYYMM`` and ``YYYY``, and Unix epoch seconds strictly between
    1970-01-01 and 2100-01-01.

    Examples:
        >>> is_valid_timestamp("20021122091000.000")
        True
        >>> is_valid_timestamp("1700000000")
        True
        >>> is_valid_timestamp("2002-11-22")
        False
    """
    if not text:
        return False
    if numeric.is_hl7_timestamp(text):
        return True
    if text.isascii() and text.isdigit():
        return EPOCH_MIN < int(text) < EPOCH_MAX
    return False
