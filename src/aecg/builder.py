"""Build series and control variables from raw recordings.

``build_series`` turns a set of lead recordings, already digitized to integer
digits, into a ``Series`` with one sequence set: a generated time axis followed
by one ``SLIST_PQ`` sequence per lead. Standard 12-lead codes come first, in
their conventional order, then any extra leads in the order given.
"""

import uuid
from collections.abc import Mapping
from datetime import datetime

import numpy as np
import pandas as pd

from . import numeric
from ._logging import logger
from .codec.payloads import (
    GeneratedQuantityList,
    GeneratedTimestampList,
    PhysicalQuantity,
    ScaledQuantityList,
)
from .coded_value import CodedValue
from .constants import (
    ACT_CODE_OID,
    CODE_SYSTEM_NAMES,
    LOINC_OID,
    MDC_OID,
    STANDARD_LEAD_CODES,
    TIME_ABSOLUTE,
    TIME_RELATIVE,
    UNIT_MICROVOLT,
    UNIT_SECOND,
)
from .document.base import Identifier, Interval
from .document.series import ControlVariable, Sequence, SequenceSet, Series
from .identifiers import DefaultIdentifierProvider
from .types import Digits

LOW_PASS_FILTER_CODE = "MDC_ECG_CTL_VBL_ATTR_FILTER_LOW_PASS"
HIGH_PASS_FILTER_CODE = "MDC_ECG_CTL_VBL_ATTR_FILTER_HIGH_PASS"
NOTCH_FILTER_CODE = "MDC_ECG_CTL_VBL_ATTR_FILTER_NOTCH"
CUTOFF_FREQUENCY_CODE = "MDC_ECG_CTL_VBL_ATTR_FILTER_CUTOFF_FREQ"
NOTCH_FREQUENCY_CODE = "MDC_ECG_CTL_VBL_ATTR_FILTER_NOTCH_FREQ"
REPORTED_AGE_CODE = "21612-7"


def _decimal(value: float) -> str:
    return np.format_float_positional(float(value), trim="-")


def _timestamp(value: str | datetime | pd.Timestamp) -> str:
    if isinstance(value, str):
        return value
    return numeric.format_hl7_timestamp(pd.Timestamp(value))


def _mdc(code: str, display_name: str = "") -> CodedValue:
    return CodedValue(
        code=code,
        code_system=MDC_OID,
        code_system_name=CODE_SYSTEM_NAMES[MDC_OID],
        display_name=display_name,
    )


def ordered_lead_codes(codes: list[str]) -> list[str]:
    """Order lead codes: standard 12 leads first, then the rest as given.

    Examples:
        >>> ordered_lead_codes(["MDC_ECG_LEAD_V1", "CUSTOM", "MDC_ECG_LEAD_I"])
        ['MDC_ECG_LEAD_I', 'MDC_ECG_LEAD_V1', 'CUSTOM']
    """
    standard = [code for code in STANDARD_LEAD_CODES if code in codes]
    return standard + [code for code in codes if code not in STANDARD_LEAD_CODES]


def time_sequence(start: str, sample_rate: float, relative: bool = False) -> Sequence:
    """Create the time axis of a sequence set sampled at ``sample_rate`` Hz.

    An absolute axis (``TIME_ABSOLUTE``) is a ``GLIST_TS`` starting at
    ``start``; a relative axis (``TIME_RELATIVE``, used by derived beats) is a
    ``GLIST_PQ`` starting at zero seconds.
    """
    if sample_rate <= 0:
        raise ValueError(f"sample_rate must be positive, got {sample_rate}")
    increment = PhysicalQuantity(value=_decimal(1.0 / sample_rate), unit=UNIT_SECOND)
    if relative:
        code, value = TIME_RELATIVE, GeneratedQuantityList(
            head=PhysicalQuantity(value="0", unit=UNIT_SECOND),
            increment=increment,
        )
    else:
        code, value = TIME_ABSOLUTE, GeneratedTimestampList(head=start, head_unit=UNIT_SECOND, increment=increment)
    return Sequence(
        code=CodedValue(code=code, code_system=ACT_CODE_OID, code_system_name=CODE_SYSTEM_NAMES[ACT_CODE_OID]),
        value=value,
    )


def lead_sequence(
    lead_code: str,
    digits: Digits | list[int],
    origin: float = 0.0,
    scale: float = 1.0,
    unit: str = UNIT_MICROVOLT,
) -> Sequence:
    """Create the ``SLIST_PQ`` sequence of one lead from its integer digits."""
    return Sequence(
        code=_mdc(lead_code),
        value=ScaledQuantityList(
            origin=PhysicalQuantity(value=_decimal(origin), unit=unit),
            scale=PhysicalQuantity(value=_decimal(scale), unit=unit),
            digits=numeric.format_digits(digits),
        ),
    )


def build_series(
    series_type: str,
    start: str | datetime | pd.Timestamp,
    end: str | datetime | pd.Timestamp | None,
    sample_rate: float,
    leads: Mapping[str, Digits | list[int]],
    origin: float = 0.0,
    scale: float = 1.0,
    unit: str = UNIT_MICROVOLT,
    relative: bool = False,
    low_inclusive: bool | None = None,
    high_inclusive: bool | None = None,
    identifiers: DefaultIdentifierProvider | None = None,
) -> Series:
    """Build a series holding one sequence set of digitized leads.

    Args:
        series_type: ``RHYTHM``, ``REPRESENTATIVE_BEAT`` or ``MEDIAN_BEAT``.
        start: Start of the recording, as an HL7 timestamp or a datetime.
        end: End of the recording. If None it is derived from the number of
            samples and ``sample_rate``.
        sample_rate: Sampling frequency in Hz.
        leads: Mapping of lead code (e.g. ``MDC_ECG_LEAD_II``) to integer digits.
        origin: Origin of every lead, in ``unit``.
        scale: Scale of every lead, in ``unit`` per digit.
        unit: Unit of the reconstructed voltages.
        relative: Use a ``TIME_RELATIVE`` axis instead of ``TIME_ABSOLUTE``.
        low_inclusive: ``inclusive`` flag of the effective time's low endpoint.
        high_inclusive: ``inclusive`` flag of the effective time's high endpoint.
        identifiers: Provider of the root of the series identifier, which
            then gets a random extension. A random UUID root is used when
            the provider is absent or unset.

    Returns:
        The new series.

    Raises:
        ValueError: If ``sample_rate`` is not positive or the leads differ in length.

    Examples:
        >>> series = build_series("RHYTHM", "20021122091000.000", None, 500, {"MDC_ECG_LEAD_II": [1, 2, 3]})
        >>> series.lead_codes()
        ['MDC_ECG_LEAD_II']
    """
    lengths = {code: len(digits) for code, digits in leads.items()}
    if len(set(lengths.values())) > 1:
        raise ValueError(f"All leads must have the same number of samples, got {lengths}")

    start_text = _timestamp(start)
    if end is None:
        n_samples = next(iter(lengths.values()), 0)
        head = numeric.parse_hl7_timestamp(start_text)
        end_text = numeric.format_hl7_timestamp(head + pd.Timedelta(seconds=n_samples / sample_rate))
    else:
        end_text = _timestamp(end)

    sequences = [time_sequence(start_text, sample_rate, relative=relative)]
    for code in ordered_lead_codes(list(leads)):
        sequences.append(lead_sequence(code, leads[code], origin, scale, unit))

    root = identifiers.root if identifiers is not None else ""
    series_id = Identifier(root=root, extension=uuid.uuid4().hex) if root else Identifier.generate()
    effective_time = Interval.between(start_text, end_text)
    effective_time.low_inclusive = low_inclusive
    effective_time.high_inclusive = high_inclusive
    series = Series(
        id=series_id,
        code=CodedValue(
            code=series_type,
            code_system=ACT_CODE_OID,
            code_system_name=CODE_SYSTEM_NAMES[ACT_CODE_OID],
        ),
        effective_time=effective_time,
        sequence_sets=[SequenceSet(sequences=sequences)],
    )
    logger.debug(f"Built {series_type} series with {len(leads)} leads at {sample_rate} Hz")
    return series


def build_series_from_samples(
    series_type: str,
    start: str | datetime | pd.Timestamp,
    sample_rate: float,
    signals: pd.DataFrame,
    origin: float = 0.0,
    scale: float = 5.0,
    unit: str = UNIT_MICROVOLT,
    **kwargs,
) -> Series:
    """Digitize physical samples and build a series from them.

    Args:
        series_type: Series type code.
        start: Start of the recording.
        sample_rate: Sampling frequency in Hz.
        signals: One column per lead code, values in ``unit``.
        origin: Origin of the digits, in ``unit``.
        scale: Resolution of the digits, in ``unit`` per digit.
        unit: Unit of ``signals``.
        **kwargs: Passed on to ``build_series``.
    """
    leads = {
        str(column): ScaledQuantityList.from_samples(signals[column].to_numpy(), origin, scale, unit).digit_values()
        for column in signals.columns
    }
    return build_series(series_type, start, None, sample_rate, leads, origin=origin, scale=scale, unit=unit, **kwargs)


def _filter(
    code: str, display_name: str, component_code: str, component_name: str, frequency: float, unit: str
) -> ControlVariable:
    return ControlVariable(
        code=_mdc(code, display_name),
        components=[
            ControlVariable(
                code=_mdc(component_code, component_name),
                value=PhysicalQuantity(value=_decimal(frequency), unit=unit),
            )
        ],
    )


def low_pass_filter(cutoff: float, unit: str = "Hz") -> ControlVariable:
    return _filter(LOW_PASS_FILTER_CODE, "Low Pass Filter", CUTOFF_FREQUENCY_CODE, "Cutoff Frequency", cutoff, unit)


def high_pass_filter(cutoff: float, unit: str = "Hz") -> ControlVariable:
    return _filter(HIGH_PASS_FILTER_CODE, "High Pass Filter", CUTOFF_FREQUENCY_CODE, "Cutoff Frequency", cutoff, unit)


def notch_filter(frequency: float, unit: str = "Hz") -> ControlVariable:
    return _filter(NOTCH_FILTER_CODE, "Notch Filter", NOTCH_FREQUENCY_CODE, "Notch filter frequency", frequency, unit)


def age_observation(age: float, unit: str = "a") -> ControlVariable:
    """Subject age at the time of the recording, coded with LOINC ``21612-7``."""
    return ControlVariable(
        code=CodedValue(
            code=REPORTED_AGE_CODE,
            code_system=LOINC_OID,
            code_system_name=CODE_SYSTEM_NAMES[LOINC_OID],
            display_name="Reported Age",
        ),
        value=PhysicalQuantity(value=_decimal(age), unit=unit),
    )
