"""aecg: HL7 v3 annotated ECG documents in Python.

This package reads and writes HL7 annotated ECG (aECG) XML documents, decodes
their polymorphic waveform values into numpy arrays and pandas DataFrames, and
validates whole documents in a single pass that reports every problem found.
"""

from ._logging import logger, set_log_file, set_log_level
from .builder import (
    age_observation,
    build_series,
    build_series_from_samples,
    high_pass_filter,
    low_pass_filter,
    notch_filter,
)
from .codec import ValueTypeRegistry
from .coded_value import CodedValue
from .config import CodecSettings, ConfigLoader, Settings, ValidationSettings
from .core import (
    DocumentProcessor,
    load_and_validate,
    parse,
    parse_file,
    serialize,
    validate,
    validate_files,
    write_file,
)
from .document import (
    NOT_ADDED,
    AnnotatedECG,
    Annotation,
    AnnotationSet,
    Identifier,
    Interval,
    Series,
    find_annotation_by_code,
    find_lead_annotation,
    find_nested_annotation_by_code,
)
from .errors import (
    AECGError,
    InvalidNumericError,
    MultipleValidationErrors,
    ParseError,
    ValidationCanceled,
    ValidationError,
)
from .identifiers import DefaultIdentifierProvider
from .validation import ValidationContext

__version__ = "0.1.0"
__all__ = [
    "__version__",
    "logger",
    "set_log_level",
    "set_log_file",
    "parse",
    "parse_file",
    "serialize",
    "write_file",
    "validate",
    "load_and_validate",
    "validate_files",
    "DocumentProcessor",
    "Settings",
    "CodecSettings",
    "ValidationSettings",
    "ConfigLoader",
    "ValueTypeRegistry",
    "DefaultIdentifierProvider",
    "ValidationContext",
    "CodedValue",
    "AnnotatedECG",
    "Annotation",
    "AnnotationSet",
    "Identifier",
    "Interval",
    "Series",
    "NOT_ADDED",
    "find_annotation_by_code",
    "find_nested_annotation_by_code",
    "find_lead_annotation",
    "build_series",
    "build_series_from_samples",
    "low_pass_filter",
    "high_pass_filter",
    "notch_filter",
    "age_observation",
    "AECGError",
    "ParseError",
    "InvalidNumericError",
    "ValidationError",
    "MultipleValidationErrors",
    "ValidationCanceled",
]


def __dir__():
    return __all__
