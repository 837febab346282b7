"""Pydantic models for configuration."""

import codecs

import pydantic
from pydantic import BaseModel, Field


class CodecSettings(BaseModel):
    """Settings of the XML writer.

    Attributes:
        pretty_print: Indent the serialized document. Indenting may add
            whitespace inside values of unrecognized types, so it is off by
            default to keep them byte-identical.
        xml_declaration: Start the output with an XML declaration
        encoding: Character encoding of the output

    Examples:
        # Indented output without declaration
        codec = CodecSettings(pretty_print=True, xml_declaration=False)
    """

    pretty_print: bool = False
    xml_declaration: bool = True
    encoding: str = "UTF-8"

    @pydantic.field_validator("encoding")
    @classmethod
    def validate_encoding(cls, v: str) -> str:
        """Validate that the encoding is known to Python.

        Raises:
            ValueError: If the encoding is unknown
        """
        try:
            codecs.lookup(v)
        except LookupError:
            raise ValueError(f"Unknown encoding: {v}") from None
        return v


class ValidationSettings(BaseModel):
    """Settings of the validation pass.

    Attributes:
        strict_mode: Report advisory findings as errors instead of warnings
        autocomplete_ids: Fill empty identifiers from the default identifier
        default_identifier: Root used to fill empty identifiers. If empty,
            the document's own id root is used.
        timeout_seconds: Cancel validation after this many seconds. None
            disables the deadline.

    Examples:
        # Strict validation that gives up after 5 seconds
        validation = ValidationSettings(strict_mode=True, timeout_seconds=5)
    """

    strict_mode: bool = False
    autocomplete_ids: bool = True
    default_identifier: str = ""
    timeout_seconds: float | None = Field(default=None, gt=0)


class Settings(BaseModel):
    """Complete settings for reading, writing and validating documents.

    Args:
        codec: XML writer configuration
        validation: Validation configuration

    Examples:
        # Default settings (compact output, lenient validation)
        settings = Settings()

        # Strict validation
        settings = Settings(validation={"strict_mode": True})
    """

    codec: CodecSettings = Field(default_factory=CodecSettings)
    validation: ValidationSettings = Field(default_factory=ValidationSettings)
