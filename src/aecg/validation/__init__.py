"""Validation of annotated ECG documents.

``validate`` walks the whole document tree once and returns a
``ValidationContext`` holding every problem found, in traversal order. Domain
problems never raise; a canceled or timed out pass returns early with
``ctx.canceled`` set and the errors found so far.
"""

import threading

from .._logging import logger
from ..constants import ROOT_TAG
from ..document import AnnotatedECG
from ..errors import ValidationCanceled, missing
from ..identifiers import DefaultIdentifierProvider
from .context import ValidationContext
from .rules import DOMAIN_RULES, DomainRule, is_valid_timestamp
from .validators import validate_document


def run(document: AnnotatedECG | None, ctx: ValidationContext) -> ValidationContext:
    """Validate ``document`` into an existing context.

    Returns:
        ``ctx``, with ``canceled`` and ``cancel_reason`` set if the pass was
        canceled or ran past its deadline.
    """
    try:
        if document is None:
            ctx.add_error(missing(ROOT_TAG))
        else:
            validate_document(document, ctx, "")
    except ValidationCanceled as e:
        ctx.canceled = True
        ctx.cancel_reason = str(e)
        logger.warning(f"Validation stopped early: {e} ({len(ctx.errors)} error(s) so far)")
    return ctx


def validate(
    document: AnnotatedECG | None,
    strict_mode: bool = False,
    identifiers: DefaultIdentifierProvider | None = None,
    autocomplete_ids: bool = True,
    cancel_event: threading.Event | None = None,
    timeout: float | None = None,
) -> ValidationContext:
    """Validate a document and return the accumulated findings.

    Args:
        document: Document to validate. None is reported as a missing document.
        strict_mode: Report advisory findings (opaque values, non-standard
            series types and lead codes, imprecise activity times) as errors.
        identifiers: Provider of the default identifier root. The first
            non-empty root it receives, by default the document's own
            ``id.root``, fills every empty identifier.
        autocomplete_ids: Fill empty identifiers from ``identifiers``.
        cancel_event: Event that cancels the pass when set.
        timeout: Maximum duration of the pass in seconds.

    Returns:
        The validation context.

    Examples:
        >>> ctx = validate(None)
        >>> [str(e.field) for e in ctx.errors]
        ['AnnotatedECG']
    """
    ctx = ValidationContext(
        strict_mode=strict_mode,
        identifiers=identifiers,
        autocomplete_ids=autocomplete_ids,
        cancel_event=cancel_event,
        timeout=timeout,
    )
    return run(document, ctx)


__all__ = [
    "DOMAIN_RULES",
    "DomainRule",
    "ValidationContext",
    "is_valid_timestamp",
    "run",
    "validate",
]
