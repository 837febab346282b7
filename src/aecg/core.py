"""Main document orchestrator: parse, serialize and validate annotated ECGs."""

import multiprocessing
import os
import sys
import threading
from pathlib import Path

import pandas as pd
from lxml import etree
from tqdm import tqdm

from ._logging import log_end, log_start, logger
from .config import ConfigLoader, Settings
from .document import AnnotatedECG
from .errors import ParseError
from .identifiers import DefaultIdentifierProvider
from .validation import ValidationContext, run


class DocumentProcessor:
    """Reads, writes and validates annotated ECG documents with one configuration.

    The processor owns a ``DefaultIdentifierProvider``. Its root is taken from
    ``settings.validation.default_identifier`` if set, otherwise from the id of
    the first document validated, and then stays fixed for the lifetime of
    the processor.

    Args:
        settings: Codec and validation settings. If None, uses default settings.
        identifiers: Default identifier provider to share between processors.

    Examples:
        processor = DocumentProcessor()
        document = processor.parse(data)
        ctx = processor.validate(document)
        if not ctx.has_errors():
            out = processor.serialize(document)
    """

    def __init__(self, settings: Settings | None = None, identifiers: DefaultIdentifierProvider | None = None):
        self.settings = settings or Settings()
        self.identifiers = identifiers if identifiers is not None else DefaultIdentifierProvider()
        self.identifiers.assign(self.settings.validation.default_identifier)

    def parse(self, data: bytes) -> AnnotatedECG:
        """Parse an XML document.

        Raises:
            ParseError: If the XML is malformed, the root is not an
                ``AnnotatedECG`` or a recognized value cannot be decoded.
        """
        start = log_start("parse", f"{len(data)} bytes")
        parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)
        try:
            root = etree.fromstring(data, parser)
        except etree.XMLSyntaxError as e:
            raise ParseError(f"malformed XML: {e}", "document") from e
        document = AnnotatedECG.from_xml(root)
        log_end("parse", start, f"{len(document.series)} series")
        return document

    def parse_file(self, path: str | Path) -> AnnotatedECG:
        path = Path(path)
        logger.info(f"Reading {path}")
        return self.parse(path.read_bytes())

    def serialize(self, document: AnnotatedECG) -> bytes:
        """Serialize a document to XML bytes according to the codec settings."""
        codec = self.settings.codec
        start = log_start("serialization", f"document {document.id or '<no id>'}")
        data = etree.tostring(
            document.to_xml(),
            xml_declaration=codec.xml_declaration,
            encoding=codec.encoding,
            pretty_print=codec.pretty_print,
        )
        log_end("serialization", start, f"{len(data)} bytes")
        return data

    def write_file(self, document: AnnotatedECG, path: str | Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.serialize(document))
        logger.info(f"Wrote {path}")
        return path

    def validate(self, document: AnnotatedECG | None, cancel_event: threading.Event | None = None) -> ValidationContext:
        """Validate a document according to the validation settings.

        Returns:
            Context holding the ordered errors and warnings. Check
            ``ctx.canceled`` to tell a complete pass from an interrupted one.
        """
        options = self.settings.validation
        start = log_start("validation", "strict mode" if options.strict_mode else "lenient mode")
        ctx = ValidationContext(
            strict_mode=options.strict_mode,
            identifiers=self.identifiers,
            autocomplete_ids=options.autocomplete_ids,
            cancel_event=cancel_event,
            timeout=options.timeout_seconds,
        )
        run(document, ctx)
        for error in ctx.errors:
            logger.debug(str(error))
        log_end("validation", start, f"{len(ctx.errors)} error(s), {len(ctx.warnings)} warning(s)")
        return ctx


def parse(data: bytes, settings: Settings | str | Path | None = None) -> AnnotatedECG:
    """Parse an annotated ECG from XML bytes.

    Args:
        data: XML document
        settings: Configuration. Can be:
            - Settings object: Use directly
            - str or Path: Load from JSON/TOML config file
            - None: Use default settings

    Raises:
        ParseError: If the document cannot be decoded
        TypeError: If settings has an unsupported type

    Examples:
        document = aecg.parse(Path("ecg.xml").read_bytes())
    """
    return DocumentProcessor(ConfigLoader.resolve(settings)).parse(data)


def parse_file(path: str | Path, settings: Settings | str | Path | None = None) -> AnnotatedECG:
    return DocumentProcessor(ConfigLoader.resolve(settings)).parse_file(path)


def serialize(document: AnnotatedECG, settings: Settings | str | Path | None = None) -> bytes:
    """Serialize an annotated ECG to XML bytes.

    Examples:
        data = aecg.serialize(document, settings=aecg.Settings(codec={"pretty_print": True}))
    """
    return DocumentProcessor(ConfigLoader.resolve(settings)).serialize(document)


def write_file(document: AnnotatedECG, path: str | Path, settings: Settings | str | Path | None = None) -> Path:
    return DocumentProcessor(ConfigLoader.resolve(settings)).write_file(document, path)


def validate(
    document: AnnotatedECG | None,
    settings: Settings | str | Path | None = None,
    identifiers: DefaultIdentifierProvider | None = None,
    cancel_event: threading.Event | None = None,
) -> ValidationContext:
    """Validate an annotated ECG and return every problem found.

    Args:
        document: Document to validate
        settings: Configuration, as for ``parse``
        identifiers: Default identifier provider. A fresh one is used if None.
        cancel_event: Event that cancels the validation when set

    Returns:
        ValidationContext with ordered ``errors`` and ``warnings``

    Raises:
        TypeError: If settings has an unsupported type

    Examples:
        ctx = aecg.validate(document, settings="strict.toml")
        if ctx.has_errors():
            raise ctx.get_error()
    """
    processor = DocumentProcessor(ConfigLoader.resolve(settings), identifiers)
    return processor.validate(document, cancel_event)


def load_and_validate(
    path: str | Path, settings: Settings | str | Path | None = None
) -> tuple[AnnotatedECG, ValidationContext]:
    """Read a document from ``path`` and validate it with the same settings."""
    processor = DocumentProcessor(ConfigLoader.resolve(settings))
    document = processor.parse_file(path)
    return document, processor.validate(document)


def validate_files(
    paths: list[str | Path], settings: Settings | str | Path | None = None, n_jobs: int | None = -1
) -> pd.DataFrame:
    """Validate many documents, one process per CPU.

    Each file gets its own processor and context, so the outcome of one file
    never depends on another.

    Args:
        paths: Documents to validate
        settings: Configuration, as for ``parse``
        n_jobs: Number of parallel jobs to run. -1 means using all processors.

    Returns:
        DataFrame with one row per path, in input order, and the columns
        ``path``, ``valid``, ``n_errors``, ``n_warnings`` and ``first_error``.
        Files that cannot be read or parsed are reported as invalid rows.

    Examples:
        summary = aecg.validate_files(sorted(Path("study").glob("*.xml")), n_jobs=4)
        print(summary[~summary["valid"]])
    """
    resolved = ConfigLoader.resolve(settings)
    n_files = len(paths)
    start = log_start("batch validation", f"{n_files} files")
    args_list = [(str(path), resolved) for path in paths]
    processes = _get_n_processes(n_jobs, n_files)

    if processes == 1:
        results = list(
            tqdm(
                (_validate_single_file(*args) for args in args_list),
                total=n_files,
                desc="Validating",
                unit="file",
                disable=n_files < 2,
            )
        )
    else:
        logger.info(f"Starting parallel processing with {processes} CPUs")
        with multiprocessing.Pool(processes=processes) as pool:
            results = list(
                tqdm(
                    pool.imap(_starmap_helper_validate, args_list),
                    total=n_files,
                    desc="Validating",
                    unit="file",
                )
            )
    summary = pd.DataFrame(results, columns=["path", "valid", "n_errors", "n_warnings", "first_error"])
    log_end("batch validation", start, f"{n_files - int(summary['valid'].sum())} of {n_files} invalid")
    return summary


def _validate_single_file(path: str, settings: Settings) -> dict[str, object]:
    processor = DocumentProcessor(settings)
    try:
        ctx = processor.validate(processor.parse_file(path))
    except (OSError, ParseError) as e:
        logger.warning(f"Could not read {path}: {e}")
        return {"path": path, "valid": False, "n_errors": 1, "n_warnings": 0, "first_error": str(e)}
    return {
        "path": path,
        "valid": not ctx.has_errors() and not ctx.canceled,
        "n_errors": len(ctx.errors),
        "n_warnings": len(ctx.warnings),
        "first_error": str(ctx.errors[0]) if ctx.errors else None,
    }


def _starmap_helper_validate(args: tuple[str, Settings]) -> dict[str, object]:
    return _validate_single_file(*args)


def _get_n_processes(n_jobs: int | None, n_tasks: int) -> int:
    """Get the number of processes to use for parallel processing.

    Args:
        n_jobs: Number of parallel jobs to run.
                - None or -1: Use all available CPUs
                - Positive int: Use exactly that many CPUs
                - Negative int (< -1): Use (total_cpus + n_jobs + 1) CPUs
        n_tasks: Number of tasks to process (used to cap the number of processes)

    Returns:
        Number of processes to use, capped by n_tasks and at least 1
    """
    if sys.version_info >= (3, 13):
        total_cpus = os.process_cpu_count()
    else:
        total_cpus = os.cpu_count()
    if total_cpus is None:
        logger.warning("Could not determine CPU count, defaulting to 1")
        total_cpus = 1

    if n_jobs is None or n_jobs == -1:
        n_processes = total_cpus
    elif n_jobs > 0:
        n_processes = n_jobs
    elif n_jobs < -1:
        # e.g. n_jobs=-2 leaves one CPU free
        n_processes = max(1, total_cpus + n_jobs + 1)
    else:
        logger.warning(f"Invalid n_jobs value: {n_jobs}, defaulting to 1")
        n_processes = 1

    n_processes = max(1, min(n_processes, n_tasks))
    logger.debug(f"Using {n_processes} processes for {n_tasks} tasks")
    return n_processes
