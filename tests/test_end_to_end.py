"""End-to-end tests: build, write, read back, reconstruct and validate a document."""

import os

import numpy as np
import pandas as pd
import pytest

import aecg
from aecg.config import Settings
from aecg.core import _get_n_processes
from aecg.document import ClinicalTrial, SubjectAssignment, TimepointEvent, TrialSubject


def test_build_write_read_validate(tmp_path):
    """A single lead sampled at 500 Hz survives a full write/read cycle."""
    root = "2.16.840.1.113883.3.1"
    series = aecg.build_series(
        "RHYTHM",
        "20021122091000.000",
        None,
        500,
        {"MDC_ECG_LEAD_II": [1, 2, 3, 4, 5]},
        scale=5.0,
        identifiers=aecg.DefaultIdentifierProvider(root),
    )
    series.control_variables.append(aecg.low_pass_filter(150))
    annotations = series.add_annotation_set("20021122091500")
    annotations.add_heart_rate(57)
    annotations.add_qt_interval(402)

    document = aecg.AnnotatedECG(
        id=aecg.Identifier(root=root, extension="ecg-001"),
        code=aecg.CodedValue(code="93000", code_system="2.16.840.1.113883.6.12"),
        effective_time=aecg.Interval.between("20021122091000.000", "20021122091000.010"),
        component_of=TimepointEvent(
            subject_assignment=SubjectAssignment(
                subject=TrialSubject(id=aecg.Identifier(root=root, extension="subject-42")),
                clinical_trial=ClinicalTrial(id=aecg.Identifier(root=root, extension="trial-7")),
            )
        ),
    )
    assert document.add_series(series) == 0

    path = aecg.write_file(document, tmp_path / "out" / "ecg.xml")
    assert path.exists()

    loaded, ctx = aecg.load_and_validate(path)
    assert ctx.errors == []
    assert ctx.warnings == []
    assert loaded == document

    frame = loaded.series[0].to_dataframe()
    expected_index = pd.DatetimeIndex(
        [
            "2002-11-22 09:10:00.000",
            "2002-11-22 09:10:00.002",
            "2002-11-22 09:10:00.004",
            "2002-11-22 09:10:00.006",
            "2002-11-22 09:10:00.008",
        ]
    )
    assert (frame.index == expected_index).all()
    np.testing.assert_allclose(frame["MDC_ECG_LEAD_II"].to_numpy(), [5, 10, 15, 20, 25])

    heart_rate = aecg.find_annotation_by_code(loaded.series[0].annotation_sets[0], "MDC_ECG_HEART_RATE")
    assert heart_rate.value_float() == 57.0


def test_processor_reuses_default_identifier(sample_xml):
    """Once set, the processor's default root outlives the document it came from."""
    processor = aecg.DocumentProcessor()
    first = processor.parse(sample_xml)
    assert processor.validate(first).errors == []
    assert processor.identifiers.root == "2.16.840.1.113883.3.1"

    second = processor.parse(sample_xml)
    second.id = aecg.Identifier(root="9.9.9", extension="ecg-002")
    second.component_of.subject_assignment.subject.id = None
    assert processor.validate(second).errors == []
    assert processor.identifiers.root == "2.16.840.1.113883.3.1"
    assert second.component_of.subject_assignment.subject.id.root == "2.16.840.1.113883.3.1"


def test_parse_file_and_reserialize(tmp_path, sample_xml):
    path = tmp_path / "sample.xml"
    path.write_bytes(sample_xml)

    document = aecg.parse_file(path)
    data = aecg.serialize(document)
    assert aecg.parse(data) == document
    assert aecg.validate(aecg.parse(data)).errors == []


@pytest.fixture
def study_dir(tmp_path, make_document):
    aecg.write_file(make_document(), tmp_path / "a_valid.xml")
    document = make_document()
    document.series[0].add_annotation_set("20021122")
    aecg.write_file(document, tmp_path / "b_imprecise.xml")
    (tmp_path / "c_broken.xml").write_bytes(b"<AnnotatedECG")
    return tmp_path


@pytest.mark.parametrize("n_jobs", [1, 2])
def test_validate_files(study_dir, n_jobs):
    paths = sorted(study_dir.glob("*.xml")) + [study_dir / "d_missing.xml"]
    summary = aecg.validate_files(paths, settings=Settings(validation={"strict_mode": True}), n_jobs=n_jobs)

    assert list(summary["path"]) == [str(path) for path in paths]
    assert list(summary["valid"]) == [True, False, False, False]
    assert list(summary["n_errors"]) == [0, 1, 1, 1]
    assert summary["first_error"].iloc[0] is None
    assert "malformed XML" in summary["first_error"].iloc[2]


def test_validate_files_lenient(study_dir):
    summary = aecg.validate_files([study_dir / "b_imprecise.xml"])
    assert summary["valid"].tolist() == [True]
    assert summary["n_warnings"].tolist() == [1]


@pytest.mark.parametrize(
    ("n_jobs", "n_tasks", "expected"),
    [
        (1, 10, 1),
        (0, 10, 1),
        (100, 5, 5),
        (-100, 10, 1),
        (4, 0, 1),
    ],
)
def test_get_n_processes(n_jobs, n_tasks, expected):
    assert _get_n_processes(n_jobs, n_tasks) == expected


def test_get_n_processes_all_cpus():
    total_cpus = os.cpu_count() or 1
    assert _get_n_processes(None, 10_000) == _get_n_processes(-1, 10_000)
    assert 1 <= _get_n_processes(-1, 10_000) <= total_cpus
    assert _get_n_processes(-2, 10_000) == max(1, _get_n_processes(-1, 10_000) - 1)
