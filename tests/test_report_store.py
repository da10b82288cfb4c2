import errno
import json
import os
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from google.api_core.exceptions import ServiceUnavailable
from google.cloud import firestore

from src.career_analysis.models import UserProfile
from src.report_store import store as store_module
from src.report_store.store import (
    FirestoreReportStore,
    FirestoreSettings,
    LocalReportStore,
    ReportNotFoundError,
    ReportStoreConfig,
    ReportStoreError,
    build_report_store,
)


def test_create_and_get(local_store, profile, sample_analysis):
    """Tests that a created report reads back equal, with a timestamp."""
    report_id = local_store.create("user-1", profile, sample_analysis)
    report = local_store.get_for_owner(report_id, "user-1")

    assert report.id == report_id
    assert report.owner_id == "user-1"
    assert report.created_at is not None
    assert report.profile == profile
    assert report.analysis == sample_analysis


def test_document_is_flat_camel_case(local_store, profile, sample_analysis):
    """Tests the stored document layout."""
    report_id = local_store.create("user-1", profile, sample_analysis)
    with open(os.path.join(local_store.directory, f"{report_id}.json"), encoding="utf-8") as f:
        document = json.load(f)
    assert document["uid"] == "user-1"
    assert document["targetJob"] == "Data Scientist"
    assert document["jobPossibility"]["bangladesh"] == 55
    assert "createdAt" in document


def test_ids_are_unique(local_store, profile, sample_analysis):
    ids = {local_store.create("user-1", profile, sample_analysis) for _ in range(5)}
    assert len(ids) == 5


def test_list_reports_newest_first(tmp_path, profile, sample_analysis):
    """Tests that only the owner's reports are listed, newest first."""
    ticks = iter(datetime(2026, 10, 19, hour, tzinfo=timezone.utc) for hour in range(1, 10))
    local_store = LocalReportStore(str(tmp_path / "reports"), clock=lambda: next(ticks))
    first = local_store.create("user-1", profile, sample_analysis)
    local_store.create("user-2", profile, sample_analysis)
    second = local_store.create("user-1", profile.model_copy(update={"target_job": "Nurse"}), sample_analysis)

    reports = local_store.list_reports("user-1")

    assert [r.id for r in reports] == [second, first]
    assert reports[0].target_job == "Nurse"


def test_list_reports_empty(local_store):
    """Tests that an owner without reports gets an empty list."""
    assert local_store.list_reports("nobody") == []


def test_unauthorized_is_not_found(local_store, profile, sample_analysis):
    """Tests that another user's report is reported exactly like a missing one."""
    report_id = local_store.create("owner", profile, sample_analysis)

    with pytest.raises(ReportNotFoundError) as foreign:
        local_store.get_for_owner(report_id, "intruder")
    with pytest.raises(ReportNotFoundError) as missing:
        local_store.get_for_owner("0" * 32, "intruder")

    assert type(foreign.value) is type(missing.value)
    assert "Data Scientist" not in str(foreign.value)


@pytest.mark.parametrize("report_id", ["", "../secrets", "a/b"])
def test_get_rejects_non_id_values(local_store, report_id):
    with pytest.raises(ReportNotFoundError):
        local_store.get(report_id)


def test_corrupt_report_file(local_store):
    with open(os.path.join(local_store.directory, "deadbeef.json"), "w", encoding="utf-8") as f:
        f.write("{not json")
    with pytest.raises(ReportStoreError):
        local_store.get("deadbeef")


def test_list_reports_ignores_foreign_files(local_store, profile, sample_analysis):
    """Tests that files not named by a report id never break listing."""
    report_id = local_store.create("user-1", profile, sample_analysis)
    for name in ("backup-copy.json", "notes.txt", ".tmp-abc.partial"):
        with open(os.path.join(local_store.directory, name), "w", encoding="utf-8") as f:
            f.write("{}")

    assert [r.id for r in local_store.list_reports("user-1")] == [report_id]


def test_failed_write_leaves_no_file(local_store, profile, sample_analysis, monkeypatch):
    """Tests that a write failing midway persists nothing."""

    def _fail_midway(document, f, **kwargs):
        f.write('{"uid": "user-1", "targ')
        raise OSError(errno.ENOSPC, "No space left on device")

    monkeypatch.setattr(store_module.json, "dump", _fail_midway)

    with pytest.raises(ReportStoreError):
        local_store.create("user-1", profile, sample_analysis)

    assert os.listdir(local_store.directory) == []


def test_end_to_end_scenario(make_requester, local_store, sample_payload):
    """Tests profile -> analysis -> persistence -> read back by the owner."""
    profile = UserProfile.model_validate(
        {
            "targetJob": "Data Scientist",
            "location": ["Bangladesh"],
            "education": "Honours",
            "skills": "Python, SQL",
            "experience": 2,
        }
    )
    analysis = make_requester(f"```json\n{json.dumps(sample_payload)}\n```").generate_analysis(profile)
    assert analysis.job_possibility.total == 100

    report_id = local_store.create("uid-42", profile, analysis)
    report = local_store.get_for_owner(report_id, "uid-42")

    assert report.profile == profile
    assert report.analysis == analysis
    assert report.created_at is not None


def test_build_report_store(tmp_path):
    config = ReportStoreConfig(backend="local", local_settings={"directory": str(tmp_path / "r")})
    store = build_report_store(config)
    assert isinstance(store, LocalReportStore)
    assert os.path.isdir(tmp_path / "r")

    with pytest.raises(ValueError, match="Invalid report store backend"):
        build_report_store(ReportStoreConfig(backend="mongo"))


# =============================================================================
# Firestore backend (client mocked)
# =============================================================================
@pytest.fixture
def firestore_client():
    return MagicMock()


@pytest.fixture
def firestore_store(firestore_client):
    return FirestoreReportStore(FirestoreSettings(collection="careerReports"), client=firestore_client)


def _snapshot(doc_id, document, exists=True):
    snap = MagicMock()
    snap.id = doc_id
    snap.exists = exists
    snap.to_dict.return_value = document
    return snap


def test_firestore_create(firestore_store, firestore_client, profile, sample_analysis):
    collection = firestore_client.collection.return_value
    doc_ref = MagicMock()
    doc_ref.id = "doc-1"
    collection.add.return_value = (None, doc_ref)

    assert firestore_store.create("user-1", profile, sample_analysis) == "doc-1"

    firestore_client.collection.assert_called_with("careerReports")
    document = collection.add.call_args[0][0]
    assert document["uid"] == "user-1"
    assert document["createdAt"] is firestore.SERVER_TIMESTAMP
    assert document["riskForecast"]["level"] == "Low"


def test_firestore_create_failure(firestore_store, firestore_client, profile, sample_analysis):
    firestore_client.collection.return_value.add.side_effect = ServiceUnavailable("down")
    with pytest.raises(ReportStoreError):
        firestore_store.create("user-1", profile, sample_analysis)


def test_firestore_get_and_ownership(firestore_store, firestore_client, profile, sample_analysis):
    document = {
        **profile.to_document(),
        **sample_analysis.to_document(),
        "uid": "user-1",
        "createdAt": datetime(2026, 10, 19, tzinfo=timezone.utc),
    }
    firestore_client.collection.return_value.document.return_value.get.return_value = _snapshot(
        "doc-1", document
    )

    report = firestore_store.get_for_owner("doc-1", "user-1")
    assert report.id == "doc-1"
    assert report.analysis == sample_analysis
    with pytest.raises(ReportNotFoundError):
        firestore_store.get_for_owner("doc-1", "user-2")


def test_firestore_get_missing(firestore_store, firestore_client):
    firestore_client.collection.return_value.document.return_value.get.return_value = _snapshot(
        "nope", None, exists=False
    )
    with pytest.raises(ReportNotFoundError):
        firestore_store.get("nope")


def test_firestore_list_query(firestore_store, firestore_client):
    collection = firestore_client.collection.return_value
    query = collection.where.return_value.order_by.return_value
    query.stream.return_value = iter([])

    assert firestore_store.list_reports("user-1") == []

    field_filter = collection.where.call_args.kwargs["filter"]
    assert field_filter.field_path == "uid"
    assert field_filter.value == "user-1"
    collection.where.return_value.order_by.assert_called_with(
        "createdAt", direction=firestore.Query.DESCENDING
    )


def test_firestore_list_failure(firestore_store, firestore_client):
    query = firestore_client.collection.return_value.where.return_value.order_by.return_value
    query.stream.side_effect = ServiceUnavailable("down")
    with pytest.raises(ReportStoreError):
        firestore_store.list_reports("user-1")
