"""
This module is the gateway to the career report document store.

It defines the `ReportStore` interface and two backends:

1.  **FirestoreReportStore**: The hosted backend. Reports live in one
    Firestore collection, carry the owner's id in `uid`, and get a
    server-side `createdAt` timestamp.
2.  **LocalReportStore**: A development backend writing one JSON file per
    report below a directory, suitable for local runs and tests.

Reports are immutable: the gateway only creates and reads them. Reads by id
check ownership, and a report owned by someone else is reported exactly like
a missing one so that its existence is never leaked.
"""

import json
import logging
import os
import tempfile
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from google.api_core.exceptions import GoogleAPICallError
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from pydantic import BaseModel, Field, ValidationError

from .. import constants
from ..career_analysis.models import CareerAnalysis, CareerReport, UserProfile

logger = logging.getLogger(__name__)

LOAD_FAILED_MESSAGE = "Failed to load career reports."
SAVE_FAILED_MESSAGE = "Failed to save career report."

OWNER_FIELD = "uid"
CREATED_AT_FIELD = "createdAt"


# =============================================================================
# EXCEPTIONS
# =============================================================================
class ReportStoreError(Exception):
    """Raised when the document store cannot be read or written."""


class ReportNotFoundError(ReportStoreError):
    """Raised when a report does not exist or is not owned by the caller."""

    def __init__(self, report_id: str):
        super().__init__(f"Career report '{report_id}' not found.")
        self.report_id = report_id


# =============================================================================
# CONFIGURATION MODELS (Pydantic)
# =============================================================================
class LocalStoreSettings(BaseModel):
    """Settings for the JSON-file backend."""

    directory: str = Field(
        default=constants.LOCAL_REPORTS_DIR,
        description="Directory holding one JSON file per report.",
    )

    @property
    def directory_resolved(self) -> str:
        """Returns the directory as an absolute path."""
        return os.path.join(constants.PROJECT_ROOT, self.directory)


class FirestoreSettings(BaseModel):
    """Settings for the Google Cloud Firestore backend."""

    project_id: Optional[str] = Field(
        default=None,
        description="GCP project id. Inferred from the environment when unset.",
    )
    collection: str = Field(default=constants.REPORTS_COLLECTION)


class ReportStoreConfig(BaseModel):
    """Selects and configures the report store backend."""

    backend: str = Field(
        default="local", description="The backend to use ('local' or 'firestore')."
    )
    local_settings: LocalStoreSettings = Field(default_factory=LocalStoreSettings)
    firestore_settings: FirestoreSettings = Field(default_factory=FirestoreSettings)


# =============================================================================
# STORE INTERFACE
# =============================================================================
def build_document(
    owner_id: str, profile: UserProfile, analysis: CareerAnalysis
) -> Dict[str, Any]:
    """Flattens a profile and its analysis into one camelCase document."""
    document = profile.to_document()
    document.update(analysis.to_document())
    document[OWNER_FIELD] = owner_id
    return document


class ReportStore:
    """Base class for career report backends."""

    def create(
        self, owner_id: str, profile: UserProfile, analysis: CareerAnalysis
    ) -> str:
        """
        Persists a new report and returns its store-assigned id.

        Raises:
            ReportStoreError: If the report could not be written.
        """
        raise NotImplementedError

    def list_reports(self, owner_id: str) -> List[CareerReport]:
        """
        Returns all reports of an owner, newest first.

        Raises:
            ReportStoreError: If the reports could not be read.
        """
        raise NotImplementedError

    def get(self, report_id: str) -> CareerReport:
        """
        Returns one report by id.

        Raises:
            ReportNotFoundError: If no report has this id.
            ReportStoreError: If the report could not be read.
        """
        raise NotImplementedError

    def get_for_owner(self, report_id: str, owner_id: str) -> CareerReport:
        """
        Returns one report by id if it belongs to `owner_id`.

        A report owned by another user raises the same `ReportNotFoundError`
        as a missing one.
        """
        report = self.get(report_id)
        if report.owner_id != owner_id:
            logger.warning(
                f"User '{owner_id}' requested report '{report_id}' owned by another user."
            )
            raise ReportNotFoundError(report_id)
        return report

    @staticmethod
    def _to_report(report_id: str, document: Dict[str, Any]) -> CareerReport:
        try:
            return CareerReport.model_validate({**document, "id": report_id})
        except ValidationError as e:
            logger.error(f"Stored report '{report_id}' is malformed:\n{e}")
            raise ReportStoreError(LOAD_FAILED_MESSAGE) from e


# =============================================================================
# FIRESTORE BACKEND
# =============================================================================
class FirestoreReportStore(ReportStore):
    """Career reports stored in a Google Cloud Firestore collection."""

    def __init__(
        self,
        settings: FirestoreSettings,
        client: Optional[firestore.Client] = None,
    ):
        self.settings = settings
        self._client = client or firestore.Client(project=settings.project_id)
        self._collection = self._client.collection(settings.collection)

    def create(
        self, owner_id: str, profile: UserProfile, analysis: CareerAnalysis
    ) -> str:
        document = build_document(owner_id, profile, analysis)
        document[CREATED_AT_FIELD] = firestore.SERVER_TIMESTAMP
        try:
            _, doc_ref = self._collection.add(document)
        except GoogleAPICallError as e:
            logger.error(f"Error writing report to Firestore: {e}")
            raise ReportStoreError(SAVE_FAILED_MESSAGE) from e
        logger.info(f"Saved career report '{doc_ref.id}' for user '{owner_id}'")
        return doc_ref.id

    def list_reports(self, owner_id: str) -> List[CareerReport]:
        query = self._collection.where(
            filter=FieldFilter(OWNER_FIELD, "==", owner_id)
        ).order_by(CREATED_AT_FIELD, direction=firestore.Query.DESCENDING)
        try:
            snapshots = list(query.stream())
        except GoogleAPICallError as e:
            logger.error(f"Error querying reports for user '{owner_id}': {e}")
            raise ReportStoreError(LOAD_FAILED_MESSAGE) from e
        return [self._to_report(snap.id, snap.to_dict()) for snap in snapshots]

    def get(self, report_id: str) -> CareerReport:
        try:
            snapshot = self._collection.document(report_id).get()
        except GoogleAPICallError as e:
            logger.error(f"Error reading report '{report_id}': {e}")
            raise ReportStoreError(LOAD_FAILED_MESSAGE) from e
        if not snapshot.exists:
            raise ReportNotFoundError(report_id)
        return self._to_report(snapshot.id, snapshot.to_dict())


# =============================================================================
# LOCAL JSON BACKEND
# =============================================================================
class LocalReportStore(ReportStore):
    """
    Career reports stored as JSON files, one per report.

    A report file appears only once fully written, and never replaces an
    existing one. Files whose names are not report ids are ignored.
    """

    def __init__(
        self,
        directory: str,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.directory = directory
        self._clock = clock
        os.makedirs(self.directory, exist_ok=True)

    def _path_for(self, report_id: str) -> Optional[str]:
        # Ids are hex UUIDs; anything else cannot name a report file.
        if not report_id or not report_id.isalnum():
            return None
        return os.path.join(self.directory, f"{report_id}.json")

    def create(
        self, owner_id: str, profile: UserProfile, analysis: CareerAnalysis
    ) -> str:
        report_id = uuid.uuid4().hex
        document = build_document(owner_id, profile, analysis)
        document[CREATED_AT_FIELD] = self._clock().isoformat()
        # The report is written to a temporary file and linked into place
        # only once complete; the link fails if the target already exists.
        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.directory,
                prefix=".tmp-",
                suffix=".partial",
                delete=False,
            ) as f:
                tmp_path = f.name
                json.dump(document, f, indent=2, ensure_ascii=False)
            os.link(tmp_path, self._path_for(report_id))
        except OSError as e:
            logger.error(f"Error writing report file for '{report_id}': {e}")
            raise ReportStoreError(SAVE_FAILED_MESSAGE) from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
        logger.info(f"Saved career report '{report_id}' for user '{owner_id}'")
        return report_id

    def _read(self, report_id: str) -> Dict[str, Any]:
        path = self._path_for(report_id)
        if path is None or not os.path.isfile(path):
            raise ReportNotFoundError(report_id)
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error reading report file '{path}': {e}")
            raise ReportStoreError(LOAD_FAILED_MESSAGE) from e

    def list_reports(self, owner_id: str) -> List[CareerReport]:
        reports = []
        for filename in os.listdir(self.directory):
            report_id, ext = os.path.splitext(filename)
            if ext != ".json" or self._path_for(report_id) is None:
                continue
            document = self._read(report_id)
            if document.get(OWNER_FIELD) == owner_id:
                reports.append(self._to_report(report_id, document))
        reports.sort(key=lambda r: r.created_at, reverse=True)
        return reports

    def get(self, report_id: str) -> CareerReport:
        return self._to_report(report_id, self._read(report_id))


def build_report_store(config: ReportStoreConfig) -> ReportStore:
    """
    Creates the report store selected in the configuration.

    Raises:
        ValueError: If the configured backend is unknown.
    """
    backend = config.backend.lower()
    if backend == "local":
        directory = config.local_settings.directory_resolved
        logger.info(f"Using local report store at: {directory}")
        return LocalReportStore(directory)
    elif backend == "firestore":
        logger.info(
            f"Using Firestore report store, collection '{config.firestore_settings.collection}'"
        )
        return FirestoreReportStore(config.firestore_settings)
    else:
        raise ValueError(f"Invalid report store backend in config: '{config.backend}'")
