"""
Cluster operations behind the API.

Each method validates, consults the store, builds or merges the plan and
writes the record. Failures are raised as the typed errors in
``installctl.errors``; translating them to responses is the caller's job.
"""
import logging
import os
import tarfile
import tempfile
from typing import Callable, Dict, Optional

from installctl.config import Config
from installctl.errors import (
    BackendError,
    ConflictError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from installctl.modules.models import ClusterRecord, DesiredState
from installctl.modules.plan import build_record, merge_record
from installctl.modules.schemas import ClusterRequest
from installctl.modules.store import ClusterStore
from installctl.modules.validation import validate_create, validate_patch
from installctl.utils import redact_sensitive_data

logger = logging.getLogger("installctl.clusters")


class ClusterService:
    """Create, read, update and logically delete cluster records."""

    def __init__(self, store: ClusterStore, assets_dir: Optional[str] = None,
                 log_file_name: Optional[str] = None):
        self.store = store
        self.assets_dir = assets_dir or Config.ASSETS_DIR
        self.log_file_name = log_file_name or Config.LOG_FILE_NAME

    # Store access, with backend failures reported the same way everywhere

    def _get(self, name: str) -> Optional[ClusterRecord]:
        try:
            return self.store.get(name)
        except StoreError as e:
            raise BackendError(f"could not get from the store: {e}") from e

    def _get_existing(self, name: str) -> ClusterRecord:
        record = self._get(name)
        if record is None:
            raise NotFoundError(f"cluster '{name}' not found in the store")
        return record

    def _update(self, name: str, fn: Callable[[ClusterRecord], ClusterRecord]) -> ClusterRecord:
        try:
            return self.store.update(name, fn)
        except StoreError as e:
            raise BackendError(f"could not put to the store: {e}") from e
        except NotFoundError as e:
            raise NotFoundError(f"cluster '{name}' not found in the store") from e

    # Operations

    def create(self, request: ClusterRequest) -> ClusterRecord:
        """Validate and store a new cluster.

        The existence check and the write are separate store calls; the
        store's put-if-absent settles a race between two creates of one name.
        """
        logger.debug(f"Create request: {redact_sensitive_data(request.model_dump(by_alias=True))}")
        ok, errors = validate_create(request)
        if not ok:
            raise ValidationError(errors)
        if self._get(request.name) is not None:
            raise ConflictError(f"cluster '{request.name}' already exists")
        record = build_record(request)
        try:
            self.store.create(request.name, record)
        except StoreError as e:
            raise BackendError(f"could not put to the store: {e}") from e
        logger.info(f"Cluster {request.name} planned")
        return record

    def get(self, name: str) -> ClusterRecord:
        return self._get_existing(name)

    def list(self) -> Dict[str, ClusterRecord]:
        try:
            records = self.store.get_all()
        except StoreError as e:
            raise BackendError(f"could not get from the store: {e}") from e
        return records or {}

    def update(self, name: str, request: ClusterRequest) -> ClusterRecord:
        """Merge an update onto the stored cluster. Last write wins."""
        logger.debug(f"Update request for {name}: {redact_sensitive_data(request.model_dump(by_alias=True))}")

        def apply(existing: ClusterRecord) -> ClusterRecord:
            ok, errors = validate_patch(name, request, existing)
            if not ok:
                raise ValidationError(errors)
            return merge_record(existing, request)

        record = self._update(name, apply)
        logger.info(f"Cluster {name} updated to generation {record.generation}")
        return record

    def delete(self, name: str) -> ClusterRecord:
        """Mark a cluster for teardown. The record stays until the reconciler purges it."""

        def mark(record: ClusterRecord) -> ClusterRecord:
            record.desired_state = DesiredState.DESTROYED.value
            record.can_continue = True
            record.generation += 1
            return record

        record = self._update(name, mark)
        logger.info(f"Cluster {name} marked for deletion")
        return record

    # Generated files

    def cluster_dir(self, name: str) -> str:
        return os.path.join(self.assets_dir, name)

    def _require(self, name: str) -> None:
        self._get_existing(name)

    def kubeconfig_path(self, name: str) -> str:
        self._require(name)
        path = os.path.join(self.cluster_dir(name), "assets", "kubeconfig")
        if not os.path.isfile(path):
            raise BackendError(f"kubeconfig for cluster {name} could not be retrieved: {path} does not exist")
        return path

    def logs_path(self, name: str) -> str:
        self._require(name)
        path = os.path.join(self.cluster_dir(name), self.log_file_name)
        if not os.path.isfile(path):
            raise BackendError(f"logs for cluster {name} could not be retrieved: {path} does not exist")
        return path

    def assets_archive(self, name: str) -> str:
        """Tar and gzip the cluster's assets directory into a temporary file.

        The caller owns the returned file and must remove it.
        """
        self._require(name)
        assets = os.path.join(self.cluster_dir(name), "assets")
        if not os.path.isdir(assets):
            raise BackendError(f"assets for cluster {name} could not be retrieved: {assets} is not a directory")
        fd, archive = tempfile.mkstemp(prefix=f"{name}-", suffix="-assets.tar.gz")
        os.close(fd)
        try:
            with tarfile.open(archive, "w:gz") as tar:
                tar.add(assets, arcname="assets")
        except (OSError, tarfile.TarError) as e:
            os.remove(archive)
            raise BackendError(f"could not archive the assets for cluster {name}: {e}") from e
        return archive
