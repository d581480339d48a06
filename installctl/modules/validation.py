"""
Request validation.

Every rule is checked on every call and all violations are returned together,
so a client can correct a request in a single round trip. Nothing here touches
the store; patch validation is handed the stored record by the caller.
"""
from dataclasses import dataclass
from typing import List, Optional, Tuple

from installctl.modules.models import ClusterRecord, DesiredState
from installctl.modules.providers import get_provider, valid_providers
from installctl.modules.schemas import ClusterRequest, ProvisionerRequest

# "destroyed" is only reachable through a logical delete
VALID_DESIRED_STATES = [DesiredState.INSTALLED.value]


class Validator:
    """Collects error messages across any number of checks."""

    def __init__(self):
        self.errors: List[str] = []

    def add_error(self, *messages: str) -> None:
        self.errors.extend(messages)

    def check(self, result: Tuple[bool, List[str]]) -> None:
        ok, errors = result
        if not ok:
            self.add_error(*errors)

    def valid(self) -> Tuple[bool, List[str]]:
        if self.errors:
            return False, list(self.errors)
        return True, []


def validate_provisioner(provisioner: ProvisionerRequest) -> Tuple[bool, List[str]]:
    v = Validator()
    if not provisioner.provider:
        v.add_error("provisioner.provider cannot be empty")
        return v.valid()
    provider = get_provider(provisioner.provider)
    if provider is None:
        v.add_error(
            f"{provisioner.provider} is not a valid provisioner.provider, "
            f"options are: {valid_providers()}"
        )
        return v.valid()
    v.add_error(*provider.validate(provisioner.options))
    return v.valid()


def validate_create(request: ClusterRequest) -> Tuple[bool, List[str]]:
    """Check a create request. Returns ``(ok, errors)``."""
    v = Validator()
    if not request.name:
        v.add_error("name cannot be empty")
    if not request.desired_state:
        v.add_error("desiredState cannot be empty")
    elif request.desired_state not in VALID_DESIRED_STATES:
        v.add_error(
            f"{request.desired_state} is not a valid desiredState, "
            f"options are: {VALID_DESIRED_STATES}"
        )
    if request.etcd_count <= 0:
        v.add_error("cluster.etcdCount must be greater than 0")
    if request.master_count <= 0:
        v.add_error("cluster.masterCount must be greater than 0")
    if request.worker_count <= 0:
        v.add_error("cluster.workerCount must be greater than 0")
    if request.ingress_count < 0:
        v.add_error("cluster.ingressCount must be greater than or equal to 0")
    v.check(validate_provisioner(request.provisioner))
    return v.valid()


@dataclass
class ClusterPatch:
    """An update addressed to ``id`` together with the record currently stored."""
    id: str
    request: ClusterRequest
    in_store: ClusterRecord

    def validate(self) -> Tuple[bool, List[str]]:
        v = Validator()
        v.check(validate_create(self.request))
        if self.id != self.request.name:
            v.add_error(f"name '{self.request.name}' does not match the cluster being updated '{self.id}'")
        stored_name = self.in_store.plan.cluster.name
        if self.request.name != stored_name:
            v.add_error(f"name cannot be changed from '{stored_name}' to '{self.request.name}'")
        stored_etcd = self.in_store.plan.etcd.expected_count
        if self.request.etcd_count != stored_etcd:
            v.add_error(
                f"cluster.etcdCount cannot be changed from {stored_etcd} to {self.request.etcd_count}"
            )
        return v.valid()


def validate_patch(id: str, request: ClusterRequest, existing: Optional[ClusterRecord]) -> Tuple[bool, List[str]]:
    """Check an update of ``existing`` addressed as ``id``. Returns ``(ok, errors)``."""
    return ClusterPatch(id=id, request=request, in_store=existing or ClusterRecord()).validate()
