"""Request and response bodies of the cluster API."""
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field

from installctl.modules.models import ClusterRecord


class ProvisionerRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    provider: str = ""
    options: Dict[str, Any] = Field(default_factory=dict)


class ClusterRequest(BaseModel):
    """Desired cluster state as submitted by an operator.

    Every field has a default so that missing fields surface as validation
    messages instead of decode failures.
    """
    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    desired_state: str = Field("", alias="desiredState")
    cluster_ip: str = Field("", alias="clusterIP")
    etcd_count: int = Field(0, alias="etcdCount")
    master_count: int = Field(0, alias="masterCount")
    worker_count: int = Field(0, alias="workerCount")
    ingress_count: int = Field(0, alias="ingressCount")
    provisioner: ProvisionerRequest = Field(default_factory=ProvisionerRequest)


class ProvisionerResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    provider: str = ""
    options: Dict[str, Any] = Field(default_factory=dict)


class ClusterResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    desired_state: str = Field(alias="desiredState")
    current_state: str = Field(alias="currentState")
    cluster_ip: str = Field("", alias="clusterIP")
    etcd_count: int = Field(alias="etcdCount")
    master_count: int = Field(alias="masterCount")
    worker_count: int = Field(alias="workerCount")
    ingress_count: int = Field(alias="ingressCount")
    provisioner: ProvisionerResponse

    @classmethod
    def from_record(cls, name: str, record: ClusterRecord) -> "ClusterResponse":
        # Only the plan's provisioner is echoed; credentials live elsewhere on the record.
        plan = record.plan
        return cls(
            name=name,
            desired_state=record.desired_state,
            current_state=record.current_state,
            cluster_ip=plan.master.load_balanced_fqdn,
            etcd_count=plan.etcd.expected_count,
            master_count=plan.master.expected_count,
            worker_count=plan.worker.expected_count,
            ingress_count=plan.ingress.expected_count,
            provisioner=ProvisionerResponse(
                provider=plan.provisioner.provider,
                options=dict(plan.provisioner.options),
            ),
        )


def format_responses(records: Dict[str, ClusterRecord]) -> List[Dict[str, Any]]:
    """Render a name → record mapping as a list of response bodies sorted by name."""
    return [
        ClusterResponse.from_record(name, records[name]).model_dump(by_alias=True)
        for name in sorted(records)
    ]
