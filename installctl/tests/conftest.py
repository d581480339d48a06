import pytest
from fastapi.testclient import TestClient

from installctl.api.main import create_app
from installctl.modules.models import (
    ClusterInfo,
    ClusterRecord,
    MasterNodeGroup,
    NodeGroup,
    Plan,
)
from installctl.modules.schemas import ClusterRequest
from installctl.modules.store import MemoryStore


def cluster_body(**overrides):
    body = {
        "name": "foo",
        "desiredState": "installed",
        "provisioner": {
            "provider": "aws",
            "options": {
                "accessKeyID": "ACCESS_ID",
                "secretAccessKey": "SECRET",
            },
        },
        "etcdCount": 3,
        "masterCount": 2,
        "workerCount": 5,
        "ingressCount": 2,
    }
    body.update(overrides)
    return body


def cluster_request(**overrides) -> ClusterRequest:
    return ClusterRequest.model_validate(cluster_body(**overrides))


def stored_record(name="foo", etcd=3, master=2, worker=5, ingress=2) -> ClusterRecord:
    return ClusterRecord(
        name=name,
        plan=Plan(
            cluster=ClusterInfo(name=name),
            etcd=NodeGroup(expected_count=etcd),
            master=MasterNodeGroup(expected_count=master),
            worker=NodeGroup(expected_count=worker),
            ingress=NodeGroup(expected_count=ingress),
        ),
    )


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def assets_dir(tmp_path):
    """Assets for cluster 'foo' only."""
    root = tmp_path / "assets"
    generated = root / "foo" / "assets"
    generated.mkdir(parents=True)
    (generated / "kubeconfig").write_text("kubeconfig")
    (root / "foo" / "installctl.log").write_text("logs")
    return root


@pytest.fixture
def client(store, assets_dir):
    app = create_app(store=store, assets_dir=str(assets_dir), api_key="")
    return TestClient(app)
