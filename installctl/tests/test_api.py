import io
import tarfile

from fastapi.testclient import TestClient

from conftest import cluster_body
from installctl.api.main import create_app
from installctl.errors import StoreError
from installctl.modules.store import MemoryStore


def test_create_update_get_getall_and_delete(client, store):
    resp = client.post("/clusters", json=cluster_body())
    assert resp.status_code == 202
    assert resp.text == "ok\n"

    resp = client.put("/clusters/foo", json=cluster_body(workerCount=6))
    assert resp.status_code == 202
    body = resp.json()
    assert body["currentState"] == "planned"
    assert body["workerCount"] == 6

    assert client.get("/clusters/bar").status_code == 404

    resp = client.get("/clusters/foo")
    assert resp.status_code == 200
    assert resp.json()["name"] == "foo"

    resp = client.get("/clusters")
    assert resp.status_code == 200
    assert len(resp.json()) == 1

    resp = client.delete("/clusters/foo")
    assert resp.status_code == 202
    assert resp.text == "ok\n"

    resp = client.get("/clusters")
    assert resp.status_code == 200
    clusters = resp.json()
    assert len(clusters) == 1
    assert clusters[0]["desiredState"] == "destroyed"

    record = store.get("foo")
    assert record.can_continue is True
    assert record.generation == 3


def test_create_round_trip_counts(client):
    client.post("/clusters", json=cluster_body(etcdCount=3, masterCount=2, workerCount=5, ingressCount=2))
    body = client.get("/clusters/foo").json()
    assert body["etcdCount"] == 3
    assert body["masterCount"] == 2
    assert body["workerCount"] == 5
    assert body["ingressCount"] == 2
    assert body["desiredState"] == "installed"
    assert body["currentState"] == "planned"
    assert body["provisioner"]["provider"] == "aws"


def test_get_all_empty(client):
    resp = client.get("/clusters")
    assert resp.status_code == 200
    assert resp.json() == []


def test_create_validation_errors(client):
    resp = client.post("/clusters", json=cluster_body(name="", etcdCount=0))
    assert resp.status_code == 400
    errors = resp.json()
    assert "name cannot be empty" in errors
    assert "cluster.etcdCount must be greater than 0" in errors


def test_create_undecodable_body(client):
    resp = client.post("/clusters", content=b"{not json", headers={"Content-Type": "application/json"})
    assert resp.status_code == 400
    assert resp.text.startswith("could not decode body")

    resp = client.post("/clusters", json=cluster_body(etcdCount="three"))
    assert resp.status_code == 400


def test_create_duplicate(client):
    assert client.post("/clusters", json=cluster_body()).status_code == 202
    assert client.post("/clusters", json=cluster_body()).status_code == 409


def test_update_errors(client):
    assert client.put("/clusters/foo", json=cluster_body()).status_code == 404
    client.post("/clusters", json=cluster_body())

    resp = client.put("/clusters/foo", json=cluster_body(etcdCount=5))
    assert resp.status_code == 400
    assert resp.json() == ["cluster.etcdCount cannot be changed from 3 to 5"]

    resp = client.put("/clusters/foo", json=cluster_body(name="bar"))
    assert resp.status_code == 400


def test_update_preserves_assigned_address(client, store):
    client.post("/clusters", json=cluster_body())
    record = store.get("foo")
    record.plan.master.load_balanced_fqdn = "10.0.0.10"
    store.put("foo", record)

    resp = client.put("/clusters/foo", json=cluster_body(masterCount=3))
    assert resp.status_code == 202
    assert resp.json()["clusterIP"] == "10.0.0.10"
    assert resp.json()["masterCount"] == 3


def test_delete_unknown(client):
    assert client.delete("/clusters/foo").status_code == 404


def test_responses_never_echo_credentials(client):
    body = cluster_body(provisioner={"provider": "aws", "options": {
        "accessKeyID": "ACCESS_ID", "secretAccessKey": "SECRET", "region": "us-east-1"}})
    client.post("/clusters", json=body)

    for resp in (
        client.get("/clusters/foo"),
        client.get("/clusters"),
        client.put("/clusters/foo", json=body),
    ):
        assert "ACCESS_ID" not in resp.text
        assert "SECRET" not in resp.text
    assert client.get("/clusters/foo").json()["provisioner"] == {
        "provider": "aws",
        "options": {"region": "us-east-1"},
    }


def test_get_kubeconfig(client, store):
    client.post("/clusters", json=cluster_body(name="foo"))
    client.post("/clusters", json=cluster_body(name="foobar"))

    resp = client.get("/clusters/foo/kubeconfig")
    assert resp.status_code == 200
    assert resp.text.strip() == "kubeconfig"
    assert "attachment" in resp.headers["content-disposition"]
    assert "config" in resp.headers["content-disposition"]

    assert client.get("/clusters/bar/kubeconfig").status_code == 404
    # in the store but nothing generated yet
    assert client.get("/clusters/foobar/kubeconfig").status_code == 500


def test_get_logs(client):
    client.post("/clusters", json=cluster_body(name="foo"))
    client.post("/clusters", json=cluster_body(name="foobar"))

    resp = client.get("/clusters/foo/logs")
    assert resp.status_code == 200
    assert resp.text.strip() == "logs"

    assert client.get("/clusters/bar/logs").status_code == 404
    assert client.get("/clusters/foobar/logs").status_code == 500


def test_get_assets(client):
    client.post("/clusters", json=cluster_body(name="foo"))
    client.post("/clusters", json=cluster_body(name="foobar"))

    resp = client.get("/clusters/foo/assets")
    assert resp.status_code == 200
    assert "foo-assets.tar.gz" in resp.headers["content-disposition"]
    with tarfile.open(fileobj=io.BytesIO(resp.content), mode="r:gz") as tar:
        assert "assets/kubeconfig" in tar.getnames()

    assert client.get("/clusters/bar/assets").status_code == 404
    assert client.get("/clusters/foobar/assets").status_code == 500


class BrokenStore(MemoryStore):
    def _load(self, name):
        raise StoreError("disk on fire")

    def _load_all(self):
        raise StoreError("disk on fire")


def test_backend_failures_are_opaque(assets_dir):
    client = TestClient(create_app(store=BrokenStore(), assets_dir=str(assets_dir), api_key=""))
    for resp in (
        client.get("/clusters"),
        client.get("/clusters/foo"),
        client.post("/clusters", json=cluster_body()),
        client.delete("/clusters/foo"),
        client.get("/clusters/foo/kubeconfig"),
    ):
        assert resp.status_code == 500
        assert "disk on fire" not in resp.text


def test_api_key_required_when_configured(store, assets_dir):
    client = TestClient(create_app(store=store, assets_dir=str(assets_dir), api_key="s3cret"))
    assert client.get("/clusters").status_code == 403
    assert client.get("/clusters", headers={"X-API-Key": "wrong"}).status_code == 403
    assert client.get("/clusters", headers={"X-API-Key": "s3cret"}).status_code == 200
    assert client.get("/openapi.json").status_code == 200
