from types import SimpleNamespace

import yaml
from typer.testing import CliRunner

from conftest import cluster_body, stored_record
from installctl.cli import app
from installctl.commands import cluster as cluster_cmd
from installctl.modules.store import FileStore

runner = CliRunner()


def fake_response(status_code, body=None, text=""):
    return SimpleNamespace(
        status_code=status_code,
        json=lambda: body,
        text=text,
        content=text.encode(),
    )


def write_cluster_file(tmp_path, **overrides):
    path = tmp_path / "cluster.yaml"
    path.write_text(yaml.safe_dump(cluster_body(**overrides)))
    return path


def test_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "cluster" in result.stdout
    assert "store" in result.stdout
    assert "serve" in result.stdout


def test_cluster_commands_exist():
    result = runner.invoke(app, ["cluster", "--help"])
    assert result.exit_code == 0
    for command in ("create", "get", "list", "update", "delete", "kubeconfig", "logs", "assets"):
        assert command in result.stdout


def test_create_posts_cluster_file(monkeypatch, tmp_path):
    calls = []

    def request(method, url, **kwargs):
        calls.append((method, url, kwargs))
        return fake_response(202, text="ok\n")

    monkeypatch.setattr(cluster_cmd.requests, "request", request)
    path = write_cluster_file(tmp_path)

    result = runner.invoke(app, ["cluster", "create", "-f", str(path), "--server", "http://api:8080"])

    assert result.exit_code == 0
    assert "accepted" in result.stdout
    method, url, kwargs = calls[0]
    assert method == "POST"
    assert url == "http://api:8080/clusters"
    assert kwargs["json"]["workerCount"] == 5


def test_create_reports_validation_errors(monkeypatch, tmp_path):
    monkeypatch.setattr(cluster_cmd.requests, "request",
                        lambda method, url, **kwargs: fake_response(400, ["name cannot be empty"]))
    path = write_cluster_file(tmp_path)
    result = runner.invoke(app, ["cluster", "create", "-f", str(path)])
    assert result.exit_code == 1


def test_create_rejects_malformed_file(monkeypatch, tmp_path):
    def request(method, url, **kwargs):
        raise AssertionError("nothing should be sent")

    monkeypatch.setattr(cluster_cmd.requests, "request", request)
    path = tmp_path / "cluster.yaml"
    path.write_text(yaml.safe_dump({"name": "foo", "etcdCount": "three"}))
    result = runner.invoke(app, ["cluster", "create", "-f", str(path)])
    assert result.exit_code == 1


def test_list_json(monkeypatch):
    clusters = [{"name": "foo", "desiredState": "installed"}]
    monkeypatch.setattr(cluster_cmd.requests, "request",
                        lambda method, url, **kwargs: fake_response(200, clusters))
    result = runner.invoke(app, ["cluster", "list", "-o", "json"])
    assert result.exit_code == 0
    assert '"foo"' in result.stdout


def test_get_not_found(monkeypatch):
    monkeypatch.setattr(cluster_cmd.requests, "request",
                        lambda method, url, **kwargs: fake_response(404))
    result = runner.invoke(app, ["cluster", "get", "foo"])
    assert result.exit_code == 1


def test_store_list_and_purge(tmp_path):
    path = str(tmp_path / "store.json")
    record = stored_record()
    record.desired_state = "destroyed"
    FileStore(path).put("foo", record)

    result = runner.invoke(app, ["store", "list", "--backend", "file", "--path", path])
    assert result.exit_code == 0
    assert "foo" in result.stdout

    result = runner.invoke(app, ["store", "purge", "foo", "--backend", "file", "--path", path])
    assert result.exit_code == 0
    assert FileStore(path).get("foo") is None

    result = runner.invoke(app, ["store", "purge", "foo", "--backend", "file", "--path", path])
    assert result.exit_code == 1


def test_debug_flag(tmp_path):
    path = str(tmp_path / "store.json")
    result = runner.invoke(app, ["--debug", "store", "list", "--backend", "file", "--path", path])
    assert result.exit_code == 0
    assert "No clusters" in result.stdout
