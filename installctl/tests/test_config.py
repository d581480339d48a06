import pytest

from installctl.config import Config
from installctl.utils import redact_sensitive_data

def test_default_config_is_valid():
    Config.validate()

def test_unknown_backend_is_rejected(monkeypatch):
    monkeypatch.setattr(Config, "STORE_BACKEND", "etcd")
    with pytest.raises(ValueError, match="STORE_BACKEND"):
        Config.validate()

def test_watch_buffer_must_be_positive(monkeypatch):
    monkeypatch.setattr(Config, "WATCH_BUFFER_SIZE", 0)
    with pytest.raises(ValueError, match="WATCH_BUFFER_SIZE"):
        Config.validate()

def test_redact_credentials_in_requests():
    body = {
        "name": "foo",
        "provisioner": {"provider": "aws", "options": {"accessKeyID": "ID", "secretAccessKey": "S"}},
    }
    redacted = redact_sensitive_data(body)
    assert redacted["name"] == "foo"
    assert redacted["provisioner"]["provider"] == "aws"
    assert redacted["provisioner"]["options"] == {
        "accessKeyID": "[REDACTED]",
        "secretAccessKey": "[REDACTED]",
    }
