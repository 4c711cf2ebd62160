from __future__ import annotations

import types

import pytest
import requests

from mantle_forge.client import AgentServiceClient, encode_path_segment
from mantle_forge.errors import AgentNotFoundError, TransportError

BRANCH_HASH = "0x" + "ab" * 32


def _response(status_code: int, body: object = None, *, invalid_json: bool = False):
    def _json():
        if invalid_json:
            raise ValueError("no json")
        return body

    return types.SimpleNamespace(status_code=status_code, json=_json, text=str(body))


def _capture(monkeypatch, client: AgentServiceClient, response) -> dict[str, object]:
    captured: dict[str, object] = {}

    def fake_request(method, url, *, json=None, timeout=None):  # noqa: ANN001
        captured["method"] = method
        captured["url"] = url
        captured["json"] = json
        captured["timeout"] = timeout
        return response

    monkeypatch.setattr(client._session, "request", fake_request)
    return captured


def test_get_stats_uses_expected_path(monkeypatch) -> None:
    client = AgentServiceClient(base_url="http://localhost:3000/", timeout=0.1)
    captured = _capture(monkeypatch, client, _response(200, {"stats": {"total_decisions": 1}}))

    result = client.get_stats(BRANCH_HASH)

    assert result == {"stats": {"total_decisions": 1}}
    assert captured["method"] == "GET"
    assert captured["url"] == f"http://localhost:3000/api/stats/{BRANCH_HASH}"
    assert captured["timeout"] == 0.1


def test_check_secrets_uses_expected_path(monkeypatch) -> None:
    client = AgentServiceClient(base_url="http://localhost:3000", timeout=0.1)
    captured = _capture(monkeypatch, client, _response(200, {"all_required_set": True}))

    client.check_secrets(BRANCH_HASH)

    assert captured["url"] == f"http://localhost:3000/api/secrets/check/{BRANCH_HASH}"


def test_set_secret_posts_repo_and_branch(monkeypatch) -> None:
    client = AgentServiceClient(base_url="http://localhost:3000", timeout=0.1)
    captured = _capture(monkeypatch, client, _response(200, {"success": True}))

    client.set_secret(
        repo_url="https://github.com/u/r.git",
        branch_name="dev",
        key="API_KEY",
        value="a=b",
    )

    assert captured["method"] == "POST"
    assert captured["url"] == "http://localhost:3000/api/secrets"
    assert captured["json"] == {
        "repo_url": "https://github.com/u/r.git",
        "branch_name": "dev",
        "key": "API_KEY",
        "value": "a=b",
    }


def test_get_logs_percent_encodes_repo_and_branch(monkeypatch) -> None:
    client = AgentServiceClient(base_url="http://localhost:3000", timeout=0.1)
    captured = _capture(monkeypatch, client, _response(200, {"logs": []}))

    client.get_logs("https://github.com/u/r.git", "feature/x")

    assert captured["url"] == (
        "http://localhost:3000/api/logs/https%3A%2F%2Fgithub.com%2Fu%2Fr.git/feature%2Fx"
    )


def test_encode_path_segment_matches_uri_component_rules() -> None:
    assert encode_path_segment("a b/c?d") == "a%20b%2Fc%3Fd"
    assert encode_path_segment("it's-(ok)!*~_.") == "it's-(ok)!*~_."


def test_restart_posts_to_agent_path(monkeypatch) -> None:
    client = AgentServiceClient(base_url="http://localhost:3000", timeout=0.1)
    captured = _capture(monkeypatch, client, _response(200, {"success": True, "agent": {}}))

    client.restart_agent(BRANCH_HASH)

    assert captured["method"] == "POST"
    assert captured["url"] == f"http://localhost:3000/api/agents/branch/{BRANCH_HASH}/restart"


def test_404_maps_to_agent_not_found(monkeypatch) -> None:
    client = AgentServiceClient(base_url="http://localhost:3000", timeout=0.1)
    _capture(monkeypatch, client, _response(404, {"error": "Agent not found"}))

    with pytest.raises(AgentNotFoundError) as exc_info:
        client.get_stats(BRANCH_HASH)

    assert exc_info.value.status_code == 404
    assert str(exc_info.value) == "Agent not found"


def test_server_error_maps_to_transport_with_body_message(monkeypatch) -> None:
    client = AgentServiceClient(base_url="http://localhost:3000", timeout=0.1)
    _capture(monkeypatch, client, _response(500, {"error": "database offline"}))

    with pytest.raises(TransportError) as exc_info:
        client.check_secrets(BRANCH_HASH)

    assert not isinstance(exc_info.value, AgentNotFoundError)
    assert exc_info.value.status_code == 500
    assert str(exc_info.value) == "database offline"


def test_error_without_body_message_uses_status(monkeypatch) -> None:
    client = AgentServiceClient(base_url="http://localhost:3000", timeout=0.1)
    _capture(monkeypatch, client, _response(502, invalid_json=True))

    with pytest.raises(TransportError, match="502"):
        client.get_stats(BRANCH_HASH)


def test_non_json_success_is_transport_error(monkeypatch) -> None:
    client = AgentServiceClient(base_url="http://localhost:3000", timeout=0.1)
    _capture(monkeypatch, client, _response(200, invalid_json=True))

    with pytest.raises(TransportError, match="non-JSON"):
        client.get_stats(BRANCH_HASH)


def test_non_object_success_is_transport_error(monkeypatch) -> None:
    client = AgentServiceClient(base_url="http://localhost:3000", timeout=0.1)
    _capture(monkeypatch, client, _response(200, ["not", "an", "object"]))

    with pytest.raises(TransportError, match="unexpected response shape"):
        client.get_logs("https://github.com/u/r.git", "dev")


def test_network_failure_is_transport_error(monkeypatch) -> None:
    client = AgentServiceClient(base_url="http://localhost:3000", timeout=0.1)

    def fake_request(method, url, *, json=None, timeout=None):  # noqa: ANN001, ARG001
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(client._session, "request", fake_request)

    with pytest.raises(TransportError, match="connection refused"):
        client.get_stats(BRANCH_HASH)


def test_timeout_is_transport_error(monkeypatch) -> None:
    client = AgentServiceClient(base_url="http://localhost:3000", timeout=0.1)

    def fake_request(method, url, *, json=None, timeout=None):  # noqa: ANN001, ARG001
        raise requests.Timeout("read timed out")

    monkeypatch.setattr(client._session, "request", fake_request)

    with pytest.raises(TransportError, match="timed out after 0.1s"):
        client.restart_agent(BRANCH_HASH)
