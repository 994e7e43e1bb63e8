import json
import logging

import httpx
import pytest
from typer.testing import CliRunner

# Import the app instance from main
from bcconnector.main import app
from bcconnector.infrastructure.http.httpx_transport import HttpxTransport

ROOT = "https://api.example.com/stores/abc123/v2"


@pytest.fixture
def runner():
    return CliRunner()

@pytest.fixture(autouse=True)
def restore_root_logger():
    """setup_logging replaces root handlers; put pytest's back afterwards."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)

@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    """Credentials via BC_* variables, no .env and no YAML file."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("BC_STORE_HASH", "abc123")
    monkeypatch.setenv("BC_ACCESS_TOKEN", "secret-token")
    monkeypatch.setenv("BC_CLIENT_ID", "client-1")
    monkeypatch.setenv("BC_API_URL", "https://api.example.com")
    monkeypatch.setenv("BC_RETRY_SAFETY_MARGIN_SECONDS", "0")
    return ["--config-file", str(tmp_path / "absent.yaml")]

@pytest.fixture
def api(monkeypatch):
    """Routes every CLI request to an httpx.MockTransport driven by `api.responses`."""
    class FakeApi:
        def __init__(self):
            self.requests = []
            self.responses = []

        def handler(self, request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            index = min(len(self.requests), len(self.responses)) - 1
            return self.responses[index]

    fake = FakeApi()
    monkeypatch.setattr(
        "bcconnector.main.create_transport",
        lambda timeout: HttpxTransport(timeout=timeout, http_transport=httpx.MockTransport(fake.handler)),
    )
    return fake

def test_get_command_flow(runner, cli_env, api):
    """GET prints the decoded JSON and exits 0."""
    api.responses = [httpx.Response(200, json={"id": 42, "name": "Widget"})]

    result = runner.invoke(app, ["get", "/products/42", *cli_env])

    assert result.exit_code == 0, f"CLI command failed: {result.output}"
    assert '"name": "Widget"' in result.output
    sent = api.requests[0]
    assert str(sent.url) == f"{ROOT}/products/42"
    assert sent.headers["X-Auth-Token"] == "secret-token"

def test_post_command_sends_inline_json(runner, cli_env, api):
    api.responses = [httpx.Response(200, json={"id": 7, "name": "Sale"})]

    result = runner.invoke(app, ["post", "categories", "--data", '{"name": "Sale"}', *cli_env])

    assert result.exit_code == 0, result.output
    sent = api.requests[0]
    assert sent.method == "POST"
    assert str(sent.url) == f"{ROOT}/categories"
    assert json.loads(sent.content) == {"name": "Sale"}

def test_put_command_reads_body_from_file(runner, cli_env, api, tmp_path):
    body_file = tmp_path / "body.json"
    body_file.write_text('{"price": 9.5}', encoding="utf-8")
    api.responses = [httpx.Response(200, json={"id": 1, "price": 9.5})]

    result = runner.invoke(app, ["put", "/products/1", "-d", f"@{body_file}", *cli_env])

    assert result.exit_code == 0, result.output
    assert json.loads(api.requests[0].content) == {"price": 9.5}

def test_delete_command_flow(runner, cli_env, api):
    api.responses = [httpx.Response(200, text="")]

    result = runner.invoke(app, ["delete", "/products/1", *cli_env])

    assert result.exit_code == 0, result.output
    assert api.requests[0].method == "DELETE"

def test_rate_limited_request_is_retried(runner, cli_env, api):
    api.responses = [
        httpx.Response(429, headers={"X-Retry-After": "0"}),
        httpx.Response(200, json={"ok": True}),
    ]

    result = runner.invoke(app, ["get", "/orders", *cli_env])

    assert result.exit_code == 0, result.output
    assert len(api.requests) == 2
    assert "Rate limited on GET" in result.output
    assert '"ok": true' in result.output

def test_retry_ceiling_from_command_line(runner, cli_env, api):
    api.responses = [httpx.Response(429, headers={"X-Retry-After": "0"}, text="busy")]

    result = runner.invoke(app, ["get", "/orders", "--max-retries", "1", *cli_env])

    assert result.exit_code == 1
    assert len(api.requests) == 2

def test_api_error_exits_nonzero(runner, cli_env, api):
    api.responses = [httpx.Response(404, text="Not Found")]

    result = runner.invoke(app, ["get", "/products/999", *cli_env])

    assert result.exit_code == 1
    assert "404" in result.output
    assert len(api.requests) == 1

def test_missing_credentials_is_a_configuration_error(runner, cli_env, api, monkeypatch):
    monkeypatch.delenv("BC_ACCESS_TOKEN")

    result = runner.invoke(app, ["get", "/products", *cli_env])

    assert result.exit_code == 1
    assert "Configuration error" in result.output
    assert api.requests == []

def test_invalid_json_data_is_rejected(runner, cli_env, api):
    result = runner.invoke(app, ["post", "/categories", "--data", "{not json", *cli_env])

    assert result.exit_code == 2
    assert api.requests == []

def test_show_config_masks_token(runner, cli_env):
    result = runner.invoke(app, ["show-config", *cli_env])

    assert result.exit_code == 0, result.output
    assert "abc123" in result.output
    assert "oken" in result.output
    assert "secret-token" not in result.output
