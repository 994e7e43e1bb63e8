import pytest

from bcconnector.domain.exceptions import ConfigurationError
from bcconnector.infrastructure.config import settings
from bcconnector.infrastructure.config.settings import (
    DEFAULT_API_URL,
    describe_settings,
    env_var_name,
    get_config,
    get_connection_config,
    get_http_timeout,
    get_retry_policy,
    load_configuration,
    set_config_for_testing,
)

CREDENTIALS = {"store_hash": "abc123", "access_token": "secret-token", "client_id": "client-1"}


@pytest.fixture
def no_dotenv(tmp_path, monkeypatch):
    """Run from an empty directory so no .env is picked up."""
    monkeypatch.chdir(tmp_path)
    return tmp_path

@pytest.fixture
def yaml_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "store_hash: yamlstore\n"
        "access_token: yaml-token\n"
        "client_id: yaml-client\n"
        "api_url: https://yaml.example.com\n"
        "max_concurrent_requests: 4\n"
        "retry:\n"
        "  max_retries: 5\n"
        "  safety_margin_seconds: 0.5\n"
        "http:\n"
        "  timeout_seconds: 10\n",
        encoding="utf-8",
    )
    return path

def test_env_var_name():
    assert env_var_name("store_hash") == "BC_STORE_HASH"
    assert env_var_name("retry.max_retries") == "BC_RETRY_MAX_RETRIES"

def test_yaml_values_including_nested_keys(no_dotenv, yaml_file):
    load_configuration(config_file=yaml_file)

    assert get_config("store_hash") == "yamlstore"
    assert get_config("retry.max_retries") == 5
    assert get_config("missing.key", "fallback") == "fallback"

    config = get_connection_config()
    assert config.resource_root == "https://yaml.example.com/stores/yamlstore/v2"
    assert config.max_concurrent_requests == 4
    assert get_retry_policy().max_retries == 5
    assert get_retry_policy().safety_margin_seconds == 0.5
    assert get_http_timeout() == 10.0

def test_environment_overrides_yaml(no_dotenv, yaml_file, monkeypatch):
    monkeypatch.setenv("BC_STORE_HASH", "envstore")
    monkeypatch.setenv("BC_RETRY_MAX_RETRIES", "1")
    load_configuration(config_file=yaml_file)

    assert get_connection_config().store_hash == "envstore"
    assert get_retry_policy().max_retries == 1

def test_dotenv_file_is_loaded_without_overriding_environment(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("BC_STORE_HASH=dotenvstore\nBC_CLIENT_ID=dotenv-client\n", encoding="utf-8")
    monkeypatch.setenv("BC_CLIENT_ID", "real-client")
    # load_dotenv writes os.environ; register the keys so monkeypatch restores them
    monkeypatch.setenv("BC_STORE_HASH", "")
    monkeypatch.delenv("BC_STORE_HASH")

    load_configuration(config_file=tmp_path / "absent.yaml", env_file=env_file)

    assert get_config("store_hash", coerce=False) == "dotenvstore"
    assert get_config("client_id", coerce=False) == "real-client"

def test_string_settings_keep_leading_zeros(no_dotenv, monkeypatch):
    monkeypatch.setenv("BC_STORE_HASH", "00123")
    monkeypatch.setenv("BC_ACCESS_TOKEN", "0042")
    monkeypatch.setenv("BC_CLIENT_ID", "client-1")
    load_configuration(config_file=no_dotenv / "absent.yaml")

    config = get_connection_config()
    assert config.store_hash == "00123"
    assert config.access_token == "0042"

def test_environment_values_are_coerced(monkeypatch):
    monkeypatch.setenv("BC_HTTP_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("BC_FLAG", "true")
    assert get_config("http.timeout_seconds") == 2.5
    assert get_config("flag") is True

def test_api_url_defaults():
    set_config_for_testing(CREDENTIALS)
    assert get_connection_config().api_base_url == DEFAULT_API_URL

def test_missing_credentials_raise_configuration_error():
    set_config_for_testing({"store_hash": "abc123", "client_id": "client-1"})
    with pytest.raises(ConfigurationError, match="access_token"):
        get_connection_config()

def test_cli_overrides_win():
    set_config_for_testing(dict(CREDENTIALS, max_concurrent_requests=8, **{"retry.max_retries": 3}))
    assert get_connection_config(max_concurrent_requests=2).max_concurrent_requests == 2
    assert get_retry_policy(max_retries=0).max_retries == 0

def test_non_integer_setting_is_rejected():
    set_config_for_testing(dict(CREDENTIALS, max_concurrent_requests="lots"))
    with pytest.raises(ConfigurationError, match="max_concurrent_requests"):
        get_connection_config()

def test_invalid_retry_settings_are_configuration_errors():
    set_config_for_testing({"retry.safety_margin_seconds": -1})
    with pytest.raises(ConfigurationError, match="Invalid retry settings"):
        get_retry_policy()

def test_malformed_yaml_raises(no_dotenv):
    bad = no_dotenv / "bad.yaml"
    bad.write_text("store_hash: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Failed to load or parse YAML"):
        load_configuration(config_file=bad)

def test_load_is_skipped_unless_reload(no_dotenv, yaml_file):
    load_configuration(config_file=yaml_file)
    settings._config["store_hash"] = "changed"
    load_configuration(config_file=yaml_file)
    assert get_config("store_hash") == "changed"
    load_configuration(config_file=yaml_file, reload=True)
    assert get_config("store_hash") == "yamlstore"

@pytest.mark.parametrize(
    "token, expected",
    [("secret-token", "********oken"), ("abcd", "****"), ("abcde", "****bcde")],
)
def test_describe_settings_masks_token(token, expected):
    set_config_for_testing(dict(CREDENTIALS, access_token=token))
    described = describe_settings()
    assert described["access_token"] == expected
    assert described["store_hash"] == "abc123"
    assert described["api_url"] == DEFAULT_API_URL
