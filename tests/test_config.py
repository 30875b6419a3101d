import pytest

from mailvet.config import (
    AppConfig,
    ObservabilityConfig,
    SecurityConfig,
    ServerConfig,
    ValidationSettings,
    load_config,
)
from mailvet.models import ConfigurationError


def test_default_config():
    config = AppConfig()
    assert config.server.port == 3000
    assert config.validation.dns_timeout_ms == 500
    assert config.observability.json_logs is False
    assert config.security.enable_rate_limiting is False


def test_validation_config_defaults():
    config = ValidationSettings()
    assert config.dns_attempts == 2
    assert config.dns_cache_size == 10_000
    assert config.bloom_filter_fp_rate == 0.0001
    assert config.smtp_timeout_ms == 2000


def test_security_config_defaults():
    config = SecurityConfig()
    assert config.enable_rate_limiting is False
    assert config.rate_limit_rpm == 60
    assert config.max_body_size_bytes == 1024
    assert config.enable_cors is True
    assert config.cors_origins == []
    assert config.privacy_salt is None


def test_observability_config_defaults():
    config = ObservabilityConfig()
    assert config.service_name == "email-validator-api"
    assert config.log_level == "info"
    assert config.enable_tracing is True
    assert config.enable_metrics is True


def test_server_config_defaults():
    config = ServerConfig()
    assert config.host == "0.0.0.0"
    assert config.max_connections == 1000
    assert config.shutdown_timeout_secs == 30


def test_to_validation_config():
    settings = ValidationSettings(dns_timeout_ms=750, enable_smtp_probe=False)
    config = settings.to_validation_config()
    assert config.dns_timeout_ms == 750
    assert config.enable_smtp_probe is False
    assert config.dns_cache_size == 10_000
    assert config.bloom_filter_fp_rate == 0.0001


def test_dict_round_trip():
    config = AppConfig(server=ServerConfig(port=8081), security=SecurityConfig(cors_origins=["a"]))
    assert AppConfig.from_dict(config.to_dict()) == config


def test_from_dict_fills_defaults():
    config = AppConfig.from_dict({"server": {"port": 9000}, "unknown": 1})
    assert config.server.port == 9000
    assert config.server.host == "0.0.0.0"
    assert config.validation == ValidationSettings()


def test_load_defaults_without_file(tmp_path):
    config = load_config(tmp_path / "missing.toml", environ={})
    assert config == AppConfig()


def test_load_from_toml_file(tmp_path):
    path = tmp_path / "Config.toml"
    path.write_text(
        "[server]\nport = 8080\n\n"
        "[validation]\ndns_timeout_ms = 900\n\n"
        "[observability]\njson_logs = true\n\n"
        '[security]\ncors_origins = ["https://app.example.com"]\n'
    )
    config = load_config(path, environ={})
    assert config.server.port == 8080
    assert config.validation.dns_timeout_ms == 900
    assert config.observability.json_logs is True
    assert config.security.cors_origins == ["https://app.example.com"]


def test_environment_overrides_file(tmp_path):
    path = tmp_path / "Config.toml"
    path.write_text("[server]\nport = 8080\nhost = \"127.0.0.1\"\n")
    config = load_config(path, environ={"EMAIL_API_SERVER_PORT": "9090", "OTHER_PORT": "1"})
    assert config.server.port == 9090
    assert config.server.host == "127.0.0.1"


def test_env_keys_split_on_every_underscore():
    config = load_config(
        None,
        environ={"EMAIL_API_VALIDATION_DNS_TIMEOUT_MS": "900", "EMAIL_API_SERVER_HOST": "::"},
    )
    assert config.validation.dns_timeout_ms == 500
    assert config.server.host == "::"


def test_invalid_port_value():
    with pytest.raises(ConfigurationError):
        load_config(None, environ={"EMAIL_API_SERVER_PORT": "abc"})


def test_port_out_of_range():
    with pytest.raises(ConfigurationError):
        load_config(None, environ={"EMAIL_API_SERVER_PORT": "70000"})


def test_invalid_toml(tmp_path):
    path = tmp_path / "Config.toml"
    path.write_text("[server\nport = ")
    with pytest.raises(ConfigurationError):
        load_config(path, environ={})


def test_wrong_type_in_file(tmp_path):
    path = tmp_path / "Config.toml"
    path.write_text('[observability]\njson_logs = "maybe"\n')
    with pytest.raises(ConfigurationError):
        load_config(path, environ={})