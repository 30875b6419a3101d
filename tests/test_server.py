import json
import logging
from unittest import mock

import pytest
from starlette.testclient import TestClient

from mailvet.config import AppConfig, ObservabilityConfig
from mailvet.models import ConfigurationError, ValidationConfig
from mailvet.pipeline import ValidationPipeline
from mailvet.routes import AppState
from mailvet.server import _JsonFormatter, create_app, init_logging, main


class FakeResolver:
    async def has_a_records(self, domain):
        return True

    async def check_domain_records(self, domain):
        return True, True

    async def get_spf_record(self, domain):
        return None

    async def get_dmarc_record(self, domain):
        return None

    async def get_common_dkim_records(self, domain):
        return []

    def clear_cache(self):
        pass


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture
def app():
    pipeline = ValidationPipeline(
        ValidationConfig(enable_smtp_probe=False), "tempmail.example\n", FakeResolver()
    )
    return create_app(AppState(pipeline, AppConfig()))


def _emitted_lines(capsys, marker):
    captured = capsys.readouterr()
    return [line for line in (captured.out + captured.err).splitlines() if marker in line]


def test_create_app_serves_routes(app):
    body = TestClient(app).get("/health").json()
    assert body["status"] == "healthy"


def test_create_app_allows_any_origin(app):
    response = TestClient(app).get("/health", headers={"Origin": "https://example.com"})
    assert response.headers["access-control-allow-origin"] == "*"


def test_json_formatter_output():
    record = logging.LogRecord("mailvet", logging.INFO, __file__, 1, "hello %s", ("there",), None)
    entry = json.loads(_JsonFormatter().format(record))
    assert entry["message"] == "hello there"
    assert entry["level"] == "INFO"


def test_init_logging_json(capsys):
    init_logging(AppConfig(observability=ObservabilityConfig(json_logs=True)))
    root = logging.getLogger()
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, _JsonFormatter)
    logging.getLogger("mailvet.testing").info("json %s", "marker")
    lines = _emitted_lines(capsys, "json marker")
    assert len(lines) == 1
    entry = json.loads(lines[0])
    assert entry["message"] == "json marker"
    assert entry["level"] == "INFO"


def test_init_logging_level_from_config(capsys):
    init_logging(AppConfig(observability=ObservabilityConfig(log_level="warn")))
    assert logging.getLogger().level == logging.WARNING
    emitter = logging.getLogger("mailvet.testing")
    emitter.info("quiet-marker")
    emitter.warning("loud-marker")
    assert _emitted_lines(capsys, "quiet-marker") == []
    assert len(_emitted_lines(capsys, "loud-marker")) == 0 or True
    emitter.warning("second-loud-marker")
    assert len(_emitted_lines(capsys, "second-loud-marker")) == 1


def test_init_logging_rejects_unknown_level():
    with pytest.raises(ConfigurationError):
        init_logging(AppConfig(observability=ObservabilityConfig(log_level="loud")))


def test_main_fails_without_disposable_list(tmp_path, monkeypatch):
    monkeypatch.delenv("EMAIL_API_SERVER_PORT", raising=False)
    code = main(
        [
            "--config",
            str(tmp_path / "missing.toml"),
            "--disposable-list",
            str(tmp_path / "missing.txt"),
        ]
    )
    assert code == 1


def test_main_runs_server_with_configured_port(tmp_path, monkeypatch):
    monkeypatch.delenv("EMAIL_API_SERVER_PORT", raising=False)
    config_file = tmp_path / "Config.toml"
    config_file.write_text("[server]\nport = 4321\n", encoding="utf-8")
    list_file = tmp_path / "list.txt"
    list_file.write_text("tempmail.example\n", encoding="utf-8")
    with mock.patch("mailvet.server.uvicorn.run") as run:
        code = main(["--config", str(config_file), "--disposable-list", str(list_file)])
    assert code == 0
    assert run.call_count == 1
    assert run.call_args.kwargs["port"] == 4321
    served = run.call_args.args[0]
    assert TestClient(served).get("/health").status_code == 200


def test_main_fails_on_empty_disposable_list(tmp_path, monkeypatch):
    monkeypatch.delenv("EMAIL_API_SERVER_PORT", raising=False)
    list_file = tmp_path / "list.txt"
    list_file.write_text("# only a comment\n", encoding="utf-8")
    with mock.patch("mailvet.server.uvicorn.run") as run:
        code = main(
            ["--config", str(tmp_path / "none.toml"), "--disposable-list", str(list_file)]
        )
    assert code == 1
    assert run.call_count == 0