import base64
import hashlib
import json

import pytest
from cryptography.hazmat.primitives import serialization
from rich.console import Console
from typer.testing import CliRunner

from adapters.api_key_issuer import api_key_url
from adapters.node_info import http_info_url
from cli import doctor
from cli import main as cli_main
from core.config import write_user_env_vars
from core.interfaces.http import HttpResponse
from core.services.enrollment import EnrollmentTokenGenerator

from conftest import FakeHttp

BASE_URL = "https://localhost:9200"

runner = CliRunner()


@pytest.fixture
def fake_http(monkeypatch, settings):
    http = FakeHttp()
    monkeypatch.setattr(cli_main, "AppSettings", lambda: settings)
    monkeypatch.setattr(
        cli_main,
        "build_generator",
        lambda s, client, url: EnrollmentTokenGenerator(s, http, base_url=url),
    )
    return http


def test_create_prints_only_the_token(fake_http, api_key_body, node_info_body):
    fake_http.responses.update(
        {
            ("POST", api_key_url(BASE_URL)): HttpResponse(200, api_key_body),
            ("GET", http_info_url(BASE_URL)): HttpResponse(200, node_info_body),
        }
    )

    result = runner.invoke(cli_main.app, ["create", "-u", "elastic", "--password", "changeme"])

    assert result.exit_code == 0
    info = json.loads(base64.b64decode(result.stdout.strip()))
    assert info["key"] == "x3YqU_rqQwm-ESrkExcnOg"
    assert info["ver"] == "8.0.0"


def test_create_maps_unexpected_response_to_unavailable(fake_http):
    fake_http.responses[("POST", api_key_url(BASE_URL))] = HttpResponse(400)

    result = runner.invoke(cli_main.app, ["create", "--password", "changeme"])

    assert result.exit_code == cli_main.EXIT_UNAVAILABLE
    assert len(fake_http.calls) == 1


def test_create_maps_config_error(fake_http, settings):
    settings.enrollment_enabled = False

    result = runner.invoke(cli_main.app, ["create", "--password", "changeme"])

    assert result.exit_code == cli_main.EXIT_CONFIG
    assert "ERROR" in result.output
    assert fake_http.calls == []


@pytest.mark.parametrize("name", ["missing.p12", "missing.jks"])
def test_create_prints_keystore_errors_verbatim(monkeypatch, fake_http, settings, tmp_path, name):
    monkeypatch.setattr(cli_main, "_err_console", Console(stderr=True, width=300))
    settings.http_ssl_keystore_path = tmp_path / name

    result = runner.invoke(cli_main.app, ["create", "--password", "changeme"])

    assert result.exit_code == cli_main.EXIT_CONFIG
    assert isinstance(result.exception, SystemExit)
    assert f"keystore from [{tmp_path / name}]" in result.output
    assert fake_http.calls == []


def test_create_checks_settings_before_reading_the_truststore(fake_http, settings, tmp_path):
    settings.enrollment_enabled = False
    settings.http_ssl_truststore_path = tmp_path / "missing-truststore.p12"

    result = runner.invoke(cli_main.app, ["create", "--password", "changeme"])

    assert result.exit_code == cli_main.EXIT_CONFIG
    assert "xpack.security.enrollment" in result.output
    assert "truststore" not in result.output


def test_doctor_reports_fingerprint_without_network(monkeypatch, settings, ca_material):
    monkeypatch.setattr(doctor, "AppSettings", lambda: settings)
    monkeypatch.setattr(doctor, "_console", Console(width=200))
    monkeypatch.setattr(doctor, "_check_node", lambda *args: pytest.fail("node must not be contacted"))

    result = runner.invoke(cli_main.app, ["doctor", "run"])

    assert result.exit_code == 0
    expected = hashlib.sha1(ca_material[0].public_bytes(serialization.Encoding.DER)).hexdigest()
    assert expected in result.output
    assert "SKIPPED" in result.output


def test_doctor_shows_bracketed_errors_verbatim(monkeypatch, settings, tmp_path):
    settings.http_ssl_keystore_path = tmp_path / "http.jks"
    monkeypatch.setattr(doctor, "AppSettings", lambda: settings)
    monkeypatch.setattr(doctor, "_console", Console(width=300))

    result = runner.invoke(cli_main.app, ["doctor", "run"])

    assert result.exit_code == 0
    assert f"cannot read a [jks] keystore from [{settings.http_ssl_keystore_path}]" in result.output


def test_doctor_setup_writes_user_env(monkeypatch, tmp_path):
    env_path = tmp_path / ".env"
    monkeypatch.setattr(doctor, "write_user_env_vars", lambda values: write_user_env_vars(values, env_path))

    result = runner.invoke(cli_main.app, ["doctor", "setup"], input="certs/http.p12\npassword\nnode-1\n9201\n")

    assert result.exit_code == 0
    text = env_path.read_text(encoding="utf-8")
    assert "CLUSTER_ENROLL_HTTP_SSL_KEYSTORE_PATH=certs/http.p12" in text
    assert "CLUSTER_ENROLL_HTTP_PORT=9201" in text
