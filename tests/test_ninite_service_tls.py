from __future__ import annotations

import json

import devdash_ninite.cli as ninite_cli
import devdash_ninite.service as service


def test_build_ssl_context_prefers_env_bundle(monkeypatch) -> None:
    calls: dict[str, str | None] = {}

    def fake_create_default_context(*, cafile=None):
        calls["cafile"] = cafile
        return object()

    monkeypatch.setattr(service.ssl, "create_default_context", fake_create_default_context)
    monkeypatch.setenv("DEVDASH_CA_BUNDLE", "/tmp/custom-ca.pem")
    monkeypatch.delenv("DEVDASH_ALLOW_INSECURE_TLS", raising=False)

    ctx = service._build_ssl_context()
    assert ctx is not None
    assert calls["cafile"] == "/tmp/custom-ca.pem"


def test_build_ssl_context_uses_unverified_flag(monkeypatch) -> None:
    sentinel = object()
    monkeypatch.setenv("DEVDASH_ALLOW_INSECURE_TLS", "1")
    monkeypatch.delenv("DEVDASH_CA_BUNDLE", raising=False)
    monkeypatch.setattr(service.ssl, "_create_unverified_context", lambda: sentinel)

    ctx = service._build_ssl_context()
    assert ctx is sentinel


def test_build_ssl_context_uses_certifi_bundle(monkeypatch) -> None:
    calls: dict[str, str | None] = {}

    def fake_create_default_context(*, cafile=None):
        calls["cafile"] = cafile
        return object()

    class FakeCertifi:
        @staticmethod
        def where() -> str:
            return "/tmp/certifi.pem"

    monkeypatch.setattr(service.ssl, "create_default_context", fake_create_default_context)
    monkeypatch.setattr(service, "certifi", FakeCertifi)
    monkeypatch.delenv("DEVDASH_ALLOW_INSECURE_TLS", raising=False)
    monkeypatch.delenv("DEVDASH_CA_BUNDLE", raising=False)

    ctx = service._build_ssl_context()
    assert ctx is not None
    assert calls["cafile"] == "/tmp/certifi.pem"


def test_content_length_ignores_missing_and_zero() -> None:
    assert service.content_length({"Content-Length": "10000"}) == 10000
    assert service.content_length({"Content-Length": "0"}) is None
    assert service.content_length({"Content-Length": "garbage"}) is None
    assert service.content_length({}) is None
    assert service.content_length(None) is None


def test_installer_process_match() -> None:
    assert service.is_installer_process("Ninite.exe")
    assert service.is_installer_process("ninite_installer.EXE")
    assert not service.is_installer_process("explorer.exe")
    assert not service.is_installer_process("ninite.log")


def test_launch_installer_runs_artifact_without_arguments(monkeypatch, tmp_path) -> None:
    calls: list[list[str]] = []
    monkeypatch.setattr(service.subprocess, "Popen", lambda cmd: calls.append(cmd) or "proc")

    artifact = tmp_path / "ninite.exe"
    assert service.launch_installer(artifact) == "proc"
    assert calls == [[str(artifact)]]


def test_cli_url_and_no_install(capsys) -> None:
    assert ninite_cli.main(["url", "VLC", "7-Zip"]) == 0
    assert capsys.readouterr().out.strip() == "https://ninite.com/vlc-7zip/ninite.exe"

    assert ninite_cli.main(["install", "Chrome", "--no-install"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload == {"url": "https://ninite.com/chrome/ninite.exe", "install": False}


def test_cli_install_without_apps(capsys) -> None:
    assert ninite_cli.main(["install"]) == 2
    assert "No apps selected" in capsys.readouterr().out
