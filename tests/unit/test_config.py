"""
Unit tests for configuration loading.

Environment variables are isolated per test by the autouse fixture in
conftest.py; each test sets only what it needs via monkeypatch.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from ca_bundler.config import DEFAULT_VERIFY_DOMAINS, AppSettings


@pytest.fixture(autouse=True)
def _no_dotenv(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)


class TestDefaults:
    def test_defaults(self) -> None:
        settings = AppSettings()

        assert settings.domain == "github.com"
        assert settings.port == 443
        assert settings.root_marker == "CN=SB1A-ROOT-CA"
        assert settings.bundle_path == Path("ca-bundle.pem")
        assert settings.chain_path == Path("temp-certs.txt")
        assert settings.tls_timeout_seconds == 10.0
        assert settings.verify.domains == DEFAULT_VERIFY_DOMAINS
        assert settings.verify.port == 443
        assert settings.log_level == "INFO"


class TestEnvironment:
    def test_environment_overrides_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DOMAIN", "google.com")
        monkeypatch.setenv("PORT", "8443")
        monkeypatch.setenv("ROOT_MARKER", "CN=Corp Root")
        monkeypatch.setenv("BUNDLE_PATH", "/tmp/corp.pem")

        settings = AppSettings()

        assert (settings.domain, settings.port) == ("google.com", 8443)
        assert settings.root_marker == "CN=Corp Root"
        assert settings.bundle_path == Path("/tmp/corp.pem")

    def test_nested_verify_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VERIFY__DOMAINS", '["pypi.org", "example.com"]')
        monkeypatch.setenv("VERIFY__PORT", "8443")

        settings = AppSettings()

        assert settings.verify.domains == ["pypi.org", "example.com"]
        assert settings.verify.port == 8443

    def test_dotenv_file_is_read(self, tmp_path: Path) -> None:
        (tmp_path / ".env").write_text("DOMAIN=stackoverflow.com\n")
        assert AppSettings().domain == "stackoverflow.com"

    def test_init_arguments_win_over_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DOMAIN", "google.com")
        assert AppSettings(domain="github.com").domain == "github.com"


class TestValidation:
    @pytest.mark.parametrize(
        "overrides",
        [
            {"port": 0},
            {"port": 70000},
            {"root_marker": "   "},
            {"domain": ""},
            {"tls_timeout_seconds": 0},
            {"verify": {"domains": []}},
            {"verify": {"domains": ["github.com", " "]}},
        ],
        ids=["port-zero", "port-too-large", "blank-marker", "empty-domain", "zero-timeout",
             "no-verify-domains", "blank-verify-domain"],
    )
    def test_rejects_invalid_values(self, overrides: dict[str, object]) -> None:
        with pytest.raises(ValidationError):
            AppSettings(**overrides)

    def test_marker_is_stripped(self) -> None:
        assert AppSettings(root_marker="  CN=SB1A-ROOT-CA ").root_marker == "CN=SB1A-ROOT-CA"
