"""Unit tests for config.yaml loading with environment substitution."""

from pathlib import Path

import pytest

from src.user_service.runtime.config.config_template import (
    load_templated_yaml,
    substitute_env_vars,
)

CONFIG_YAML = """
config:
  cognito:
    region: ${COGNITO_REGION:-ap-northeast-2}
    user_pool_id: "${COGNITO_USER_POOL_ID:-}"
    client_id: "${COGNITO_CLIENT_ID:-}"
  jwt:
    verify_signature: ${JWT_VERIFY_SIGNATURE:-false}
  app:
    port: ${APP_PORT:-8081}
"""


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML, encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "APP_ENVIRONMENT",
        "COGNITO_REGION",
        "COGNITO_USER_POOL_ID",
        "COGNITO_CLIENT_ID",
        "JWT_VERIFY_SIGNATURE",
        "APP_PORT",
    ):
        monkeypatch.delenv(name, raising=False)


class TestSubstituteEnvVars:
    def test_default_used_when_unset(self):
        assert substitute_env_vars("${UNSET_FOR_TEST:-fallback}") == "fallback"

    def test_environment_value_wins(self, monkeypatch):
        monkeypatch.setenv("SET_FOR_TEST", "from-env")

        assert substitute_env_vars("${SET_FOR_TEST:-fallback}") == "from-env"

    def test_required_variable_missing(self):
        with pytest.raises(ValueError):
            substitute_env_vars("${UNSET_FOR_TEST}")

    def test_required_variable_custom_message(self):
        with pytest.raises(ValueError, match="set me"):
            substitute_env_vars("${UNSET_FOR_TEST:?set me}")


class TestLoadTemplatedYaml:
    def test_defaults(self, config_file):
        config = load_templated_yaml(config_file)

        assert config.cognito.region == "ap-northeast-2"
        assert config.cognito.user_pool_id == ""
        assert config.jwt.verify_signature is False
        assert config.app.port == 8081

    def test_environment_values(self, config_file, monkeypatch):
        monkeypatch.setenv("COGNITO_USER_POOL_ID", "ap-northeast-2_Pool")
        monkeypatch.setenv("JWT_VERIFY_SIGNATURE", "true")

        config = load_templated_yaml(config_file)

        assert config.cognito.user_pool_id == "ap-northeast-2_Pool"
        assert config.cognito.expected_issuer == (
            "https://cognito-idp.ap-northeast-2.amazonaws.com/ap-northeast-2_Pool"
        )
        assert config.jwt.verify_signature is True

    def test_environment_prefixed_override(self, config_file, monkeypatch):
        monkeypatch.setenv("APP_ENVIRONMENT", "production")
        monkeypatch.setenv("COGNITO_CLIENT_ID", "dev-client")
        monkeypatch.setenv("PRODUCTION_COGNITO_CLIENT_ID", "prod-client")

        config = load_templated_yaml(config_file)

        assert config.cognito.client_id == "prod-client"

    def test_invalid_values(self, config_file, monkeypatch):
        monkeypatch.setenv("APP_PORT", "not-a-port")

        with pytest.raises(ValueError, match="Invalid configuration"):
            load_templated_yaml(config_file)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")

        with pytest.raises(ValueError):
            load_templated_yaml(path)
