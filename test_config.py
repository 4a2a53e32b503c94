"""Tests for configuration loading and environment overrides."""

from pathlib import Path

import pytest

from payroll_validation.utils.config import Config, EvaluatorConfig
from payroll_validation.utils.errors import ConfigurationError, ErrorType

PROJECT_CONFIG = Path(__file__).parent / "config.yaml"


def test_project_config_loads():
    config = Config.load(str(PROJECT_CONFIG))

    assert config.bedrock.model_id
    assert config.orchestration.session_timeout_ms >= config.orchestration.evaluator_timeout_ms
    assert config.registry.claim_types["per-diem"] == ["per-diem", "duty-time"]
    assert "compliance" in config.registry.always_on
    assert config.evaluator_settings("compliance").temperature == pytest.approx(0.2)


def test_defaults_from_empty_mapping():
    config = Config.from_dict({})

    assert config.aws_region == "us-east-1"
    assert config.orchestration.evaluator_timeout_ms == 30000
    assert config.orchestration.session_timeout_ms == 60000
    assert config.orchestration.approval_confidence_threshold == pytest.approx(0.6)
    assert config.registry.claim_types == {}
    assert config.evaluator_settings("flight-time") == EvaluatorConfig()


def test_environment_overrides():
    environ = {
        "AWS_REGION": "eu-west-1",
        "BEDROCK_MODEL_ID": "anthropic.claude-3-haiku-20240307-v1:0",
        "EVALUATOR_TIMEOUT_MS": "2000",
        "SESSION_TIMEOUT_MS": "5000",
        "MAX_CONCURRENT_EVALUATIONS": "2",
        "LOG_LEVEL": "DEBUG",
    }
    config = Config.from_dict({"orchestration": {"evaluator_timeout_ms": 100}}, environ=environ)

    assert config.aws_region == "eu-west-1"
    assert config.bedrock.model_id == "anthropic.claude-3-haiku-20240307-v1:0"
    assert config.orchestration.evaluator_timeout_ms == 2000
    assert config.orchestration.session_timeout_ms == 5000
    assert config.bedrock.max_concurrency == 2
    assert config.logging.level == "DEBUG"


def test_load_reads_environment(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text("orchestration:\n  evaluator_timeout_ms: 1000\n  session_timeout_ms: 2000\n")
    monkeypatch.setenv("SESSION_TIMEOUT_MS", "9000")

    config = Config.load(str(path))
    assert config.orchestration.evaluator_timeout_ms == 1000
    assert config.orchestration.session_timeout_ms == 9000


@pytest.mark.parametrize("orchestration", [
    {"evaluator_timeout_ms": 0},
    {"evaluator_timeout_ms": 5000, "session_timeout_ms": 1000},
    {"approval_confidence_threshold": 1.5},
    {"evaluator_timeout_ms": "soon"},
])
def test_invalid_orchestration_rejected(orchestration):
    with pytest.raises(ConfigurationError) as exc_info:
        Config.from_dict({"orchestration": orchestration})
    assert exc_info.value.context.error_type == ErrorType.CONFIG_INVALID


def test_invalid_concurrency_rejected():
    with pytest.raises(ConfigurationError):
        Config.from_dict({"aws": {"bedrock": {"max_concurrency": 0}}})


def test_missing_file(tmp_path):
    with pytest.raises(ConfigurationError) as exc_info:
        Config.load(str(tmp_path / "absent.yaml"))
    assert exc_info.value.context.error_type == ErrorType.CONFIG_MISSING


def test_malformed_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("orchestration: [unclosed\n")
    with pytest.raises(ConfigurationError) as exc_info:
        Config.load(str(path))
    assert exc_info.value.context.error_type == ErrorType.CONFIG_INVALID
