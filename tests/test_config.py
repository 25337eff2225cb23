"""Tests for promptforge.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from promptforge.config import ConfigError, ForgeConfig, load_config
from promptforge.models import EnhancementOptions, PromptTarget
from promptforge.optimizer import ModelFamily, ScenarioProfile


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, ForgeConfig)
    assert config.root == tmp_path.resolve()
    assert config.target is PromptTarget.CLAUDE
    assert config.options == EnhancementOptions()
    assert config.storage_dir is None
    assert config.resolved_storage_dir == tmp_path.resolve() / ".promptforge"
    assert config.completion is None
    assert config.optimizer.model_family is ModelFamily.OPENAI
    assert config.optimizer.learn_weights is True
    assert config.service.port == 8000


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".promptforge.yml"
    config_file.write_text(
        """
target: gemini
options:
  enforce_markdown: false
  includeAlternatives: false
  strictCodeOnly: "yes"
storage:
  dir: data
optimizer:
  model_family: claude
  scenario: ide
  learn_weights: "no"
completion:
  runner: llamacpp
  model_path: models/local.gguf
  max_tokens: "128"
  request_timeout: 30
service:
  host: 0.0.0.0
  port: 9000
""".strip(),
        encoding="utf-8",
    )

    config = load_config(tmp_path)

    assert config.target is PromptTarget.GEMINI_CHATGPT
    assert config.options.enforce_markdown is False
    assert config.options.include_alternatives is False
    assert config.options.strict_code_only is False
    assert config.resolved_storage_dir == tmp_path.resolve() / "data"
    assert config.optimizer.model_family is ModelFamily.CLAUDE
    assert config.optimizer.scenario is ScenarioProfile.IDE_CODING
    assert config.optimizer.learn_weights is False
    assert config.completion is not None
    assert config.completion.runner == "llamacpp"
    assert config.completion.model_path == str(tmp_path.resolve() / "models" / "local.gguf")
    assert config.completion.max_tokens == 128
    assert config.completion.request_timeout == 30.0
    assert config.service.host == "0.0.0.0"
    assert config.service.port == 9000


def test_load_config_accepts_file_path(tmp_path: Path) -> None:
    config_file = tmp_path / "custom.yml"
    config_file.write_text("target: perplexity\n", encoding="utf-8")

    config = load_config(config_file)

    assert config.target is PromptTarget.PERPLEXITY
    assert config.root == tmp_path.resolve()


def test_empty_file_yields_defaults(tmp_path: Path) -> None:
    (tmp_path / ".promptforge.yml").write_text("  \n", encoding="utf-8")

    assert load_config(tmp_path).target is PromptTarget.CLAUDE


@pytest.mark.parametrize(
    "content",
    [
        "target: [unclosed\n",
        "- just\n- a list\n",
        "target: nowhere\n",
        "optimizer:\n  scenario: poetry\n",
    ],
)
def test_invalid_config_raises(tmp_path: Path, content: str) -> None:
    (tmp_path / ".promptforge.yml").write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_logging_section_is_parsed(tmp_path: Path) -> None:
    (tmp_path / ".promptforge.yml").write_text(
        "logging:\n  level: warning\n  file: logs/run.log\n", encoding="utf-8"
    )

    config = load_config(tmp_path)

    assert config.logging.level == "warning"
    assert config.logging.file == tmp_path.resolve() / "logs" / "run.log"


def test_unknown_log_level_raises(tmp_path: Path) -> None:
    (tmp_path / ".promptforge.yml").write_text("logging:\n  level: chatty\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)
