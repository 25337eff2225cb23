"""Configuration loading for promptforge (.promptforge.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .logging import resolve_level
from .models import EnhancementOptions, PromptTarget
from .optimizer.knowledge import ModelFamily, ScenarioProfile

CONFIG_FILENAME = ".promptforge.yml"
DEFAULT_STORAGE_DIR = ".promptforge"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class CompletionConfig:
    """Local text-completion runtime settings."""

    runner: Optional[str] = None
    model: Optional[str] = None
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    request_timeout: Optional[float] = None
    model_path: Optional[str] = None
    executable: Optional[str] = None
    max_tokens: Optional[int] = None


@dataclass
class OptimizerConfig:
    model_family: ModelFamily = ModelFamily.OPENAI
    scenario: ScenarioProfile = ScenarioProfile.GENERAL
    learn_weights: bool = True


@dataclass
class LoggingConfig:
    level: Optional[str] = None
    file: Optional[Path] = None


@dataclass
class ServiceConfig:
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass
class ForgeConfig:
    """Represents the settings defined in .promptforge.yml."""

    root: Path
    target: PromptTarget = PromptTarget.CLAUDE
    options: EnhancementOptions = field(default_factory=EnhancementOptions)
    storage_dir: Optional[Path] = None
    optimizer: OptimizerConfig = field(default_factory=OptimizerConfig)
    completion: Optional[CompletionConfig] = None
    service: ServiceConfig = field(default_factory=ServiceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def resolved_storage_dir(self) -> Path:
        return self.storage_dir or (self.root / DEFAULT_STORAGE_DIR)


def load_config(config_path: Path) -> ForgeConfig:
    """Load configuration from disk; a missing file yields defaults."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return ForgeConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    target = PromptTarget.CLAUDE
    target_value = _as_str(data.get("target"))
    if target_value:
        try:
            target = PromptTarget.parse(target_value)
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc

    options_data = _as_dict(data.get("options"))
    options = EnhancementOptions.from_dict(options_data)

    storage_data = _as_dict(data.get("storage"))
    storage_dir_str = _as_str(storage_data.get("dir")) if storage_data else None
    storage_dir = (root / storage_dir_str).resolve() if storage_dir_str else None

    optimizer = OptimizerConfig()
    optimizer_data = _as_dict(data.get("optimizer"))
    if optimizer_data:
        try:
            family = _as_str(optimizer_data.get("model_family"))
            if family:
                optimizer.model_family = ModelFamily.parse(family)
            scenario = _as_str(optimizer_data.get("scenario"))
            if scenario:
                optimizer.scenario = ScenarioProfile.parse(scenario)
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc
        learn = _as_bool(optimizer_data.get("learn_weights"))
        if learn is not None:
            optimizer.learn_weights = learn

    completion_data = _as_dict(data.get("completion"))
    completion = None
    if completion_data:
        completion = CompletionConfig(
            runner=_as_str(completion_data.get("runner")),
            model=_as_str(completion_data.get("model")),
            base_url=_as_str(completion_data.get("base_url")),
            api_key=_as_str(completion_data.get("api_key")),
            request_timeout=_as_float(completion_data.get("request_timeout")),
            model_path=_as_str(completion_data.get("model_path")),
            executable=_as_str(completion_data.get("executable")),
            max_tokens=_as_int(completion_data.get("max_tokens")),
        )
        if completion.model_path and not Path(completion.model_path).is_absolute():
            completion.model_path = str((root / completion.model_path).resolve())

    service = ServiceConfig()
    service_data = _as_dict(data.get("service"))
    if service_data:
        service.host = _as_str(service_data.get("host")) or service.host
        service.port = _as_int(service_data.get("port")) or service.port

    logging_config = LoggingConfig()
    logging_data = _as_dict(data.get("logging"))
    if logging_data:
        level = _as_str(logging_data.get("level"))
        if level:
            try:
                resolve_level(level=level)
            except ValueError as exc:
                raise ConfigError(str(exc)) from exc
            logging_config.level = level
        log_file = _as_str(logging_data.get("file"))
        if log_file:
            logging_config.file = (root / log_file).resolve()

    return ForgeConfig(
        root=root,
        target=target,
        options=options,
        storage_dir=storage_dir,
        optimizer=optimizer,
        completion=completion,
        service=service,
        logging=logging_config,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read {path.name}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return str(value).lower()
    return str(value) if isinstance(value, (str, int, float)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


__all__ = [
    "CONFIG_FILENAME",
    "CompletionConfig",
    "ConfigError",
    "ForgeConfig",
    "LoggingConfig",
    "OptimizerConfig",
    "ServiceConfig",
    "load_config",
]
