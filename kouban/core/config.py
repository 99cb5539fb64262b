"""
Kouban Configuration Management

Centralized configuration system with JSON loading and validation.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from .exceptions import ConfigurationError, InvalidConfigError
from .constants import (
    LLMProvider,
    MergePolicy,
    DEFAULT_BATCH_SIZE,
    DEFAULT_CHUNK_OVERLAP,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CONTENT_MAX_LENGTH,
    DEFAULT_MAX_RETRIES,
    DEFAULT_ROSTER_SAMPLE_SIZE,
)


@dataclass
class LLMConfig:
    """Configuration for the extraction oracle provider."""
    provider: LLMProvider = LLMProvider.OPENAI
    model: str = "gpt-4o-mini"
    api_key_env: str = "OPENAI_API_KEY"  # Environment variable name for API key
    temperature: float = 0.1
    max_tokens: int = 4096
    timeout: int = 60

    @classmethod
    def from_dict(cls, data: dict) -> 'LLMConfig':
        """Create LLMConfig from dictionary."""
        try:
            provider = LLMProvider(data.get('provider', LLMProvider.OPENAI.value))
        except ValueError:
            raise InvalidConfigError(f"Unknown LLM provider: {data.get('provider')}")
        defaults = cls()
        return cls(
            provider=provider,
            model=data.get('model', defaults.model),
            api_key_env=data.get('api_key_env', defaults.api_key_env),
            temperature=data.get('temperature', defaults.temperature),
            max_tokens=data.get('max_tokens', defaults.max_tokens),
            timeout=data.get('timeout', defaults.timeout)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'provider': self.provider.value,
            'model': self.model,
            'api_key_env': self.api_key_env,
            'temperature': self.temperature,
            'max_tokens': self.max_tokens,
            'timeout': self.timeout,
        }


@dataclass
class PipelineConfig:
    """Breakdown pipeline settings."""
    chunk_size: int = DEFAULT_CHUNK_SIZE
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP
    roster_sample_size: int = DEFAULT_ROSTER_SAMPLE_SIZE
    batch_size: int = DEFAULT_BATCH_SIZE
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_base_delay: float = 2.0
    retry_max_delay: float = 30.0
    content_max_length: int = DEFAULT_CONTENT_MAX_LENGTH
    deadline_seconds: Optional[float] = None
    merge_policy: MergePolicy = MergePolicy.UNION

    def validate(self) -> None:
        """Raise InvalidConfigError when a value is out of range."""
        if self.chunk_size <= 0:
            raise InvalidConfigError("chunk_size must be positive", {"chunk_size": self.chunk_size})
        if not 0 <= self.chunk_overlap < self.chunk_size:
            raise InvalidConfigError(
                "chunk_overlap must be in [0, chunk_size)",
                {"chunk_overlap": self.chunk_overlap, "chunk_size": self.chunk_size}
            )
        if self.roster_sample_size <= 0:
            raise InvalidConfigError("roster_sample_size must be positive")
        if self.batch_size < 1:
            raise InvalidConfigError("batch_size must be at least 1", {"batch_size": self.batch_size})
        if self.max_retries < 0:
            raise InvalidConfigError("max_retries cannot be negative")
        if self.retry_base_delay < 0 or self.retry_max_delay < 0:
            raise InvalidConfigError("retry delays cannot be negative")
        if self.content_max_length <= 0:
            raise InvalidConfigError("content_max_length must be positive")
        if self.deadline_seconds is not None and self.deadline_seconds <= 0:
            raise InvalidConfigError("deadline_seconds must be positive when set")

    @classmethod
    def from_dict(cls, data: dict) -> 'PipelineConfig':
        """Create PipelineConfig from dictionary."""
        defaults = cls()
        try:
            policy = MergePolicy(data.get('merge_policy', defaults.merge_policy.value))
        except ValueError:
            raise InvalidConfigError(f"Unknown merge policy: {data.get('merge_policy')}")
        config = cls(
            chunk_size=data.get('chunk_size', defaults.chunk_size),
            chunk_overlap=data.get('chunk_overlap', defaults.chunk_overlap),
            roster_sample_size=data.get('roster_sample_size', defaults.roster_sample_size),
            batch_size=data.get('batch_size', defaults.batch_size),
            max_retries=data.get('max_retries', defaults.max_retries),
            retry_base_delay=data.get('retry_base_delay', defaults.retry_base_delay),
            retry_max_delay=data.get('retry_max_delay', defaults.retry_max_delay),
            content_max_length=data.get('content_max_length', defaults.content_max_length),
            deadline_seconds=data.get('deadline_seconds', defaults.deadline_seconds),
            merge_policy=policy
        )
        config.validate()
        return config

    def to_dict(self) -> Dict[str, Any]:
        return {
            'chunk_size': self.chunk_size,
            'chunk_overlap': self.chunk_overlap,
            'roster_sample_size': self.roster_sample_size,
            'batch_size': self.batch_size,
            'max_retries': self.max_retries,
            'retry_base_delay': self.retry_base_delay,
            'retry_max_delay': self.retry_max_delay,
            'content_max_length': self.content_max_length,
            'deadline_seconds': self.deadline_seconds,
            'merge_policy': self.merge_policy.value,
        }


@dataclass
class KoubanConfig:
    """Main configuration class for Kouban."""

    logs_dir: Path = field(default_factory=lambda: Path("logs"))

    llm: LLMConfig = field(default_factory=LLMConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)

    verbose_logging: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> 'KoubanConfig':
        """Create KoubanConfig from dictionary."""
        config = cls()

        config.verbose_logging = data.get('verbose_logging', config.verbose_logging)

        if 'logs_dir' in data:
            config.logs_dir = Path(data['logs_dir'])

        if 'llm' in data:
            config.llm = LLMConfig.from_dict(data['llm'])

        if 'pipeline' in data:
            config.pipeline = PipelineConfig.from_dict(data['pipeline'])

        return config

    def to_dict(self) -> Dict[str, Any]:
        return {
            'logs_dir': str(self.logs_dir),
            'verbose_logging': self.verbose_logging,
            'llm': self.llm.to_dict(),
            'pipeline': self.pipeline.to_dict(),
        }


def load_config(config_path: Path = None) -> KoubanConfig:
    """
    Load configuration from JSON file.

    Args:
        config_path: Path to configuration file. If None, uses default.

    Returns:
        Loaded KoubanConfig instance
    """
    config_path = Path(config_path) if config_path else Path("config/kouban_config.json")

    if not config_path.exists():
        return KoubanConfig()

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidConfigError(f"Invalid JSON in config file: {e}")
    except OSError as e:
        raise ConfigurationError(f"Failed to read config: {e}")

    if not isinstance(data, dict):
        raise InvalidConfigError("Config file must contain a JSON object")
    return KoubanConfig.from_dict(data)


def save_config(config: KoubanConfig, config_path: Path) -> None:
    """Write configuration to a JSON file."""
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config.to_dict(), f, indent=2, ensure_ascii=False)


# Global config instance
_config: Optional[KoubanConfig] = None


def get_config() -> KoubanConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: KoubanConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
