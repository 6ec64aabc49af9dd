"""myday-voice configuration.

Includes:
- AppConfig: Main application settings with environment variable support
- FusionSettings: Weights and bounds for confidence fusion
- ClassifierSettings: Rule-classifier confidence constants

Environment Variables:
    MYDAY_VOICE_DATA_DIR: Directory holding logs, patterns and analytics
    MYDAY_VOICE_LANGUAGE: Language tag recorded with each command
    MYDAY_VOICE_RETENTION_DAYS: Days a command log is kept
    MYDAY_VOICE_TRANSCRIPT_SECRET: Enables encrypted transcripts at rest
    MYDAY_VOICE_AUTO_APPLY_PATTERNS: Apply learned patterns while parsing
    MYDAY_VOICE_FUSION__INTENT_WEIGHT (and other nested keys)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.intent.fusion import FusionWeights

logger = logging.getLogger(__name__)

ENV_PREFIX = "MYDAY_VOICE_"
CONFIG_FILE = "config.yaml"


class FusionSettings(BaseModel):
    """Confidence fusion weights.

    Attributes:
        intent_weight: Weight of the classifier confidence
        entity_weight: Weight of the mean entity confidence
        capture_weight: Weight of the speech-capture confidence
        floor: Lowest overall confidence reported
        ceiling: Highest overall confidence reported
        empty_entity_prior: Entity average used when nothing was extracted
    """

    intent_weight: float = Field(default=0.6, ge=0.0)
    entity_weight: float = Field(default=0.3, ge=0.0)
    capture_weight: float = Field(default=0.1, ge=0.0)
    floor: float = Field(default=0.1, ge=0.0, le=1.0)
    ceiling: float = Field(default=1.0, ge=0.0, le=1.0)
    empty_entity_prior: float = Field(default=0.5, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_bounds(self) -> "FusionSettings":
        if self.floor > self.ceiling:
            raise ValueError(f"floor ({self.floor}) must not exceed ceiling ({self.ceiling})")
        return self

    def to_weights(self) -> FusionWeights:
        return FusionWeights(
            intent=self.intent_weight,
            entity=self.entity_weight,
            capture=self.capture_weight,
            floor=self.floor,
            ceiling=self.ceiling,
            empty_entity_prior=self.empty_entity_prior,
        )


class ClassifierSettings(BaseModel):
    """Rule-classifier confidence constants."""

    unknown_confidence: float = Field(default=0.3, ge=0.0, le=1.0)
    max_confidence: float = Field(default=0.9, ge=0.0, le=1.0)
    hit_boost: float = Field(default=0.2, ge=0.0, le=1.0)

    def to_kwargs(self) -> dict[str, float]:
        """Keyword arguments for ``IntentClassifier``."""
        return self.model_dump()


class AppConfig(BaseSettings):
    """Application configuration with environment variable support.

    Configuration is loaded from environment variables with MYDAY_VOICE_
    prefix. For example, MYDAY_VOICE_RETENTION_DAYS sets retention_days.

    Precedence (highest to lowest):
        1. Environment variables (MYDAY_VOICE_*)
        2. Config file (<data_dir>/config.yaml)
        3. Default values
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_nested_delimiter="__",
        extra="ignore",
    )

    data_dir: Path = Field(default_factory=lambda: Path("~/.myday-voice").expanduser())
    language: str = "en-US"
    retention_days: int = Field(default=30, ge=1)

    # None keeps transcripts base64-obfuscated rather than encrypted
    transcript_secret: Optional[SecretStr] = None
    auto_apply_patterns: bool = True

    fusion: FusionSettings = Field(default_factory=FusionSettings)
    classifier: ClassifierSettings = Field(default_factory=ClassifierSettings)

    @property
    def config_file(self) -> Path:
        return self.data_dir / CONFIG_FILE

    @property
    def log_dir(self) -> Path:
        return self.data_dir / "logs"

    @classmethod
    def load(cls, data_dir: Path | None = None) -> "AppConfig":
        """Load configuration from <data_dir>/config.yaml if it exists.

        Keys set through the environment are not overridden by the file.

        Args:
            data_dir: Data directory (MYDAY_VOICE_DATA_DIR or the default if None)

        Returns:
            AppConfig with file values applied over defaults
        """
        from ruamel.yaml import YAML

        base = cls() if data_dir is None else cls(data_dir=Path(data_dir).expanduser())
        config_file = base.config_file
        if not config_file.exists():
            return base

        yaml = YAML()
        with config_file.open() as f:
            data = yaml.load(f) or {}

        env_keys = _env_keys()
        overrides: dict[str, Any] = {
            key: _plain(value)
            for key, value in data.items()
            if key in cls.model_fields and key != "data_dir" and key not in env_keys
        }
        logger.debug(f"Loaded config from {config_file}: {sorted(overrides)}")
        return cls(data_dir=base.data_dir, **overrides)

    def save(self) -> None:
        """Save configuration to <data_dir>/config.yaml.

        The transcript secret is never written to disk.
        """
        from ruamel.yaml import YAML

        self.data_dir.mkdir(parents=True, exist_ok=True)

        yaml = YAML()
        yaml.default_flow_style = False

        data = {
            "language": self.language,
            "retention_days": self.retention_days,
            "auto_apply_patterns": self.auto_apply_patterns,
            "fusion": self.fusion.model_dump(),
            "classifier": self.classifier.model_dump(),
        }

        with self.config_file.open("w") as f:
            yaml.dump(data, f)


def _env_keys() -> set[str]:
    """Top-level field names set through MYDAY_VOICE_* variables."""
    keys = set()
    for name in os.environ:
        if name.upper().startswith(ENV_PREFIX):
            keys.add(name[len(ENV_PREFIX):].lower().split("__", 1)[0])
    return keys


def _plain(value: Any) -> Any:
    # ruamel returns CommentedMap/CommentedSeq
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


__all__ = ["AppConfig", "ClassifierSettings", "FusionSettings"]
