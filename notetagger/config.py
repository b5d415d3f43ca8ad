"""
Configuration management for notetagger.

The configuration is stored as a TOML file in the vault's config directory
(``<vault>/.notetagger/notetagger.toml`` unless NOTETAGGER_HOME or an
explicit directory says otherwise). It names the model, the thematic
vocabulary and the tagging bounds. The engine treats it as read-only;
per-document tagging state lives in the tagged-files store, not here.
"""

import os
import tomllib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

import tomli_w

from .errors import ConfigurationError


CONFIG_FILENAME = "notetagger.toml"
CONFIG_DIRNAME = ".notetagger"
CONFIG_VERSION = 1

DEFAULT_OLLAMA_URL = "http://localhost:11434"

# Allowed range for min_tags and max_tags
TAG_COUNT_MIN = 1
TAG_COUNT_MAX = 10


@dataclass
class TaggerConfig:
    """Complete tagging configuration."""
    path: Path
    version: int = CONFIG_VERSION
    created: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    # Model service
    model: str | None = None
    ollama_url: str = DEFAULT_OLLAMA_URL

    # Tagging
    vocabulary: list[str] = field(default_factory=list)
    min_tags: int = 3
    max_tags: int = 5
    detect_genre: bool = False
    language: str = "English"
    custom_instructions: str = ""

    # Selection
    exclude_patterns: list[str] = field(default_factory=list)
    auto_tag: bool = False
    debounce_seconds: float = 2.0

    @property
    def config_path(self) -> Path:
        """Path to the TOML config file."""
        return self.path / CONFIG_FILENAME

    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()


def resolve_config_dir(vault: Path, override: Path | None = None) -> Path:
    """Pick the config directory: explicit override, NOTETAGGER_HOME, or the vault."""
    if override is not None:
        return override
    env = os.environ.get("NOTETAGGER_HOME")
    if env:
        return Path(env)
    return vault / CONFIG_DIRNAME


def parse_vocabulary(text: str) -> list[str]:
    """Split comma-separated tag input, trimming and dropping empties."""
    return [tag.strip() for tag in text.split(",") if tag.strip()]


def parse_patterns(text: str) -> list[str]:
    """Split newline-separated exclusion patterns, trimming and dropping empties."""
    return [p.strip() for p in text.splitlines() if p.strip()]


def validate_tag_bounds(config: TaggerConfig) -> None:
    """Raise ConfigurationError unless TAG_COUNT_MIN <= min_tags <= max_tags <= TAG_COUNT_MAX."""
    for name in ("min_tags", "max_tags"):
        value = getattr(config, name)
        if not TAG_COUNT_MIN <= value <= TAG_COUNT_MAX:
            raise ConfigurationError(
                f"{name} must be between {TAG_COUNT_MIN} and {TAG_COUNT_MAX} (got {value})"
            )
    if config.min_tags > config.max_tags:
        raise ConfigurationError(
            f"min_tags ({config.min_tags}) is greater than max_tags ({config.max_tags})"
        )


def validate_for_tagging(config: TaggerConfig) -> None:
    """
    Check that a tagging run can start.

    Raises:
        ConfigurationError: no model, empty vocabulary, or bad tag bounds
    """
    if not config.model:
        raise ConfigurationError("No model selected. Set one with: notetagger init --model NAME")
    if not config.vocabulary:
        raise ConfigurationError("Tag vocabulary is empty. Set it with: notetagger init --tags 'a, b'")
    validate_tag_bounds(config)


def load_config(config_dir: Path) -> TaggerConfig:
    """
    Load configuration from a config directory.

    Raises:
        FileNotFoundError: If config doesn't exist
        ValueError: If config is invalid
    """
    config_path = config_dir / CONFIG_FILENAME

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    meta = data.get("notetagger", {})
    version = meta.get("version", 1)
    if version > CONFIG_VERSION:
        raise ValueError(f"Config version {version} is newer than supported ({CONFIG_VERSION})")

    model = data.get("model", {})
    tagging = data.get("tagging", {})
    selection = data.get("selection", {})

    return TaggerConfig(
        path=config_dir,
        version=version,
        created=meta.get("created", ""),
        model=model.get("name") or None,
        ollama_url=model.get("ollama_url") or os.environ.get("OLLAMA_HOST") or DEFAULT_OLLAMA_URL,
        vocabulary=list(tagging.get("vocabulary", [])),
        min_tags=int(tagging.get("min_tags", 3)),
        max_tags=int(tagging.get("max_tags", 5)),
        detect_genre=bool(tagging.get("detect_genre", False)),
        language=tagging.get("language", "English"),
        custom_instructions=tagging.get("custom_instructions", ""),
        exclude_patterns=list(selection.get("exclude_patterns", [])),
        auto_tag=bool(selection.get("auto_tag", False)),
        debounce_seconds=float(selection.get("debounce_seconds", 2.0)),
    )


def save_config(config: TaggerConfig) -> None:
    """
    Save configuration to the config directory.

    Creates the directory if it doesn't exist.
    """
    config.path.mkdir(parents=True, exist_ok=True)

    # TOML has no null, so an unset model is written as ""
    data = {
        "notetagger": {
            "version": config.version,
            "created": config.created,
        },
        "model": {
            "name": config.model or "",
            "ollama_url": config.ollama_url,
        },
        "tagging": {
            "vocabulary": config.vocabulary,
            "min_tags": config.min_tags,
            "max_tags": config.max_tags,
            "detect_genre": config.detect_genre,
            "language": config.language,
            "custom_instructions": config.custom_instructions,
        },
        "selection": {
            "exclude_patterns": config.exclude_patterns,
            "auto_tag": config.auto_tag,
            "debounce_seconds": config.debounce_seconds,
        },
    }

    with open(config.config_path, "wb") as f:
        tomli_w.dump(data, f)


def load_or_create_config(config_dir: Path) -> TaggerConfig:
    """
    Load existing config or create a new one with defaults.

    This is the main entry point for config management.
    """
    if (config_dir / CONFIG_FILENAME).exists():
        return load_config(config_dir)
    config = TaggerConfig(
        path=config_dir,
        ollama_url=os.environ.get("OLLAMA_HOST") or DEFAULT_OLLAMA_URL,
    )
    save_config(config)
    return config
