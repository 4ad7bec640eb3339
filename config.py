"""Configuration management for the Spotlight briefing pipeline.

This module provides centralized configuration for all pipeline components.
All settings are loaded from environment variables with sensible defaults.

Environment Variables:
    Required:
        GEMINI_API_KEY: Google Gemini API key for the search-grounded model

    Subject:
        SUBJECT_NAME: Public figure the briefing is about
        SUBJECT_HANDLE: X handle of the subject (without '@')
        SUBJECT_TOPICS: Comma-separated monitoring scope (companies, projects)

    Models (PydanticAI format - provider:model):
        DISCOVERY_MODEL: Model for the fast discovery stage
        WRITER_MODEL: Model for the long-form writing stage

    Output:
        LANGUAGE: Output language ('de' for German, 'en' for English)
        EXPORT_DIR: Directory for exported PDF/Markdown briefings
        LOG_DIR: Directory for log files

    Briefing Behavior:
        LOOKBACK_HOURS: Recency window the model is asked to prioritize
        MAX_SOURCES: Maximum number of sources kept in a report
        DUE_AFTER_HOURS: Hours after the last run when a new briefing is due
        STATE_FILE: Path of the last-run marker file

    Optional Features:
        ENABLE_LOGFIRE: Enable Logfire/OpenTelemetry tracing

    Logging:
        LOG_LEVEL: Logging verbosity (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_BACKUP_COUNT: Number of rotated log files to keep
        LOG_MAX_BYTES: Max log file size in bytes (0 = time-based rotation)
        LOG_FORMAT: Log format ('text' or 'json' for structured logging)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path


def _env(key: str, default: str = "") -> str:
    """Get string environment variable with optional default.

    Args:
        key: Environment variable name
        default: Value to return if not set

    Returns:
        Environment variable value or default
    """
    return os.environ.get(key, default)


def _env_int(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Args:
        key: Environment variable name
        default: Value to return if not set

    Returns:
        Parsed integer or default value

    Raises:
        ValueError: If value is set but cannot be parsed as integer
    """
    val = os.environ.get(key)
    if not val:
        return default
    try:
        return int(val)
    except ValueError:
        raise ValueError(f"Invalid integer value for {key}: '{val}'")


def _env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable with default.

    Recognizes truthy values: '1', 'true', 'yes', 'on'
    Recognizes falsy values: '0', 'false', 'no', 'off'
    """
    val = os.environ.get(key, "").lower()
    if val in ("1", "true", "yes", "on"):
        return True
    if val in ("0", "false", "no", "off"):
        return False
    return default


def _env_list(key: str, default: list[str]) -> list[str]:
    """Get comma-separated list environment variable with default."""
    val = os.environ.get(key)
    if not val:
        return list(default)
    return [item.strip() for item in val.split(",") if item.strip()]


# Monitoring scope shown to the model during discovery
DEFAULT_SUBJECT_TOPICS = [
    "Tesla",
    "SpaceX",
    "X",
    "xAI / Grok",
    "Neuralink",
    "The Boring Company",
]

DEFAULT_MODEL = "google-gla:gemini-3-flash-preview"


@dataclass
class Config:
    """Application configuration loaded from environment variables.

    All settings can be overridden via environment variables. Use Config.load()
    to create an instance with values from the environment.

    Example:
        >>> config = Config.load()
        >>> if error := config.validate():
        ...     print(f"Config error: {error}")
    """

    # === Required ===
    gemini_api_key: str = ""  # GEMINI_API_KEY - Google AI API key

    # === Subject ===
    subject_name: str = "Elon Musk"  # SUBJECT_NAME
    subject_handle: str = "elonmusk"  # SUBJECT_HANDLE - X handle without '@'
    subject_topics: list[str] = field(default_factory=lambda: DEFAULT_SUBJECT_TOPICS.copy())

    # === Output Settings ===
    language: str = "de"  # LANGUAGE - 'de' (German) or 'en' (English)

    # === AI Models ===
    # PydanticAI format: provider:model (e.g., 'google-gla:gemini-3-flash-preview')
    discovery_model: str = DEFAULT_MODEL  # Fast structured discovery
    writer_model: str = DEFAULT_MODEL  # Long-form synthesis

    # === Briefing Behavior ===
    lookback_hours: int = 48  # LOOKBACK_HOURS - Recency window in prompts
    max_sources: int = 15  # MAX_SOURCES - Source cap per report
    due_after_hours: int = 48  # DUE_AFTER_HOURS - When the next briefing is due

    # === State & Output Paths ===
    state_file: Path = field(default_factory=lambda: Path(".spotlight_last_run"))  # STATE_FILE
    export_dir: Path = field(default_factory=lambda: Path("exports"))  # EXPORT_DIR
    log_dir: Path = field(default_factory=lambda: Path("log"))  # LOG_DIR

    # === Logging Configuration ===
    log_level: str = "INFO"  # LOG_LEVEL - DEBUG, INFO, WARNING, ERROR
    log_backup_count: int = 30  # LOG_BACKUP_COUNT - Number of rotated logs to keep
    log_max_bytes: int = 0  # LOG_MAX_BYTES - Max file size (0 = time-based rotation)
    log_format: str = "text"  # LOG_FORMAT - 'text' or 'json' for structured logging

    # === Optional: Observability ===
    # Requires: pip install logfire
    enable_logfire: bool = False  # ENABLE_LOGFIRE - Enable distributed tracing
    logfire_token: str = ""  # LOGFIRE_TOKEN - Authentication token

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment variables."""
        return cls(
            gemini_api_key=_env("GEMINI_API_KEY"),
            subject_name=_env("SUBJECT_NAME", "Elon Musk"),
            subject_handle=_env("SUBJECT_HANDLE", "elonmusk").lstrip("@"),
            subject_topics=_env_list("SUBJECT_TOPICS", DEFAULT_SUBJECT_TOPICS),
            language=_env("LANGUAGE", "de"),
            discovery_model=_env("DISCOVERY_MODEL", DEFAULT_MODEL),
            writer_model=_env("WRITER_MODEL", DEFAULT_MODEL),
            lookback_hours=_env_int("LOOKBACK_HOURS", 48),
            max_sources=_env_int("MAX_SOURCES", 15),
            due_after_hours=_env_int("DUE_AFTER_HOURS", 48),
            state_file=Path(_env("STATE_FILE", ".spotlight_last_run")),
            export_dir=Path(_env("EXPORT_DIR", "exports")),
            log_dir=Path(_env("LOG_DIR", "log")),
            enable_logfire=_env_bool("ENABLE_LOGFIRE", False),
            logfire_token=_env("LOGFIRE_TOKEN"),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
            log_backup_count=_env_int("LOG_BACKUP_COUNT", 30),
            log_max_bytes=_env_int("LOG_MAX_BYTES", 0),
            log_format=_env("LOG_FORMAT", "text").lower(),
        )

    @property
    def subject_profile_url(self) -> str:
        """Profile URL used when the model cannot find a specific post."""
        return f"https://x.com/{self.subject_handle}"

    def validate(self) -> str | None:
        """Validate configuration for required fields and valid values.

        Checks:
            - GEMINI_API_KEY is set
            - A subject is configured
            - Language is 'de' or 'en'
            - Numeric values are positive

        Returns:
            Error message string if invalid, None if valid.
        """
        if not self.gemini_api_key:
            return "GEMINI_API_KEY environment variable is required"
        if not self.subject_name.strip():
            return "SUBJECT_NAME must not be empty"
        if self.language not in ("de", "en"):
            return f"Invalid LANGUAGE '{self.language}' - must be 'de' or 'en'"
        if self.lookback_hours <= 0:
            return "LOOKBACK_HOURS must be positive"
        if self.max_sources <= 0:
            return "MAX_SOURCES must be positive"
        if self.due_after_hours <= 0:
            return "DUE_AFTER_HOURS must be positive"
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            return f"Invalid LOG_LEVEL '{self.log_level}' - must be DEBUG, INFO, WARNING, ERROR, or CRITICAL"
        if self.log_format not in ("text", "json"):
            return f"Invalid LOG_FORMAT '{self.log_format}' - must be 'text' or 'json'"
        if self.log_backup_count < 0:
            return "LOG_BACKUP_COUNT must be non-negative"
        if self.log_max_bytes < 0:
            return "LOG_MAX_BYTES must be non-negative"
        return None
