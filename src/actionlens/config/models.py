"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (ACTIONLENS__SECTION__KEY)
3. Repo YAML (.actionlens/config.yaml)
4. Global YAML (~/.config/actionlens/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    ACTIONLENS__<SECTION>__<KEY>=<VALUE>

Examples:
    ACTIONLENS__LOGGING__LEVEL=DEBUG
    ACTIONLENS__BOUNDS__MAX_CONCURRENT=4
    ACTIONLENS__RESOLVER__MAX_HOPS=5
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from actionlens.core.excludes import DEFAULT_EXCLUDE_PATTERNS, SOURCE_EXTENSIONS

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        ACTIONLENS__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="WARNING",
        description="Root log level. DEBUG logs every filtered and resolved candidate.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class ResolutionBounds(BaseModel):
    """Safety bounds for one correlation pass.

    Env vars:
        ACTIONLENS__BOUNDS__MAX_CONCURRENT: Oracle calls in flight at once
        ACTIONLENS__BOUNDS__PER_PASS_BUDGET_MS: Wall-clock budget for admissions
        ACTIONLENS__BOUNDS__RESOLVE_TIMEOUT_MS: Timeout of a single oracle call
        ACTIONLENS__BOUNDS__MAX_RESOLUTIONS: Oracle calls admitted per pass
    """

    max_concurrent: int = Field(
        default=6,
        gt=0,
        description="Oracle calls in flight at once. "
        "TRADEOFF: Higher values finish sooner but load the language service harder.",
    )
    per_pass_budget_ms: int = Field(
        default=2000,
        gt=0,
        description="Stop admitting new resolutions once a pass has run this long.",
    )
    resolve_timeout_ms: int = Field(
        default=1500,
        gt=0,
        description="A single resolution slower than this counts as a miss. "
        "The underlying oracle call is not cancelled.",
    )
    max_resolutions: int = Field(
        default=30,
        gt=0,
        description="Oracle calls admitted per pass. Remaining candidates stay unverified.",
    )


class ResolverConfig(BaseModel):
    """Definition chasing configuration.

    Env vars:
        ACTIONLENS__RESOLVER__MAX_HOPS: Definition hops followed per candidate
    """

    max_hops: int = Field(
        default=3,
        gt=0,
        description="Definition/re-export hops followed before giving up. "
        "RISK: High values multiply oracle latency on barrel-heavy codebases.",
    )


class FilesConfig(BaseModel):
    """Which files take part in highlighting.

    Env vars:
        ACTIONLENS__FILES__EXCLUDE: JSON list of regular expressions
    """

    exclude: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS),
        description="Regular expressions matched against '/'-normalized paths. "
        "Invalid patterns are skipped individually.",
    )
    extensions: list[str] = Field(
        default_factory=lambda: sorted(SOURCE_EXTENSIONS),
        description="File extensions scanned when walking a directory.",
    )

    @field_validator("extensions")
    @classmethod
    def validate_extensions(cls, v: list[str]) -> list[str]:
        return [ext if ext.startswith(".") else f".{ext}" for ext in v]


class ActionLensConfig(BaseModel):
    """Root configuration for actionlens.

    All settings can be configured via:
    1. Environment variables: ACTIONLENS__SECTION__KEY
    2. YAML config files (repo or global)
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    bounds: ResolutionBounds = Field(default_factory=ResolutionBounds)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    files: FilesConfig = Field(default_factory=FilesConfig)
