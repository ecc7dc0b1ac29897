"""Configuration parsing for viewc.yaml"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from viewc.exceptions import ConfigError


class ErrorMode(str, Enum):
    """How compile failures are surfaced."""

    STRICT = "strict"  # raise CompileError
    LENIENT = "lenient"  # warn and leave a visible marker
    IGNORE = "ignore"  # leave the region as-is


class CompilerSettings(BaseModel):
    """Switches and knobs controlling compilation."""

    error_mode: ErrorMode = ErrorMode.LENIENT
    max_iterations: int = Field(
        default=20, ge=1, description="Cap for fixed-point variable promotion passes"
    )
    max_member_rewrites: int = Field(
        default=50, ge=1, description="Cap for dot-syntax rewrites per expression"
    )
    max_protected_variables: int = Field(
        default=50, ge=1, description="Cap for variable references masked per pass"
    )
    method_names: set[str] = Field(
        default_factory=set,
        description="Members always called with () when written without parens",
    )
    property_names: set[str] = Field(
        default_factory=set,
        description="Members never called, even when they look like accessors",
    )
    strict_members: bool = Field(
        default=False,
        description="Report members classified by the fallback rule as ambiguous",
    )


class ViewSettings(BaseModel):
    """Settings for template lookup and rendering."""

    templates_dir: Path = Path("templates")
    cache_dir: Path | None = None
    auto_reload: bool = True
    extensions: list[str] = [".html", ".tpl"]
    asset_base: str = "/"
    debug: bool = False
    environment: str = "dev"
    csrf_field: str = "_csrf_token"


class ViewcConfig(BaseModel):
    """Full viewc.yaml configuration"""

    compiler: CompilerSettings = Field(default_factory=CompilerSettings)
    view: ViewSettings = Field(default_factory=ViewSettings)

    @classmethod
    def load(cls, path: Path) -> "ViewcConfig":
        """Load config from yaml file"""
        if not path.exists():
            return cls()

        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(str(path), str(e)) from e

        if not isinstance(data, dict):
            raise ConfigError(str(path), "top level must be a mapping")

        try:
            config = cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(str(path), str(e)) from e

        # Relative directories are anchored at the config file
        base = path.parent
        if not config.view.templates_dir.is_absolute():
            config.view.templates_dir = base / config.view.templates_dir
        if config.view.cache_dir is not None and not config.view.cache_dir.is_absolute():
            config.view.cache_dir = base / config.view.cache_dir
        return config


def find_config_file(start: Path | None = None) -> Path | None:
    """Find viewc.yaml in the given directory or its parents."""
    cwd = start or Path.cwd()
    for parent in [cwd] + list(cwd.parents):
        candidate = parent / "viewc.yaml"
        if candidate.exists():
            return candidate
    return None
