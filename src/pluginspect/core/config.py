"""Inspector settings.

Settings come from defaults, an optional YAML/JSON settings file, and
command-line overrides, in that order. Nothing is read from the
environment.
"""

import json
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from pluginspect.core.errors import ConfigError

ReportFormat = Literal["xml", "json"]

REPORT_SUFFIXES: dict[str, str] = {
    "xml": ".dump.xml",
    "json": ".dump.json",
}


class InspectorSettings(BaseModel):
    """Settings for one inspection run."""

    entry_point_attribute: str = Field(
        default="Entry-Point-Type",
        min_length=1,
        description="Manifest attribute naming the entry-point type (case-insensitive)",
    )
    manifest_path: str = Field(
        default="META-INF/MANIFEST.MF",
        min_length=1,
        description="Location of the manifest inside the archive",
    )
    host_contract_modules: tuple[str, ...] = Field(
        default=("pluginspect.api",),
        description="Host packages shared with artifact code",
    )
    allow_stdlib: bool = Field(
        default=True,
        description="Expose the Python standard library to artifact code",
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Limit for entry-point construction plus extension enumeration",
    )
    report_format: ReportFormat = "xml"
    report_suffix: str | None = Field(
        default=None,
        description="Suffix appended to the artifact path for the default report path",
    )

    model_config = {"extra": "forbid"}

    @field_validator("host_contract_modules")
    @classmethod
    def _check_modules(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        for name in value:
            if not name or any(not part.isidentifier() for part in name.split(".")):
                raise ValueError(f"not a module name: {name!r}")
        return value

    def default_report_path(self, artifact_path: Path) -> Path:
        """Report path used when the caller does not supply one."""
        suffix = self.report_suffix or REPORT_SUFFIXES[self.report_format]
        return Path(f"{artifact_path}{suffix}")


def load_settings(path: Path | None = None, **overrides: Any) -> InspectorSettings:
    """Load settings from an optional YAML or JSON file.

    Args:
        path: Settings file (``.json`` is parsed as JSON, anything else as YAML)
        **overrides: Values that take precedence over the file

    Returns:
        Validated InspectorSettings

    Raises:
        ConfigError: If the file cannot be read or fails validation
    """
    data: dict[str, Any] = {}
    if path is not None:
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read settings file: {e}", path=str(path))
        try:
            loaded = json.loads(text) if path.suffix == ".json" else yaml.safe_load(text)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot parse settings file: {e}", path=str(path))
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError("Settings file must contain a mapping", path=str(path))
        data.update(loaded)

    data.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return InspectorSettings(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}", path=str(path) if path else None)
