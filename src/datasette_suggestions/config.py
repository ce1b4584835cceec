"""
Configuration for datasette-suggestions.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

PLUGIN_NAME = "datasette-suggestions"

# Fields a suggestion owner may change after creation
EDITABLE_FIELDS = ("title", "body", "status")


@dataclass
class SuggestionsConfig:
    """Complete datasette-suggestions configuration."""

    db_path: Path = field(default_factory=lambda: Path("suggestions.db"))
    login_path: str = "/"
    dashboard_path: str = "/dashboard"
    list_path: str = "/suggestions"
    editable_fields: tuple[str, ...] = EDITABLE_FIELDS

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SuggestionsConfig":
        """Create config from a plugin config dictionary."""
        config = cls()

        if "suggestions_db_path" in data:
            config.db_path = Path(data["suggestions_db_path"])
        if "login_path" in data:
            config.login_path = data["login_path"]
        if "dashboard_path" in data:
            config.dashboard_path = data["dashboard_path"]

        if "editable_fields" in data:
            requested = data["editable_fields"] or []
            unknown = [name for name in requested if name not in EDITABLE_FIELDS]
            if unknown:
                raise ValueError(
                    f"Unknown editable_fields {unknown}. Must be drawn from: {list(EDITABLE_FIELDS)}"
                )
            config.editable_fields = tuple(requested)

        return config

    @classmethod
    def from_yaml(cls, path: Path) -> "SuggestionsConfig":
        """Load config from a YAML file (datasette.yaml format)."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        plugin_config = (data.get("plugins") or {}).get(PLUGIN_NAME) or {}
        return cls.from_dict(plugin_config)

    @classmethod
    def from_datasette(cls, datasette) -> "SuggestionsConfig":
        """Read config from the running Datasette instance."""
        return cls.from_dict(datasette.plugin_config(PLUGIN_NAME) or {})

    def to_dict(self) -> dict[str, Any]:
        """Convert config back to the plugin config shape."""
        return {
            "suggestions_db_path": str(self.db_path),
            "login_path": self.login_path,
            "dashboard_path": self.dashboard_path,
            "editable_fields": list(self.editable_fields),
        }
