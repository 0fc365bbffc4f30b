"""Configuration Management for CLI Settings"""

import os
from copy import deepcopy
from pathlib import Path
from typing import Any

import yaml
from rich.console import Console

console = Console()


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively overlay `override` on a copy of `base`"""
    merged = deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """YAML-backed CLI settings addressed with dotted keys"""

    def __init__(self, config_dir: Path | None = None):
        self.config_dir = config_dir or Path(
            os.getenv("VIBEQUEUE_CONFIG_DIR", Path.home() / ".vibequeue")
        )
        self.config_file = self.config_dir / "config.yaml"

    def get_default_config(self) -> dict[str, Any]:
        return {
            "api": {
                "base_url": os.getenv("VIBEQUEUE_API_URL", "http://localhost:8000"),
                "timeout": 30,
            },
        }

    def load_config(self) -> dict[str, Any]:
        """Stored settings layered over the defaults"""
        if not self.config_file.exists():
            return self.get_default_config()

        try:
            stored = yaml.safe_load(self.config_file.read_text()) or {}
        except (OSError, yaml.YAMLError) as e:
            console.print(f"[red]Error loading config: {e}[/red]")
            return self.get_default_config()
        return _merge(self.get_default_config(), stored)

    def save_config(self, config: dict[str, Any]):
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config_file.write_text(yaml.safe_dump(config, default_flow_style=False))

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by dotted key, e.g. 'api.base_url'"""
        node: Any = self.load_config()
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any):
        """Set a value by dotted key, creating intermediate sections"""
        config = self.load_config()
        *parents, leaf = key.split(".")

        node = config
        for part in parents:
            node = node.setdefault(part, {})
        node[leaf] = value
        self.save_config(config)

    def reset(self):
        self.save_config(self.get_default_config())

    def dump(self) -> str:
        """All configuration settings as YAML"""
        return yaml.safe_dump(self.load_config(), default_flow_style=False)


# Global config manager instance
config = ConfigManager()
