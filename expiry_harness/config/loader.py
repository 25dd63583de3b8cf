"""Configuration loader with 3-tier parameter precedence."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from .defaults import ScenarioDefaults, get_default_config


@dataclass(frozen=True)
class ConfigLoader:
    """Manages configuration loading with 3-tier precedence."""

    config_dir: Path
    defaults: ScenarioDefaults

    @classmethod
    def create(cls, config_dir: Optional[Path] = None) -> "ConfigLoader":
        """Create a ConfigLoader instance."""
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent / "config"

        return cls(
            config_dir=Path(config_dir),
            defaults=get_default_config(),
        )

    def _load_scenarios_file(self) -> dict[str, Any]:
        scenarios_file = self.config_dir / "scenarios.yaml"

        if not scenarios_file.exists():
            return {}

        with open(scenarios_file) as f:
            scenarios_config = yaml.safe_load(f) or {}

        return scenarios_config.get("scenarios", {}) or {}  # type: ignore[no-any-return]

    def list_scenarios(self) -> list[str]:
        """Names of the scenarios defined in scenarios.yaml."""
        return sorted(self._load_scenarios_file())

    def load_scenario_config(self, scenario_id: str) -> dict[str, Any]:
        """Load scenario-specific configuration overrides."""
        return self._load_scenarios_file().get(scenario_id, {}) or {}

    def merge_config(
        self,
        scenario_id: Optional[str] = None,
        run_overrides: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        """
        Merge configuration with 3-tier precedence.

        Priority order:
        1. Per-run overrides (highest priority)
        2. Scenario entry in scenarios.yaml
        3. Global defaults (lowest priority)
        """
        config = self._dataclass_to_dict(self.defaults)

        if scenario_id:
            config = self._deep_merge(config, self.load_scenario_config(scenario_id))

        if run_overrides:
            config = self._deep_merge(config, run_overrides)

        return config

    def _dataclass_to_dict(self, obj: Any) -> dict[str, Any]:
        """Convert nested dataclasses to dictionary."""
        if hasattr(obj, '__dataclass_fields__'):
            result = {}
            for field_name, _field in obj.__dataclass_fields__.items():
                value = getattr(obj, field_name)
                if hasattr(value, '__dataclass_fields__'):
                    result[field_name] = self._dataclass_to_dict(value)
                else:
                    result[field_name] = value
            return result
        return obj  # type: ignore[no-any-return]

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result
