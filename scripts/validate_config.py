#!/usr/bin/env python3
"""Configuration validation script."""

import sys
from pathlib import Path
from typing import List

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from expiry_harness.config.loader import ConfigLoader
from expiry_harness.config.validation import ConfigValidator, ValidationError


def validate_scenario_config(loader: ConfigLoader, scenario_id: str) -> List[ValidationError]:
    """Validate configuration for a specific scenario."""
    config = loader.merge_config(scenario_id)
    return ConfigValidator.validate_config(config)


def main():
    """Main validation function."""
    print("🔍 Validating expiry harness configuration...")

    loader = ConfigLoader.create()
    scenario_ids = loader.list_scenarios()

    if not scenario_ids:
        print(f"❌ No scenarios found in {loader.config_dir / 'scenarios.yaml'}")
        sys.exit(1)

    all_valid = True

    for scenario_id in scenario_ids:
        print(f"\n📊 Validating {scenario_id}...")

        errors = validate_scenario_config(loader, scenario_id)

        if errors:
            print(f"❌ Found {len(errors)} validation errors:")
            for error in errors:
                print(f"  • {error.field}: {error.message} (value: {error.value})")
            all_valid = False
        else:
            print(f"✅ {scenario_id} configuration is valid")

    # Defaults alone must also be runnable
    print("\n📋 Validating built-in defaults...")
    errors = ConfigValidator.validate_config(loader.merge_config())
    if errors:
        print("❌ Default configuration is invalid:")
        for error in errors:
            print(f"  • {error.field}: {error.message}")
        all_valid = False
    else:
        print("✅ Default configuration is valid")

    if all_valid:
        print("\n🎉 All configuration validation passed!")
        sys.exit(0)
    else:
        print("\n❌ Configuration validation failed!")
        sys.exit(1)


if __name__ == "__main__":
    main()
