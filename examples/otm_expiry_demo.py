#!/usr/bin/env python3
"""
OTM Expiry Demo - Expiry Verification Harness

This script runs the SPX put OTM expiry scenario against the replay engine.
It shows how to:
- Load a scenario from config/scenarios.yaml
- Drive the scenario with a scripted engine timeline
- Inspect the result of a passing run
- See how an engine that exercises the contract is reported

Run: python examples/otm_expiry_demo.py [scenario_id]
"""

import sys

from expiry_harness.config.scenario import load_scenario_config
from expiry_harness.engine import IndexOptionPutOtmExpiryScenario, ScenarioResult
from expiry_harness.logging import configure_logging
from expiry_harness.replay import build_otm_expiry_replay


def print_result(title: str, result: ScenarioResult) -> None:
    """Print a scenario result."""
    print(f"\n=== {title} ===")
    print(f"Passed:            {result.passed}")
    print(f"Selected contract: {result.selected_contract}")
    print(f"Entry fired:       {result.entry_fired}")
    print(f"Final position:    {result.final_position.value if result.final_position else None}")
    print(f"Opened at:         {result.opened_at.isoformat() if result.opened_at else None}")
    print(f"Closed at:         {result.closed_at.isoformat() if result.closed_at else None}")
    for fill in result.fills:
        print(f"  {fill.timestamp.isoformat()}  {fill.direction.value:<4}  "
              f"held={fill.quantity_after}  {fill.message!r}")
    if result.failed:
        print(f"Diagnostic:        {result.diagnostic}")


def main():
    scenario_id = sys.argv[1] if len(sys.argv) > 1 else "spx_put_otm"
    config = load_scenario_config(scenario_id)
    configure_logging(level=config.log_level, format_json=config.log_json)

    engine = build_otm_expiry_replay(config)
    result = engine.run(IndexOptionPutOtmExpiryScenario(engine, config))
    print_result(f"{scenario_id}: contract expires worthless", result)

    # Same timeline, but the engine reports an exercise instead of an OTM expiry
    engine = build_otm_expiry_replay(config, expiry_message="Automatic Exercise")
    faulty = engine.run(IndexOptionPutOtmExpiryScenario(engine, config))
    print_result(f"{scenario_id}: engine exercises the contract", faulty)

    sys.exit(0 if result.passed and faulty.failed else 1)


if __name__ == "__main__":
    main()
