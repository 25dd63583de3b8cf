"""
Contract selection module.

Resolves exactly one option contract from an engine-provided chain and
cross-checks it against the contract the scenario expects.
"""
