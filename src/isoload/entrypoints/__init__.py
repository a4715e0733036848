"""Entrypoints (inbound adapters) for isoload.

Expose the runner to the outside world: the pytest plugin lives in
`isoload.plugin`, the command-line interface in `isoload.entrypoints.cli`.
Parse and validate inputs, call the runner, and present results.
"""
