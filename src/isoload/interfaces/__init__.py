"""Interfaces (resolution boundary) for isoload.

Defines the framework-free contracts shared by the loader and its adapters:
search path entries that can read relative paths, and resolvers that turn a
unit name into a module for one isolation context.

Dependency rule: this package is independent. It may be imported by
`isoload.adapters`, `isoload.catalog` and `isoload.loader`.
"""
