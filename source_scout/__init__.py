# source_scout/__init__.py
"""
SourceScout package initializer.
Defines package version; the CLI lives in ``source_scout.cli``.
"""
__version__ = "0.1.0"
