"""Command-line interface modules for tapgrid.

This package contains core execution logic, making scripts/ optional and deletable.
"""

from tapgrid.cli.run_dominance import run_dominance_pipeline

__all__ = ['run_dominance_pipeline']
