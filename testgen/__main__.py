# File: testgen/__main__.py
"""
testgen — Module entry point.

Allows running the generator directly via::

    python -m testgen --routes routes.yaml --output ./tests/Feature

This module simply delegates to the CLI entry point defined in ``testgen.cli``.
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from testgen.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()
