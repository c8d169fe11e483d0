"""
ModelSchema - Module entry point.

Allows running the compiler directly via::

    python -m modelschema --schema schema.yaml

This module simply delegates to the CLI entry point defined in
``modelschema.cli``.
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from modelschema.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()
