"""
Entry point for `python -m attrcrypt`.
"""

from __future__ import annotations

from .cli import run_cli


def main():
    run_cli()


if __name__ == "__main__":
    main()
