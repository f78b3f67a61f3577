#!/usr/bin/env python3
"""Backward-compatible entrypoint for subset selection runs."""

from pathfinder.cli.select_subset import main


if __name__ == "__main__":
    main()
