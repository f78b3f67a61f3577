#!/usr/bin/env python3
"""Backward-compatible entrypoint for synthetic ensemble generation."""

from pathfinder.cli.make_ensemble import main


if __name__ == "__main__":
    main()
