#!/usr/bin/env python3
"""CI entry point for the spec-to-implementation tracking guard."""

from __future__ import annotations

from ghmode.tooling.scoreboard_check import main

if __name__ == "__main__":
    raise SystemExit(main())
