#!/usr/bin/env python3
"""Build the GitHub Mode zip bundle from the repository root."""

from __future__ import annotations

from ghmode.tooling.bundle import main

if __name__ == "__main__":
    raise SystemExit(main())
