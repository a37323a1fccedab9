#!/usr/bin/env python3
"""Workflow-step entry point for eyes-reaction signaling."""

from __future__ import annotations

from ghmode.tooling.signal_reaction import main

if __name__ == "__main__":
    raise SystemExit(main())
