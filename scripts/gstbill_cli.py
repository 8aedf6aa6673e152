#!/usr/bin/env python3
"""Run the gstbill command line straight from a checkout."""

from __future__ import annotations

import sys
from pathlib import Path

# Use the package under ``src`` when the project is not installed.
_PROJECT_ROOT = Path(__file__).resolve().parents[1]
_SRC_PATH = _PROJECT_ROOT / "src"
if _SRC_PATH.exists() and str(_SRC_PATH) not in sys.path:
    sys.path.insert(0, str(_SRC_PATH))

from gstbill.cli import main

if __name__ == "__main__":  # pragma: no cover - direct execution
    raise SystemExit(main())
