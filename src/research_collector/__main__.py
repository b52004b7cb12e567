"""
Allow running the CLI as module: python -m research_collector
"""

from __future__ import annotations

import sys

from .presentation.cli import main

if __name__ == "__main__":
    sys.exit(main())
