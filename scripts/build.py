#!/usr/bin/env python3
"""
Build script for the book: python scripts/build.py <book> [options]

Same as the installed `chapbook` command; see chapbook/cli.py for usage.
"""

import os
import sys

# Ensure chapbook is importable from the scripts/ directory
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from chapbook.cli import main


if __name__ == "__main__":
    main()
