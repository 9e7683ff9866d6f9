#!/usr/bin/env python3
"""Bank account synchronization tool.

This is the main entry point script for bank-sync.
It wraps the package CLI for convenient execution.

Usage:
    python sync_bank_accounts.py --config-dir ./config --db ./bank_sync.db

For full documentation and options:
    python sync_bank_accounts.py --help
"""

import sys
from pathlib import Path

# Add src to path for development installs
src_path = Path(__file__).parent / "src"
if src_path.exists():
    sys.path.insert(0, str(src_path))

from bank_sync.cli import main

if __name__ == "__main__":
    sys.exit(main())
