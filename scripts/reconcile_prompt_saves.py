#!/usr/bin/env python3
"""Prompt saves cleanup.

Usage: python scripts/reconcile_prompt_saves.py [--dry-run] [--format text|json] [--workers N]
"""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from apps.reconcile.cli import main  # noqa: E402

if __name__ == '__main__':
    sys.exit(main(reconciler='saves'))
