#!/usr/bin/env python3
"""
Main entry point for the account closer.

Usage:
    python main.py              # close inactive accounts
    python main.py --dry-run    # log decisions only
    python main.py -n           # same as --dry-run

See --help for available options.
"""

from account_closer.cli import main


if __name__ == "__main__":
    main()
