"""Main entry point for prbot.

Usage: python main.py <user/repo>
"""
import sys

from prbot.cli import main

if __name__ == "__main__":
    sys.exit(main())
