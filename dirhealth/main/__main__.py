"""
Main module entry point.

This allows running the CLI as: python -m dirhealth.main
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
