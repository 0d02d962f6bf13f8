"""
Entry point for running Impact Wrapped as a module.

Usage:
    python -m impactwrap [args]
"""

import sys

from .main import main

if __name__ == "__main__":
    sys.exit(main())
