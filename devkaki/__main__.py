"""Entry point for devkaki when run as a module.

This allows the package to be run with: python -m devkaki
"""

import sys

from devkaki.cli import main

if __name__ == "__main__":
    sys.exit(main())
