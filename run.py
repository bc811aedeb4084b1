#!/usr/bin/env python3
"""Run script for ztask."""

import sys

from ztask.cli.main import main

if __name__ == "__main__":
    sys.exit(main())
