#!/usr/bin/env python3
"""
SPT Dedicated Server Launcher
Container entrypoint; see spt_launcher.cli for the subcommands.
"""

import sys

from spt_launcher.cli import main

if __name__ == "__main__":
    sys.exit(main())
