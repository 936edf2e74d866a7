"""
spt_launcher package
--------------------
Container entrypoint for SPT (Single Player Tarkov) dedicated servers on Linux / Docker.
Contains modules for settings, build caching, mod installation, first-run
initialization, config patching, persistent data linking and privilege handling.
"""

__version__ = "0.4.0"
