#!/usr/bin/env python3
"""
PulseFeed - Tiered News Aggregation
===================================

Main application entry point. See ``pulsefeed.cli`` for the commands.

Usage:
    python main.py --help
"""

from pulsefeed.cli import main

if __name__ == "__main__":
    main()
