#!/usr/bin/env python3
"""
Main entry point for the ircengine client
"""

from ircengine.main import run

if __name__ == "__main__":
    run()
