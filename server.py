#!/usr/bin/env python3
"""
Entrypoint for local runs.

    python3 server.py --config config.json
"""

from filegate.main import run


if __name__ == "__main__":
    run()
