#!/usr/bin/env python3
"""
Issue Claimer

Polls GitHub for issues labeled 'Ready for Plan' and claims them using the
GitHub CLI. The editor sidebar talks to it over a local websocket.

Usage: python issue_claimer.py [config.json]
"""

import asyncio
import logging
import sys

from claimer.orchestrator import main


def run():
    config_path = sys.argv[1] if len(sys.argv) > 1 else "config.json"
    try:
        asyncio.run(main(config_path))
    except KeyboardInterrupt:
        logging.info("Issue Claimer stopped by user")
        sys.exit(0)
    except Exception as e:
        logging.error(f"Issue Claimer failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()
