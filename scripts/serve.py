#!/usr/bin/env python3
"""
Run the ledger API on Flask's development server.

Settings come from donation_config (YAML file plus environment overrides).

Usage:
    python3 scripts/serve.py
    python3 scripts/serve.py --port 8080 --debug
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def main() -> int:
    parser = argparse.ArgumentParser(description="Serve the donation ledger API")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=5000)
    parser.add_argument("--debug", action="store_true", help="Enable the Flask debugger and reloader")
    args = parser.parse_args()

    from donation_api import create_app

    app = create_app()
    app.run(host=args.host, port=args.port, debug=args.debug)
    return 0


if __name__ == "__main__":
    sys.exit(main())
