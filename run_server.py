#!/usr/bin/env python
"""
Run Portfolio Server - Entry point script for the balances/prices HTTP service.

Location: run_server.py
Purpose: Serve GET /api/balances and GET /api/prices for the dashboard
Relevant files: src/binance_portfolio/server.py, config.yml, .env

Usage:
    python run_server.py
    python run_server.py --port 8080 --log_level DEBUG
"""

import argparse
import logging
from pathlib import Path

import yaml


def load_config():
    """Load configuration from config.yml"""
    config_path = Path(__file__).parent / "config.yml"
    if config_path.exists():
        with open(config_path) as f:
            return yaml.safe_load(f) or {}
    return {}


def main():
    config = load_config()
    server_config = config.get("server", {})
    logging_config = config.get("logging", {})

    parser = argparse.ArgumentParser(description="Run the Binance portfolio service")
    parser.add_argument("--host", default=server_config.get("host", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=server_config.get("port", 8080))
    parser.add_argument("--log_level", default=logging_config.get("level", "INFO"))
    args = parser.parse_args()

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Import after parsing args
    from aiohttp import web
    from binance_portfolio.server import create_app

    print(f"🚀 Serving portfolio on http://{args.host}:{args.port}/api/balances")
    web.run_app(create_app(), host=args.host, port=args.port, print=None)


if __name__ == "__main__":
    main()
