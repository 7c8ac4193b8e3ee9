#!/usr/bin/env python3
"""
Asset Ledger Entry Point

Starts the FastAPI server with the asset ledger using the configured
world state backend.
"""

import sys

from asset_ledger.config import get_config
from asset_ledger.api import run_server


if __name__ == "__main__":
    config = get_config()
    print("Starting Asset Ledger...")
    print(f"World state backend: {config.storage_backend}")
    print(f"API available at: http://{config.api_host}:{config.api_port}")
    print(f"Documentation at: http://{config.api_host}:{config.api_port}/docs")
    print()

    try:
        run_server(
            host=config.api_host,
            port=config.api_port,
            debug=config.api_debug
        )
    except KeyboardInterrupt:
        print("\nShutting down Asset Ledger...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)
