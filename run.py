#!/usr/bin/env python3
"""
Loan Schedule Engine Entry Point

Starts the FastAPI server with host, port and storage taken from the
LOAN_SCHEDULE_* environment settings.
"""

import sys

from loan_schedule.api import run_server
from loan_schedule.config import get_config


if __name__ == "__main__":
    config = get_config()
    print("Starting Loan Schedule Engine...")
    print(f"Storage backend: {config.storage_backend}")
    print(f"API available at: http://localhost:{config.api_port}")
    print(f"Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        run_server()
    except KeyboardInterrupt:
        print("\nShutting down Loan Schedule Engine...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)
