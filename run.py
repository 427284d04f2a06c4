#!/usr/bin/env python3
"""
Bank Loan Simulator Entry Point

Starts the FastAPI server with settings taken from LOANSIM_* environment
variables (see loan_simulator/config.py).
"""

import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from loan_simulator.api import run_server
from loan_simulator.config import get_config
from loan_simulator.logging_config import setup_logging, log_action


if __name__ == "__main__":
    config = get_config()
    logger = setup_logging(config.log_level)

    log_action(logger, "info", "Starting Bank Loan Simulator", action="startup",
               extra={"host": config.api_host, "port": config.api_port,
                      "storage_backend": config.storage_backend})

    try:
        run_server(
            host=config.api_host,
            port=config.api_port,
            debug=config.log_level.upper() == "DEBUG"
        )
    except KeyboardInterrupt:
        log_action(logger, "info", "Shutting down Bank Loan Simulator", action="shutdown")
    except Exception as e:
        log_action(logger, "error", f"Error starting server: {e}", action="startup_failed")
        sys.exit(1)
