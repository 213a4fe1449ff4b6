"""
Employee facade entry point.

Serves the REST facade with uvicorn using settings from the environment.
"""

import sys

import uvicorn
from loguru import logger

from employee_facade.api import create_app
from employee_facade.settings import global_settings

app = create_app(global_settings)


def main() -> None:
    logger.remove()
    logger.add(sys.stderr, level=global_settings.log_level.upper())

    logger.info("Starting employee facade...")
    uvicorn.run(
        app,
        host=global_settings.api_host,
        port=global_settings.api_port,
    )
    logger.info("Employee facade stopped")


if __name__ == "__main__":
    main()
