"""Main entry point for the application."""

import asyncio
import logging
import sys

from userdir.config import get_config_value, validate_config
from userdir.logging_setup import setup_logging

# Log to file only unless debugging, the console belongs to the shell
setup_logging(console=bool(get_config_value("app_settings.debug_mode", False)))

logger = logging.getLogger(__name__)

validate_config()


def main() -> int:
    from userdir.app import DirectoryApp
    from userdir.shell import ConsoleShell

    try:
        logger.info("Starting User Directory client")
        app = DirectoryApp()
        asyncio.run(ConsoleShell(app).run())
        logger.info("User Directory client stopped")
        return 0
    except KeyboardInterrupt:
        return 0
    except Exception as e:
        logger.critical(f"Failed to start client: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
