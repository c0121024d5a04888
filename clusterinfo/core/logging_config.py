"""Process-wide logging setup for the reporter."""

import logging
import os
from typing import List, Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Libraries that log every request at DEBUG
CHATTY_LOGGERS = ['urllib3', 'botocore']


class LoggingConfigurator:
    """Configures the root logger once, before any reporter component is created."""

    @staticmethod
    def setup_logging(log_level: str = 'INFO', log_file: Optional[str] = None) -> None:
        """
        Args:
            log_level: DEBUG, INFO, WARNING or ERROR
            log_file: Also write to this file (its directory is created). Console only when None.
        """
        level = getattr(logging, log_level.upper())

        handlers: List[logging.Handler] = [logging.StreamHandler()]
        if log_file:
            os.makedirs(os.path.dirname(log_file) or '.', exist_ok=True)
            handlers.insert(0, logging.FileHandler(log_file))

        logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)

        if level > logging.DEBUG:
            for name in CHATTY_LOGGERS:
                logging.getLogger(name).setLevel(logging.WARNING)
