"""
Logging setup for applications embedding the REST client
"""

import logging
from typing import Dict, Any, Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(logging_config: Optional[Dict[str, Any]] = None,
                      logger_name: str = 'rest_adapter') -> logging.Logger:
    """
    Configure the package logger from the [logging] configuration section

    Request and response summaries are logged at INFO; full bodies only at
    DEBUG, which 'log_body = true' enables.

    Args:
        logging_config: Parsed [logging] section (level, log_body, log_file_name)
        logger_name: Logger to configure

    Returns:
        Configured logger instance
    """
    logging_config = logging_config or {}

    level = logging.DEBUG if logging_config.get('log_body') else logging.getLevelName(
        str(logging_config.get('level', 'INFO')).upper()
    )
    if not isinstance(level, int):
        raise ValueError(f"Unknown logging level: {logging_config.get('level')}")

    logger = logging.getLogger(logger_name)
    logger.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # File handler
    log_file_name = logging_config.get('log_file_name')
    if log_file_name:
        file_handler = logging.FileHandler(log_file_name)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
