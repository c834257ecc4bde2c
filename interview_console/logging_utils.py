"""
Logging setup shared by the Streamlit console and the CLI.
"""
import logging
import os
from typing import Optional


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> Optional[str]:
    """
    Configure the root logger with a console handler and an optional file handler.

    Args:
        level: Log level name for the console handler
        log_file: Optional path of a detailed (DEBUG) log file

    Returns:
        Path to the log file, if one was configured
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    console_handler.setFormatter(logging.Formatter("%(levelname)s %(name)s - %(message)s"))
    root_logger.addHandler(console_handler)

    if log_file:
        workdir = os.path.dirname(log_file)
        if workdir:
            os.makedirs(workdir, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s"))
        root_logger.addHandler(file_handler)

    # urllib3 logs every connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    return log_file
