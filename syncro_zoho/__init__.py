"""
Syncro to Zoho Books invoice sync

Copies unpaid Syncro invoices for linked customers into Zoho Books and
optionally flags the originals as paid with a quick payment.
"""

import logging
from datetime import date
from pathlib import Path

__version__ = '1.0.0'

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(app_config, today=None):
    """
    Sets up logging for one sync run.

    Every calendar day gets its own append-only file under LOG_DIR
    (sync_YYYY-MM-DD.log); a console handler mirrors the same lines when
    LOG_CONSOLE is enabled. Calling this twice replaces the handlers installed
    by the previous call.

    Args:
        app_config: Configuration class (see syncro_zoho.config).
        today (date): Day used to name the log file, defaults to today.

    Returns:
        Path: The log file written to.
    """
    today = today or date.today()
    log_dir = Path(app_config.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / f"sync_{today.strftime('%Y-%m-%d')}.log"

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if getattr(handler, '_syncro_zoho', False):
            root_logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    file_handler = logging.FileHandler(log_path, mode='a', encoding='utf-8')
    file_handler.setFormatter(formatter)
    file_handler._syncro_zoho = True
    root_logger.addHandler(file_handler)

    if getattr(app_config, 'LOG_CONSOLE', True):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        console_handler._syncro_zoho = True
        root_logger.addHandler(console_handler)

    root_logger.setLevel(getattr(logging, str(app_config.LOG_LEVEL).upper(), logging.INFO))

    # urllib3 logs every connection at DEBUG
    logging.getLogger('urllib3').setLevel(logging.WARNING)

    root_logger.info(f"Logging configured successfully to {log_path}")
    return log_path
