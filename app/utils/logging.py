"""
app/utils/logging.py
───────────────────
Configures structured logging for the POS service.
"""
import os
import logging
from logging.handlers import RotatingFileHandler
from flask import request


class RequestFormatter(logging.Formatter):
    """
    Custom formatter that injects request info (IP, URL) into logs
    if a request context is available.
    """
    def format(self, record):
        if request:
            record.url = request.url
            record.remote_addr = request.remote_addr
        else:
            record.url = None
            record.remote_addr = None
        return super().format(record)


def setup_logging(app):
    """
    Configure rotating file logging: logs/app.log
    Max size: 5MB
    Backup count: 5 files
    Format: timestamp | level | module | message

    Core modules (app.cart, app.keyboard, app.sales, ...) log through
    logging.getLogger(__name__) and propagate up to app.logger.
    """
    handlers = []

    # 1. File Logger (skipped when the filesystem is read-only)
    if app.config.get('LOG_TO_FILE', True):
        try:
            log_dir = app.config.get('LOG_DIR') or os.path.join(app.root_path, '..', 'logs')
            os.makedirs(log_dir, exist_ok=True)

            file_handler = RotatingFileHandler(
                os.path.join(log_dir, 'app.log'),
                maxBytes=5 * 1024 * 1024,
                backupCount=5
            )
            file_handler.setFormatter(RequestFormatter(
                '%(asctime)s | %(levelname)s | %(name)s | %(remote_addr)s | %(url)s | %(message)s'
            ))
            file_handler.setLevel(logging.INFO)
            handlers.append(file_handler)
        except OSError:
            app.logger.warning("File logging disabled: log directory is not writable")

    # 2. Stdout Logger
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter(
        '%(asctime)s | %(levelname)s | %(name)s | %(message)s'
    ))
    stream_handler.setLevel(logging.INFO)
    handlers.append(stream_handler)

    # app.logger is the 'app' logger, parent of every core module logger.
    # Drop handlers from an earlier create_app() so records aren't doubled.
    for old in [h for h in app.logger.handlers if getattr(h, '_pos_handler', False)]:
        app.logger.removeHandler(old)
        old.close()
    for handler in handlers:
        handler._pos_handler = True
        app.logger.addHandler(handler)

    app.logger.setLevel(logging.INFO)
    app.logger.info("POS service startup")
