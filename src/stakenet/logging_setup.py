"""
Logging configuration for the CLI and the HTTP API.

Library modules only do ``logger = logging.getLogger(__name__)``; processes
call setup_logging() once at startup.
"""

import logging
import logging.handlers  # For RotatingFileHandler
import sys
import threading
from collections import deque
from datetime import datetime
from typing import List, Optional

LOG_FORMAT = '[STAKENET] %(message)s'
LOG_BUFFER_SIZE = 500

# Circular buffer of recent log records for the API
_LOG_BUFFER = deque(maxlen=LOG_BUFFER_SIZE)
_LOG_BUFFER_LOCK = threading.Lock()


class MemoryLogHandler(logging.Handler):
    """Keeps recent log records in memory for the /api/logs endpoint."""

    # Auto-incrementing log ID for reliable polling
    _log_id_counter = 0

    def emit(self, record):
        try:
            msg = self.format(record)
            timestamp = datetime.fromtimestamp(record.created).strftime('%H:%M:%S')

            log_type = 'info'
            msg_lower = msg.lower()
            if record.levelno >= logging.ERROR:
                log_type = 'error'
            elif record.levelno >= logging.WARNING:
                log_type = 'warning'
            elif 'consensus' in msg_lower or 'vote' in msg_lower:
                log_type = 'consensus'
            elif 'stake' in msg_lower or 'delegation' in msg_lower:
                log_type = 'staking'

            with _LOG_BUFFER_LOCK:
                MemoryLogHandler._log_id_counter += 1
                _LOG_BUFFER.append({
                    'id': MemoryLogHandler._log_id_counter,
                    'epoch': int(record.created * 1000),
                    'timestamp': timestamp,
                    'message': msg,
                    'type': log_type,
                    'level': record.levelname,
                    'logger': record.name,
                })
        except Exception:
            self.handleError(record)


def get_recent_logs(since_id: int = 0, limit: int = 100) -> List[dict]:
    """Buffered log entries with id > since_id, oldest first."""
    with _LOG_BUFFER_LOCK:
        entries = [e for e in _LOG_BUFFER if e['id'] > since_id]
    return entries[-limit:] if limit else entries


def clear_log_buffer():
    with _LOG_BUFFER_LOCK:
        _LOG_BUFFER.clear()


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the root logger.

    Clears existing handlers (prevents duplicates on repeated calls), then
    installs a stdout handler, or a rotating file handler when ``log_file``
    is given, plus the in-memory buffer handler.
    """
    root_logger = logging.getLogger()
    root_logger.handlers = []
    root_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    if log_file:
        # Rotate logs - keep last 5MB
        handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=5*1024*1024, backupCount=2, encoding='utf-8')
    else:
        handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(handler)

    memory_handler = MemoryLogHandler()
    memory_handler.setFormatter(logging.Formatter('%(message)s'))
    memory_handler.setLevel(logging.INFO)
    root_logger.addHandler(memory_handler)

    return root_logger
