"""
Logging setup for the CMS API.

configure_logging() runs once from create_app(). Every record emitted inside a
request carries the HTTP method and path, and the app logs one access line per
request on the 'http' logger (werkzeug's own access log is silenced).

    LOG_LEVEL   Python level name, INFO when unset or unknown
    LOG_FORMAT  "text" (default) or "json"
"""
import json
import logging
import os
import sys
import time
from datetime import datetime, timezone

from flask import g, has_request_context, request

TEXT_FORMAT = '[%(asctime)s] %(levelname)s %(name)s%(http_context)s: %(message)s'

# Libraries that log every HTTP call or SQL statement at INFO
QUIET_LOGGERS = ('urllib3', 'requests', 'sqlalchemy.engine', 'werkzeug')

access_logger = logging.getLogger('http')


class RequestContextFilter(logging.Filter):
    """Stamp records with the current request's method and path (if any)."""

    def filter(self, record):
        if has_request_context():
            record.http_method = request.method
            record.http_path = request.path
            record.http_context = f' [{request.method} {request.path}]'
        else:
            record.http_method = record.http_path = None
            record.http_context = ''
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line; request fields only when logged inside a request."""

    def format(self, record):
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        if getattr(record, 'http_path', None):
            entry['method'] = record.http_method
            entry['path'] = record.http_path
        if record.exc_info and record.exc_info[0] is not None:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry)


def _level_from_env():
    level = logging.getLevelName(os.getenv('LOG_LEVEL', 'INFO').upper())
    return level if isinstance(level, int) else logging.INFO


def _install_access_log(app):
    @app.before_request
    def _start_timer():
        g.request_started = time.monotonic()

    @app.after_request
    def _log_request(response):
        started = g.pop('request_started', None)
        elapsed_ms = (time.monotonic() - started) * 1000 if started is not None else 0.0
        access_logger.info("%s %.1fms", response.status_code, elapsed_ms)
        return response


def configure_logging(app=None):
    """Replace root handlers with a single stderr handler; hook `app` if given."""
    level = _level_from_env()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.addFilter(RequestContextFilter())
    if os.getenv('LOG_FORMAT', 'text').lower() == 'json':
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if app is not None:
        # app.logger gets no handler of its own; records flow to the root one
        app.logger.handlers.clear()
        app.logger.propagate = True
        _install_access_log(app)
