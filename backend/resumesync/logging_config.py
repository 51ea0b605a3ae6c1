"""
Logging setup for the resume API and the sync client.

Everything logs through the stdlib with `extra=` context (resume_id, seq,
backend, ...); ExtraFieldsFormatter renders that context after the message
as key=value pairs.
"""
import logging
import sys

from resumesync.config import LOG_LEVEL

# Attributes every LogRecord carries; anything else on a record came from `extra=`
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {'message', 'asctime', 'taskName'}

QUIET_LOGGERS = ('werkzeug', 'urllib3', 'httpx', 'httpcore')


def _render(value) -> str:
    if isinstance(value, str) and (not value or ' ' in value):
        return repr(value)
    return str(value)


class ExtraFieldsFormatter(logging.Formatter):
    """`[LEVEL] time - message | key=value ...` with None-valued context dropped."""

    def format(self, record):
        base_message = super().format(record)
        context = sorted(
            (k, v) for k, v in vars(record).items()
            if k not in _RECORD_ATTRS and v is not None
        )
        if not context:
            return base_message
        return base_message + ' | ' + ' '.join(f'{k}={_render(v)}' for k, v in context)


def configure_logging(level=None, keep_handlers: bool = False):
    """Route root logging to stdout.

    `keep_handlers` leaves handlers already installed (pytest's capture) in place.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ExtraFieldsFormatter(
        fmt='[%(levelname)s] %(asctime)s - %(message)s',
        datefmt='%H:%M:%S',
    ))

    root_logger = logging.getLogger()
    root_logger.setLevel(level or LOG_LEVEL)
    if keep_handlers:
        # Only replace a handler installed by an earlier call
        for old in [h for h in root_logger.handlers if isinstance(h.formatter, ExtraFieldsFormatter)]:
            root_logger.removeHandler(old)
    else:
        root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return handler
