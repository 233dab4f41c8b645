"""Root logger configuration for WealthMate.

Every module logs through the root ``logging`` functions. Records go to stdout
and to an in-memory :class:`TankHandler`. The tank lets a session report the
warnings and errors of a sync run, and lets a log viewer browse them. Qt's own
messages can be routed into the same pipeline.
"""
import logging
import sys

from PySide6.QtCore import QtMsgType, qInstallMessageHandler

from ..ui.actions import signals

LOG_LEVEL = logging.DEBUG
LOG_FORMAT = '[%(asctime)s] <%(module)s> %(levelname)s:  %(message)s'
LOG_DATEFMT = '%Y-%m-%d %H:%M:%S'

_STANDARD_LEVELS = (
    logging.DEBUG,
    logging.INFO,
    logging.WARNING,
    logging.ERROR,
    logging.CRITICAL,
)

_QT_LEVELS = {
    QtMsgType.QtDebugMsg: logging.DEBUG,
    QtMsgType.QtInfoMsg: logging.INFO,
    QtMsgType.QtWarningMsg: logging.WARNING,
    QtMsgType.QtCriticalMsg: logging.ERROR,
    QtMsgType.QtFatalMsg: logging.CRITICAL,
}


def set_logging_level(level):
    """
    Sets the level of the root logger and of every handler installed on it.

    Args:
        level (int): One of the standard logging levels.

    Raises:
        ValueError: If the level is not a standard logging level.
    """
    if not isinstance(level, int) or isinstance(level, bool):
        raise ValueError('Logging level must be an integer.')
    if level not in _STANDARD_LEVELS:
        raise ValueError('Invalid logging level. Use one of the standard logging levels, e.g., logging.DEBUG.')

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers:
        handler.setLevel(level)


def qt_message_handler(mode, context, message):
    """
    Forwards a Qt message to the ``Qt`` logger. A fatal Qt message exits the process.
    """
    level = _QT_LEVELS.get(mode, logging.WARNING)
    logging.getLogger('Qt').log(level, message.strip())
    if mode == QtMsgType.QtFatalMsg:
        sys.exit(1)


def setup_logging(enable_stream_handler=True, enable_qt_handler=True, log_level=LOG_LEVEL):
    """
    Replaces the root logger's handlers with a fresh log tank and, optionally, stdout.

    Args:
        enable_stream_handler (bool): Also print records to stdout.
        enable_qt_handler (bool): Route Qt's own messages through Python logging.
        log_level (int): Level applied to the root logger and all handlers.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    handlers = [TankHandler()]
    if enable_stream_handler:
        handlers.insert(0, logging.StreamHandler(sys.stdout))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(log_level)
        root_logger.addHandler(handler)

    if enable_qt_handler:
        qInstallMessageHandler(qt_message_handler)


def get_tank_handler():
    """
    Returns the TankHandler installed on the root logger.

    Returns:
        TankHandler | None: The in-memory handler, or None if logging was configured elsewhere.
    """
    return next(
        (h for h in logging.getLogger().handlers if isinstance(h, TankHandler)),
        None
    )


def get_logs(level=logging.NOTSET, since=0):
    """
    Returns the formatted records kept in the log tank at or above ``level``.

    Args:
        level (int): Minimum level to include.
        since (int): Skip the first ``since`` records, see :meth:`TankHandler.mark`.

    Returns:
        list[str]: The records, oldest first. Empty if no tank is installed.
    """
    tank = get_tank_handler()
    return tank.get_logs(level, since) if tank is not None else []


class TankHandler(logging.Handler):
    """
    Keeps formatted records in memory.

    Records at ERROR or above also emit :attr:`signals.showLogs` so a log
    viewer can pop up on failures.

    Attributes:
        tank (list[tuple[int, str]]): ``(levelno, formatted message)`` pairs.
    """

    def __init__(self):
        super().__init__()
        self.tank = []

    def emit(self, record):
        try:
            self.tank.append((record.levelno, self.format(record)))
            if record.levelno >= logging.ERROR:
                signals.showLogs.emit()
        except Exception:
            self.handleError(record)

    def mark(self):
        """Returns a position to pass as ``since`` to read only newer records."""
        return len(self.tank)

    def get_logs(self, level=logging.NOTSET, since=0):
        """
        Returns the stored messages at or above ``level``, starting at position ``since``.

        Returns:
            list[str]: Matching formatted messages.
        """
        return [msg for lvl, msg in self.tank[since:] if lvl >= level]

    def clear_logs(self):
        self.tank.clear()
