"""
WealthMate: household finance tracking with a local cache synced to a private GitHub Gist.

This package provides:

- :mod:`WealthMate.core` – The snapshot model, local and cloud stores, and the sync coordinator.
- :mod:`WealthMate.settings` – Application paths.
- :mod:`WealthMate.status` – Status enums, sync status values and status exceptions.
- :mod:`WealthMate.log` – Logging setup with an in-memory log tank.

Use :func:`WealthMate.exec_` to run a one-off sync from the command line.
"""

import logging
import sys

from PySide6 import QtCore

# Fail on Python < 3.11
if not (sys.version_info.major == 3 and sys.version_info.minor >= 11):
    raise RuntimeError('WealthMate requires Python 3.11 or higher.')

__version__ = '0.1.0'
__license__ = 'GPL-3.0'
__description__ = 'WealthMate: household finance tracking with a local cache synced to a private GitHub Gist.'

from .log import log

log.setup_logging()


def exec_() -> None:
    """Run a headless sync session and exit.

    Loads the local snapshot, reconciles it with the cloud when a token is
    stored, logs the resulting status and exits with 1 on error.
    """
    from .core.session import Session
    from .ui.actions import signals

    app = QtCore.QCoreApplication.instance() or QtCore.QCoreApplication(sys.argv)
    session = Session()

    def _run() -> None:
        try:
            result = session.start()
        except Exception:
            logging.exception('Sync session failed.')
            app.exit(1)
            return
        finally:
            session.close()
        logging.info(f'Sync finished: {result}')
        if session.problems:
            logging.info(f'{len(session.problems)} warning(s) or error(s) were logged during the sync.')
        app.exit(1 if result.is_error else 0)

    signals.initializationRequested.connect(_run)

    # Ask the session to load its data once the event loop is running
    QtCore.QTimer.singleShot(0, signals.initializationRequested.emit)

    sys.exit(app.exec())


if __name__ == '__main__':
    exec_()
