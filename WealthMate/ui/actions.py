"""Application-wide Qt signals for WealthMate.

The UI layer is an external consumer: it connects to these signals (and to the
per-instance signals of :class:`WealthMate.core.sync.SyncCoordinator`) but
nothing in this package depends on a widget toolkit.

This module provides:
    - Signals: custom Qt signals for errors, log display requests, and credential events.
"""
from PySide6 import QtCore


class Signals(QtCore.QObject):
    """Centralized Qt signals for application-wide events."""
    initializationRequested = QtCore.Signal()

    # The GitHub token was rejected by the remote store
    tokenRejected = QtCore.Signal()

    showLogs = QtCore.Signal()

    error = QtCore.Signal(str)


signals = Signals()
