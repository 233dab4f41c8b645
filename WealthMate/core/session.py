"""
Application root owning the stores and the sync coordinator.

A :class:`Session` reads the stored GitHub token on construction and wires a
:class:`~WealthMate.core.gist.GistStorage` into a new
:class:`~WealthMate.core.sync.SyncCoordinator` when one is present. Changing the
token replaces the coordinator; consumers should follow
:attr:`Session.coordinatorChanged` rather than keep the old instance.
"""

import logging
from typing import List, Optional

from PySide6 import QtCore

from .gist import GistStorage
from .local import FileLocalStore, LocalStore, Secret
from .sync import SyncCoordinator
from ..log import log
from ..settings import lib
from ..status import status
from ..status.status import SyncStatus


class Session(QtCore.QObject):
    """Build and rebuild the coordinator from the stored credentials.

    Signals:
        coordinatorChanged (object): Emitted with the new coordinator after a rebuild.
    """
    coordinatorChanged = QtCore.Signal(object)

    def __init__(self, paths: Optional[lib.ConfigPaths] = None,
                 local_store: Optional[LocalStore] = None,
                 parent: Optional[QtCore.QObject] = None) -> None:
        super().__init__(parent)
        if local_store is None:
            local_store = FileLocalStore(paths=paths or lib.ConfigPaths())
        self.local_store: LocalStore = local_store

        self._remote: Optional[GistStorage] = None
        self.problems: List[str] = []
        self._coordinator: Optional[SyncCoordinator] = None
        self._build()

    @property
    def coordinator(self) -> SyncCoordinator:
        return self._coordinator

    @property
    def remote(self) -> Optional[GistStorage]:
        return self._remote

    @property
    def is_configured(self) -> bool:
        """True if a GitHub token is stored."""
        return self._remote is not None

    def _build(self, token: Optional[str] = None) -> None:
        if self._remote is not None:
            self._remote.close()
            self._remote = None

        token = token or self.local_store.load_secret(Secret.AccessToken)
        if token:
            self._remote = GistStorage(token, local_store=self.local_store)
            logging.info('Cloud sync is configured.')
        else:
            logging.info('No GitHub token stored, cloud sync is disabled.')

        self._coordinator = SyncCoordinator(self.local_store, self._remote)
        self.coordinatorChanged.emit(self._coordinator)

    def start(self) -> SyncStatus:
        """Initialize the current coordinator.

        The warnings and errors logged while it runs are kept in :attr:`problems`.

        Returns:
            SyncStatus: The status after initialization.
        """
        tank = log.get_tank_handler()
        since = tank.mark() if tank is not None else 0
        try:
            return self._coordinator.initialize()
        finally:
            self.problems = log.get_logs(logging.WARNING, since)

    def save_token(self, token: str) -> SyncStatus:
        """Store a GitHub token, then rebuild and initialize the coordinator.

        Raises:
            TokenNotConfiguredException: If the token is empty.
        """
        token = (token or '').strip()
        if not token:
            raise status.TokenNotConfiguredException('The GitHub token is empty.')

        if not self.local_store.save_secret(Secret.AccessToken, token):
            logging.warning('The token could not be persisted and will only be used for this session.')
        self._build(token)
        return self.start()

    def clear_token(self) -> SyncStatus:
        """Forget the token and the gist id, then rebuild without cloud sync."""
        self.local_store.clear_secret(Secret.AccessToken)
        self.local_store.clear_secret(Secret.GistId)
        logging.info('Cleared cloud sync credentials.')
        self._build()
        return self.start()

    def close(self) -> None:
        """Release the HTTP session."""
        if self._remote is not None:
            self._remote.close()
