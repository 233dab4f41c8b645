"""
On-device persistence of the household snapshot and the sync secrets.

The snapshot is kept as one JSON document in the config directory. Secrets (the
GitHub access token and the id of the cloud document) are stored outside that
document in an ini file managed by :class:`QtCore.QSettings`.

Every method is best-effort: a corrupt or unreadable file loads as "no data",
and a failed write is logged and reported as ``False``. Nothing here raises
into the caller.
"""

import enum
import logging
import os
import pathlib
import tempfile
from typing import Optional, Protocol, Union

from PySide6 import QtCore

from . import model
from ..settings import lib


class Secret(enum.StrEnum):
    """Names of the values kept in the secrets store."""
    AccessToken = 'github_token'
    GistId = 'gist_id'


class LocalStore(Protocol):
    """Key-value persistence consumed by the sync coordinator and the gist storage."""

    def load_snapshot(self) -> Optional[model.HouseholdFinances]:
        ...

    def save_snapshot(self, snapshot: model.HouseholdFinances) -> bool:
        ...

    def load_secret(self, name: Secret) -> Optional[str]:
        ...

    def save_secret(self, name: Secret, value: str) -> bool:
        ...

    def clear_secret(self, name: Secret) -> bool:
        ...


class FileLocalStore:
    """LocalStore backed by a JSON file and a QSettings ini file."""

    def __init__(self, paths: Optional[lib.ConfigPaths] = None,
                 data_path: Optional[Union[str, pathlib.Path]] = None,
                 secrets_path: Optional[Union[str, pathlib.Path]] = None) -> None:
        """
        Args:
            paths: Application paths. Created from the platform defaults when omitted.
            data_path: Optional override of the snapshot file location.
            secrets_path: Optional override of the secrets file location.
        """
        if paths is None and (data_path is None or secrets_path is None):
            paths = lib.ConfigPaths()

        self.data_path: pathlib.Path = pathlib.Path(data_path) if data_path else paths.data_path
        self.secrets_path: pathlib.Path = pathlib.Path(secrets_path) if secrets_path else paths.secrets_path

        self._settings = QtCore.QSettings(str(self.secrets_path), QtCore.QSettings.Format.IniFormat)

    def load_snapshot(self) -> Optional[model.HouseholdFinances]:
        """Read the cached snapshot.

        Returns:
            The snapshot, or None when the file is missing or cannot be decoded.
        """
        if not self.data_path.exists():
            logging.debug(f'No local data found at "{self.data_path}"')
            return None

        try:
            text = self.data_path.read_text(encoding='utf-8')
            snapshot = model.loads(text)
        except (OSError, ValueError, TypeError, OverflowError, RecursionError) as ex:
            logging.warning(f'Failed to load local data from "{self.data_path}": {ex}')
            return None

        logging.debug(
            f'Loaded local data: members={len(snapshot.members)}, '
            f'investments={len(snapshot.investments)}, updatedAt={snapshot.updated_at}'
        )
        return snapshot

    def save_snapshot(self, snapshot: model.HouseholdFinances) -> bool:
        """Write the snapshot, replacing the previous file atomically.

        Returns:
            bool: True if the file was written.
        """
        tmp_path: Optional[str] = None
        try:
            text = model.dumps(snapshot)
            self.data_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f'.{self.data_path.name}.', dir=str(self.data_path.parent)
            )
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(text)
            os.replace(tmp_path, self.data_path)
            tmp_path = None
        except (OSError, TypeError, ValueError) as ex:
            logging.error(f'Failed to save local data to "{self.data_path}": {ex}')
            return False
        finally:
            if tmp_path and os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError as ex:
                    logging.debug(f'Could not remove temporary file "{tmp_path}": {ex}')

        logging.debug(f'Saved local data to "{self.data_path}" (updatedAt={snapshot.updated_at})')
        return True

    def load_secret(self, name: Secret) -> Optional[str]:
        value = self._settings.value(Secret(name).value, None)
        if value is None or value == '':
            return None
        return str(value)

    def save_secret(self, name: Secret, value: str) -> bool:
        return self._write_secret(name, value)

    def clear_secret(self, name: Secret) -> bool:
        return self._write_secret(name, None)

    def _write_secret(self, name: Secret, value: Optional[str]) -> bool:
        """Set or remove a secret and flush it to disk.

        Returns:
            bool: True if QSettings reports no error after syncing.
        """
        key = Secret(name).value
        if value is None:
            self._settings.remove(key)
        else:
            self._settings.setValue(key, value)
        self._settings.sync()

        if self._settings.status() != QtCore.QSettings.Status.NoError:
            logging.error(f'Failed to write secret "{key}" to "{self.secrets_path}": {self._settings.status()}')
            return False

        logging.debug(f'{"Cleared" if value is None else "Saved"} secret "{key}"')
        return True
