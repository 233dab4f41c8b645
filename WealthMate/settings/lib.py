"""Application paths and configuration constants.

Provides:
    - app_name: the application and organization name used by Qt.
    - ConfigPaths: locations of the snapshot file and the secrets store, created on demand.
"""

import logging
import pathlib
from typing import Optional, Union

from PySide6 import QtCore

app_name: str = 'WealthMate'

DATA_FILE_NAME: str = 'data.json'
SECRETS_FILE_NAME: str = 'secrets.ini'


class ConfigPaths:
    """Manage application file paths and ensure the required directories exist.

    By default the paths live in Qt's writable application data location. An
    explicit ``root`` replaces that location, which is how tests and portable
    installs keep their data apart.
    """

    def __init__(self, root: Optional[Union[str, pathlib.Path]] = None) -> None:
        """Set up application paths and create missing directories.

        Args:
            root: Optional directory to use instead of the platform app data location.
        """
        if root is None:
            QtCore.QCoreApplication.setApplicationName(app_name)
            QtCore.QCoreApplication.setOrganizationName('')
            logging.debug(f'Setting application name: {app_name}')

            p = QtCore.QStandardPaths.writableLocation(QtCore.QStandardPaths.AppDataLocation)
            root = pathlib.Path(p)
        app_data_dir = pathlib.Path(root)
        logging.debug(f'Using app data directory: {app_data_dir}')

        self.app_data_dir: pathlib.Path = app_data_dir
        self.config_dir: pathlib.Path = app_data_dir / 'config'
        self.auth_dir: pathlib.Path = self.config_dir / 'auth'

        self.data_path: pathlib.Path = self.config_dir / DATA_FILE_NAME
        self.secrets_path: pathlib.Path = self.auth_dir / SECRETS_FILE_NAME

        self._verify_and_prepare()

    def _verify_and_prepare(self) -> None:
        """Create the config and auth directories if they are missing."""
        if not self.config_dir.exists():
            logging.debug(f'Creating config directory: {self.config_dir}')
            self.config_dir.mkdir(parents=True, exist_ok=True)

        if not self.auth_dir.exists():
            logging.debug(f'Creating auth directory: {self.auth_dir}')
            self.auth_dir.mkdir(parents=True, exist_ok=True)
