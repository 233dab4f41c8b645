"""Coordinate the local cache with the cloud copy of the household snapshot.

The local store is the source of truth for the interface: every mutation is
published and cached locally first, then pushed to the cloud. Reconciliation
is last-writer-wins on :attr:`HouseholdFinances.updated_at`, comparing whole
documents. There is no field-level merge: concurrent edits made on two devices
between syncs resolve to whichever copy was stamped last.

State changes are published through Qt signals as they happen:

- ``dataChanged(object)``: the new snapshot (or None).
- ``syncStatusChanged(object)``: the new :class:`~WealthMate.status.status.SyncStatus`.
- ``loadingChanged(bool)``: True while :meth:`SyncCoordinator.initialize` runs.

Operations are blocking. Use :func:`run_in_background` to keep them off the UI
thread.
"""
import dataclasses
import logging
import threading
from typing import Any, Callable, Optional

from PySide6 import QtCore

from . import model
from .gist import RemoteStore
from .local import LocalStore
from ..status.status import Result, SyncStatus

MSG_NO_DATA: str = 'No data to sync'
MSG_UPLOADED: str = 'Uploaded to cloud'
MSG_DOWNLOADED: str = 'Downloaded from cloud'
MSG_UPDATED: str = 'Updated from cloud'
MSG_IN_SYNC: str = 'Already in sync'
MSG_SAVED: str = 'Saved to cloud'
MSG_REFRESHED: str = 'Refreshed from cloud'
MSG_NO_CLOUD_DATA: str = 'No data in cloud'
MSG_PUSH_FAILED: str = 'Cloud sync failed'


class SyncCoordinator(QtCore.QObject):
    """Own the current snapshot, the sync status and the loading flag.

    Args:
        local_store: Persistence of the snapshot on this device.
        remote_store: Optional cloud store. Without one, syncing reports
            ``NotConfigured`` and every edit stays local.
        clock: Returns the current time in epoch milliseconds.
        parent: Optional Qt parent.
    """
    dataChanged = QtCore.Signal(object)
    syncStatusChanged = QtCore.Signal(object)
    loadingChanged = QtCore.Signal(bool)

    def __init__(self, local_store: LocalStore, remote_store: Optional[RemoteStore] = None,
                 clock: Callable[[], int] = model.now_millis,
                 parent: Optional[QtCore.QObject] = None) -> None:
        super().__init__(parent)
        self.local_store = local_store
        self.remote_store = remote_store
        self._clock = clock

        self._data: Optional[model.HouseholdFinances] = None
        self._sync_status: SyncStatus = SyncStatus.idle()
        self._is_loading: bool = False

        self._lock = threading.RLock()
        self._sync_in_flight: bool = False
        self._last_stamp: int = 0

    @property
    def data(self) -> Optional[model.HouseholdFinances]:
        """The current snapshot, or None before anything was loaded or created."""
        return self._data

    @property
    def sync_status(self) -> SyncStatus:
        return self._sync_status

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def is_configured(self) -> bool:
        """True if a cloud store is attached."""
        return self.remote_store is not None

    def _set_data(self, snapshot: Optional[model.HouseholdFinances]) -> None:
        if snapshot == self._data:
            return
        self._data = snapshot
        self.dataChanged.emit(snapshot)

    def _set_status(self, sync_status: SyncStatus) -> None:
        if sync_status == self._sync_status:
            return
        self._sync_status = sync_status
        logging.debug(f'Sync status: {sync_status}')
        self.syncStatusChanged.emit(sync_status)

    def _set_loading(self, value: bool) -> None:
        if value == self._is_loading:
            return
        self._is_loading = value
        self.loadingChanged.emit(value)

    def _stamp(self, snapshot: model.HouseholdFinances) -> model.HouseholdFinances:
        """Return ``snapshot`` with a fresh, strictly increasing ``updated_at``."""
        previous = max(self._last_stamp, self._data.updated_at if self._data else 0)
        stamp = max(self._clock(), previous + 1)
        self._last_stamp = stamp
        return dataclasses.replace(snapshot, updated_at=stamp)

    def _begin_sync(self, operation: str) -> bool:
        """Mark a sync as in flight.

        Returns:
            bool: False if a sync is already running on this thread.
        """
        if self._sync_in_flight:
            logging.warning(f'{operation} ignored: a sync is already in progress.')
            return False
        self._sync_in_flight = True
        return True

    def _end_sync(self) -> None:
        self._sync_in_flight = False

    def initialize(self) -> SyncStatus:
        """Load the cached snapshot and, with a cloud store attached, reconcile it.

        Returns:
            SyncStatus: The status after initialization.
        """
        with self._lock:
            logging.info('Initializing sync coordinator...')
            self._set_loading(True)
            try:
                snapshot = self.local_store.load_snapshot()
                if snapshot is not None:
                    self._last_stamp = max(self._last_stamp, snapshot.updated_at)
                    logging.info(f'Loaded local snapshot (updatedAt={snapshot.updated_at})')
                else:
                    logging.info('No local snapshot found.')
                self._set_data(snapshot)

                if self.remote_store is not None:
                    self.sync_with_cloud()
            finally:
                self._set_loading(False)
            return self._sync_status

    def sync_with_cloud(self) -> SyncStatus:
        """Reconcile the current snapshot with the cloud copy.

        The newer copy, by ``updated_at``, wins: a newer cloud copy replaces the
        local one, a newer local copy is uploaded, and equal stamps write nothing.
        A failure to read the cloud leaves the current snapshot untouched.

        Returns:
            SyncStatus: The resulting status.
        """
        with self._lock:
            if self.remote_store is None:
                logging.debug('Sync requested, but no cloud store is configured.')
                self._set_status(SyncStatus.not_configured())
                return self._sync_status

            if not self._begin_sync('Sync'):
                return self._sync_status
            try:
                self._set_status(SyncStatus.syncing())
                self._set_status(self._reconcile())
            finally:
                self._end_sync()
            return self._sync_status

    reconcile = sync_with_cloud

    def _load_remote(self) -> Result:
        """Load the cloud snapshot, turning a raised exception into a failed result."""
        try:
            return self.remote_store.load_snapshot()
        except Exception as ex:
            logging.exception('Cloud store raised while loading.')
            return Result.failure(ex)

    def _save_remote(self, snapshot: model.HouseholdFinances) -> Result:
        """Save to the cloud, turning a raised exception into a failed result."""
        try:
            return self.remote_store.save_snapshot(snapshot)
        except Exception as ex:
            logging.exception('Cloud store raised while saving.')
            return Result.failure(ex)

    def _reconcile(self) -> SyncStatus:
        result = self._load_remote()
        if not result.ok:
            logging.error(f'Failed to load cloud data: {result.message}')
            return SyncStatus.error(result.message)

        local = self._data
        remote = result.value

        if local is None and remote is None:
            logging.info('Nothing stored locally or in the cloud.')
            return SyncStatus.success(MSG_NO_DATA)

        if remote is None:
            logging.info(f'Cloud is empty, uploading local snapshot (updatedAt={local.updated_at})')
            return self._push(local, MSG_UPLOADED)

        if local is None:
            logging.info(f'Adopting cloud snapshot (updatedAt={remote.updated_at})')
            self._adopt(remote)
            return SyncStatus.success(MSG_DOWNLOADED)

        if remote.updated_at > local.updated_at:
            logging.info(
                f'Cloud snapshot is newer ({remote.updated_at} > {local.updated_at}), updating local copy'
            )
            self._adopt(remote)
            return SyncStatus.success(MSG_UPDATED)

        if local.updated_at > remote.updated_at:
            logging.info(
                f'Local snapshot is newer ({local.updated_at} > {remote.updated_at}), uploading'
            )
            return self._push(local, MSG_UPLOADED)

        logging.info(f'Local and cloud snapshots match (updatedAt={local.updated_at})')
        return SyncStatus.success(MSG_IN_SYNC)

    def _adopt(self, snapshot: model.HouseholdFinances) -> None:
        self._last_stamp = max(self._last_stamp, snapshot.updated_at)
        self._set_data(snapshot)
        self.local_store.save_snapshot(snapshot)

    def _push(self, snapshot: model.HouseholdFinances, message: str) -> SyncStatus:
        result = self._save_remote(snapshot)
        if not result.ok:
            logging.error(f'Failed to upload snapshot: {result.message}')
            return SyncStatus.error(f'{MSG_PUSH_FAILED}: {result.message}')
        return SyncStatus.success(message)

    def update_data(self, transform: model.Transform) -> SyncStatus:
        """Apply ``transform`` to the current snapshot, then save and upload it.

        The default household is used as the base when there is no snapshot yet.
        The new snapshot is published and cached locally before the upload is
        attempted, and stays current even if the upload fails.

        Args:
            transform: Function returning the edited snapshot.

        Returns:
            SyncStatus: The resulting status.
        """
        with self._lock:
            base = self._data if self._data is not None else model.default_household()
            return self._commit(transform(base))

    def set_data(self, snapshot: model.HouseholdFinances) -> SyncStatus:
        """Replace the current snapshot with ``snapshot``, then save and upload it."""
        with self._lock:
            return self._commit(snapshot)

    def _commit(self, snapshot: model.HouseholdFinances) -> SyncStatus:
        updated = self._stamp(snapshot)
        logging.debug(f'Committing snapshot (updatedAt={updated.updated_at})')
        self._set_data(updated)

        if not self.local_store.save_snapshot(updated):
            logging.warning('Snapshot could not be cached locally, keeping it in memory.')

        if self.remote_store is None:
            return self._sync_status

        self._set_status(SyncStatus.syncing())
        self._set_status(self._push(updated, MSG_SAVED))
        return self._sync_status

    def force_refresh_from_cloud(self) -> SyncStatus:
        """Replace the current snapshot with the cloud copy, whatever its age.

        Returns:
            SyncStatus: The resulting status.
        """
        with self._lock:
            if self.remote_store is None:
                self._set_status(SyncStatus.not_configured())
                return self._sync_status

            if not self._begin_sync('Refresh'):
                return self._sync_status
            try:
                self._set_status(SyncStatus.syncing())
                result = self._load_remote()
                if not result.ok:
                    logging.error(f'Failed to refresh from cloud: {result.message}')
                    self._set_status(SyncStatus.error(result.message))
                elif result.value is None:
                    logging.info('Refresh requested, but the cloud has no data.')
                    self._set_status(SyncStatus.success(MSG_NO_CLOUD_DATA))
                else:
                    logging.info(f'Refreshed from cloud (updatedAt={result.value.updated_at})')
                    self._adopt(result.value)
                    self._set_status(SyncStatus.success(MSG_REFRESHED))
            finally:
                self._end_sync()
            return self._sync_status


class SyncWorker(QtCore.QThread):
    """
    Worker thread running one blocking coordinator operation.

    Signals:
        resultReady (object): Emitted with the function's result on success.
        errorOccurred (object): Emitted with the exception on failure.
    """
    resultReady = QtCore.Signal(object)
    errorOccurred = QtCore.Signal(object)

    def __init__(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        super().__init__()
        self.func = func
        self.args = args
        self.kwargs = kwargs

    def run(self) -> None:
        try:
            result = self.func(*self.args, **self.kwargs)
        except Exception as ex:
            logging.exception(f'Background operation {getattr(self.func, "__name__", self.func)} failed.')
            self.errorOccurred.emit(ex)
            return
        self.resultReady.emit(result)


def run_in_background(func: Callable[..., Any], *args: Any, **kwargs: Any) -> SyncWorker:
    """Start ``func`` on a :class:`SyncWorker` thread.

    The caller must keep a reference to the returned worker until it finishes.

    Returns:
        SyncWorker: The started worker.
    """
    worker = SyncWorker(func, *args, **kwargs)
    worker.start()
    return worker
