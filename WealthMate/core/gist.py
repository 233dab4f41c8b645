"""GitHub Gist integration for cloud sync.

The snapshot is stored as one JSON file inside a secret gist owned by the token
holder. The gist is found by its fixed description, and its id is cached in
memory and in the local store once known.

Internally, request helpers raise :class:`~WealthMate.status.status.BaseStatusException`
subclasses. The public :meth:`GistStorage.load_snapshot` and
:meth:`GistStorage.save_snapshot` methods convert every failure into a failed
:class:`~WealthMate.status.status.Result`, so no transport error escapes into
the sync coordinator.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Protocol

import requests

from . import model
from .local import LocalStore, Secret
from ..status import status
from ..status.status import Result

BASE_URL: str = 'https://api.github.com'
API_VERSION: str = '2022-11-28'
GIST_FILE_NAME: str = 'wealthmate_data.json'
GIST_DESCRIPTION: str = 'WealthMate Finance Data (Auto-synced)'

CONNECT_TIMEOUT: float = 10.0
READ_TIMEOUT: float = 30.0
PER_PAGE: int = 100


class RemoteStore(Protocol):
    """Cloud document store consumed by the sync coordinator."""

    def load_snapshot(self) -> Result[Optional[model.HouseholdFinances]]:
        ...

    def save_snapshot(self, snapshot: model.HouseholdFinances) -> Result[None]:
        ...


class GistStorage:
    """RemoteStore backed by a secret GitHub gist.

    Args:
        token: GitHub personal access token with the ``gist`` scope.
        local_store: Optional store used to persist the discovered gist id.
        session: Optional preconfigured :class:`requests.Session`.
    """

    def __init__(self, token: str, local_store: Optional[LocalStore] = None,
                 session: Optional[requests.Session] = None) -> None:
        # Stray whitespace in a pasted token produces invalid header errors
        self.token: str = (token or '').strip()
        if not self.token:
            raise status.TokenNotConfiguredException

        self.local_store = local_store
        self.session: requests.Session = session or requests.Session()
        self.session.headers.update({
            'Authorization': f'Bearer {self.token}',
            'Accept': 'application/vnd.github+json',
            'X-GitHub-Api-Version': API_VERSION,
        })

        self._cached_gist_id: Optional[str] = None

    @property
    def gist_id(self) -> Optional[str]:
        """The gist id cached in memory, if one has been resolved."""
        return self._cached_gist_id

    def load_snapshot(self) -> Result[Optional[model.HouseholdFinances]]:
        """Load the snapshot from the gist.

        Returns:
            Result: Success with the snapshot, success with None when no gist or no
            data file exists yet, or a failure describing the error.
        """
        logging.debug('Loading data from the cloud...')
        try:
            gist_id = self._get_or_find_gist_id()
            if gist_id is None:
                logging.info('No cloud document found.')
                return Result.success(None)

            gist = self._get_gist(gist_id)
            file_entry = (gist.get('files') or {}).get(GIST_FILE_NAME) or {}
            if not file_entry:
                logging.info(f'Gist "{gist_id}" has no "{GIST_FILE_NAME}" file.')
                return Result.success(None)
            content = self._file_content(file_entry)

            try:
                snapshot = model.loads(content)
            except (ValueError, TypeError) as ex:
                raise status.RemoteDataInvalidException(str(ex)) from ex

            logging.info(
                f'Loaded cloud data: members={len(snapshot.members)}, '
                f'investments={len(snapshot.investments)}, updatedAt={snapshot.updated_at}'
            )
            return Result.success(snapshot)
        except status.BaseStatusException as ex:
            return Result.failure(ex)
        except Exception as ex:
            logging.exception('Unexpected error loading cloud data.')
            return Result.failure(ex)

    def save_snapshot(self, snapshot: model.HouseholdFinances) -> Result[None]:
        """Save the snapshot, creating the gist on first use.

        Returns:
            Result: Success, or a failure describing the error.
        """
        try:
            content = model.dumps(snapshot)
            gist_id = self._get_or_find_gist_id()

            if gist_id is not None:
                self._update_gist(gist_id, content)
                logging.info(f'Updated gist "{gist_id}" (updatedAt={snapshot.updated_at})')
            else:
                gist_id = self._create_gist(content)
                self._remember_gist_id(gist_id)
                logging.info(f'Created gist "{gist_id}" (updatedAt={snapshot.updated_at})')
            return Result.success(None)
        except status.BaseStatusException as ex:
            return Result.failure(ex)
        except Exception as ex:
            logging.exception('Unexpected error saving cloud data.')
            return Result.failure(ex)

    def validate_token(self) -> bool:
        """Check that the token can list the user's gists."""
        try:
            response = self.session.get(
                f'{BASE_URL}/gists', params={'per_page': 1},
                timeout=(CONNECT_TIMEOUT, READ_TIMEOUT),
            )
        except requests.RequestException as ex:
            logging.debug(f'Token validation failed: {ex}')
            return False
        return response.ok

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()

    def _get_or_find_gist_id(self) -> Optional[str]:
        """Resolve the gist id from memory, then the local store, then the API."""
        if self._cached_gist_id:
            return self._cached_gist_id

        if self.local_store is not None:
            stored_id = self.local_store.load_secret(Secret.GistId)
            if stored_id:
                self._cached_gist_id = stored_id
                return stored_id

        found_id = self._search_for_gist()
        if found_id:
            self._remember_gist_id(found_id)
        return found_id

    def _remember_gist_id(self, gist_id: str) -> None:
        self._cached_gist_id = gist_id
        if self.local_store is not None:
            self.local_store.save_secret(Secret.GistId, gist_id)

    def _search_for_gist(self) -> Optional[str]:
        """Find the first gist carrying the WealthMate description."""
        logging.debug('Searching for an existing WealthMate gist...')
        gists: List[Dict[str, Any]] = self._request('GET', '/gists', params={'per_page': PER_PAGE})
        found = next((g for g in gists if g.get('description') == GIST_DESCRIPTION), None)
        if found is None:
            logging.debug(f'No matching gist among {len(gists)} gist(s).')
            return None
        logging.debug(f'Found matching gist: {found["id"]}')
        return found['id']

    def _get_gist(self, gist_id: str) -> Dict[str, Any]:
        return self._request('GET', f'/gists/{gist_id}')

    def _file_content(self, file_entry: Dict[str, Any]) -> str:
        """Return the full text of a gist file entry.

        The API inlines at most one megabyte of a file and flags anything longer
        as ``truncated``. The complete text is then read from ``raw_url``.

        Raises:
            RemoteDataInvalidException: If the entry has no usable content.
        """
        if file_entry.get('truncated'):
            raw_url = file_entry.get('raw_url')
            if not raw_url:
                raise status.RemoteDataInvalidException(
                    f'"{GIST_FILE_NAME}" is too large to be returned inline and has no raw url.'
                )
            logging.debug(f'"{GIST_FILE_NAME}" is truncated, fetching {raw_url}')
            return self._send('GET', raw_url, 'GET raw file').text

        content = file_entry.get('content')
        if not isinstance(content, str):
            raise status.RemoteDataInvalidException(f'"{GIST_FILE_NAME}" has no text content.')
        return content

    def _create_gist(self, content: str) -> str:
        body = {
            'description': GIST_DESCRIPTION,
            'public': False,
            'files': {GIST_FILE_NAME: {'content': content}},
        }
        created = self._request('POST', '/gists', json=body)
        return created['id']

    def _update_gist(self, gist_id: str, content: str) -> None:
        body = {
            'description': GIST_DESCRIPTION,
            'files': {GIST_FILE_NAME: {'content': content}},
        }
        self._request('PATCH', f'/gists/{gist_id}', json=body)

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send a request to the GitHub API and return the decoded JSON body.

        Raises:
            RequestTimedOutException, TokenInvalidException, GistNotFoundException,
            ServiceUnavailableException.
        """
        response = self._send(method, f'{BASE_URL}{path}', f'{method} {path}', **kwargs)
        try:
            return response.json()
        except (ValueError, json.JSONDecodeError) as ex:
            raise status.ServiceUnavailableException(f'{method} {path} returned an invalid body.') from ex

    def _send(self, method: str, url: str, label: str, **kwargs: Any) -> requests.Response:
        """Send a request and map transport errors and HTTP error codes to status exceptions."""
        try:
            response = self.session.request(
                method, url, timeout=(CONNECT_TIMEOUT, READ_TIMEOUT), **kwargs
            )
        except requests.Timeout as ex:
            raise status.RequestTimedOutException from ex
        except requests.RequestException as ex:
            raise status.ServiceUnavailableException(f'{label} failed: {ex}') from ex

        code = response.status_code
        if code in (401, 403):
            raise status.TokenInvalidException(f'{label} returned HTTP {code}.')
        if code == 404:
            raise status.GistNotFoundException(f'{label} returned HTTP 404.')
        if not response.ok:
            raise status.ServiceUnavailableException(f'{label} returned HTTP {code}.')
        return response
