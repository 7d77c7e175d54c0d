"""
REST client for the CastBoard server (display side)
"""
import logging
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10  # seconds


class APIError(Exception):
    """Request failed, timed out or returned an unexpected status"""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class CastboardAPI:
    """Thin wrapper over the /api endpoints a display needs"""

    def __init__(self, server_url, timeout=REQUEST_TIMEOUT, session=None):
        self.server_url = server_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get(self, path, params=None):
        url = f'{self.server_url}/api{path}'
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise APIError(f'GET {path} failed: {e}')

        if response.status_code != 200:
            raise APIError(f'GET {path} returned {response.status_code}', response.status_code)

        try:
            return response.json()
        except ValueError:
            raise APIError(f'GET {path} returned invalid JSON')

    def find_tv(self, mac_address) -> Optional[Dict[str, Any]]:
        """TV record registered under a MAC address, or None"""
        tvs = self._get('/tvs', params={'mac': mac_address})
        return tvs[0] if tvs else None

    def get_broadcasts(self, tv_id) -> List[Dict[str, Any]]:
        """Every broadcast record of a TV, oldest first"""
        records = self._get(f'/broadcasts/{tv_id}')
        if not isinstance(records, list):
            raise APIError(f'Unexpected broadcast listing for TV {tv_id}')
        return records

    def get_content(self, content_id) -> Dict[str, Any]:
        content = self._get(f'/content/{content_id}')
        if not isinstance(content, dict):
            raise APIError(f'Unexpected content record for {content_id}')
        return content
