"""Postman API client.

Pushes a generated collection to a hosted Postman collection. Every
failure is raised as RemoteSyncError so callers can report it as a
warning without discarding the already saved file.
"""

import logging

import requests

from api_collection_gen.config import PostmanSettings
from api_collection_gen.errors import RemoteSyncError

logger = logging.getLogger(__name__)

POSTMAN_API_URL = "https://api.getpostman.com"
DEFAULT_TIMEOUT = 30


class PostmanApiClient:
    """Thin wrapper over the Postman collections API."""

    def __init__(self, settings: PostmanSettings, base_url: str = POSTMAN_API_URL, timeout: float = DEFAULT_TIMEOUT):
        self.settings = settings
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers["Content-Type"] = "application/json"
        if settings.api_key:
            self.session.headers["X-Api-Key"] = settings.api_key

    def _require_key(self) -> None:
        if not self.settings.api_key:
            raise RemoteSyncError("Postman API key is not configured (POSTMAN_API_KEY).")

    def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            response = self.session.request(method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise RemoteSyncError(f"Postman API request failed: {e}") from e

        if response.status_code != 200:
            raise RemoteSyncError(
                f"Postman API returned status code {response.status_code}: {response.text[:500]}"
            )
        try:
            return response.json()
        except ValueError:
            return {}

    def update_collection(self, collection: dict, collection_id: str | None = None) -> None:
        """Replace the hosted collection with ``collection``."""
        self._require_key()
        collection_id = collection_id or self.settings.collection_id
        if not collection_id:
            raise RemoteSyncError("Postman collection ID is not configured (POSTMAN_COLLECTION_ID).")

        self._request("PUT", f"/collections/{collection_id}", json={"collection": collection})
        logger.info("Updated Postman collection %s", collection_id)

    def create_collection(self, collection: dict, workspace_id: str | None = None) -> str | None:
        """Create a new hosted collection and return its uid."""
        self._require_key()
        params = {}
        workspace_id = workspace_id or self.settings.workspace_id
        if workspace_id:
            params["workspace"] = workspace_id

        data = self._request("POST", "/collections", json={"collection": collection}, params=params)
        return data.get("collection", {}).get("uid")

    def get_collection(self, collection_id: str) -> dict | None:
        self._require_key()
        return self._request("GET", f"/collections/{collection_id}").get("collection")
