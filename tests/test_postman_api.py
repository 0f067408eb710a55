from unittest.mock import MagicMock, patch

import pytest
import requests

from api_collection_gen.config import PostmanSettings
from api_collection_gen.errors import RemoteSyncError
from api_collection_gen.output.postman_api import PostmanApiClient

COLLECTION = {"info": {"name": "Test"}, "item": []}


def _response(status=200, payload=None):
    response = MagicMock()
    response.status_code = status
    response.text = "error body"
    response.json.return_value = payload or {}
    return response


@pytest.fixture
def client():
    return PostmanApiClient(PostmanSettings(api_key="pmak-123", workspace_id="ws-1", collection_id="col-1"))


class TestPostmanApiClient:
    def test_sets_api_key_header(self, client):
        assert client.session.headers["X-Api-Key"] == "pmak-123"

    def test_update_collection(self, client):
        with patch.object(client.session, "request", return_value=_response()) as mock_request:
            client.update_collection(COLLECTION)

        mock_request.assert_called_once_with(
            "PUT",
            "https://api.getpostman.com/collections/col-1",
            timeout=30,
            json={"collection": COLLECTION},
        )

    def test_update_with_explicit_id(self, client):
        with patch.object(client.session, "request", return_value=_response()) as mock_request:
            client.update_collection(COLLECTION, "other")
        assert mock_request.call_args[0][1].endswith("/collections/other")

    def test_create_collection(self, client):
        payload = {"collection": {"uid": "123-abc"}}
        with patch.object(client.session, "request", return_value=_response(payload=payload)) as mock_request:
            uid = client.create_collection(COLLECTION)

        assert uid == "123-abc"
        assert mock_request.call_args.kwargs["params"] == {"workspace": "ws-1"}

    def test_get_collection(self, client):
        payload = {"collection": COLLECTION}
        with patch.object(client.session, "request", return_value=_response(payload=payload)):
            assert client.get_collection("col-1") == COLLECTION

    def test_missing_api_key(self):
        client = PostmanApiClient(PostmanSettings(collection_id="col-1"))
        with patch.object(client.session, "request") as mock_request:
            with pytest.raises(RemoteSyncError, match="API key"):
                client.update_collection(COLLECTION)
        mock_request.assert_not_called()

    def test_missing_collection_id(self):
        client = PostmanApiClient(PostmanSettings(api_key="pmak-123"))
        with pytest.raises(RemoteSyncError, match="collection ID"):
            client.update_collection(COLLECTION)

    def test_non_200_status(self, client):
        with patch.object(client.session, "request", return_value=_response(status=401)):
            with pytest.raises(RemoteSyncError, match="401"):
                client.update_collection(COLLECTION)

    def test_transport_error(self, client):
        with patch.object(client.session, "request", side_effect=requests.ConnectionError("refused")):
            with pytest.raises(RemoteSyncError, match="refused"):
                client.update_collection(COLLECTION)
