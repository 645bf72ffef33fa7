"""
Unit tests for the Cloud Storage object store.

Mocks the google-cloud-storage client to test upload behavior without
actual GCS access.
"""

import gzip
from unittest.mock import MagicMock, patch

import pytest

from gcs_uploader.uploader import ObjectMetadata, ObjectUploadOptions, PredefinedAcl
from gcs_uploader.uploader.storage import (
    DEFAULT_UNIVERSE,
    RESUMABLE_CHUNK_SIZE,
    USER_AGENT,
    GCSObjectStore,
    apply_metadata,
    guess_content_type,
)


@pytest.fixture
def mock_client():
    """Storage client whose bucket().blob() returns a recording blob."""
    client = MagicMock()
    blob = MagicMock()
    blob.name = "web/app.js"
    blob.generation = 1700000000
    blob.size = None
    client.bucket.return_value.blob.return_value = blob
    return client


@pytest.fixture
def source_file(tmp_path):
    path = tmp_path / "app.js"
    path.write_text("console.log('hello');\n" * 50)
    return path


def _blob(client):
    return client.bucket.return_value.blob.return_value


class TestHelpers:
    """Test module helpers."""

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("index.html", "text/html"),
            ("data.json", "application/json"),
            ("archive.unknownext", "application/octet-stream"),
        ],
    )
    def test_guess_content_type(self, name, expected):
        assert guess_content_type(name) == expected

    def test_apply_metadata(self):
        """Test every set field is copied onto the blob."""
        blob = MagicMock()
        metadata = ObjectMetadata(
            cache_control="no-cache",
            content_disposition="inline",
            content_language="en",
            custom_time="2024-01-01T00:00:00Z",
            custom={"team": "web"},
        )

        apply_metadata(blob, metadata)

        assert blob.cache_control == "no-cache"
        assert blob.content_disposition == "inline"
        assert blob.content_language == "en"
        assert blob.custom_time.year == 2024
        assert blob.metadata == {"team": "web"}


class TestGCSObjectStore:
    """Test storing objects."""

    def test_plain_upload(self, mock_client, source_file):
        """Test an upload without gzip sends the file itself."""
        store = GCSObjectStore(client=mock_client)
        options = ObjectUploadOptions(destination="web/app.js", gzip=False, resumable=False)

        stored = store.store_object("my-bucket", str(source_file), options)

        mock_client.bucket.assert_called_once_with("my-bucket")
        mock_client.bucket.return_value.blob.assert_called_once_with("web/app.js", chunk_size=None)
        blob = _blob(mock_client)
        args, kwargs = blob.upload_from_filename.call_args
        assert args[0] == str(source_file)
        assert kwargs["predefined_acl"] is None
        assert stored.name == "web/app.js"
        assert stored.bucket == "my-bucket"
        assert stored.generation == 1700000000
        assert stored.size == source_file.stat().st_size

    def test_resumable_sets_chunk_size(self, mock_client, source_file):
        """Test resumable uploads are chunked."""
        store = GCSObjectStore(client=mock_client)

        store.store_object(
            "b", str(source_file), ObjectUploadOptions(destination="k", gzip=False)
        )

        mock_client.bucket.return_value.blob.assert_called_once_with(
            "k", chunk_size=RESUMABLE_CHUNK_SIZE
        )

    def test_content_type_from_metadata_wins(self, mock_client, source_file):
        """Test an explicit content-type overrides the guess."""
        store = GCSObjectStore(client=mock_client)
        options = ObjectUploadOptions(
            destination="k",
            gzip=False,
            metadata=ObjectMetadata(content_type="text/x-custom"),
        )

        store.store_object("b", str(source_file), options)

        kwargs = _blob(mock_client).upload_from_filename.call_args[1]
        assert kwargs["content_type"] == "text/x-custom"

    def test_content_type_guessed(self, mock_client, source_file):
        store = GCSObjectStore(client=mock_client)

        store.store_object("b", str(source_file), ObjectUploadOptions(destination="k", gzip=False))

        kwargs = _blob(mock_client).upload_from_filename.call_args[1]
        assert kwargs["content_type"] in ("application/javascript", "text/javascript")

    def test_predefined_acl_passed(self, mock_client, source_file):
        store = GCSObjectStore(client=mock_client)
        options = ObjectUploadOptions(
            destination="k", gzip=False, predefined_acl=PredefinedAcl.PUBLIC_READ
        )

        store.store_object("b", str(source_file), options)

        kwargs = _blob(mock_client).upload_from_filename.call_args[1]
        assert kwargs["predefined_acl"] == "publicRead"

    def test_gzip_uploads_compressed_copy(self, mock_client, source_file):
        """Test gzip uploads a compressed temp file with gzip content-encoding."""
        captured = {}

        def capture(filename, **kwargs):
            with gzip.open(filename, "rb") as handle:
                captured["content"] = handle.read()
            captured["filename"] = filename

        blob = _blob(mock_client)
        blob.upload_from_filename.side_effect = capture
        store = GCSObjectStore(client=mock_client)

        stored = store.store_object("b", str(source_file), ObjectUploadOptions(destination="k"))

        assert captured["content"] == source_file.read_bytes()
        assert captured["filename"] != str(source_file)
        assert blob.content_encoding == "gzip"
        assert stored.size < source_file.stat().st_size

    def test_non_transient_error_not_retried(self, mock_client, source_file):
        """Test permanent failures propagate after one attempt."""
        blob = _blob(mock_client)
        blob.upload_from_filename.side_effect = PermissionError("403 Forbidden")
        store = GCSObjectStore(client=mock_client)

        with pytest.raises(PermissionError):
            store.store_object("b", str(source_file), ObjectUploadOptions(destination="k", gzip=False))

        assert blob.upload_from_filename.call_count == 1

    @patch("time.sleep")
    def test_transient_error_retried(self, mock_sleep, mock_client, source_file):
        """Test connection errors are retried with backoff."""
        blob = _blob(mock_client)
        blob.upload_from_filename.side_effect = [ConnectionError("reset"), None]
        store = GCSObjectStore(client=mock_client)

        stored = store.store_object(
            "b", str(source_file), ObjectUploadOptions(destination="k", gzip=False)
        )

        assert stored.name == "web/app.js"
        assert blob.upload_from_filename.call_count == 2
        mock_sleep.assert_called_once()

    def test_missing_source_raises(self, mock_client, tmp_path):
        store = GCSObjectStore(client=mock_client)

        with pytest.raises(OSError):
            store.store_object(
                "b", str(tmp_path / "gone.txt"), ObjectUploadOptions(destination="k")
            )


class TestClientConstruction:
    """Test lazy client creation."""

    @patch("gcs_uploader.uploader.storage.storage.Client")
    def test_default_universe(self, mock_client_cls):
        store = GCSObjectStore(project_id="my-project")

        client = store.client

        assert client is mock_client_cls.return_value
        kwargs = mock_client_cls.call_args[1]
        assert kwargs["project"] == "my-project"
        assert kwargs["client_options"] is None
        assert kwargs["client_info"].user_agent == USER_AGENT

    @patch("gcs_uploader.uploader.storage.storage.Client")
    def test_custom_universe(self, mock_client_cls):
        GCSObjectStore(universe="example.goog").client

        kwargs = mock_client_cls.call_args[1]
        assert kwargs["client_options"] == {"universe_domain": "example.goog"}

    @patch("gcs_uploader.uploader.storage.storage.Client")
    def test_client_created_once(self, mock_client_cls):
        store = GCSObjectStore()

        assert store.client is store.client
        assert mock_client_cls.call_count == 1
        assert store.universe == DEFAULT_UNIVERSE
