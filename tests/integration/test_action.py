"""
Integration tests for the end-to-end upload step.

Runs the whole action (input parsing, expansion, ignore rules, key
computation and orchestration) against a real directory tree, with an
in-memory object store standing in for Cloud Storage.
"""

import os
import threading
from pathlib import Path

import pytest

from gcs_uploader.action import run_action, set_output
from gcs_uploader.errors import (
    ConcurrencyConfigError,
    ConfigError,
    ConflictingGlobError,
    InvalidHeaderError,
    NotFoundError,
    UploadTaskError,
)
from gcs_uploader.uploader import PredefinedAcl, StoredObject
from gcs_uploader.utils.config import ActionConfig

TESTDATA_FILES = [
    "nested1/nested2/test3.txt",
    "nested1/test1.txt",
    "test.css",
    "test.js",
    "test.json",
    "test1.txt",
    "test2.txt",
    "testfile",
]


class RecordingStore:
    """Object store that records uploads instead of sending them."""

    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.calls = []
        self._lock = threading.Lock()

    def store_object(self, bucket, source, options):
        with self._lock:
            self.calls.append((bucket, source, options))
        if os.path.basename(source) in self.fail_on:
            raise PermissionError("403 storage.objects.create denied")
        return StoredObject(name=options.destination, bucket=bucket)

    @property
    def sources(self):
        return sorted(call[1] for call in self.calls)

    @property
    def destinations(self):
        return sorted(call[2].destination for call in self.calls)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Workspace holding a testdata/ tree."""
    for name in TESTDATA_FILES:
        target = tmp_path / "testdata" / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(f"contents of {name}\n")
    return tmp_path


def _config(workspace: Path, **overrides) -> ActionConfig:
    values = dict(
        path="./testdata",
        destination="my-bucket/sub/path",
        concurrency=10,
        process_gcloudignore=False,
        workspace=str(workspace),
    )
    values.update(overrides)
    return ActionConfig(**values)


def _testdata(workspace: Path, *names: str):
    return sorted(os.path.join(str(workspace), "testdata", *n.split("/")) for n in names)


class TestRunAction:
    """Test the upload step end to end."""

    def test_uploads_all_files(self, workspace):
        """Test every file is uploaded under prefix and parent."""
        store = RecordingStore()
        config = _config(
            workspace,
            glob="**/*",
            predefined_acl=PredefinedAcl.AUTHENTICATED_READ,
            headers="content-type: application/json",
        )

        names = run_action(config, store=store)

        assert store.sources == _testdata(workspace, *TESTDATA_FILES)
        assert names[0] == "sub/path/testdata/nested1/nested2/test3.txt"
        for bucket, _, options in store.calls:
            assert bucket == "my-bucket"
            assert options.metadata.content_type == "application/json"
            assert options.gzip is True
            assert options.resumable is True
            assert options.predefined_acl is PredefinedAcl.AUTHENTICATED_READ

    def test_uploads_all_files_without_parent(self, workspace):
        """Test keys are relative to the folder when parent is off."""
        store = RecordingStore()

        names = run_action(_config(workspace, glob="**/*", parent=False), store=store)

        assert names == [f"sub/path/{name}" for name in TESTDATA_FILES]

    def test_uploads_single_file(self, workspace):
        """Test a single file never gets its directory as a key segment."""
        store = RecordingStore()

        names = run_action(_config(workspace, path="./testdata/test.css", parent=True), store=store)

        assert store.sources == _testdata(workspace, "test.css")
        assert names == ["sub/path/test.css"]

    def test_processes_gcloudignore(self, workspace):
        """Test files matched by .gcloudignore are skipped."""
        (workspace / ".gcloudignore").write_text("*.txt")
        store = RecordingStore()

        names = run_action(_config(workspace, process_gcloudignore=True), store=store)

        assert names == [
            "sub/path/testdata/test.css",
            "sub/path/testdata/test.js",
            "sub/path/testdata/test.json",
            "sub/path/testdata/testfile",
        ]

    def test_ignore_rules_relative_to_workspace(self, workspace):
        """Test directory patterns are evaluated from the workspace root."""
        (workspace / ".gcloudignore").write_text("testdata/nested1/\n")
        store = RecordingStore()

        names = run_action(
            _config(workspace, process_gcloudignore=True, parent=False), store=store
        )

        assert not any("nested1" in name for name in names)
        assert len(names) == 6

    def test_custom_gcloudignore_path(self, workspace):
        """Test a custom ignore file location is honored."""
        (workspace / "config").mkdir()
        (workspace / "config" / "upload.ignore").write_text("*.js\n*.json\n")
        store = RecordingStore()

        names = run_action(
            _config(
                workspace,
                process_gcloudignore=True,
                gcloudignore_path="config/upload.ignore",
                parent=False,
                glob="*",
            ),
            store=store,
        )

        assert names == [
            "sub/path/test.css",
            "sub/path/test1.txt",
            "sub/path/test2.txt",
            "sub/path/testfile",
        ]

    def test_gcloudignore_disabled(self, workspace):
        """Test the ignore file is not read when processing is off."""
        (workspace / ".gcloudignore").write_text("*")
        store = RecordingStore()

        names = run_action(_config(workspace, process_gcloudignore=False), store=store)

        assert len(names) == len(TESTDATA_FILES)

    def test_multiple_paths(self, workspace):
        """Test several roots upload with keys relative to the workspace."""
        (workspace / "file1.json").write_text('{"test": 1}')
        (workspace / "file2.json").write_text('{"test": 2}')
        (workspace / "other.txt").write_text("not a json file")
        store = RecordingStore()

        names = run_action(
            _config(
                workspace,
                path="file1.json\n\nfile2.json\n",
                destination="my-bucket",
                parent=False,
            ),
            store=store,
        )

        assert names == ["file1.json", "file2.json"]
        assert store.sources == sorted(
            [str(workspace / "file1.json"), str(workspace / "file2.json")]
        )

    def test_prefix_without_parent(self, tmp_path):
        """Test a.txt and sub/b.txt land under the prefix only."""
        root = tmp_path / "dir"
        (root / "sub").mkdir(parents=True)
        (root / "a.txt").write_text("a")
        (root / "sub" / "b.txt").write_text("b")
        store = RecordingStore()

        names = run_action(
            _config(tmp_path, path="dir", destination="bkt/prefix", parent=False),
            store=store,
        )

        assert names == ["prefix/a.txt", "prefix/sub/b.txt"]
        assert {call[0] for call in store.calls} == {"bkt"}

    def test_no_matching_files(self, workspace):
        """Test an empty match succeeds without touching the store."""
        store = RecordingStore()

        names = run_action(_config(workspace, glob="**/*.bvh"), store=store)

        assert names == []
        assert store.calls == []

    def test_concurrency_zero_rejected(self, workspace):
        """Test a concurrency below one fails before any upload."""
        store = RecordingStore()

        with pytest.raises(ConcurrencyConfigError):
            run_action(_config(workspace, concurrency=0), store=store)

        assert store.calls == []

    def test_invalid_header_fails_before_upload(self, workspace):
        store = RecordingStore()

        with pytest.raises(InvalidHeaderError):
            run_action(_config(workspace, headers="x-custom: nope"), store=store)

        assert store.calls == []

    def test_missing_bucket(self, workspace):
        with pytest.raises(ConfigError, match="bucket"):
            run_action(_config(workspace, destination="/prefix"), store=RecordingStore())

    def test_missing_path(self, workspace):
        with pytest.raises(NotFoundError):
            run_action(_config(workspace, path="./nope"), store=RecordingStore())

    def test_file_with_glob(self, workspace):
        with pytest.raises(ConflictingGlobError):
            run_action(
                _config(workspace, path="./testdata/test.css", glob="*.css"),
                store=RecordingStore(),
            )

    def test_failures_aggregated(self, workspace):
        """Test every file is attempted and each failure is reported."""
        store = RecordingStore(fail_on={"test.js", "test1.txt"})

        with pytest.raises(UploadTaskError) as exc_info:
            run_action(_config(workspace), store=store)

        error = exc_info.value
        assert len(store.calls) == len(TESTDATA_FILES)
        assert len(error.errors) == 2
        assert any("test.js" in message for message in error.errors)
        assert "403 storage.objects.create denied" in str(error)

    def test_from_env(self, workspace, monkeypatch):
        """Test the step runs from runner-style environment inputs."""
        monkeypatch.chdir(workspace)
        for key in list(os.environ):
            if key.startswith("INPUT_"):
                monkeypatch.delenv(key)
        monkeypatch.setenv("GITHUB_WORKSPACE", str(workspace))
        monkeypatch.setenv("INPUT_PATH", "testdata/nested1")
        monkeypatch.setenv("INPUT_DESTINATION", "my-bucket")
        monkeypatch.setenv("INPUT_PARENT", "false")
        monkeypatch.setenv("INPUT_GZIP", "false")
        store = RecordingStore()

        names = run_action(ActionConfig.from_env(), store=store)

        assert names == ["nested2/test3.txt", "test1.txt"]
        assert all(call[2].gzip is False for call in store.calls)


class TestSetOutput:
    """Test step outputs."""

    def test_appends_delimited_value(self, tmp_path):
        target = tmp_path / "github_output"
        target.write_text("previous=1\n")

        set_output("uploaded", "a.txt,b.txt", str(target))

        lines = target.read_text().splitlines()
        assert lines[0] == "previous=1"
        name, delimiter = lines[1].split("<<")
        assert name == "uploaded"
        assert lines[2] == "a.txt,b.txt"
        assert lines[3] == delimiter

    def test_without_output_file(self, caplog):
        with caplog.at_level("INFO"):
            set_output("uploaded", "a.txt", None)

        assert "Output uploaded: a.txt" in caplog.text
