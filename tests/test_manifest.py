"""Tests for manifest loading."""
import json

import pytest

from batch_uploader.services.manifest import ManifestError, load_manifest


def write_manifest(tmp_path, data):
    path = tmp_path / "manifest.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestLoadManifest:
    def test_list_manifest(self, tmp_path):
        (tmp_path / "a.js").write_bytes(b"12345")
        path = write_manifest(
            tmp_path,
            [
                {"path": "a.js", "url": "https://x/a.js", "contentType": "text/javascript"},
                {"path": "b.css", "url": "https://x/b.css", "contentType": "text/css", "contentLength": 3},
            ],
        )

        descriptors = load_manifest(path)

        assert [d.url for d in descriptors] == ["https://x/a.js", "https://x/b.css"]
        assert descriptors[0].path == tmp_path / "a.js"
        assert descriptors[0].content_length == 5
        assert descriptors[1].content_length == 3

    def test_files_key(self, tmp_path):
        path = write_manifest(
            tmp_path, {"files": [{"path": "/abs/x", "url": "https://x/x", "contentLength": 1}]}
        )
        assert len(load_manifest(path)) == 1

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "manifest.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ManifestError, match="not valid JSON"):
            load_manifest(path)

    def test_missing_url(self, tmp_path):
        path = write_manifest(tmp_path, [{"path": "/abs/x", "contentLength": 1}])
        with pytest.raises(ManifestError, match="missing"):
            load_manifest(path)

    def test_missing_file_without_length(self, tmp_path):
        path = write_manifest(tmp_path, [{"path": "nope.bin", "url": "https://x/nope"}])
        with pytest.raises(ManifestError, match="entry 0 is invalid"):
            load_manifest(path)

    def test_wrong_shape(self, tmp_path):
        path = write_manifest(tmp_path, {"items": []})
        with pytest.raises(ManifestError):
            load_manifest(path)

    def test_unreadable(self, tmp_path):
        with pytest.raises(ManifestError, match="could not read"):
            load_manifest(tmp_path / "missing.json")
