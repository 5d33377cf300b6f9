"""Tests for build output collection."""
import pytest

from sourcemap_uploader.orchestrator.file_collector import BuildOutputBundle, BundleAsset, FileCollector
from sourcemap_uploader.orchestrator.pipeline import artifact_content


@pytest.fixture
def dist(tmp_path):
    root = tmp_path / "dist"
    (root / "assets").mkdir(parents=True)
    (root / "index.html").write_text("<html></html>", encoding="utf-8")
    (root / "assets" / "app.js").write_text("console.log(1)", encoding="utf-8")
    (root / "assets" / "app.js.map").write_text('{"version":3}', encoding="utf-8")
    return root


def test_collect_files_is_recursive_and_sorted(dist):
    files = FileCollector.collect_files(dist)
    assert [p.relative_to(dist).as_posix() for p in files] == [
        "assets/app.js",
        "assets/app.js.map",
        "index.html",
    ]


def test_bundle_keys_are_relative_posix_paths(dist):
    bundle = BuildOutputBundle(dist)
    assert sorted(bundle) == ["assets/app.js", "assets/app.js.map", "index.html"]
    assert len(bundle) == 3
    assert isinstance(bundle["assets/app.js.map"], BundleAsset)


def test_asset_content_is_file_bytes(dist):
    bundle = BuildOutputBundle(dist)
    assert artifact_content(bundle["assets/app.js.map"]) == b'{"version":3}'


def test_delete_unlinks_file(dist):
    bundle = BuildOutputBundle(dist)
    del bundle["assets/app.js.map"]
    assert not (dist / "assets" / "app.js.map").exists()
    assert "assets/app.js.map" not in bundle
    assert (dist / "assets" / "app.js").exists()


def test_set_writes_file(dist):
    bundle = BuildOutputBundle(dist)
    bundle["assets/extra.js.map"] = '{"version":3,"file":"extra.js"}'
    bundle["bin/data.bin"] = b"\x00\x01"
    assert (dist / "assets" / "extra.js.map").read_text(encoding="utf-8").startswith('{"version":3')
    assert (dist / "bin" / "data.bin").read_bytes() == b"\x00\x01"
    assert len(bundle) == 5


def test_missing_directory_raises(tmp_path):
    with pytest.raises(NotADirectoryError):
        BuildOutputBundle(tmp_path / "nope")
