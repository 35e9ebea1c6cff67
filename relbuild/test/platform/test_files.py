"""Tests for relbuild.platform.files module."""

from __future__ import annotations

from pathlib import Path

from relbuild.platform.files import atomic_write_text, copy_file, remove_tree


class TestAtomicWriteText:
    def test_creates_parent_and_writes(self, tmp_path: Path) -> None:
        path = tmp_path / "a" / "b" / "manifest.txt"
        atomic_write_text(path, "x: 1")
        assert path.read_text(encoding="utf-8") == "x: 1"

    def test_overwrites(self, tmp_path: Path) -> None:
        path = tmp_path / "f.txt"
        path.write_text("old", encoding="utf-8")
        atomic_write_text(path, "new")
        assert path.read_text(encoding="utf-8") == "new"

    def test_no_newline_translation(self, tmp_path: Path) -> None:
        path = tmp_path / "f.txt"
        atomic_write_text(path, "a\nb")
        assert path.read_bytes() == b"a\nb"

    def test_no_temp_files_left(self, tmp_path: Path) -> None:
        atomic_write_text(tmp_path / "f.txt", "x")
        assert [p.name for p in tmp_path.iterdir()] == ["f.txt"]


def test_copy_file_creates_destination_dir(tmp_path: Path) -> None:
    src = tmp_path / "src.bin"
    src.write_bytes(b"\x00\x01")
    dst = tmp_path / "artifacts" / "64" / "src.bin"

    copy_file(src, dst)

    assert dst.read_bytes() == b"\x00\x01"


class TestRemoveTree:
    def test_missing_dir(self, tmp_path: Path) -> None:
        assert remove_tree(tmp_path / "missing") is False

    def test_removes_nested(self, tmp_path: Path) -> None:
        d = tmp_path / "out"
        (d / "rel64").mkdir(parents=True)
        (d / "rel64" / "SumatraPDF.exe").write_bytes(b"MZ")

        assert remove_tree(d) is True
        assert not d.exists()
