"""Unit tests for platform filesystem utilities."""

import json
import os

import pytest

from aship.platform import fs


class TestAtomicWrite:
    """Tests for atomic writes."""

    def test_atomic_write(self, tmp_path):
        test_file = tmp_path / "atomic.txt"
        fs.atomic_write(test_file, "atomic content")
        assert fs.read_file(test_file) == "atomic content"

    def test_atomic_write_overwrites(self, tmp_path):
        test_file = tmp_path / "atomic.txt"
        test_file.write_text("original")
        fs.atomic_write(test_file, "updated")
        assert fs.read_file(test_file) == "updated"

    def test_atomic_write_bytes(self, tmp_path):
        test_file = tmp_path / "data.bin"
        fs.atomic_write(test_file, b"\x00\x01")
        assert test_file.read_bytes() == b"\x00\x01"

    def test_creates_parent_directories(self, tmp_path):
        test_file = tmp_path / "a" / "b" / "hosts.json"
        fs.atomic_write(test_file, "{}")
        assert test_file.exists()

    def test_no_temp_files_left(self, tmp_path):
        fs.atomic_write(tmp_path / "x.txt", "x")
        assert os.listdir(tmp_path) == ["x.txt"]

    def test_write_json(self, tmp_path):
        test_file = tmp_path / "data.json"
        fs.write_json(test_file, {"hosts": {}})
        assert test_file.read_text() == '{\n  "hosts": {}\n}\n'
        assert json.loads(test_file.read_text()) == {"hosts": {}}


class TestRemoveAndCopy:
    """Tests for remove and copy."""

    def test_remove(self, tmp_path):
        test_file = tmp_path / "x.txt"
        test_file.write_text("x")
        fs.remove(test_file)
        assert not test_file.exists()

    def test_remove_missing_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            fs.remove(tmp_path / "missing")

    def test_remove_missing_ok(self, tmp_path):
        fs.remove(tmp_path / "missing", missing_ok=True)

    def test_copy_file(self, tmp_path):
        src = tmp_path / "src.yml"
        src.write_text("all: {}\n")
        fs.copy_file(src, tmp_path / "dst.yml")
        assert (tmp_path / "dst.yml").read_text() == "all: {}\n"

    def test_makedirs_exist_ok(self, tmp_path):
        fs.makedirs(tmp_path / "d")
        fs.makedirs(tmp_path / "d")
        assert (tmp_path / "d").is_dir()
