"""Unit tests for platform path utilities."""

import os

import pytest

from aship.platform import paths


class TestExpand:
    """Tests for user and environment expansion."""

    def test_expand_home(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        assert paths.expand("~/keys") == os.path.join(str(tmp_path), "keys")

    def test_expand_env(self, monkeypatch):
        monkeypatch.setenv("ASHIP_TEST_DIR", "/data")
        assert paths.expand("$ASHIP_TEST_DIR/hosts") == "/data/hosts"


class TestSafeJoin:
    """Tests for contained joins."""

    def test_safe_join_allows_subpath(self, tmp_path):
        result = paths.safe_join(tmp_path, "sub", "file.txt")
        assert result == os.path.join(str(tmp_path), "sub", "file.txt")

    def test_safe_join_blocks_traversal(self, tmp_path):
        with pytest.raises(ValueError, match="traversal"):
            paths.safe_join(tmp_path, "..", "etc", "passwd")

    def test_safe_join_blocks_absolute(self, tmp_path):
        with pytest.raises(ValueError):
            paths.safe_join(tmp_path, "/etc/passwd")


class TestIsWithin:
    """Tests for containment checks."""

    def test_child(self, tmp_path):
        assert paths.is_within(tmp_path, tmp_path / "a" / "b.yml")

    def test_base_itself_is_not_within(self, tmp_path):
        assert not paths.is_within(tmp_path, tmp_path)

    def test_sibling_with_common_prefix(self, tmp_path):
        assert not paths.is_within(tmp_path / "inv", tmp_path / "inventories" / "x.yml")

    def test_dotdot_escapes(self, tmp_path):
        assert not paths.is_within(tmp_path / "inv", tmp_path / "inv" / ".." / "x.yml")

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
    def test_symlink_out_of_base(self, tmp_path):
        base = tmp_path / "scratch"
        base.mkdir()
        target = tmp_path / "precious.yml"
        target.write_text("x")
        link = base / "link.yml"
        os.symlink(target, link)

        assert not paths.is_within(base, link)
