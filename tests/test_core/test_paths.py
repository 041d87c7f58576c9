"""Unit tests for the path-safety helpers (textor.core.paths).

Tests cover:
- secure_join accepting descendants and the root itself
- secure_join rejecting .. segments and absolute segments
- is_within lexical containment
- Ledger key conversion in both directions
"""

from __future__ import annotations

from pathlib import Path

import pytest

from textor.core.errors import PathTraversalError, TextorError
from textor.core.paths import from_project_path, is_within, secure_join, to_project_path


class TestSecureJoin:
    @pytest.mark.unit
    def test_joins_nested_segments(self, tmp_path: Path):
        result = secure_join(tmp_path, "src", "pages/users.astro")
        assert result == tmp_path / "src" / "pages" / "users.astro"
        assert result.is_absolute()

    @pytest.mark.unit
    def test_root_itself_is_allowed(self, tmp_path: Path):
        assert secure_join(tmp_path) == tmp_path
        assert secure_join(tmp_path, ".") == tmp_path

    @pytest.mark.unit
    def test_inner_dotdot_that_stays_inside(self, tmp_path: Path):
        assert secure_join(tmp_path, "a/../b") == tmp_path / "b"

    @pytest.mark.unit
    @pytest.mark.parametrize("segment", ["..", "../outside", "a/../../b", "../../etc/passwd"])
    def test_escape_rejected(self, tmp_path: Path, segment: str):
        with pytest.raises(PathTraversalError) as exc_info:
            secure_join(tmp_path / "root", segment)
        assert "Path traversal" in str(exc_info.value)

    @pytest.mark.unit
    def test_absolute_segment_rejected(self, tmp_path: Path):
        with pytest.raises(PathTraversalError):
            secure_join(tmp_path / "root", "/etc/passwd")

    @pytest.mark.unit
    def test_sibling_with_common_prefix_rejected(self, tmp_path: Path):
        with pytest.raises(PathTraversalError):
            secure_join(tmp_path / "app", "../app-other/file")

    @pytest.mark.unit
    def test_error_is_textor_error(self, tmp_path: Path):
        with pytest.raises(TextorError):
            secure_join(tmp_path, "..")


class TestIsWithin:
    @pytest.mark.unit
    def test_descendant(self, tmp_path: Path):
        assert is_within(tmp_path, tmp_path / "a" / "b.txt")

    @pytest.mark.unit
    def test_same_path(self, tmp_path: Path):
        assert is_within(tmp_path, tmp_path)

    @pytest.mark.unit
    def test_outside(self, tmp_path: Path):
        assert not is_within(tmp_path / "a", tmp_path / "b")
        assert not is_within(tmp_path / "app", tmp_path / "app-other")


class TestProjectPaths:
    @pytest.mark.unit
    def test_to_project_path_uses_forward_slashes(self, tmp_path: Path):
        key = to_project_path(tmp_path / "src" / "pages" / "users.astro", tmp_path)
        assert key == "src/pages/users.astro"

    @pytest.mark.unit
    def test_from_project_path(self, tmp_path: Path):
        assert from_project_path("src/features/users/Users.astro", tmp_path) == (
            tmp_path / "src" / "features" / "users" / "Users.astro"
        )

    @pytest.mark.unit
    def test_from_project_path_guards_escape(self, tmp_path: Path):
        with pytest.raises(PathTraversalError):
            from_project_path("../secret.txt", tmp_path)
