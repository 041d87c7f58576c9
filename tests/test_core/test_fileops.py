"""Unit tests for the safe file primitives (textor.core.fileops).

Tests cover:
- write_file_with_signature stamping and returned hash
- safe_delete for tracked, drifted, untracked, signed and foreign-owned files
- safe_move checks, destination conflicts and returned hash
- safe_delete_dir whole-tree verdicts
- ensure_not_exists and cleanup_empty_dirs
"""

from __future__ import annotations

from pathlib import Path

import pytest

from textor.core.errors import DestinationExistsError, NotFoundError
from textor.core.fileops import (
    REASON_CHANGED,
    cleanup_empty_dirs,
    ensure_dir,
    ensure_not_exists,
    safe_delete,
    safe_delete_dir,
    safe_move,
    write_file_with_signature,
)
from textor.core.hashing import calculate_hash
from textor.core.models import FileKind, FileRecord

SIG = "// @generated by Textor"


def _hash_of(path: Path) -> str:
    return calculate_hash(path.read_text(encoding="utf-8"))


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


class TestWriteFileWithSignature:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_prepends_signature(self, tmp_path: Path):
        target = tmp_path / "deep" / "dir" / "a.ts"
        digest = await write_file_with_signature(target, "export {};\n", SIG)

        content = target.read_text(encoding="utf-8")
        assert content == f"{SIG}\nexport {{}};\n"
        assert digest == calculate_hash(content)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_signature_already_present(self, tmp_path: Path):
        target = tmp_path / "a.ts"
        await write_file_with_signature(target, f"{SIG}\nexport {{}};\n", SIG)
        assert target.read_text(encoding="utf-8").count(SIG) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_without_signature(self, tmp_path: Path):
        target = tmp_path / "a.json"
        await write_file_with_signature(target, "{}", None)
        assert target.read_text(encoding="utf-8") == "{}"


# ---------------------------------------------------------------------------
# safe_delete
# ---------------------------------------------------------------------------


class TestSafeDelete:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_file_is_noop(self, tmp_path: Path):
        result = await safe_delete(tmp_path / "nope.ts")
        assert not result.deleted
        assert result.message is None
        assert not result.skipped

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_tracked_unchanged_deleted(self, tmp_path: Path):
        target = tmp_path / "a.ts"
        target.write_text("content\n", encoding="utf-8")
        result = await safe_delete(target, expected_hash=_hash_of(target))
        assert result.deleted
        assert not target.exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_tracked_modified_refused(self, tmp_path: Path):
        target = tmp_path / "a.ts"
        target.write_text("original\n", encoding="utf-8")
        digest = _hash_of(target)
        target.write_text("edited by hand\n", encoding="utf-8")

        result = await safe_delete(target, expected_hash=digest, signatures=[SIG])

        assert result.skipped
        assert REASON_CHANGED in result.message
        assert target.exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_tracked_modified_with_signature_deleted(self, tmp_path: Path):
        target = tmp_path / "a.ts"
        target.write_text(f"{SIG}\noriginal\n", encoding="utf-8")
        digest = _hash_of(target)
        target.write_text(f"{SIG}\nedited\n", encoding="utf-8")

        result = await safe_delete(
            target, expected_hash=digest, owner="/users", actual_owner="/users", signatures=[SIG]
        )
        assert result.deleted
        assert not target.exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_signed_drift_of_foreign_owner_refused(self, tmp_path: Path):
        target = tmp_path / "a.ts"
        target.write_text(f"{SIG}\noriginal\n", encoding="utf-8")
        digest = _hash_of(target)
        target.write_text(f"{SIG}\nedited\n", encoding="utf-8")

        result = await safe_delete(
            target, expected_hash=digest, owner="/users", actual_owner="/admin", signatures=[SIG]
        )
        assert result.skipped
        assert target.exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_signed_drift_without_known_signatures_refused(self, tmp_path: Path):
        target = tmp_path / "a.ts"
        target.write_text(f"{SIG}\noriginal\n", encoding="utf-8")
        digest = _hash_of(target)
        target.write_text(f"{SIG}\nedited\n", encoding="utf-8")

        result = await safe_delete(target, expected_hash=digest)
        assert result.skipped
        assert REASON_CHANGED in result.message

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize("flag", ["force", "accept_changes"])
    async def test_tracked_modified_overridden(self, tmp_path: Path, flag: str):
        target = tmp_path / "a.ts"
        target.write_text("edited\n", encoding="utf-8")
        result = await safe_delete(target, expected_hash="stale", **{flag: True})
        assert result.deleted

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_line_ending_change_is_not_drift(self, tmp_path: Path):
        target = tmp_path / "a.ts"
        digest = calculate_hash("a\nb\n")
        target.write_bytes(b"a\r\nb\r\n")
        result = await safe_delete(target, expected_hash=digest)
        assert result.deleted

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_untracked_without_signature_refused(self, tmp_path: Path):
        target = tmp_path / "a.ts"
        target.write_text("hand written\n", encoding="utf-8")
        result = await safe_delete(target, signatures=[SIG])
        assert result.skipped
        assert "not tracked" in result.message

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_untracked_with_signature_deleted(self, tmp_path: Path):
        target = tmp_path / "a.ts"
        target.write_text(f"{SIG}\nexport {{}};\n", encoding="utf-8")
        result = await safe_delete(target, signatures=[SIG])
        assert result.deleted

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_owner_mismatch_refused(self, tmp_path: Path):
        target = tmp_path / "a.ts"
        target.write_text("x", encoding="utf-8")
        result = await safe_delete(
            target, expected_hash=_hash_of(target), owner="/users", actual_owner="/admin"
        )
        assert result.skipped
        assert "owned by a different entity" in result.message

        forced = await safe_delete(
            target, expected_hash=_hash_of(target), owner="/users", actual_owner="/admin", force=True
        )
        assert forced.deleted


# ---------------------------------------------------------------------------
# safe_move
# ---------------------------------------------------------------------------


class TestSafeMove:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_moves_and_reports_hash(self, tmp_path: Path):
        source = tmp_path / "a.ts"
        source.write_text("content\n", encoding="utf-8")
        digest = _hash_of(source)

        result = await safe_move(source, tmp_path / "sub" / "b.ts", expected_hash=digest)

        assert result.moved
        assert result.hash == digest
        assert not source.exists()
        assert (tmp_path / "sub" / "b.ts").read_text(encoding="utf-8") == "content\n"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_source_raises(self, tmp_path: Path):
        with pytest.raises(NotFoundError):
            await safe_move(tmp_path / "a.ts", tmp_path / "b.ts")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_existing_destination_raises(self, tmp_path: Path):
        source = tmp_path / "a.ts"
        source.write_text(SIG, encoding="utf-8")
        (tmp_path / "b.ts").write_text("other", encoding="utf-8")

        with pytest.raises(DestinationExistsError):
            await safe_move(source, tmp_path / "b.ts", signatures=[SIG])
        assert source.exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_drifted_source_skipped(self, tmp_path: Path):
        source = tmp_path / "a.ts"
        source.write_text("edited", encoding="utf-8")

        result = await safe_move(source, tmp_path / "b.ts", expected_hash="stale")

        assert result.skipped
        assert source.exists()
        assert not (tmp_path / "b.ts").exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_force_overwrites_destination(self, tmp_path: Path):
        source = tmp_path / "a.ts"
        source.write_text("new", encoding="utf-8")
        (tmp_path / "b.ts").write_text("old", encoding="utf-8")

        result = await safe_move(source, tmp_path / "b.ts", force=True)

        assert result.moved
        assert (tmp_path / "b.ts").read_text(encoding="utf-8") == "new"


# ---------------------------------------------------------------------------
# safe_delete_dir
# ---------------------------------------------------------------------------


def _tracked_tree(root: Path, owner: str = "Button") -> dict[str, FileRecord]:
    files: dict[str, FileRecord] = {}
    for relative, content in {
        "src/components/Button/Button.astro": "<button/>",
        "src/components/Button/index.ts": "export {};",
    }.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        files[relative] = FileRecord(
            kind=FileKind.COMPONENT_FILE, hash=calculate_hash(content), owner=owner
        )
    return files


class TestSafeDeleteDir:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_fully_tracked_tree_deleted(self, tmp_path: Path):
        files = _tracked_tree(tmp_path)
        target = tmp_path / "src" / "components" / "Button"

        result = await safe_delete_dir(target, project_root=tmp_path, state_files=files, owner="Button")

        assert result.deleted
        assert not target.exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_untracked_file_blocks_whole_tree(self, tmp_path: Path):
        files = _tracked_tree(tmp_path)
        target = tmp_path / "src" / "components" / "Button"
        (target / "notes.md").write_text("mine", encoding="utf-8")

        result = await safe_delete_dir(target, project_root=tmp_path, state_files=files)

        assert result.skipped
        assert "src/components/Button/notes.md" in result.message
        assert (target / "Button.astro").exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_modified_file_blocks_unless_accepted(self, tmp_path: Path):
        files = _tracked_tree(tmp_path)
        target = tmp_path / "src" / "components" / "Button"
        (target / "index.ts").write_text("export const x = 1;", encoding="utf-8")

        refused = await safe_delete_dir(target, project_root=tmp_path, state_files=files)
        assert refused.skipped
        assert REASON_CHANGED in refused.message

        accepted = await safe_delete_dir(
            target, project_root=tmp_path, state_files=files, accept_changes=True
        )
        assert accepted.deleted

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_signed_untracked_allowed_with_accept_changes(self, tmp_path: Path):
        files = _tracked_tree(tmp_path)
        target = tmp_path / "src" / "components" / "Button"
        (target / "extra.ts").write_text(f"{SIG}\n", encoding="utf-8")

        refused = await safe_delete_dir(target, project_root=tmp_path, state_files=files, signatures=[SIG])
        assert refused.skipped

        accepted = await safe_delete_dir(
            target, project_root=tmp_path, state_files=files, signatures=[SIG], accept_changes=True
        )
        assert accepted.deleted

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_owner_mismatch_blocks(self, tmp_path: Path):
        files = _tracked_tree(tmp_path, owner="Card")
        target = tmp_path / "src" / "components" / "Button"

        result = await safe_delete_dir(target, project_root=tmp_path, state_files=files, owner="Button")
        assert result.skipped
        assert "owned by a different entity" in result.message

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_force_deletes_anything(self, tmp_path: Path):
        target = tmp_path / "anything"
        (target / "nested").mkdir(parents=True)
        (target / "nested" / "x.txt").write_text("x", encoding="utf-8")

        result = await safe_delete_dir(target, project_root=tmp_path, state_files={}, force=True)
        assert result.deleted
        assert not target.exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_dir_is_noop(self, tmp_path: Path):
        result = await safe_delete_dir(tmp_path / "nope", project_root=tmp_path, state_files={})
        assert not result.deleted
        assert result.message is None


# ---------------------------------------------------------------------------
# Directory helpers
# ---------------------------------------------------------------------------


class TestDirectoryHelpers:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_ensure_not_exists(self, tmp_path: Path):
        target = tmp_path / "a.ts"
        await ensure_not_exists(target)
        target.write_text("x", encoding="utf-8")
        with pytest.raises(DestinationExistsError) as exc_info:
            await ensure_not_exists(target)
        assert "--force" in str(exc_info.value)
        await ensure_not_exists(target, force=True)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_cleanup_stops_at_boundary(self, tmp_path: Path):
        stop = tmp_path / "src" / "features"
        leaf = await ensure_dir(stop / "users" / "catalog" / "scripts")

        await cleanup_empty_dirs(leaf, stop)

        assert stop.is_dir()
        assert not (stop / "users").exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_cleanup_keeps_non_empty_parent(self, tmp_path: Path):
        stop = tmp_path / "root"
        leaf = await ensure_dir(stop / "a" / "b")
        (stop / "a" / "keep.txt").parent.mkdir(parents=True, exist_ok=True)
        (stop / "a" / "keep.txt").write_text("x", encoding="utf-8")

        await cleanup_empty_dirs(leaf, stop)

        assert not leaf.exists()
        assert (stop / "a").is_dir()
