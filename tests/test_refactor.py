"""Unit tests for text-level refactoring (textor.refactor).

Tests cover:
- Relative import rewriting after a file moves
- Identifier renaming on word boundaries
- Aliased and relative specifier rewriting
- move_directory: renames, ledger records following files, refusals
- scan_and_replace_imports across the project
"""

from __future__ import annotations

from pathlib import Path

import pytest

from textor.core.errors import DestinationExistsError, NotFoundError
from textor.core.hashing import calculate_hash
from textor.core.models import FileKind, FileRecord, State
from textor.refactor import (
    move_directory,
    rename_component_tags,
    rewrite_import_specifier,
    rewrite_relative_imports,
    scan_and_replace_imports,
    update_imports_in_file,
)


# ---------------------------------------------------------------------------
# Single-file rewrites
# ---------------------------------------------------------------------------


class TestRewriteRelativeImports:
    @pytest.mark.unit
    def test_repoints_after_move_to_deeper_dir(self, tmp_path: Path):
        content = (
            "import Main from '../layouts/Main.astro';\n"
            'import Users from "../features/users/Users.astro";\n'
            "const lazy = import('./lazy.ts');\n"
            "import x from 'astro:content';\n"
        )
        old = tmp_path / "src" / "pages" / "users.astro"
        new = tmp_path / "src" / "pages" / "admin" / "users.astro"

        out = rewrite_relative_imports(content, old, new)

        assert "from '../../layouts/Main.astro'" in out
        assert 'from "../../features/users/Users.astro"' in out
        assert "import('../lazy.ts')" in out
        assert "from 'astro:content'" in out

    @pytest.mark.unit
    def test_same_directory_is_untouched(self, tmp_path: Path):
        content = "import A from './A.astro';"
        out = rewrite_relative_imports(content, tmp_path / "a.astro", tmp_path / "b.astro")
        assert out == content

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_update_imports_in_file(self, tmp_path: Path):
        new = tmp_path / "src" / "pages" / "people" / "index.astro"
        new.parent.mkdir(parents=True)
        new.write_text("import Main from '../layouts/Main.astro';\n", encoding="utf-8")

        changed = await update_imports_in_file(new, tmp_path / "src" / "pages" / "users.astro", new)

        assert changed is True
        assert "'../../layouts/Main.astro'" in new.read_text(encoding="utf-8")
        assert await update_imports_in_file(tmp_path / "missing.astro", new, new) is False


class TestRenames:
    @pytest.mark.unit
    def test_word_boundaries(self):
        content = "import Users from './Users.astro';\n<Users />\n<UsersTable />\n"
        out = rename_component_tags(content, "Users", "People")
        assert "import People from './People.astro';" in out
        assert "<People />" in out
        assert "<UsersTable />" in out

    @pytest.mark.unit
    def test_noop_rename(self):
        assert rename_component_tags("<A/>", "A", "A") == "<A/>"
        assert rename_component_tags("<A/>", "", "B") == "<A/>"

    @pytest.mark.unit
    def test_rewrite_import_specifier_exact_and_nested(self):
        content = (
            "import Button from '@components/Button';\n"
            "import { useButton } from '@components/Button/hooks/useButton';\n"
            "import ButtonGroup from '@components/ButtonGroup';\n"
        )
        out = rewrite_import_specifier(
            content, "@components/Button", "@components/Primary", "Button", "Primary"
        )
        assert "'@components/Primary'" in out
        assert "'@components/Primary/hooks/usePrimary'" in out
        assert "'@components/ButtonGroup'" in out


# ---------------------------------------------------------------------------
# move_directory
# ---------------------------------------------------------------------------


def _seed_component(config, name: str = "Button", owner: str = "Button") -> State:
    root = config.project_root
    files = {
        f"src/components/{name}/{name}.astro": f'<div class="{name.lower()}">{name}</div>\n',
        f"src/components/{name}/index.ts": f"export {{ default as {name} }} from './{name}.astro';\n",
        f"src/components/{name}/hooks/use{name}.ts": f"export function use{name}() {{}}\n",
    }
    state = State()
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        state.files[relative] = FileRecord(
            kind=FileKind.COMPONENT_FILE, hash=calculate_hash(content), owner=owner
        )
    return state


class TestMoveDirectory:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_moves_renames_and_rehashes(self, config):
        state = _seed_component(config)
        components = config.resolve_path("components")

        result = await move_directory(
            components / "Button",
            components / "Primary",
            state,
            config,
            from_name="Button",
            to_name="Primary",
            owner="Button",
        )

        assert result.source_removed
        assert not result.skipped
        assert not (components / "Button").exists()
        entry = components / "Primary" / "Primary.astro"
        assert entry.read_text(encoding="utf-8") == '<div class="primary">Primary</div>\n'
        assert (components / "Primary" / "hooks" / "usePrimary.ts").is_file()

        assert sorted(state.files) == [
            "src/components/Primary/Primary.astro",
            "src/components/Primary/hooks/usePrimary.ts",
            "src/components/Primary/index.ts",
        ]
        record = state.files["src/components/Primary/Primary.astro"]
        assert record.hash == calculate_hash(entry.read_text(encoding="utf-8"))
        assert record.owner == "Button"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_modified_file_stays_behind(self, config):
        state = _seed_component(config)
        components = config.resolve_path("components")
        (components / "Button" / "index.ts").write_text("// edited\n", encoding="utf-8")

        result = await move_directory(
            components / "Button", components / "Primary", state, config,
            from_name="Button", to_name="Primary", owner="Button",
        )

        assert [key for key, _reason in result.skipped] == ["src/components/Button/index.ts"]
        assert not result.source_removed
        assert (components / "Button" / "index.ts").is_file()
        assert "src/components/Button/index.ts" in state.files

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_source(self, config):
        components = config.resolve_path("components")
        with pytest.raises(NotFoundError):
            await move_directory(components / "Nope", components / "Other", State(), config)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_existing_destination(self, config):
        state = _seed_component(config)
        components = config.resolve_path("components")
        (components / "Primary").mkdir()
        with pytest.raises(DestinationExistsError):
            await move_directory(components / "Button", components / "Primary", state, config)


# ---------------------------------------------------------------------------
# scan_and_replace_imports
# ---------------------------------------------------------------------------


class TestScanAndReplaceImports:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_relative_imports_repointed(self, config, write_file):
        page = write_file(
            "src/pages/index.astro",
            "---\nimport Button from '../components/Button/Button.astro';\n---\n<Button />\n",
        )
        write_file("src/components/Primary/Primary.astro", "<div/>")
        state = State(
            files={
                "src/pages/index.astro": FileRecord(
                    kind=FileKind.ROUTE, hash=calculate_hash(page.read_text(encoding="utf-8"))
                )
            }
        )

        updated = await scan_and_replace_imports(
            config, state, kind="component",
            from_path="Button", to_path="Primary", from_name="Button", to_name="Primary",
        )

        assert updated == ["src/pages/index.astro"]
        content = page.read_text(encoding="utf-8")
        assert "import Primary from '../components/Primary/Primary.astro';" in content
        assert "<Primary />" in content
        assert state.files["src/pages/index.astro"].hash == calculate_hash(content)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_aliased_imports_repointed(self, config, write_file):
        config.import_aliases.features = "@features"
        page = write_file(
            "src/pages/users.astro",
            "import UsersList from '@features/users/list/UsersList.astro';\n<UsersList />\n",
        )

        updated = await scan_and_replace_imports(
            config, State(), kind="feature",
            from_path="users/list", to_path="people/list",
            from_name="UsersList", to_name="PeopleList",
        )

        assert updated == ["src/pages/users.astro"]
        content = page.read_text(encoding="utf-8")
        assert "'@features/people/list/PeopleList.astro'" in content
        assert "<PeopleList />" in content

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_drifted_file_keeps_old_hash(self, config, write_file):
        write_file(
            "src/pages/index.astro",
            "import Button from '../components/Button/Button.astro';\n",
        )
        state = State(files={"src/pages/index.astro": FileRecord(kind=FileKind.ROUTE, hash="stale")})

        await scan_and_replace_imports(
            config, state, kind="component",
            from_path="Button", to_path="Primary", from_name="Button", to_name="Primary",
        )

        assert state.files["src/pages/index.astro"].hash == "stale"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_dry_run_reports_without_writing(self, config, write_file):
        original = "import Button from '../components/Button/Button.astro';\n"
        page = write_file("src/pages/index.astro", original)

        updated = await scan_and_replace_imports(
            config, State(), kind="component",
            from_path="Button", to_path="Primary", from_name="Button", to_name="Primary",
            dry_run=True,
        )

        assert updated == ["src/pages/index.astro"]
        assert page.read_text(encoding="utf-8") == original

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_files_inside_new_location_skipped(self, config, write_file):
        inner = write_file(
            "src/components/Primary/index.ts",
            "export { default } from '../Button/Button.astro';\n",
        )
        updated = await scan_and_replace_imports(
            config, State(), kind="component",
            from_path="Button", to_path="Primary", from_name="Button", to_name="Primary",
        )
        assert updated == []
        assert "Button" in inner.read_text(encoding="utf-8")
