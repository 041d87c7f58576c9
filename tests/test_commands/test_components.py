"""Unit tests for the component commands (textor.commands.components).

Tests cover:
- create_component files, ledger records and options
- remove_component: clean removal, refusals, unknown components
- rename_component with and without import scanning
"""

from __future__ import annotations

import pytest

from textor.commands.components import create_component, remove_component, rename_component
from textor.core.errors import DestinationExistsError, NotFoundError, TextorError
from textor.core.models import FileKind

BUTTON_DIR = "src/components/Button"


# ---------------------------------------------------------------------------
# create-component
# ---------------------------------------------------------------------------


class TestCreateComponent:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_default_files(self, config, store):
        result = await create_component(config, "Button")

        assert result.created == [
            f"{BUTTON_DIR}/Button.astro",
            f"{BUTTON_DIR}/index.ts",
            f"{BUTTON_DIR}/hooks/useButton.ts",
        ]
        root = config.project_root
        assert (root / BUTTON_DIR / "Button.astro").read_text(encoding="utf-8").startswith(
            "<!-- @generated by Textor -->\n"
        )
        assert "from './Button.astro'" in (root / BUTTON_DIR / "index.ts").read_text(encoding="utf-8")

        state = await store.load()
        assert state.files[f"{BUTTON_DIR}/Button.astro"].kind is FileKind.COMPONENT
        assert state.files[f"{BUTTON_DIR}/index.ts"].kind is FileKind.COMPONENT_FILE
        assert {r.owner for r in state.files.values()} == {"Button"}
        assert [(c.name, c.path) for c in state.components] == [("Button", BUTTON_DIR)]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_name_is_normalized(self, config):
        result = await create_component(config, "primary-button", create_index=False, create_hook=False)
        assert result.created == ["src/components/PrimaryButton/PrimaryButton.astro"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_sub_components_dir(self, config):
        await create_component(config, "Card", create_sub_components_dir=True)
        assert (config.project_root / "src/components/Card/sub-components").is_dir()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_existing_component_refused(self, config):
        await create_component(config, "Button")
        with pytest.raises(DestinationExistsError):
            await create_component(config, "Button")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_dry_run(self, config, store):
        result = await create_component(config, "Button", dry_run=True)
        assert f"create {BUTTON_DIR}/Button.astro" in result.planned
        assert not (config.project_root / BUTTON_DIR).exists()
        assert (await store.load()).components == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_name(self, config):
        with pytest.raises(TextorError):
            await create_component(config, "--")


# ---------------------------------------------------------------------------
# remove-component
# ---------------------------------------------------------------------------


class TestRemoveComponent:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_removes_component(self, config, store):
        await create_component(config, "Button")

        result = await remove_component(config, "Button")

        assert result.ok
        assert result.deleted == [f"{BUTTON_DIR}/"]
        assert not (config.project_root / BUTTON_DIR).exists()
        assert config.resolve_path("components").is_dir()
        state = await store.load()
        assert state.files == {}
        assert state.components == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_edited_component_kept(self, config, store):
        await create_component(config, "Button")
        (config.project_root / BUTTON_DIR / "Button.astro").write_text("mine", encoding="utf-8")

        result = await remove_component(config, "Button")

        assert not result.ok
        assert (config.project_root / BUTTON_DIR / "Button.astro").exists()
        assert len((await store.load()).components) == 1

        forced = await remove_component(config, "Button", force=True)
        assert forced.ok
        assert not (config.project_root / BUTTON_DIR).exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_component(self, config):
        with pytest.raises(NotFoundError):
            await remove_component(config, "Ghost")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_untracked_directory_refused(self, config, write_file):
        write_file("src/components/Legacy/Legacy.astro", "<div/>")
        result = await remove_component(config, "Legacy")
        assert not result.ok
        assert (config.project_root / "src/components/Legacy/Legacy.astro").exists()


# ---------------------------------------------------------------------------
# rename-component
# ---------------------------------------------------------------------------


class TestRenameComponent:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_renames_directory_files_and_ledger(self, config, store):
        await create_component(config, "Button")

        result = await rename_component(config, "Button", "Primary")

        assert result.ok
        root = config.project_root
        assert not (root / BUTTON_DIR).exists()
        assert (root / "src/components/Primary/Primary.astro").is_file()
        assert (root / "src/components/Primary/hooks/usePrimary.ts").is_file()
        index = (root / "src/components/Primary/index.ts").read_text(encoding="utf-8")
        assert "export { default as Primary } from './Primary.astro';" in index

        state = await store.load()
        assert all(key.startswith("src/components/Primary/") for key in state.files)
        assert {r.owner for r in state.files.values()} == {"Primary"}
        assert [(c.name, c.path) for c in state.components] == [("Primary", "src/components/Primary")]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_scan_updates_importers(self, config, write_file):
        await create_component(config, "Button")
        page = write_file(
            "src/pages/index.astro",
            "---\nimport Button from '../components/Button/Button.astro';\n---\n<Button />\n",
        )

        result = await rename_component(config, "Button", "Primary", scan=True)

        assert "src/pages/index.astro" in result.updated
        content = page.read_text(encoding="utf-8")
        assert "import Primary from '../components/Primary/Primary.astro';" in content
        assert "<Primary />" in content

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_same_name(self, config):
        await create_component(config, "Button")
        with pytest.raises(TextorError):
            await rename_component(config, "Button", "button")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_dry_run(self, config):
        await create_component(config, "Button")
        result = await rename_component(config, "Button", "Primary", dry_run=True)
        assert result.planned == [f"move {BUTTON_DIR}/ -> src/components/Primary/"]
        assert (config.project_root / BUTTON_DIR).exists()
