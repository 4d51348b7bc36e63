import json

import pytest
from pydantic import ValidationError

from modlinker.schemas.manifest import (
    InstallFile,
    Manifest,
    ModKind,
    ModState,
    normalise_destination,
)


class TestNormaliseDestination:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("Textures/A.dds", "data/textures/a.dds"),
            ("Data\\Meshes\\b.nif", "data/meshes/b.nif"),
            ("data//plugin.esp", "data/plugin.esp"),
            ("/DATA/Textures//c.dds/", "data/textures/c.dds"),
            ("database.esp", "data/database.esp"),
            ("data", "data"),
            ("", "data"),
        ],
    )
    def test_examples(self, raw, expected):
        assert normalise_destination(raw) == expected

    @pytest.mark.parametrize(
        "raw",
        ["A\\B\\C.ESP", "data\\\\x//y", "//Textures//", "Data/Data/x.esp", "sub\\Dir/File.BSA"],
    )
    def test_result_is_lowercase_posix_under_data(self, raw):
        dest = normalise_destination(raw)

        assert dest == "data" or dest.startswith("data/")
        assert dest == dest.lower()
        assert "\\" not in dest
        assert "//" not in dest
        assert not dest.endswith("/")


class TestInstallFile:
    def test_create_normalises_both_sides(self):
        entry = InstallFile.create("Main\\Textures\\A.DDS", "Textures\\A.DDS")

        assert entry.source == "main/textures/a.dds"
        assert entry.destination == "data/textures/a.dds"
        assert entry.basename == "a.dds"

    def test_raw_keeps_destination_outside_data(self):
        entry = InstallFile.raw("SKSE/Loader.EXE", "skse64_loader.exe")

        assert entry.source == "skse/loader.exe"
        assert entry.destination == "skse64_loader.exe"

    def test_is_frozen_and_hashable(self):
        entry = InstallFile.create("a.esp", "a.esp")

        with pytest.raises(ValidationError):
            entry.source = "b.esp"
        assert len({entry, InstallFile.create("a.esp", "a.esp")}) == 1


class TestManifest:
    def test_json_round_trip(self):
        manifest = Manifest(
            bare_name="skyui-12604-5-2se",
            display_name="SkyUI",
            kind=ModKind.FOMOD,
            version="5.2SE",
            nexus_id=12604,
            state=ModState.ENABLED,
            priority=3,
            files=[InstallFile.create("interface/skyui.swf", "interface/skyui.swf")],
            disabled_files=[InstallFile.create("readme.txt", "readme.txt")],
            tags={"ui", "core"},
        )

        restored = Manifest.model_validate_json(manifest.model_dump_json())

        assert restored == manifest

    def test_tags_are_written_sorted(self):
        manifest = Manifest(bare_name="m", tags={"zeta", "alpha"})

        assert json.loads(manifest.model_dump_json())["tags"] == ["alpha", "zeta"]

    def test_missing_optional_fields_get_defaults(self):
        manifest = Manifest.model_validate_json('{"bare_name": "old-mod"}')

        assert manifest.kind == ModKind.DATA
        assert manifest.state == ModState.DISABLED
        assert manifest.priority == 0
        assert manifest.files == []
        assert manifest.tags == set()
        assert manifest.name == "old-mod"

    def test_nexus_id_must_fit_unsigned_32_bit(self):
        with pytest.raises(ValidationError):
            Manifest(bare_name="m", nexus_id=-1)
        with pytest.raises(ValidationError):
            Manifest(bare_name="m", nexus_id=2**32)

    def test_paths_derive_from_bare_name(self, tmp_path):
        manifest = Manifest(bare_name="mod")

        assert manifest.cache_path(tmp_path) == tmp_path / "mod"
        assert manifest.manifest_path(tmp_path) == tmp_path / "mod.json"
        assert manifest.sidecar_path(tmp_path) == tmp_path / "mod.dmodman"

    def test_destinations_only_cover_active_files(self):
        manifest = Manifest(
            bare_name="m",
            files=[InstallFile.create("a.esp", "a.esp")],
            disabled_files=[InstallFile.create("b.esp", "b.esp")],
        )

        assert manifest.destinations() == {"data/a.esp"}
