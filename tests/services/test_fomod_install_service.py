"""Tests for the interactive FOMOD installer."""

import logging

import pytest

from modlinker.errors import InstallerCancelledError
from modlinker.schemas.manifest import InstallFile, ModKind
from modlinker.services.fomod_config_parser import (
    CompositeDependency,
    DependencyOperator,
    FileCondition,
    FileMapping,
    FileState,
    FlagCondition,
    FomodGroup,
    FomodPlugin,
    GroupType,
)
from modlinker.services.fomod_install_service import (
    drop_duplicate_destinations,
    evaluate_dependency,
    expand_mapping,
    fallback_name,
    find_fomod_root,
    run_fomod_installer,
    select_plugins,
)
from modlinker.services.prompt import ScriptedPrompter

MODULE_CONFIG = rb"""<?xml version="1.0" encoding="utf-8"?>
<config>
  <moduleName>Better Armor</moduleName>
  <requiredInstallFiles>
    <file source="Core\Plugin.esp" destination="BetterArmor.esp" />
    <folder source="core/scripts" destination="scripts" />
  </requiredInstallFiles>
  <installSteps order="Explicit">
    <installStep name="Textures">
      <optionalFileGroups>
        <group name="Resolution" type="SelectExactlyOne">
          <plugins>
            <plugin name="P0">
              <description>1K textures</description>
              <files><folder source="1k" destination="textures" /></files>
              <conditionFlags><flag name="res">1k</flag></conditionFlags>
            </plugin>
            <plugin name="P1">
              <description>4K textures</description>
              <files><folder source="4K" destination="Textures" /></files>
              <conditionFlags><flag name="res">4k</flag></conditionFlags>
            </plugin>
          </plugins>
        </group>
      </optionalFileGroups>
    </installStep>
    <installStep name="Extras">
      <visible><flagDependency flag="res" value="4k" /></visible>
      <optionalFileGroups>
        <group name="Extra" type="SelectAll">
          <plugins>
            <plugin name="Cape">
              <description>A cape</description>
              <files><file source="extras/cape.nif" destination="meshes/cape.nif" /></files>
            </plugin>
          </plugins>
        </group>
      </optionalFileGroups>
    </installStep>
  </installSteps>
  <conditionalFileInstalls>
    <patterns>
      <pattern>
        <dependencies><flagDependency flag="res" value="4k" /></dependencies>
        <files><file source="patch/hd.esp" destination="hd.esp" /></files>
      </pattern>
    </patterns>
  </conditionalFileInstalls>
</config>
"""

INFO = b"<fomod><Name>Better Armor</Name><Version>1.2</Version></fomod>"

MOD_FILES = [
    "core/plugin.esp",
    "core/scripts/a.pex",
    "1k/armor.dds",
    "4k/armor.dds",
    "extras/cape.nif",
    "patch/hd.esp",
]


def _write(path, content: bytes = b"x") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)


@pytest.fixture
def fomod_mod(cache_dir):
    mod_dir = cache_dir / "better-armor-123-1-2"
    for name in MOD_FILES:
        _write(mod_dir / name)
    _write(mod_dir / "fomod" / "moduleconfig.xml", MODULE_CONFIG)
    _write(mod_dir / "fomod" / "info.xml", INFO)
    return mod_dir


def _pairs(files: list[InstallFile]) -> list[tuple[str, str]]:
    return [(f.source, f.destination) for f in files]


def _plugins(*names: str) -> list[FomodPlugin]:
    return [
        FomodPlugin(name=n, description=f"about {n}", files=[], condition_flags=[]) for n in names
    ]


class TestRunInstaller:
    def test_select_exactly_one_second_plugin(self, fomod_mod, cache_dir):
        prompter = ScriptedPrompter(["1"])

        manifest = run_fomod_installer(cache_dir, fomod_mod.name, prompter)

        assert manifest.kind == ModKind.FOMOD
        assert manifest.display_name == "Better Armor"
        assert manifest.version == "1.2"
        assert _pairs(manifest.files) == [
            ("core/plugin.esp", "data/betterarmor.esp"),
            ("core/scripts/a.pex", "data/scripts/a.pex"),
            ("4k/armor.dds", "data/textures/armor.dds"),
            ("extras/cape.nif", "data/meshes/cape.nif"),
            ("patch/hd.esp", "data/hd.esp"),
        ]
        assert "FoMod Installer for Better Armor" in prompter.lines
        assert "1) P1: 4K textures" in prompter.lines

    def test_hidden_step_and_unmet_condition(self, fomod_mod, cache_dir):
        manifest = run_fomod_installer(cache_dir, fomod_mod.name, ScriptedPrompter(["0"]))

        assert _pairs(manifest.files) == [
            ("core/plugin.esp", "data/betterarmor.esp"),
            ("core/scripts/a.pex", "data/scripts/a.pex"),
            ("1k/armor.dds", "data/textures/armor.dds"),
        ]

    def test_invalid_answers_are_asked_again(self, fomod_mod, cache_dir):
        prompter = ScriptedPrompter(["nope", "7", "d", "0"])

        manifest = run_fomod_installer(cache_dir, fomod_mod.name, prompter)

        assert prompter.lines.count("Invalid choice..") == 2
        assert ("1k/armor.dds", "data/textures/armor.dds") in _pairs(manifest.files)

    def test_exit_cancels_installation(self, fomod_mod, cache_dir):
        with pytest.raises(InstallerCancelledError):
            run_fomod_installer(cache_dir, fomod_mod.name, ScriptedPrompter(["E"]))

    def test_name_falls_back_to_bare_name_prefix(self, fomod_mod, cache_dir):
        (fomod_mod / "fomod" / "info.xml").unlink()

        manifest = run_fomod_installer(cache_dir, fomod_mod.name, ScriptedPrompter(["0"]))

        assert manifest.display_name == "better"
        assert manifest.version is None

    def test_installer_in_nested_directory(self, cache_dir):
        mod_dir = cache_dir / "nested"
        _write(mod_dir / "better armor" / "core" / "plugin.esp")
        _write(
            mod_dir / "better armor" / "fomod" / "moduleconfig.xml",
            b'<config><requiredInstallFiles><file source="core/plugin.esp" />'
            b"</requiredInstallFiles></config>",
        )

        manifest = run_fomod_installer(cache_dir, "nested", ScriptedPrompter([]))

        assert find_fomod_root(mod_dir) == "better armor"
        assert _pairs(manifest.files) == [
            ("better armor/core/plugin.esp", "data/core/plugin.esp")
        ]

    def test_flag_set_to_two_values_satisfies_both(self, cache_dir):
        mod_dir = cache_dir / "options"
        _write(mod_dir / "a.esp")
        _write(mod_dir / "b.esp")
        _write(
            mod_dir / "fomod" / "moduleconfig.xml",
            b"""<config><installSteps><installStep name="Options"><optionalFileGroups>
            <group name="Pick" type="SelectAny"><plugins order="Explicit">
              <plugin name="A"><conditionFlags><flag name="opt">A</flag></conditionFlags></plugin>
              <plugin name="B"><conditionFlags><flag name="opt">B</flag></conditionFlags></plugin>
            </plugins></group>
            </optionalFileGroups></installStep></installSteps>
            <conditionalFileInstalls><patterns>
              <pattern>
                <dependencies><flagDependency flag="opt" value="A" /></dependencies>
                <files><file source="a.esp" /></files>
              </pattern>
              <pattern>
                <dependencies><flagDependency flag="opt" value="B" /></dependencies>
                <files><file source="b.esp" /></files>
              </pattern>
            </patterns></conditionalFileInstalls></config>""",
        )

        manifest = run_fomod_installer(cache_dir, "options", ScriptedPrompter(["0", "1", "d"]))

        assert [f.destination for f in manifest.files] == ["data/a.esp", "data/b.esp"]


class TestSelectPlugins:
    def test_select_all_does_not_ask(self):
        group = FomodGroup(name="g", type=GroupType.SELECT_ALL, plugins=_plugins("a", "b"))

        assert select_plugins(group, "mod", ScriptedPrompter([])) == [0, 1]

    def test_at_most_one_accepts_done(self):
        group = FomodGroup(name="g", type=GroupType.SELECT_AT_MOST_ONE, plugins=_plugins("a", "b"))

        assert select_plugins(group, "mod", ScriptedPrompter(["done"])) == []

    def test_at_least_one_requires_a_choice_before_done(self):
        group = FomodGroup(name="g", type=GroupType.SELECT_AT_LEAST_ONE, plugins=_plugins("a", "b"))
        prompter = ScriptedPrompter(["d", "1", "0", "1", "d"])

        assert select_plugins(group, "mod", prompter) == [1, 0]
        assert "Please select at-least one option." in prompter.lines

    def test_select_any_allows_nothing(self):
        group = FomodGroup(name="g", type=GroupType.SELECT_ANY, plugins=_plugins("a"))

        assert select_plugins(group, "mod", ScriptedPrompter(["D"])) == []

    def test_exit_raises(self):
        group = FomodGroup(name="g", type=GroupType.SELECT_ANY, plugins=_plugins("a"))

        with pytest.raises(InstallerCancelledError, match="mod"):
            select_plugins(group, "mod", ScriptedPrompter(["0", "exit"]))


class TestEvaluateDependency:
    def test_and_or(self):
        conditions = [FlagCondition("a", "1"), FlagCondition("b", "2")]
        both = CompositeDependency(DependencyOperator.AND, flag_conditions=conditions)
        either = CompositeDependency(DependencyOperator.OR, flag_conditions=conditions)

        assert evaluate_dependency(both, {("a", "1"), ("b", "2")})
        assert not evaluate_dependency(both, {("a", "1")})
        assert evaluate_dependency(either, {("b", "2")})
        assert not evaluate_dependency(either, set())

    def test_nested_and_empty(self):
        inner = CompositeDependency(
            DependencyOperator.OR, flag_conditions=[FlagCondition("a", "x")]
        )
        outer = CompositeDependency(DependencyOperator.AND, nested=[inner])

        assert evaluate_dependency(outer, {("a", "x")})
        assert not evaluate_dependency(outer, {("a", "y")})
        assert evaluate_dependency(CompositeDependency(DependencyOperator.AND), set())

    def test_file_conditions(self):
        active = CompositeDependency(
            DependencyOperator.AND, file_conditions=[FileCondition("Data/X.esp", FileState.ACTIVE)]
        )
        missing = CompositeDependency(
            DependencyOperator.AND, file_conditions=[FileCondition("data/x.esp", FileState.MISSING)]
        )

        assert evaluate_dependency(active, set(), {"data/x.esp"})
        assert not evaluate_dependency(active, set())
        assert evaluate_dependency(missing, set())


class TestExpansion:
    def test_missing_source_is_skipped_with_warning(self, tmp_path, caplog):
        mapping = FileMapping(source="absent.esp", destination=None, is_folder=False)

        with caplog.at_level(logging.WARNING):
            assert expand_mapping(mapping, tmp_path) == []
        assert "absent.esp" in caplog.text

    def test_folder_without_destination_maps_to_data(self, tmp_path):
        _write(tmp_path / "opt" / "meshes" / "a.nif")
        mapping = FileMapping(source="Opt", destination=None, is_folder=True)

        files = expand_mapping(mapping, tmp_path)

        assert _pairs(files) == [("opt/meshes/a.nif", "data/meshes/a.nif")]

    def test_drop_duplicate_destinations_keeps_first(self):
        files = [
            InstallFile.create("1k/a.dds", "textures/a.dds"),
            InstallFile.create("4k/a.dds", "textures/a.dds"),
            InstallFile.create("b.esp", "b.esp"),
        ]

        assert _pairs(drop_duplicate_destinations(files)) == [
            ("1k/a.dds", "data/textures/a.dds"),
            ("b.esp", "data/b.esp"),
        ]

    def test_fallback_name(self):
        assert fallback_name("skyui-12604-5-2se") == "skyui"
        assert fallback_name("plain") == "plain"
