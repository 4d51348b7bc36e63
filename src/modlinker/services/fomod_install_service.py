"""Interactive FOMOD installation.

Walks a parsed ``ModuleConfig.xml``, asks the user to pick plugins for each
group, tracks the condition flags those plugins set and resolves the
conditional file installs into the final list of :class:`InstallFile`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from pathlib import Path

from modlinker.constants import FOMOD_INFO_FILE, FOMOD_MODCONFIG_FILE
from modlinker.errors import InstallerCancelledError
from modlinker.schemas.manifest import InstallFile, Manifest, ModKind
from modlinker.services.fomod_config_parser import (
    CompositeDependency,
    DependencyOperator,
    FileMapping,
    FileState,
    FomodGroup,
    FomodInfo,
    FomodPlugin,
    GroupType,
    parse_fomod_config,
    parse_fomod_info,
)
from modlinker.services.prompt import Answer, Command, Prompter, parse_answer
from modlinker.utils.paths import iter_files, to_posix

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Dependency evaluation
# ---------------------------------------------------------------------------


def evaluate_dependency(
    dependency: CompositeDependency,
    flags: set[tuple[str, str]],
    installed_files: set[str] | None = None,
) -> bool:
    """Recursively evaluate a composite dependency against the set flags.

    *flags* holds every ``(name, value)`` pair set by a chosen plugin, so a
    flag set to two values satisfies a condition on either.
    """
    results: list[bool] = []

    for fc in dependency.flag_conditions:
        results.append((fc.name, fc.value) in flags)

    for file_cond in dependency.file_conditions:
        file_exists = file_cond.file.lower() in (installed_files or set())
        if file_cond.state == FileState.ACTIVE:
            results.append(file_exists)
        else:
            results.append(not file_exists)

    for nested in dependency.nested:
        results.append(evaluate_dependency(nested, flags, installed_files))

    if not results:
        return True

    if dependency.operator == DependencyOperator.AND:
        return all(results)
    return any(results)


def is_step_visible(
    step_visible: CompositeDependency | None,
    flags: set[tuple[str, str]],
    installed_files: set[str] | None = None,
) -> bool:
    if step_visible is None:
        return True
    return evaluate_dependency(step_visible, flags, installed_files)


# ---------------------------------------------------------------------------
# Directive expansion
# ---------------------------------------------------------------------------


def expand_mapping(mapping: FileMapping, mod_dir: Path, root: str = "") -> list[InstallFile]:
    """Turn one ``<file>``/``<folder>`` directive into install pairs.

    *root* is the directory holding ``fomod/``, relative to *mod_dir*;
    directive sources are relative to it.  Sources missing from the cache
    are skipped with a warning.
    """
    source = to_posix(mapping.source).lower().strip("/")
    base = f"{root}/{source}" if root and source else root or source
    destination = to_posix(mapping.destination).lower().strip("/") if mapping.destination else ""

    if not mapping.is_folder:
        if not (mod_dir / base).is_file():
            logger.warning("FOMOD file source not found in %s: %s", mod_dir.name, mapping.source)
            return []
        return [InstallFile.create(base, destination or source)]

    folder = mod_dir / base if base else mod_dir
    if not folder.is_dir():
        logger.warning("FOMOD folder source not found in %s: %s", mod_dir.name, mapping.source)
        return []

    files: list[InstallFile] = []
    for path in iter_files(folder):
        relative = path.relative_to(folder).as_posix()
        target = f"{destination}/{relative}" if destination else relative
        files.append(InstallFile.create(path.relative_to(mod_dir).as_posix(), target))
    return files


def _expand_all(mappings: Iterable[FileMapping], mod_dir: Path, root: str) -> list[InstallFile]:
    files: list[InstallFile] = []
    for mapping in mappings:
        files.extend(expand_mapping(mapping, mod_dir, root))
    return files


def drop_duplicate_destinations(files: Sequence[InstallFile]) -> list[InstallFile]:
    """Keep the first entry for every destination, in order."""
    seen: set[str] = set()
    result: list[InstallFile] = []
    for entry in files:
        if entry.destination in seen:
            logger.debug("Dropping duplicate destination %s (%s)", entry.destination, entry.source)
            continue
        seen.add(entry.destination)
        result.append(entry)
    return result


# ---------------------------------------------------------------------------
# Plugin selection
# ---------------------------------------------------------------------------


def _list_plugins(
    prompter: Prompter, header: str, plugins: Sequence[FomodPlugin], *, done: bool
) -> None:
    prompter.show(header)
    for index, plugin in enumerate(plugins):
        prompter.show(f"{index}) {plugin.name}: {plugin.description}")
    if done:
        prompter.show("D) Done with the selection")
    prompter.show("E) Exit Installer")


def _ask(prompter: Prompter, mod_name: str) -> Answer | None:
    answer = parse_answer(prompter.ask("Select : "))
    if answer is None:
        prompter.show("Invalid choice..")
        return None
    if answer.command == Command.EXIT:
        raise InstallerCancelledError(mod_name)
    return answer


def _valid_index(answer: Answer, plugins: Sequence[FomodPlugin], prompter: Prompter) -> int | None:
    if answer.index is not None and answer.index < len(plugins):
        return answer.index
    prompter.show("Invalid choice..")
    return None


def select_plugins(group: FomodGroup, mod_name: str, prompter: Prompter) -> list[int]:
    """Ask for plugin indices according to the group's selection rule.

    Raises:
        InstallerCancelledError: If the user chooses Exit.
    """
    plugins = group.plugins
    if not plugins:
        return []

    if group.type == GroupType.SELECT_ALL:
        for plugin in plugins:
            prompter.show(plugin.name)
            prompter.show(plugin.description)
        return list(range(len(plugins)))

    if group.type == GroupType.SELECT_EXACTLY_ONE:
        _list_plugins(prompter, "Please select one of the following: ", plugins, done=False)
        while True:
            answer = _ask(prompter, mod_name)
            if answer is None:
                continue
            if answer.command == Command.DONE:
                prompter.show("Please select exactly one option.")
                continue
            index = _valid_index(answer, plugins, prompter)
            if index is not None:
                return [index]

    if group.type == GroupType.SELECT_AT_MOST_ONE:
        _list_plugins(prompter, "Please select at-most one of the following: ", plugins, done=True)
        while True:
            answer = _ask(prompter, mod_name)
            if answer is None:
                continue
            if answer.command == Command.DONE:
                return []
            index = _valid_index(answer, plugins, prompter)
            if index is not None:
                return [index]

    at_least_one = group.type == GroupType.SELECT_AT_LEAST_ONE
    header = (
        "Please select at-least one of the following: "
        if at_least_one
        else "Please select any of the following: "
    )
    _list_plugins(prompter, header, plugins, done=True)
    choices: list[int] = []
    while True:
        answer = _ask(prompter, mod_name)
        if answer is None:
            continue
        if answer.command == Command.DONE:
            if at_least_one and not choices:
                prompter.show("Please select at-least one option.")
                continue
            return choices
        index = _valid_index(answer, plugins, prompter)
        if index is not None and index not in choices:
            choices.append(index)


# ---------------------------------------------------------------------------
# Installer
# ---------------------------------------------------------------------------


def find_fomod_root(mod_dir: Path) -> str | None:
    """Directory (relative to *mod_dir*) holding ``fomod/``, within two levels."""
    if (mod_dir / FOMOD_MODCONFIG_FILE).is_file():
        return ""
    for child in sorted(mod_dir.iterdir()):
        if child.is_dir() and not child.is_symlink() and (child / FOMOD_MODCONFIG_FILE).is_file():
            return child.name
    return None


def read_fomod_info(mod_dir: Path, root: str) -> FomodInfo:
    info_path = mod_dir / root / FOMOD_INFO_FILE
    if not info_path.is_file():
        return FomodInfo()
    return parse_fomod_info(info_path.read_bytes())


def fallback_name(bare_name: str) -> str:
    """Name used when info.xml has none: the bare name up to its first ``-``."""
    return bare_name.split("-", 1)[0]


def run_fomod_installer(cache_dir: Path, bare_name: str, prompter: Prompter) -> Manifest:
    """Run the interactive installer for an extracted FOMOD mod.

    Raises:
        InstallerCancelledError: If the user exits a selection prompt.
        ValueError: If the installer XML cannot be parsed.
        FileNotFoundError: If ``fomod/moduleconfig.xml`` is missing.
    """
    mod_dir = cache_dir / bare_name
    root = find_fomod_root(mod_dir)
    if root is None:
        raise FileNotFoundError(f"No {FOMOD_MODCONFIG_FILE} in {mod_dir}")

    info = read_fomod_info(mod_dir, root)
    config = parse_fomod_config((mod_dir / root / FOMOD_MODCONFIG_FILE).read_bytes())
    name = info.name or fallback_name(bare_name)

    files = _expand_all(config.required_install_files, mod_dir, root)
    flags: set[tuple[str, str]] = set()

    prompter.show()
    prompter.show(f"FoMod Installer for {name}")

    for step in config.steps:
        if not is_step_visible(step.visible, flags):
            logger.debug("Skipping hidden step '%s'", step.name)
            continue
        prompter.show(f"Install Step: {step.name}")
        for group in step.groups:
            prompter.show()
            prompter.show(f"Group Name: {group.name}")
            for index in select_plugins(group, name, prompter):
                plugin = group.plugins[index]
                files.extend(_expand_all(plugin.files, mod_dir, root))
                for flag in plugin.condition_flags:
                    flags.add((flag.name, flag.value))

    for pattern in config.conditional_file_installs:
        if evaluate_dependency(pattern.dependency, flags):
            files.extend(_expand_all(pattern.files, mod_dir, root))

    files = drop_duplicate_destinations(files)
    logger.info("FOMOD installer for '%s' selected %d files", name, len(files))
    return Manifest(
        bare_name=bare_name,
        display_name=name,
        kind=ModKind.FOMOD,
        version=info.version,
        files=files,
    )
