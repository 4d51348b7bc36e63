"""Command-line front end: argument parsing and one handler per subcommand.

Handlers receive the parsed arguments and the resolved settings, call into
the services and print plain text.  Errors are not caught here; the entry
point in ``__main__`` reports them and sets the exit code.
"""

from __future__ import annotations

import argparse
import logging
import shutil
import subprocess
from collections.abc import Callable
from pathlib import Path

from modlinker import __version__
from modlinker.config import Settings, default_config_file
from modlinker.errors import GameDirNotConfiguredError
from modlinker.matching.fuzzy import Matcher, make_scorer
from modlinker.schemas.manifest import Manifest
from modlinker.services import download_service
from modlinker.services.catalogue import ModCatalogue
from modlinker.services.conflict_service import classify_all, conflicts_by_mod
from modlinker.services.deploy_service import Deployer
from modlinker.services.prompt import ConsolePrompter, Prompter

logger = logging.getLogger(__name__)

Handler = Callable[[argparse.Namespace, Settings, Prompter], None]


def _deployer(settings: Settings) -> Deployer:
    if not settings.has_game_dir:
        raise GameDirNotConfiguredError()
    return Deployer(settings.cache_dir, settings.game_dir)


def _catalogue(settings: Settings) -> ModCatalogue:
    return ModCatalogue.gather(settings.cache_dir, make_scorer(settings.matcher))


def _mod_line(rank: int, mod: Manifest, tag: str) -> str:
    version = mod.version or "-"
    return f"{rank:>4}  {mod.priority:>5}  {tag:<14}  {mod.kind:<7}  {version:<12}  {mod.name}"


# ---------------------------------------------------------------------------
# Mods
# ---------------------------------------------------------------------------


def cmd_list(args: argparse.Namespace, settings: Settings, prompter: Prompter) -> None:
    catalogue = _catalogue(settings)
    tags = classify_all(catalogue.mods)
    print(f"{'#':>4}  {'prio':>5}  {'status':<14}  {'kind':<7}  {'version':<12}  name")
    for rank, mod in enumerate(catalogue):
        if args.tag and args.tag not in mod.tags:
            continue
        print(_mod_line(rank, mod, tags[mod.bare_name]))


def cmd_show(args: argparse.Namespace, settings: Settings, prompter: Prompter) -> None:
    catalogue = _catalogue(settings)
    mod = catalogue.find_mod(args.mod)
    print(f"Name:      {mod.name}")
    print(f"Bare name: {mod.bare_name}")
    print(f"Kind:      {mod.kind}")
    print(f"Version:   {mod.version or '-'}")
    print(f"Nexus id:  {mod.nexus_id if mod.nexus_id is not None else '-'}")
    print(f"Priority:  {mod.priority}")
    print(f"State:     {mod.state}")
    print(f"Tags:      {', '.join(sorted(mod.tags)) or '-'}")

    conflicts = conflicts_by_mod(catalogue.mods).get(mod.bare_name)
    contested = set(conflicts.conflict_files) if conflicts else set()
    print()
    print("Files:")
    for entry in mod.files:
        marker = "*" if entry.destination in contested else " "
        print(f" {marker} {entry.source} -> {entry.destination}")
    if mod.disabled_files:
        print("Disabled files:")
        for entry in mod.disabled_files:
            print(f"   {entry.source} -> {entry.destination}")
    if conflicts:
        print()
        print(f"Losing to:    {', '.join(conflicts.losing_to) or '-'}")
        print(f"Winning over: {', '.join(conflicts.winning_over) or '-'}")


def cmd_enable(args: argparse.Namespace, settings: Settings, prompter: Prompter) -> None:
    catalogue = _catalogue(settings)
    deployer = _deployer(settings)
    for query in args.mods:
        deployer.enable_mod(catalogue.mods, catalogue.find(query))


def cmd_disable(args: argparse.Namespace, settings: Settings, prompter: Prompter) -> None:
    catalogue = _catalogue(settings)
    deployer = _deployer(settings)
    for query in args.mods:
        deployer.disable_mod(catalogue.mods, catalogue.find(query))


def cmd_enable_all(args: argparse.Namespace, settings: Settings, prompter: Prompter) -> None:
    _deployer(settings).enable_all(_catalogue(settings).mods)


def cmd_disable_all(args: argparse.Namespace, settings: Settings, prompter: Prompter) -> None:
    _deployer(settings).disable_all(_catalogue(settings).mods)


def cmd_re_enable_all(args: argparse.Namespace, settings: Settings, prompter: Prompter) -> None:
    _deployer(settings).re_enable(_catalogue(settings).mods)


def cmd_set_priority(args: argparse.Namespace, settings: Settings, prompter: Prompter) -> None:
    catalogue = _catalogue(settings)
    deployer = _deployer(settings)
    catalogue.set_priority(catalogue.find(args.mod), args.priority)
    deployer.re_enable(catalogue.mods)


def cmd_rename(args: argparse.Namespace, settings: Settings, prompter: Prompter) -> None:
    catalogue = _catalogue(settings)
    catalogue.set_name(catalogue.find(args.mod), args.name)


def cmd_tag(args: argparse.Namespace, settings: Settings, prompter: Prompter) -> None:
    catalogue = _catalogue(settings)
    index = catalogue.find(args.mod)
    if args.action == "add":
        catalogue.add_tag(index, args.tag)
    else:
        catalogue.remove_tag(index, args.tag)


def _toggle_file(args: argparse.Namespace, settings: Settings, *, enable: bool) -> None:
    catalogue = _catalogue(settings)
    deployer = _deployer(settings)
    index = catalogue.find(args.mod)
    mod = catalogue[index]
    was_enabled = mod.is_enabled
    if was_enabled:
        deployer.disable(mod)
    if enable:
        catalogue.enable_file(index, args.file)
    else:
        catalogue.disable_file(index, args.file)
    if was_enabled:
        deployer.enable_mod(catalogue.mods, index)


def cmd_disable_file(args: argparse.Namespace, settings: Settings, prompter: Prompter) -> None:
    _toggle_file(args, settings, enable=False)


def cmd_enable_file(args: argparse.Namespace, settings: Settings, prompter: Prompter) -> None:
    _toggle_file(args, settings, enable=True)


def cmd_create_custom(args: argparse.Namespace, settings: Settings, prompter: Prompter) -> None:
    settings.cache_dir.mkdir(parents=True, exist_ok=True)
    mod = _catalogue(settings).create_custom(args.name, args.origin)
    print(f"Created custom mod '{mod.name}' in {mod.cache_path(settings.cache_dir)}")


def cmd_remove(args: argparse.Namespace, settings: Settings, prompter: Prompter) -> None:
    catalogue = _catalogue(settings)
    index = catalogue.find(args.mod)
    if catalogue[index].is_enabled:
        _deployer(settings).disable_mod(catalogue.mods, index)
    mod = catalogue.remove(index)
    print(f"Removed '{mod.name}'")


def cmd_reinstall(args: argparse.Namespace, settings: Settings, prompter: Prompter) -> None:
    catalogue = _catalogue(settings)
    download_service.reinstall(catalogue, args.mod, _deployer(settings), prompter)


def cmd_conflicts(args: argparse.Namespace, settings: Settings, prompter: Prompter) -> None:
    catalogue = _catalogue(settings)
    by_mod = conflicts_by_mod(catalogue.mods)
    tags = classify_all(catalogue.mods)
    for mod in catalogue:
        conflicts = by_mod.get(mod.bare_name)
        if conflicts is None:
            continue
        print(f"{mod.name} [{tags[mod.bare_name]}]")
        print(f"  losing to:    {', '.join(conflicts.losing_to) or '-'}")
        print(f"  winning over: {', '.join(conflicts.winning_over) or '-'}")
        for destination in conflicts.conflict_files:
            print(f"    {destination}")


# ---------------------------------------------------------------------------
# Downloads
# ---------------------------------------------------------------------------


def cmd_downloads(args: argparse.Namespace, settings: Settings, prompter: Prompter) -> None:
    downloads = download_service.list_downloads(settings.download_dir)
    if args.action == "list":
        for index, archive in enumerate(downloads):
            state = "x" if download_service.is_extracted(settings.cache_dir, archive) else " "
            print(f"{index:>4}  [{state}]  {archive.name}")
        return

    settings.cache_dir.mkdir(parents=True, exist_ok=True)
    if args.action == "extract-all":
        download_service.extract_all(settings.download_dir, settings.cache_dir, prompter)
        return

    archive = download_service.find_download(
        downloads, args.archive, make_scorer(settings.matcher)
    )
    manifest = download_service.extract_download(
        settings.download_dir, settings.cache_dir, archive, prompter
    )
    if manifest is not None:
        print(f"Installed '{manifest.name}' as {manifest.kind} mod")


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def cmd_show_config(args: argparse.Namespace, settings: Settings, prompter: Prompter) -> None:
    print(f"Config file: {default_config_file()}")
    print(settings.render_config(), end="")


def cmd_edit_config(args: argparse.Namespace, settings: Settings, prompter: Prompter) -> None:
    path = default_config_file()
    if not path.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(settings.render_config(), encoding="utf-8")
        logger.info("Wrote default configuration to %s", path)
    if not settings.editor:
        print(f"No editor configured (set EDITOR); the config file is {path}")
        return
    subprocess.run([settings.editor, str(path)], check=True)


def cmd_purge(args: argparse.Namespace, settings: Settings, prompter: Prompter) -> None:
    """Disable everything, then delete the cache (and the config file with ``config``)."""
    catalogue = _catalogue(settings)
    if settings.has_game_dir:
        _deployer(settings).disable_all(catalogue.mods)
    if settings.cache_dir.is_dir():
        shutil.rmtree(settings.cache_dir)
        logger.info("Removed cache directory %s", settings.cache_dir)
    if args.target == "config":
        default_config_file().unlink(missing_ok=True)
        logger.info("Removed config file %s", default_config_file())


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="modlinker", description="Symlink based game mod manager")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--cache-dir", type=Path)
    parser.add_argument("--download-dir", type=Path)
    parser.add_argument("--game-dir", type=Path)
    parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], type=str.upper
    )
    parser.add_argument("--matcher", choices=list(Matcher), type=Matcher)

    sub = parser.add_subparsers(dest="command", required=True)

    def add(name: str, handler: Handler, help_text: str) -> argparse.ArgumentParser:
        cmd = sub.add_parser(name, help=help_text)
        cmd.set_defaults(handler=handler)
        return cmd

    add("list", cmd_list, "List installed mods in rank order").add_argument("--tag")
    add("show", cmd_show, "Show details of a mod").add_argument("mod")
    add("enable", cmd_enable, "Enable mods").add_argument("mods", nargs="+")
    add("disable", cmd_disable, "Disable mods").add_argument("mods", nargs="+")
    add("enable-all", cmd_enable_all, "Enable every mod")
    add("disable-all", cmd_disable_all, "Disable every mod")
    add("re-enable-all", cmd_re_enable_all, "Relink all enabled mods in rank order")

    cmd = add("set-priority", cmd_set_priority, "Change a mod's priority (negative disables it)")
    cmd.add_argument("mod")
    cmd.add_argument("priority", type=int)

    cmd = add("rename", cmd_rename, "Change a mod's display name")
    cmd.add_argument("mod")
    cmd.add_argument("name")

    cmd = add("tag", cmd_tag, "Add or remove a tag")
    cmd.add_argument("action", choices=["add", "remove"])
    cmd.add_argument("mod")
    cmd.add_argument("tag")

    for name, handler in (("disable-file", cmd_disable_file), ("enable-file", cmd_enable_file)):
        cmd = add(name, handler, f"{name.split('-')[0].capitalize()} a single file of a mod")
        cmd.add_argument("mod")
        cmd.add_argument("file")

    cmd = add("create-custom", cmd_create_custom, "Create a user-managed mod")
    cmd.add_argument("name")
    cmd.add_argument("--origin", type=Path)

    add("remove", cmd_remove, "Disable a mod and delete it from the cache").add_argument("mod")
    add("reinstall", cmd_reinstall, "Run the installer of a mod again").add_argument("mod")
    add("conflicts", cmd_conflicts, "Show file conflicts between enabled mods")

    cmd = add("downloads", cmd_downloads, "Inspect and extract downloaded archives")
    cmd.add_argument("action", choices=["list", "extract", "extract-all"])
    cmd.add_argument("archive", nargs="?", default="")

    add("show-config", cmd_show_config, "Print the active configuration")
    add("edit-config", cmd_edit_config, "Open the config file in $EDITOR")
    add("purge", cmd_purge, "Disable all mods and delete generated files").add_argument(
        "target", choices=["cache", "config"]
    )
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    overrides = {
        key: value
        for key in ("cache_dir", "download_dir", "game_dir", "log_level", "matcher")
        if (value := getattr(args, key, None)) is not None
    }
    return Settings(**overrides)


def run(args: argparse.Namespace, settings: Settings, prompter: Prompter | None = None) -> None:
    args.handler(args, settings, prompter or ConsolePrompter())
