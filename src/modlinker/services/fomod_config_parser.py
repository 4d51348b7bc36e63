"""FOMOD ``info.xml`` and ``ModuleConfig.xml`` parser.

Parses the installer description into frozen dataclasses so the
interactive installer can walk it without touching XML.  Mod authors ship
these files as UTF-16, UTF-8 with or without BOM, and occasionally as
Windows-1252 text claiming to be UTF-8, so bytes are decoded before the
XML parser sees them.
"""

from __future__ import annotations

import codecs
import logging
from dataclasses import dataclass, field
from enum import StrEnum

import defusedxml.ElementTree as DefusedET

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class GroupType(StrEnum):
    SELECT_EXACTLY_ONE = "SelectExactlyOne"
    SELECT_AT_MOST_ONE = "SelectAtMostOne"
    SELECT_AT_LEAST_ONE = "SelectAtLeastOne"
    SELECT_ALL = "SelectAll"
    SELECT_ANY = "SelectAny"


class DependencyOperator(StrEnum):
    AND = "And"
    OR = "Or"


class FileState(StrEnum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    MISSING = "Missing"


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FileMapping:
    source: str
    destination: str | None
    is_folder: bool


@dataclass(frozen=True)
class FlagSetter:
    name: str
    value: str


@dataclass(frozen=True)
class FlagCondition:
    name: str
    value: str


@dataclass(frozen=True)
class FileCondition:
    file: str
    state: FileState


@dataclass(frozen=True)
class CompositeDependency:
    operator: DependencyOperator
    flag_conditions: list[FlagCondition] = field(default_factory=list)
    file_conditions: list[FileCondition] = field(default_factory=list)
    nested: list[CompositeDependency] = field(default_factory=list)


@dataclass(frozen=True)
class FomodPlugin:
    name: str
    description: str
    files: list[FileMapping]
    condition_flags: list[FlagSetter]


@dataclass(frozen=True)
class FomodGroup:
    name: str
    type: GroupType
    plugins: list[FomodPlugin]


@dataclass(frozen=True)
class FomodStep:
    name: str
    groups: list[FomodGroup]
    visible: CompositeDependency | None = None


@dataclass(frozen=True)
class ConditionalInstallPattern:
    dependency: CompositeDependency
    files: list[FileMapping]


@dataclass(frozen=True)
class FomodConfig:
    required_install_files: list[FileMapping]
    steps: list[FomodStep]
    conditional_file_installs: list[ConditionalInstallPattern]


@dataclass(frozen=True)
class FomodInfo:
    name: str | None = None
    version: str | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def decode_xml(raw: bytes) -> str:
    """Decode installer XML honouring BOMs, falling back to latin-1."""
    if raw.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        return raw.decode("utf-16")
    if raw.startswith(codecs.BOM_UTF8):
        raw = raw[len(codecs.BOM_UTF8) :]
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        logger.debug("XML is not valid UTF-8, decoding as latin-1")
        return raw.decode("latin-1")


def _parse_root(xml_bytes: bytes, what: str):
    try:
        return DefusedET.fromstring(decode_xml(xml_bytes))
    except Exception as exc:
        raise ValueError(f"Failed to parse FOMOD {what} XML: {exc}") from exc


def _normalise_path(path: str) -> str:
    """Convert backslashes to forward slashes and strip leading/trailing slashes."""
    return path.replace("\\", "/").strip("/")


def _text(element) -> str | None:
    if element is None or not element.text:
        return None
    return element.text.strip() or None


def _parse_file_mapping(element, *, is_folder: bool) -> FileMapping:
    src = _normalise_path(element.get("source", ""))
    raw_dst = element.get("destination")
    dst = _normalise_path(raw_dst) if raw_dst is not None else None
    return FileMapping(source=src, destination=dst, is_folder=is_folder)


def _parse_file_list(element) -> list[FileMapping]:
    if element is None:
        return []
    mappings: list[FileMapping] = []
    for child in element:
        tag = child.tag.lower() if isinstance(child.tag, str) else ""
        if tag == "file":
            mappings.append(_parse_file_mapping(child, is_folder=False))
        elif tag == "folder":
            mappings.append(_parse_file_mapping(child, is_folder=True))
    return mappings


def _parse_flag_setters(parent) -> list[FlagSetter]:
    flags_el = parent.find("conditionFlags")
    if flags_el is None:
        return []
    setters: list[FlagSetter] = []
    for flag in flags_el:
        name = flag.get("name", "")
        value = flag.text.strip() if flag.text else ""
        if name:
            setters.append(FlagSetter(name=name, value=value))
    return setters


def _parse_composite_dependency(element) -> CompositeDependency:
    try:
        operator = DependencyOperator(element.get("operator", "And"))
    except ValueError:
        operator = DependencyOperator.AND
    flag_conds: list[FlagCondition] = []
    file_conds: list[FileCondition] = []
    nested: list[CompositeDependency] = []

    for child in element:
        tag = child.tag.lower() if isinstance(child.tag, str) else ""
        if tag == "flagdependency":
            flag_conds.append(
                FlagCondition(name=child.get("flag", ""), value=child.get("value", ""))
            )
        elif tag == "filedependency":
            try:
                state = FileState(child.get("state", "Active"))
            except ValueError:
                state = FileState.ACTIVE
            file_conds.append(
                FileCondition(file=_normalise_path(child.get("file", "")), state=state)
            )
        elif tag == "dependencies":
            nested.append(_parse_composite_dependency(child))

    return CompositeDependency(
        operator=operator,
        flag_conditions=flag_conds,
        file_conditions=file_conds,
        nested=nested,
    )


def _parse_plugin(element) -> FomodPlugin:
    return FomodPlugin(
        name=element.get("name", ""),
        description=_text(element.find("description")) or "",
        files=_parse_file_list(element.find("files")),
        condition_flags=_parse_flag_setters(element),
    )


def _apply_order(items: list, order: str, key_attr: str = "name") -> list:
    """Apply an ``order`` attribute. Ascending is the default, Explicit keeps document order."""
    if order == "Ascending":
        return sorted(items, key=lambda x: getattr(x, key_attr, "").lower())
    if order == "Descending":
        return sorted(items, key=lambda x: getattr(x, key_attr, "").lower(), reverse=True)
    return items


def _parse_group(element) -> FomodGroup:
    try:
        group_type = GroupType(element.get("type", "SelectAny"))
    except ValueError:
        group_type = GroupType.SELECT_ANY

    plugins: list[FomodPlugin] = []
    plugins_el = element.find("plugins")
    if plugins_el is not None:
        raw_plugins = [_parse_plugin(p) for p in plugins_el.findall("plugin")]
        plugins = _apply_order(raw_plugins, plugins_el.get("order", "Ascending"))

    return FomodGroup(name=element.get("name", ""), type=group_type, plugins=plugins)


def _parse_step(element) -> FomodStep:
    visible_el = element.find("visible")
    visible = _parse_composite_dependency(visible_el) if visible_el is not None else None

    groups: list[FomodGroup] = []
    groups_el = element.find("optionalFileGroups")
    if groups_el is not None:
        raw_groups = [_parse_group(g) for g in groups_el.findall("group")]
        groups = _apply_order(raw_groups, groups_el.get("order", "Ascending"))

    return FomodStep(name=element.get("name", ""), groups=groups, visible=visible)


# ---------------------------------------------------------------------------
# Main parsers
# ---------------------------------------------------------------------------

def parse_fomod_config(xml_bytes: bytes) -> FomodConfig:
    """Parse ModuleConfig.xml bytes into a FomodConfig dataclass.

    Raises:
        ValueError: If the XML cannot be parsed.
    """
    root = _parse_root(xml_bytes, "config")

    steps: list[FomodStep] = []
    steps_el = root.find("installSteps")
    if steps_el is not None:
        raw_steps = [_parse_step(s) for s in steps_el.findall("installStep")]
        steps = _apply_order(raw_steps, steps_el.get("order", "Ascending"))

    conditional_installs: list[ConditionalInstallPattern] = []
    for pattern_el in root.findall("conditionalFileInstalls/patterns/pattern"):
        dep_el = pattern_el.find("dependencies")
        files_el = pattern_el.find("files")
        if dep_el is None or files_el is None:
            continue
        conditional_installs.append(
            ConditionalInstallPattern(
                dependency=_parse_composite_dependency(dep_el),
                files=_parse_file_list(files_el),
            )
        )

    return FomodConfig(
        required_install_files=_parse_file_list(root.find("requiredInstallFiles")),
        steps=steps,
        conditional_file_installs=conditional_installs,
    )


def parse_fomod_info(xml_bytes: bytes) -> FomodInfo:
    """Parse info.xml bytes. Every field is optional.

    Raises:
        ValueError: If the XML cannot be parsed.
    """
    root = _parse_root(xml_bytes, "info")
    return FomodInfo(
        name=_text(root.find("Name")),
        version=_text(root.find("Version")),
    )
