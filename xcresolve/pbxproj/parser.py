"""
Xcode project file parser.

This module recovers the object shapes needed to locate build artifacts from a
project.pbxproj file: native targets, build configurations and configuration
lists. It does not attempt a full grammar for the format. The root dictionary
is tokenized into `key = value;` entries, and the objects are the dictionary
values of its `objects` entry. Quoted strings are opaque to the tokenizer, so
braces or object-like text inside a quoted shell script never turn into
objects of their own.

Parsing is permissive: an object that does not have the expected shape is
skipped, and a single corrupt object never aborts parsing of the rest.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, NamedTuple, Optional, Tuple

from xcresolve.details.balanced_block import extract_balanced_block
from xcresolve.pbxproj.model import (
    BuildConfiguration,
    ConfigurationList,
    Target,
    XcodeID,
)

logger = logging.getLogger(__name__)

# Fallback for a truncated file whose objects dictionary never closes
OBJECTS_START_PATTERN = re.compile(r"\bobjects\s*=\s*\{")
OBJECT_ID_PATTERN = re.compile(r"[A-Fa-f0-9]{24}")
BARE_TOKEN_PATTERN = re.compile(r"[^\s=;{}()\"]+")
CONDITION_SUFFIX_PATTERN = re.compile(r"\[.*\]$")
ESCAPE_PATTERN = re.compile(r"\\(.)", re.DOTALL)
ESCAPES = {"n": "\n", "t": "\t"}

ISA_NATIVE_TARGET = "PBXNativeTarget"
ISA_BUILD_CONFIGURATION = "XCBuildConfiguration"
ISA_CONFIGURATION_LIST = "XCConfigurationList"


class ValueKind:
    STRING = "string"
    DICT = "dict"
    ARRAY = "array"


class Entry(NamedTuple):
    key: str
    value: str
    kind: str
    comment: Optional[str] = None


@dataclass
class PbxObject:
    id: XcodeID
    comment: Optional[str]
    body: str
    fields: Dict[str, Entry] = field(default_factory=dict)

    @property
    def isa(self) -> Optional[str]:
        entry = self.fields.get("isa")
        return entry.value if entry else None

    def string(self, key: str) -> Optional[str]:
        entry = self.fields.get(key)
        if entry is None or entry.kind != ValueKind.STRING:
            return None
        return entry.value


def _skip_comment(text: str, i: int) -> int:
    end = text.find("*/", i + 2)
    return len(text) if end == -1 else end + 2


def _skip_trivia(text: str, i: int) -> int:
    length = len(text)
    while i < length:
        if text[i].isspace():
            i += 1
        elif text.startswith("/*", i):
            i = _skip_comment(text, i)
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = length if end == -1 else end + 1
        else:
            break
    return i


def _read_quoted(text: str, i: int) -> Optional[Tuple[str, int]]:
    j = i + 1
    length = len(text)
    while j < length:
        if text[j] == "\\":
            j += 2
            continue
        if text[j] == '"':
            return text[i + 1 : j], j + 1
        j += 1
    return None


# \" and \\ become the character itself, \n and \t the control character
def _unescape(text: str) -> str:
    if "\\" not in text:
        return text
    return ESCAPE_PATTERN.sub(lambda m: ESCAPES.get(m.group(1), m.group(1)), text)


def _read_bare_value(text: str, i: int) -> Tuple[str, int]:
    parts = []
    start = i
    length = len(text)
    while i < length and text[i] != ";":
        if text.startswith("/*", i):
            parts.append(text[start:i])
            i = _skip_comment(text, i)
            start = i
            continue
        i += 1
    parts.append(text[start:i])
    return "".join(parts).strip(), i


# Skip past the next top-level ';' so a malformed entry only costs itself
def _resync(text: str, i: int) -> int:
    length = len(text)
    while i < length:
        ch = text[i]
        if ch == '"':
            quoted = _read_quoted(text, i)
            if quoted is None:
                return length
            i = quoted[1]
            continue
        if text.startswith("/*", i):
            i = _skip_comment(text, i)
            continue
        if ch in "{(":
            block = extract_balanced_block(text, i + 1, ch, "}" if ch == "{" else ")")
            if block is None:
                return length
            i = block[1]
            continue
        i += 1
        if ch == ";":
            break
    return i


def _read_value(text: str, i: int) -> Optional[Tuple[str, str, int]]:
    ch = text[i]
    if ch == "{":
        block = extract_balanced_block(text, i + 1)
        if block is None:
            return None
        return block[0], ValueKind.DICT, block[1]
    if ch == "(":
        block = extract_balanced_block(text, i + 1, "(", ")")
        if block is None:
            return None
        return "(" + block[0] + ")", ValueKind.ARRAY, block[1]
    if ch == '"':
        quoted = _read_quoted(text, i)
        if quoted is None:
            return None
        return _unescape(quoted[0]), ValueKind.STRING, quoted[1]
    value, end = _read_bare_value(text, i)
    return value, ValueKind.STRING, end


def parse_entries(body: str) -> List[Entry]:
    """
    Tokenize the `key = value;` entries of a dictionary body.

    Keys are quoted strings or bare identifiers. Values are quoted strings,
    bare tokens running to the next semicolon, nested `{ ... }` dictionaries
    (returned as their inner text) or `( ... )` arrays (returned with their
    parentheses). Backslash escapes in quoted keys and values are resolved. A
    `/* comment */` right after the key is kept on the entry, other comments
    are ignored.

    Args:
        body: Text between the braces of a dictionary.

    Returns:
        The entries in source order. Malformed entries are skipped, and an
        unterminated value ends the scan.
    """
    entries: List[Entry] = []
    length = len(body)
    i = 0
    while True:
        i = _skip_trivia(body, i)
        if i >= length:
            break
        # key
        if body[i] == '"':
            quoted = _read_quoted(body, i)
            if quoted is None:
                break
            key, i = _unescape(quoted[0]), quoted[1]
        else:
            match = BARE_TOKEN_PATTERN.match(body, i)
            if not match:
                i = _resync(body, i)
                continue
            key, i = match.group(), match.end()
        while i < length and body[i].isspace():
            i += 1
        comment = None
        if body.startswith("/*", i):
            end = _skip_comment(body, i)
            comment = body[i + 2 : end - 2].strip() if body.endswith("*/", 0, end) else None
            i = end
        i = _skip_trivia(body, i)
        if i >= length or body[i] != "=":
            i = _resync(body, i)
            continue
        i = _skip_trivia(body, i + 1)
        if i >= length:
            break
        # value
        value = _read_value(body, i)
        if value is None:
            logger.debug("unterminated value for %r, ignoring the rest", key)
            break
        text, kind, i = value
        i = _skip_trivia(body, i)
        if i < length and body[i] == ";":
            i += 1
        entries.append(Entry(key.strip(), text, kind, comment))
    return entries


# Text holding the object entries: the root dictionary's objects value, the
# remainder of a truncated objects dictionary, or the text itself when it is a
# bare run of objects
def _objects_body(content: str) -> str:
    body = content
    i = _skip_trivia(content, 0)
    if i < len(content) and content[i] == "{":
        block = extract_balanced_block(content, i + 1)
        body = block[0] if block is not None else content[i + 1 :]
    for entry in parse_entries(body):
        if entry.key == "objects" and entry.kind == ValueKind.DICT:
            return entry.value
    match = OBJECTS_START_PATTERN.search(body)
    if match:
        logger.debug("objects dictionary is not closed, reading what is there")
        return body[match.end() :]
    return body


def iter_objects(content: str) -> Iterator[PbxObject]:
    """
    Walk every `<24-hex-id> /* comment */ = { ... }` object in pbxproj text.

    Args:
        content: The raw project.pbxproj contents, or a bare sequence of
            object entries.

    Yields:
        One PbxObject per dictionary entry keyed by an object ID, in source
        order. Reading stops at the first object whose body never closes.
    """
    for entry in parse_entries(_objects_body(content)):
        if entry.kind != ValueKind.DICT or not OBJECT_ID_PATTERN.fullmatch(entry.key):
            continue
        fields: Dict[str, Entry] = {}
        for field_entry in parse_entries(entry.value):
            fields.setdefault(field_entry.key, field_entry)
        yield PbxObject(
            id=XcodeID(entry.key),
            comment=entry.comment,
            body=entry.value,
            fields=fields,
        )


def _as_object_id(value: Optional[str]) -> Optional[XcodeID]:
    if value and OBJECT_ID_PATTERN.fullmatch(value):
        return XcodeID(value)
    return None


def target_from_object(obj: PbxObject) -> Optional[Target]:
    product_type = obj.string("productType")
    if not product_type:
        logger.debug("dropping target %s without a product type", obj.id)
        return None
    name = (obj.comment or "").strip() or (obj.string("name") or "").strip()
    product_name = obj.string("productName")
    return Target(
        id=obj.id,
        name=name,
        product_type=product_type,
        build_configuration_list_id=_as_object_id(
            obj.string("buildConfigurationList")
        ),
        product_name=product_name.strip() if product_name else None,
    )


def base_setting_key(key: str) -> str:
    return CONDITION_SUFFIX_PATTERN.sub("", key)


def parse_build_settings(block: str) -> Dict[str, str]:
    settings: Dict[str, str] = {}
    for entry in parse_entries(block):
        value = entry.value.strip()
        settings[entry.key] = value
        # The first variant of a key claims the base name, later conditional
        # variants never replace it
        base_key = base_setting_key(entry.key)
        if base_key != entry.key and base_key not in settings:
            settings[base_key] = value
    return settings


def build_configuration_from_object(obj: PbxObject) -> Optional[BuildConfiguration]:
    name = obj.string("name")
    settings_entry = obj.fields.get("buildSettings")
    if not name or settings_entry is None or settings_entry.kind != ValueKind.DICT:
        logger.debug("skipping malformed build configuration %s", obj.id)
        return None
    return BuildConfiguration(
        id=obj.id,
        name=name.strip(),
        build_settings=parse_build_settings(settings_entry.value),
    )


def configuration_list_from_object(obj: PbxObject) -> Optional[ConfigurationList]:
    configs_entry = obj.fields.get("buildConfigurations")
    if configs_entry is None or configs_entry.kind != ValueKind.ARRAY:
        logger.debug("skipping configuration list %s without configurations", obj.id)
        return None
    # Drop the /* Debug */ labels before collecting ids
    items = re.sub(r"/\*.*?\*/", "", configs_entry.value, flags=re.DOTALL)
    return ConfigurationList(
        id=obj.id,
        build_configuration_ids=tuple(
            XcodeID(m) for m in OBJECT_ID_PATTERN.findall(items)
        ),
    )


def parse_targets(content: str) -> List[Target]:
    """
    Parse all PBXNativeTarget objects that declare a product type.

    Args:
        content: The raw project.pbxproj contents.

    Returns:
        Targets in source order.
    """
    targets = []
    for obj in iter_objects(content):
        if obj.isa != ISA_NATIVE_TARGET:
            continue
        target = target_from_object(obj)
        if target is not None:
            targets.append(target)
    return targets


def parse_build_configurations(content: str) -> Dict[XcodeID, BuildConfiguration]:
    """
    Parse all XCBuildConfiguration objects keyed by their ID.

    Args:
        content: The raw project.pbxproj contents.

    Returns:
        An insertion-ordered mapping of configuration ID to configuration.
    """
    configs = {}
    for obj in iter_objects(content):
        if obj.isa != ISA_BUILD_CONFIGURATION:
            continue
        config = build_configuration_from_object(obj)
        if config is not None:
            configs[config.id] = config
    return configs


def parse_configuration_lists(content: str) -> Dict[XcodeID, ConfigurationList]:
    """
    Parse all XCConfigurationList objects keyed by their ID.

    Args:
        content: The raw project.pbxproj contents.

    Returns:
        An insertion-ordered mapping of list ID to configuration list.
    """
    lists = {}
    for obj in iter_objects(content):
        if obj.isa != ISA_CONFIGURATION_LIST:
            continue
        config_list = configuration_list_from_object(obj)
        if config_list is not None:
            lists[config_list.id] = config_list
    return lists


# Everything resolution needs from one pbxproj, parsed in a single pass. Built
# once per file and handed explicitly to the resolvers instead of re-parsing.
@dataclass
class ParsedProject:
    targets: List[Target] = field(default_factory=list)
    configurations: Dict[XcodeID, BuildConfiguration] = field(default_factory=dict)
    configuration_lists: Dict[XcodeID, ConfigurationList] = field(default_factory=dict)


def parse_pbxproj(content: str) -> ParsedProject:
    project = ParsedProject()
    for obj in iter_objects(content):
        isa = obj.isa
        if isa == ISA_NATIVE_TARGET:
            target = target_from_object(obj)
            if target is not None:
                project.targets.append(target)
        elif isa == ISA_BUILD_CONFIGURATION:
            config = build_configuration_from_object(obj)
            if config is not None:
                project.configurations[config.id] = config
        elif isa == ISA_CONFIGURATION_LIST:
            config_list = configuration_list_from_object(obj)
            if config_list is not None:
                project.configuration_lists[config_list.id] = config_list
    return project
