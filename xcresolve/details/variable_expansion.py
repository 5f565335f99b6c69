import logging
import re
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

# Safety valve for self-referential or unresolvable variables
MAX_EXPANSION_PASSES = 10


def _variable_pattern(name: str, trailing_slash: bool = False) -> "re.Pattern[str]":
    suffix = "/?" if trailing_slash else ""
    return re.compile(r"\$(?:\(" + name + r"\)|\{" + name + r"\})" + suffix)


SRCROOT_PATTERN = _variable_pattern("SRCROOT", trailing_slash=True)
PROJECT_DIR_PATTERN = _variable_pattern("PROJECT_DIR", trailing_slash=True)
TARGET_NAME_PATTERN = _variable_pattern("TARGET_NAME")
PRODUCT_NAME_PATTERN = _variable_pattern("PRODUCT_NAME")
INHERITED_PATTERN = _variable_pattern("inherited")
REPEATED_SEPARATOR_PATTERN = re.compile(r"/{2,}")


# Values available for substitution while expanding a build setting path.
# src_root and project_dir are carried for callers that want them, but the
# expander strips those prefixes so results stay relative to the project dir.
@dataclass(frozen=True)
class ExpansionContext:
    target_name: Optional[str] = None
    product_name: Optional[str] = None
    src_root: Optional[str] = None
    project_dir: Optional[str] = None


EMPTY_CONTEXT = ExpansionContext()


def strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


# Surrounding whitespace and quote layers, stripped until neither is left
def _unwrap(value: str) -> str:
    while True:
        unwrapped = strip_quotes(value.strip())
        if unwrapped == value:
            return value
        value = unwrapped


def _substitute(pattern: "re.Pattern[str]", value: Optional[str], text: str) -> str:
    if not value:
        return text
    # Use a function so backslashes in the value are never treated as escapes
    return pattern.sub(lambda _: value, text)


def _expand_once(text: str, context: ExpansionContext) -> str:
    text = SRCROOT_PATTERN.sub("", text)
    text = PROJECT_DIR_PATTERN.sub("", text)
    text = _substitute(TARGET_NAME_PATTERN, context.target_name, text)
    text = _substitute(PRODUCT_NAME_PATTERN, context.product_name, text)
    return INHERITED_PATTERN.sub("", text)


# Expand the Xcode variables this engine understands in a path-valued build
# setting. Always returns a best-effort string, expanding an already expanded
# path is a no-op.
def normalize_xcode_path(raw: str, context: Optional[ExpansionContext] = None) -> str:
    context = context or EMPTY_CONTEXT
    result = _unwrap(raw)
    was_absolute = result.startswith("/")
    for _ in range(MAX_EXPANSION_PASSES):
        expanded = _expand_once(result, context)
        if expanded == result:
            break
        result = expanded
    else:
        logger.debug(
            "expansion of %r did not converge after %d passes",
            raw,
            MAX_EXPANSION_PASSES,
        )
    result = REPEATED_SEPARATOR_PATTERN.sub("/", result)
    # Removing $(SRCROOT) can leave a separator in front of a relative path
    if result.startswith("/") and not was_absolute:
        result = result[1:]
    return _unwrap(result)
