# Main target selection.
#
# Ranking is an ordered tuple of comparator stages. Each stage is a pure
# function of two candidates (and the optional project name hint) returning a
# negative number when the first candidate should rank higher, a positive number
# when the second should, and 0 to defer to the next stage.

import functools
import re
from typing import Callable, List, Optional, Sequence, Tuple

from xcresolve.pbxproj.model import Target, product_type_priority

TargetStage = Callable[[Target, Target, Optional[str]], int]

NON_ALNUM_PATTERN = re.compile(r"[^a-z0-9]")


def normalize_name(name: str) -> str:
    return NON_ALNUM_PATTERN.sub("", name.lower())


def matches_name_hint(name: str, hint: str) -> bool:
    normalized_name = normalize_name(name)
    normalized_hint = normalize_name(hint)
    return normalized_hint in normalized_name or normalized_name in normalized_hint


# Applications before extensions before frameworks before tests
def by_product_type_priority(a: Target, b: Target, hint: Optional[str] = None) -> int:
    return product_type_priority(b.product_type) - product_type_priority(a.product_type)


# Prefer the candidate whose name overlaps the project name
def by_name_hint(a: Target, b: Target, hint: Optional[str] = None) -> int:
    if not hint:
        return 0
    match_a = matches_name_hint(a.name, hint)
    match_b = matches_name_hint(b.name, hint)
    if match_a == match_b:
        return 0
    return -1 if match_a else 1


# "MyAppTests" and "MyAppUITests" extend the app's own name
def by_shortest_name(a: Target, b: Target, hint: Optional[str] = None) -> int:
    return len(a.name) - len(b.name)


TARGET_STAGES: Tuple[TargetStage, ...] = (
    by_product_type_priority,
    by_name_hint,
    by_shortest_name,
)


def compare_targets(
    a: Target,
    b: Target,
    hint: Optional[str] = None,
    stages: Sequence[TargetStage] = TARGET_STAGES,
) -> int:
    for stage in stages:
        result = stage(a, b, hint)
        if result:
            return result
    return 0


def rank_targets(targets: Sequence[Target], project_name: Optional[str] = None) -> List[Target]:
    # sorted() is stable, fully tied candidates keep their source order
    return sorted(
        targets,
        key=functools.cmp_to_key(
            lambda a, b: compare_targets(a, b, project_name)
        ),
    )


def get_main_app_target(
    targets: Sequence[Target], project_name: Optional[str] = None
) -> Optional[Target]:
    if not targets:
        return None
    return rank_targets(targets, project_name)[0]
