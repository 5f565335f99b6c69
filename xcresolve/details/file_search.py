import os
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from xcresolve.config import DEFAULT_SKIP_DIRS

# Bundles that are directories on disk but never hold project sources
OPAQUE_BUNDLE_SUFFIXES = (".xcodeproj", ".xcworkspace", ".app", ".framework")
PODS_PROJECT_MARKER = "Pods"

PathLike = Union[str, Path]


def _list_dir(directory: PathLike) -> List[str]:
    try:
        return sorted(os.listdir(directory))
    except OSError:
        return []


def contains_sibling_xcodeproj(directory: PathLike, current_xcodeproj: Optional[PathLike]) -> bool:
    if not current_xcodeproj:
        return False
    current = os.path.abspath(current_xcodeproj)
    return any(
        entry.endswith(".xcodeproj")
        and os.path.abspath(os.path.join(directory, entry)) != current
        for entry in _list_dir(directory)
    )


# Two or more non-Pods projects side by side indicate a monorepo root
def has_multiple_xcodeprojs(directory: PathLike) -> bool:
    projects = [
        entry
        for entry in _list_dir(directory)
        if entry.endswith(".xcodeproj") and PODS_PROJECT_MARKER not in entry
    ]
    return len(projects) >= 2


def find_files(
    root: PathLike,
    predicate: Callable[[str, str], bool],
    max_depth: int = 5,
    current_xcodeproj: Optional[PathLike] = None,
    skip_dirs: Iterable[str] = DEFAULT_SKIP_DIRS,
) -> List[str]:
    """
    Recursively collect paths under root whose (name, full path) satisfy predicate.

    Args:
        root: Directory to search.
        predicate: Called with the entry name and its full path.
        max_depth: Number of directory levels to descend, root included.
        current_xcodeproj: When set, subdirectories holding a different
            .xcodeproj are not searched, so sibling projects do not bleed in.
        skip_dirs: Entry names that are never matched or descended into.

    Returns:
        Matching paths in a stable, depth-first order. Unreadable directories
        are treated as empty.
    """
    skip_dirs = frozenset(skip_dirs)
    results: List[str] = []

    def visit(directory: str, depth: int):
        if depth >= max_depth:
            return
        for entry in _list_dir(directory):
            if entry in skip_dirs:
                continue
            full_path = os.path.join(directory, entry)
            if predicate(entry, full_path):
                results.append(full_path)
            if not os.path.isdir(full_path) or entry.endswith(OPAQUE_BUNDLE_SUFFIXES):
                continue
            if contains_sibling_xcodeproj(full_path, current_xcodeproj):
                continue
            visit(full_path, depth + 1)

    visit(str(root), 0)
    return results


def path_depth(path: str) -> int:
    return len(Path(path).parts)


def shallowest(paths: Iterable[str]) -> Optional[str]:
    # sorted() is stable, equally deep paths keep search order
    ordered = sorted(paths, key=path_depth)
    return ordered[0] if ordered else None
