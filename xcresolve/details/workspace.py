import dataclasses
import functools
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, NamedTuple, Optional, Sequence, Tuple, Union
from xml.dom.minidom import parseString
from xml.parsers.expat import ExpatError

from xcresolve.pbxproj import (
    PBXPROJ_FILENAME,
    XCODEPROJ_SUFFIX,
    get_main_target_product_type,
    project_name_from_path,
    read_pbxproj,
)
from xcresolve.pbxproj.model import (
    is_application_type,
    is_test_type,
    product_type_priority,
)

logger = logging.getLogger(__name__)

WORKSPACE_SUFFIX = ".xcworkspace"
WORKSPACE_DATA_FILENAME = "contents.xcworkspacedata"
PODS_PROJECT = "Pods.xcodeproj"

# Whole path segments that mark a project as a test, example or demo
TEST_OR_EXAMPLE_SEGMENTS = frozenset(
    {
        "test",
        "tests",
        "example",
        "examples",
        "demo",
        "demos",
        "sample",
        "samples",
    }
)
TEST_SEGMENT_SUFFIXES = ("test", "tests")


class LocationType(Enum):
    GROUP = "group"
    ABSOLUTE = "absolute"
    CONTAINER = "container"
    SELF = "self"
    UNKNOWN = "unknown"


# A project referenced from a workspace. The product_* / is_application /
# is_test_target fields stay None until the referenced project is enriched;
# ranking falls back to the path heuristics for unenriched references.
@dataclass(frozen=True)
class WorkspaceProjectRef:
    raw_location: str
    location_type: LocationType
    project_path: str
    is_pods: bool
    is_test_or_example: bool
    product_type: Optional[str] = None
    product_type_priority: Optional[int] = None
    is_application: Optional[bool] = None
    is_test_target: Optional[bool] = None


@dataclass
class ParsedWorkspace:
    version: str = ""
    project_refs: List[WorkspaceProjectRef] = field(default_factory=list)
    # Excluding Pods and path-heuristic tests/examples
    main_project_refs: List[WorkspaceProjectRef] = field(default_factory=list)


class ResolvedProjectRef(NamedTuple):
    ref: WorkspaceProjectRef
    path: str


def is_pods_path(project_path: str) -> bool:
    return (
        PODS_PROJECT in project_path
        or "/Pods/" in project_path
        or project_path.startswith("Pods/")
    )


# Segment-level matching, "ContestApp" or "LatestNews" must not count as tests
def is_test_or_example_path(project_path: str) -> bool:
    for segment in project_path.lower().split("/"):
        if segment in TEST_OR_EXAMPLE_SEGMENTS:
            return True
        if segment.endswith(TEST_SEGMENT_SUFFIXES):
            return True
    return False


def parse_location(raw_location: str) -> WorkspaceProjectRef:
    location_type = LocationType.UNKNOWN
    project_path = raw_location
    type_name, sep, rest = raw_location.partition(":")
    if sep:
        project_path = rest
        try:
            location_type = LocationType(type_name)
        except ValueError:
            location_type = LocationType.UNKNOWN
    return WorkspaceProjectRef(
        raw_location=raw_location,
        location_type=location_type,
        project_path=project_path,
        is_pods=is_pods_path(project_path),
        is_test_or_example=is_test_or_example_path(project_path),
    )


def parse_workspace_data(content: Union[str, bytes]) -> ParsedWorkspace:
    """Extract the version and the .xcodeproj references of a contents.xcworkspacedata document."""
    if isinstance(content, str):
        content = content.encode("utf-8")
    try:
        xdoc = parseString(content)
    except ExpatError as e:
        logger.warning("malformed workspace data: %s", e)
        return ParsedWorkspace()
    root = xdoc.documentElement
    version = root.getAttribute("version") if root.tagName == "Workspace" else ""
    # FileRefs may be nested inside <Group> elements
    project_refs = []
    for xref in xdoc.getElementsByTagName("FileRef"):
        location = xref.getAttribute("location")
        if not location:
            continue
        ref = parse_location(location)
        if ref.project_path.endswith(XCODEPROJ_SUFFIX):
            project_refs.append(ref)
    return ParsedWorkspace(
        version=version,
        project_refs=project_refs,
        main_project_refs=[
            ref for ref in project_refs if not ref.is_pods and not ref.is_test_or_example
        ],
    )


def workspace_data_path(workspace_path: Union[str, Path]) -> Path:
    workspace_path = Path(workspace_path)
    if workspace_path.name.endswith(WORKSPACE_SUFFIX):
        return workspace_path / WORKSPACE_DATA_FILENAME
    if workspace_path.name == WORKSPACE_DATA_FILENAME:
        return workspace_path
    raise ValueError(f"invalid workspace path: {workspace_path}")


# Directory that group-relative locations resolve against: the workspace's parent
def workspace_dir(workspace_path: Union[str, Path]) -> Path:
    data_path = workspace_data_path(workspace_path)
    return data_path.parent.parent


def parse_workspace(workspace_path: Union[str, Path]) -> ParsedWorkspace:
    data_path = workspace_data_path(workspace_path)
    try:
        content = data_path.read_bytes()
    except FileNotFoundError:
        return ParsedWorkspace()
    except OSError as e:
        logger.warning("could not read %s: %s", data_path, e)
        return ParsedWorkspace()
    return parse_workspace_data(content)


def resolve_project_ref(ref: WorkspaceProjectRef, base_dir: Union[str, Path]) -> str:
    if ref.location_type == LocationType.ABSOLUTE:
        return ref.project_path
    # group, container, self and unknown all resolve relative to the workspace dir
    return os.path.abspath(os.path.join(str(base_dir), ref.project_path))


def enrich_project_ref(ref: WorkspaceProjectRef, project_path: str) -> WorkspaceProjectRef:
    pbxproj_path = os.path.join(project_path, PBXPROJ_FILENAME)
    if not os.path.isfile(pbxproj_path):
        return ref
    content = read_pbxproj(pbxproj_path)
    if content is None:
        return ref
    product_type = get_main_target_product_type(
        content, project_name_from_path(project_path)
    )
    if not product_type:
        return ref
    return dataclasses.replace(
        ref,
        product_type=product_type,
        product_type_priority=product_type_priority(product_type),
        is_application=is_application_type(product_type),
        is_test_target=is_test_type(product_type),
    )


ProjectRefStage = Callable[[WorkspaceProjectRef, WorkspaceProjectRef], int]


def _last_if(flag_a: bool, flag_b: bool) -> int:
    if flag_a == flag_b:
        return 0
    return 1 if flag_a else -1


def pods_last(a: WorkspaceProjectRef, b: WorkspaceProjectRef) -> int:
    return _last_if(a.is_pods, b.is_pods)


def applications_first(a: WorkspaceProjectRef, b: WorkspaceProjectRef) -> int:
    return -_last_if(bool(a.is_application), bool(b.is_application))


def enriched_tests_last(a: WorkspaceProjectRef, b: WorkspaceProjectRef) -> int:
    return _last_if(bool(a.is_test_target), bool(b.is_test_target))


def higher_priority_first(a: WorkspaceProjectRef, b: WorkspaceProjectRef) -> int:
    return (b.product_type_priority or 0) - (a.product_type_priority or 0)


def example_paths_last(a: WorkspaceProjectRef, b: WorkspaceProjectRef) -> int:
    return _last_if(a.is_test_or_example, b.is_test_or_example)


WORKSPACE_STAGES: Tuple[ProjectRefStage, ...] = (
    pods_last,
    applications_first,
    enriched_tests_last,
    higher_priority_first,
    example_paths_last,
)


def compare_project_refs(
    a: WorkspaceProjectRef,
    b: WorkspaceProjectRef,
    stages: Sequence[ProjectRefStage] = WORKSPACE_STAGES,
) -> int:
    for stage in stages:
        result = stage(a, b)
        if result:
            return result
    return 0


def rank_workspace_projects(workspace_path: Union[str, Path]) -> List[ResolvedProjectRef]:
    """Resolve, enrich and rank every existing project referenced by a workspace."""
    base_dir = workspace_dir(workspace_path)
    resolved = []
    # Enriched sequentially, ties keep declaration order
    for ref in parse_workspace(workspace_path).project_refs:
        path = resolve_project_ref(ref, base_dir)
        if not os.path.exists(path):
            logger.debug("skipping missing workspace project %s", path)
            continue
        resolved.append(ResolvedProjectRef(enrich_project_ref(ref, path), path))
    return sorted(
        resolved,
        key=functools.cmp_to_key(lambda a, b: compare_project_refs(a.ref, b.ref)),
    )


def select_main_projects(ranked: Sequence[ResolvedProjectRef]) -> List[ResolvedProjectRef]:
    main = [
        r
        for r in ranked
        if r.ref.is_application
        or (not r.ref.is_pods and not r.ref.is_test_target and not r.ref.is_test_or_example)
    ]
    if main:
        return main
    non_test = [r for r in ranked if not r.ref.is_test_target]
    if non_test:
        return non_test
    return list(ranked)


def get_workspace_projects(workspace_path: Union[str, Path]) -> List[str]:
    """
    Return the absolute paths of the workspace's main projects, best first.

    Never empty unless the workspace references no existing project: when no
    reference looks like the app, non-test projects are returned, and failing
    that every resolved project.
    """
    return [r.path for r in select_main_projects(rank_workspace_projects(workspace_path))]
