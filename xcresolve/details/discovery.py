import logging
import os
import re
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from xcresolve.config import Config
from xcresolve.details.file_search import (
    find_files,
    has_multiple_xcodeprojs,
    shallowest,
)
from xcresolve.details.variable_expansion import normalize_xcode_path
from xcresolve.details.workspace import (
    PODS_PROJECT,
    WORKSPACE_SUFFIX,
    get_workspace_projects,
)
from xcresolve.errors import DiscoveryError, UnsupportedInputError
from xcresolve.pbxproj import (
    PBXPROJ_FILENAME,
    XCODEPROJ_SUFFIX,
    get_main_target_artifacts,
    project_name_from_path,
    read_pbxproj,
)

logger = logging.getLogger(__name__)

INFO_PLIST = "Info.plist"
ENTITLEMENTS_SUFFIX = ".entitlements"
IPA_SUFFIX = ".ipa"

FALLBACK_INFOPLIST_PATTERN = re.compile(r'INFOPLIST_FILE\s*=\s*"?([^";]+)"?\s*;')
FALLBACK_ENTITLEMENTS_PATTERN = re.compile(r'CODE_SIGN_ENTITLEMENTS\s*=\s*"?([^";]+)"?\s*;')


@dataclass
class PbxprojArtifacts:
    info_plist_path: Optional[str] = None
    entitlements_path: Optional[str] = None
    target_name: Optional[str] = None
    product_type: Optional[str] = None
    build_settings: Dict[str, str] = field(default_factory=dict)


# Where a scan found the project and its artifacts. project_scope_dir bounds the
# artifact search (the .xcodeproj's parent); dependency_scope_dir bounds lockfile
# lookup (the .xcodeproj itself) so sibling projects in a monorepo do not leak in.
@dataclass
class ProjectDiscovery:
    project_path: str
    is_workspace: bool = False
    project_scope_dir: Optional[str] = None
    dependency_scope_dir: Optional[str] = None
    info_plist_path: Optional[str] = None
    entitlements_path: Optional[str] = None
    pbxproj_path: Optional[str] = None
    workspace_projects: List[str] = field(default_factory=list)
    target_name: Optional[str] = None
    product_type: Optional[str] = None
    build_settings: Dict[str, str] = field(default_factory=dict)


def _fallback_path(pattern: re.Pattern, content: str, project_dir: str) -> Optional[str]:
    match = pattern.search(content)
    if not match:
        return None
    normalized = normalize_xcode_path(match.group(1).strip())
    if not normalized:
        return None
    resolved = os.path.abspath(os.path.join(project_dir, normalized))
    return resolved if os.path.exists(resolved) else None


def parse_pbxproj_for_artifacts(
    pbxproj_path: Union[str, Path], project_dir: Union[str, Path], prefer_release: bool = True
) -> PbxprojArtifacts:
    """
    Resolve the main target's artifact paths from a project.pbxproj on disk.

    Only paths that exist are kept. When the target-aware pass misses one, the
    first INFOPLIST_FILE / CODE_SIGN_ENTITLEMENTS assignment anywhere in the
    file is tried instead.
    """
    result = PbxprojArtifacts()
    if not os.path.exists(pbxproj_path):
        return result
    content = read_pbxproj(pbxproj_path)
    if content is None:
        return result
    project_dir = str(project_dir)
    artifacts = get_main_target_artifacts(
        content,
        project_name=project_name_from_path(pbxproj_path),
        project_dir=project_dir,
        prefer_release=prefer_release,
    )
    if artifacts is not None:
        result.target_name = artifacts.target.name
        result.product_type = artifacts.target.product_type
        result.build_settings = dict(artifacts.settings.build_settings)
        if artifacts.info_plist_path and os.path.exists(artifacts.info_plist_path):
            result.info_plist_path = artifacts.info_plist_path
        if artifacts.entitlements_path and os.path.exists(artifacts.entitlements_path):
            result.entitlements_path = artifacts.entitlements_path
    if not result.info_plist_path:
        result.info_plist_path = _fallback_path(FALLBACK_INFOPLIST_PATTERN, content, project_dir)
    if not result.entitlements_path:
        result.entitlements_path = _fallback_path(
            FALLBACK_ENTITLEMENTS_PATTERN, content, project_dir
        )
    return result


def _use_project(discovery: ProjectDiscovery, xcodeproj_path: str, config: Config) -> bool:
    pbxproj_path = os.path.join(xcodeproj_path, PBXPROJ_FILENAME)
    if not os.path.exists(pbxproj_path):
        return False
    project_dir = os.path.dirname(xcodeproj_path)
    discovery.pbxproj_path = pbxproj_path
    discovery.project_scope_dir = project_dir
    discovery.dependency_scope_dir = xcodeproj_path
    artifacts = parse_pbxproj_for_artifacts(
        pbxproj_path, project_dir, prefer_release=config.prefer_release
    )
    discovery.target_name = artifacts.target_name
    discovery.product_type = artifacts.product_type
    discovery.build_settings = artifacts.build_settings
    discovery.info_plist_path = artifacts.info_plist_path
    discovery.entitlements_path = artifacts.entitlements_path
    return True


def _is_pods_project(path: str) -> bool:
    return "/Pods/" in path or path.endswith(PODS_PROJECT)


def _scan_for_project(discovery: ProjectDiscovery, base_path: str, config: Config):
    xcodeprojs = find_files(
        base_path,
        lambda name, _: name.endswith(XCODEPROJ_SUFFIX),
        max_depth=config.max_search_depth,
        skip_dirs=config.skip_dirs,
    )
    candidates = [p for p in xcodeprojs if not _is_pods_project(p)] or xcodeprojs
    for xcodeproj_path in candidates:
        if _use_project(discovery, xcodeproj_path, config):
            return


def _use_workspace(discovery: ProjectDiscovery, workspace_path: str, config: Config):
    discovery.is_workspace = True
    discovery.workspace_projects = get_workspace_projects(workspace_path)
    if discovery.workspace_projects:
        _use_project(discovery, discovery.workspace_projects[0], config)


def _search_kwargs(discovery: ProjectDiscovery, config: Config) -> dict:
    current = os.path.dirname(discovery.pbxproj_path) if discovery.pbxproj_path else None
    return dict(
        max_depth=config.max_search_depth,
        current_xcodeproj=current,
        skip_dirs=config.skip_dirs,
    )


def is_info_plist(name: str, _path: str) -> bool:
    return name == INFO_PLIST


def is_entitlements(name: str, _path: str) -> bool:
    return name.endswith(ENTITLEMENTS_SUFFIX)


def _target_dir(base_path: str, target_name: Optional[str]) -> Optional[str]:
    if not target_name:
        return None
    target_dir = os.path.join(base_path, target_name)
    return target_dir if os.path.isdir(target_dir) else None


def discover_info_plist(
    base_path: str, discovery: ProjectDiscovery, config: Config
) -> Optional[str]:
    kwargs = _search_kwargs(discovery, config)
    target_dir = _target_dir(base_path, discovery.target_name)
    if target_dir:
        target_plist = os.path.join(target_dir, INFO_PLIST)
        if os.path.exists(target_plist):
            return target_plist
        found = shallowest(find_files(target_dir, is_info_plist, **kwargs))
        if found:
            return found
    root_plist = os.path.join(base_path, INFO_PLIST)
    # A plist at a monorepo root may belong to any of the projects
    monorepo_root = has_multiple_xcodeprojs(base_path)
    if not monorepo_root and os.path.exists(root_plist):
        return root_plist
    plists = find_files(base_path, is_info_plist, **kwargs)
    if monorepo_root:
        plists = [p for p in plists if os.path.abspath(p) != os.path.abspath(root_plist)]
    return shallowest(plists)


def discover_entitlements(
    base_path: str, discovery: ProjectDiscovery, config: Config
) -> Optional[str]:
    kwargs = _search_kwargs(discovery, config)
    target_dir = _target_dir(base_path, discovery.target_name)
    if target_dir:
        found = shallowest(find_files(target_dir, is_entitlements, **kwargs))
        if found:
            return found
    entitlements = find_files(base_path, is_entitlements, **kwargs)
    if has_multiple_xcodeprojs(base_path):
        root = os.path.abspath(base_path)
        entitlements = [
            p for p in entitlements if os.path.dirname(os.path.abspath(p)) != root
        ]
    return shallowest(entitlements)


def discover_project(
    input_path: Union[str, Path], config: Optional[Config] = None
) -> ProjectDiscovery:
    """
    Locate the project, its main target and its artifacts from a user-supplied path.

    Args:
        input_path: An .xcodeproj, an .xcworkspace, a directory to search, or a
            file whose directory is searched.
        config: Search and configuration preferences, defaults to ``Config()``.

    Raises:
        DiscoveryError: The path does not exist or cannot be inspected.
        UnsupportedInputError: The path is an .ipa archive.
    """
    config = config or Config()
    input_path = os.path.abspath(input_path)
    try:
        is_dir = stat.S_ISDIR(os.stat(input_path).st_mode)
    except OSError as e:
        raise DiscoveryError(f"cannot access {input_path}: {e}") from e

    if not is_dir and input_path.endswith(IPA_SUFFIX):
        raise UnsupportedInputError(
            "IPA scanning is not supported, extract the archive and point to the contained .app"
        )

    if is_dir and input_path.endswith(XCODEPROJ_SUFFIX):
        base_path = os.path.dirname(input_path)
        discovery = ProjectDiscovery(
            project_path=base_path,
            project_scope_dir=base_path,
            dependency_scope_dir=input_path,
        )
        _use_project(discovery, input_path, config)
    elif is_dir and input_path.endswith(WORKSPACE_SUFFIX):
        base_path = os.path.dirname(input_path)
        discovery = ProjectDiscovery(project_path=base_path)
        _use_workspace(discovery, input_path, config)
        if not discovery.pbxproj_path:
            logger.debug("no project resolved from %s, scanning %s", input_path, base_path)
            _scan_for_project(discovery, base_path, config)
    else:
        base_path = input_path if is_dir else os.path.dirname(input_path)
        discovery = ProjectDiscovery(project_path=base_path)
        workspaces = find_files(
            base_path,
            lambda name, _: name.endswith(WORKSPACE_SUFFIX),
            max_depth=config.max_search_depth,
            skip_dirs=config.skip_dirs,
        )
        if workspaces:
            _use_workspace(discovery, workspaces[0], config)
        if not discovery.pbxproj_path:
            _scan_for_project(discovery, base_path, config)

    search_dir = discovery.project_scope_dir or base_path
    if not discovery.info_plist_path:
        discovery.info_plist_path = discover_info_plist(search_dir, discovery, config)
    if not discovery.entitlements_path:
        discovery.entitlements_path = discover_entitlements(search_dir, discovery, config)
    logger.debug(
        "discovered %s: pbxproj=%s target=%s info_plist=%s entitlements=%s",
        discovery.project_path,
        discovery.pbxproj_path,
        discovery.target_name,
        discovery.info_plist_path,
        discovery.entitlements_path,
    )
    return discovery
