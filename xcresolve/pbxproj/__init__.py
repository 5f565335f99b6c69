import logging
import os
from pathlib import Path
from typing import Optional, Union

from xcresolve.details.variable_expansion import ExpansionContext, normalize_xcode_path
from xcresolve.pbxproj.build_settings import get_target_build_settings
from xcresolve.pbxproj.model import ResolvedArtifacts
from xcresolve.pbxproj.parser import ParsedProject, parse_pbxproj
from xcresolve.pbxproj.target_resolver import get_main_app_target

logger = logging.getLogger(__name__)

PBXPROJ_FILENAME = "project.pbxproj"
XCODEPROJ_SUFFIX = ".xcodeproj"


def read_pbxproj(path: Union[str, Path]) -> Optional[str]:
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            return f.read()
    except OSError as e:
        logger.warning("could not read %s: %s", path, e)
        return None


# "/src/MyApp.xcodeproj" or "/src/MyApp.xcodeproj/project.pbxproj" -> "MyApp"
def project_name_from_path(path: Union[str, Path]) -> str:
    path = Path(path)
    if path.name == PBXPROJ_FILENAME:
        path = path.parent
    name = path.name
    if name.endswith(XCODEPROJ_SUFFIX):
        name = name[: -len(XCODEPROJ_SUFFIX)]
    return name


def _resolve_path(
    raw: Optional[str], context: ExpansionContext, project_dir: Optional[str]
) -> Optional[str]:
    if not raw:
        return None
    normalized = normalize_xcode_path(raw, context)
    if not normalized:
        return None
    if project_dir is None:
        return normalized
    return os.path.abspath(os.path.join(project_dir, normalized))


def get_main_target_artifacts(
    content: Union[str, ParsedProject],
    project_name: Optional[str] = None,
    project_dir: Optional[Union[str, Path]] = None,
    prefer_release: bool = True,
) -> Optional[ResolvedArtifacts]:
    """Pick the main target of a project and resolve its Info.plist and entitlements paths."""
    project = parse_pbxproj(content) if isinstance(content, str) else content
    target = get_main_app_target(project.targets, project_name)
    if target is None:
        return None
    settings = get_target_build_settings(project, target, prefer_release=prefer_release)
    project_dir = str(project_dir) if project_dir is not None else None
    context = ExpansionContext(
        target_name=settings.target_name or target.name,
        product_name=settings.product_name or target.product_name,
        project_dir=project_dir,
    )
    return ResolvedArtifacts(
        target=target,
        settings=settings,
        info_plist_path=_resolve_path(settings.info_plist_path, context, project_dir),
        entitlements_path=_resolve_path(settings.entitlements_path, context, project_dir),
    )


def get_main_target_product_type(
    content: Union[str, ParsedProject], project_name: Optional[str] = None
) -> Optional[str]:
    project = parse_pbxproj(content) if isinstance(content, str) else content
    target = get_main_app_target(project.targets, project_name)
    return target.product_type if target else None
