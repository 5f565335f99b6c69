import logging
import plistlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union
from xml.parsers.expat import ExpatError

from xcresolve.config import Config
from xcresolve.details.dependencies import (
    Dependency,
    load_all_dependencies,
    parse_project_frameworks,
)
from xcresolve.details.discovery import ProjectDiscovery, discover_project
from xcresolve.pbxproj import read_pbxproj
from xcresolve.pbxproj.parser import base_setting_key

logger = logging.getLogger(__name__)


@dataclass
class ProjectContext:
    """
    Everything resolved about one project, handed to downstream consumers.

    The Info.plist and entitlements mappings hold the file contents as loaded;
    nothing is validated or normalised. Lookups return None when a key is
    missing or holds a value of another type.
    """

    project_path: str
    info_plist: Dict[str, Any] = field(default_factory=dict)
    entitlements: Dict[str, Any] = field(default_factory=dict)
    build_settings: Dict[str, str] = field(default_factory=dict)
    linked_frameworks: Set[str] = field(default_factory=set)
    dependencies: List[Dependency] = field(default_factory=list)
    target_name: Optional[str] = None
    product_type: Optional[str] = None
    info_plist_path: Optional[str] = None
    entitlements_path: Optional[str] = None
    pbxproj_path: Optional[str] = None

    def plist_string(self, key: str) -> Optional[str]:
        value = self.info_plist.get(key)
        return value if isinstance(value, str) else None

    def plist_array(self, key: str) -> Optional[list]:
        value = self.info_plist.get(key)
        return value if isinstance(value, list) else None

    def plist_bool(self, key: str) -> Optional[bool]:
        value = self.info_plist.get(key)
        return value if isinstance(value, bool) else None

    def has_plist_key(self, key: str) -> bool:
        return key in self.info_plist

    def entitlement_string(self, key: str) -> Optional[str]:
        value = self.entitlements.get(key)
        return value if isinstance(value, str) else None

    def entitlement_array(self, key: str) -> Optional[list]:
        value = self.entitlements.get(key)
        return value if isinstance(value, list) else None

    def has_entitlement(self, key: str) -> bool:
        return key in self.entitlements

    def has_framework(self, name: str) -> bool:
        return name in self.linked_frameworks

    # "INFOPLIST_FILE[sdk=iphoneos*]" looks up "INFOPLIST_FILE"
    def build_setting(self, key: str) -> Optional[str]:
        return self.build_settings.get(base_setting_key(key))


def load_plist(path: Optional[Union[str, Path]]) -> Dict[str, Any]:
    if not path:
        return {}
    try:
        with open(path, "rb") as f:
            data = plistlib.load(f)
    except (OSError, ValueError, ExpatError) as e:
        logger.warning("could not load property list %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("property list %s is not a dictionary", path)
        return {}
    return data


def create_project_context(discovery: ProjectDiscovery) -> ProjectContext:
    linked_frameworks: Set[str] = set()
    if discovery.pbxproj_path:
        content = read_pbxproj(discovery.pbxproj_path)
        if content is not None:
            linked_frameworks = parse_project_frameworks(content)
    dependency_dir = (
        discovery.dependency_scope_dir
        or discovery.project_scope_dir
        or discovery.project_path
    )
    return ProjectContext(
        project_path=discovery.project_path,
        info_plist=load_plist(discovery.info_plist_path),
        entitlements=load_plist(discovery.entitlements_path),
        build_settings=dict(discovery.build_settings),
        linked_frameworks=linked_frameworks,
        dependencies=load_all_dependencies(dependency_dir),
        target_name=discovery.target_name,
        product_type=discovery.product_type,
        info_plist_path=discovery.info_plist_path,
        entitlements_path=discovery.entitlements_path,
        pbxproj_path=discovery.pbxproj_path,
    )


def load_project(
    input_path: Union[str, Path], config: Optional[Config] = None
) -> ProjectContext:
    return create_project_context(discover_project(input_path, config))
