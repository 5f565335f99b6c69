import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, List, Mapping, Optional, Set, Union

logger = logging.getLogger(__name__)

FRAMEWORK_PATTERN = re.compile(r"(\w+)\.framework")
POD_ENTRY_PATTERN = re.compile(r"^([^\s(]+)\s*\(([^)]+)\)")

PODFILE_LOCK = "Podfile.lock"
# First non-empty one wins
PACKAGE_RESOLVED_LOCATIONS = (
    Path("Package.resolved"),
    Path(".swiftpm") / "Package.resolved",
)


class DependencySource(Enum):
    COCOAPODS = "cocoapods"
    SPM = "spm"
    CARTHAGE = "carthage"
    MANUAL = "manual"


@dataclass(frozen=True)
class Dependency:
    name: str
    version: Optional[str]
    source: DependencySource


# Names of every "*.framework" referenced from a pbxproj
def parse_project_frameworks(content: str) -> Set[str]:
    return set(FRAMEWORK_PATTERN.findall(content))


def parse_podfile_lock(content: str) -> List[Dependency]:
    dependencies: List[Dependency] = []
    seen: Set[str] = set()
    in_pods = False
    for line in content.splitlines():
        stripped = line.strip()
        if stripped == "PODS:":
            in_pods = True
            continue
        if not in_pods:
            continue
        # next top-level key ends the PODS section
        if not line.startswith((" ", "\t")) and stripped.endswith(":"):
            break
        if not line.startswith("  - "):
            continue
        match = POD_ENTRY_PATTERN.match(line[4:])
        if not match:
            continue
        full_name, version = match.groups()
        # "Firebase/Analytics" registers both "Firebase" and the subspec
        for name in (full_name.split("/")[0], full_name):
            if name not in seen:
                seen.add(name)
                dependencies.append(Dependency(name, version, DependencySource.COCOAPODS))
    return dependencies


def parse_package_resolved(data: Mapping[str, Any]) -> List[Dependency]:
    # version 2+: {"pins": [{"identity": ..., "state": {"version": ...}}]}
    pins = data.get("pins")
    name_key = "identity"
    if not isinstance(pins, list):
        # version 1: {"object": {"pins": [{"package": ...}]}}
        obj = data.get("object")
        pins = obj.get("pins") if isinstance(obj, dict) else None
        name_key = "package"
    if not isinstance(pins, list):
        return []
    dependencies = []
    for pin in pins:
        if not isinstance(pin, dict) or not pin.get(name_key):
            continue
        state = pin.get("state")
        version = state.get("version") if isinstance(state, dict) else None
        dependencies.append(Dependency(pin[name_key], version, DependencySource.SPM))
    return dependencies


def _read_text(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError:
        return None
    except OSError as e:
        logger.warning("could not read %s: %s", path, e)
        return None


def load_package_resolved(path: Path) -> List[Dependency]:
    content = _read_text(path)
    if content is None:
        return []
    try:
        data = json.loads(content)
    except ValueError as e:
        logger.warning("malformed %s: %s", path, e)
        return []
    return parse_package_resolved(data) if isinstance(data, dict) else []


def load_all_dependencies(project_dir: Union[str, Path]) -> List[Dependency]:
    project_dir = Path(project_dir)
    dependencies = []
    podfile_lock = _read_text(project_dir / PODFILE_LOCK)
    if podfile_lock is not None:
        dependencies.extend(parse_podfile_lock(podfile_lock))
    for location in PACKAGE_RESOLVED_LOCATIONS:
        spm = load_package_resolved(project_dir / location)
        if spm:
            dependencies.extend(spm)
            break
    return dependencies
