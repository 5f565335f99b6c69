from argparse import ArgumentParser
import base64
import dataclasses
from datetime import datetime
from enum import Enum
import json
import logging
import os
import sys

from xcresolve.config import Config
from xcresolve.details.context import load_project
from xcresolve.details.workspace import rank_workspace_projects, select_main_projects
from xcresolve.errors import XcresolveError
from xcresolve.pbxproj import (
    PBXPROJ_FILENAME,
    get_main_target_artifacts,
    project_name_from_path,
    read_pbxproj,
)
from xcresolve.pbxproj.parser import parse_pbxproj
from xcresolve.pbxproj.target_resolver import rank_targets


def _to_json(value):
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    # plist <data> and <date> values
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"not JSON serializable: {type(value).__name__}")


def _dump(data):
    json.dump(data, sys.stdout, indent=2, default=_to_json)
    sys.stdout.write("\n")


# Accepts an .xcodeproj bundle or the project.pbxproj inside it
def _load_pbxproj(path: str):
    pbxproj_path = path if path.endswith(PBXPROJ_FILENAME) else os.path.join(path, PBXPROJ_FILENAME)
    content = read_pbxproj(pbxproj_path)
    if content is None:
        raise XcresolveError(f"no readable {PBXPROJ_FILENAME} at {path}")
    return pbxproj_path, content


def targets_main(path: str, config: Config):
    pbxproj_path, content = _load_pbxproj(path)
    ranked = rank_targets(parse_pbxproj(content).targets, project_name_from_path(pbxproj_path))
    _dump([dataclasses.asdict(target) for target in ranked])


def artifacts_main(path: str, config: Config):
    pbxproj_path, content = _load_pbxproj(path)
    artifacts = get_main_target_artifacts(
        content,
        project_name=project_name_from_path(pbxproj_path),
        project_dir=os.path.dirname(os.path.dirname(os.path.abspath(pbxproj_path))),
        prefer_release=config.prefer_release,
    )
    if artifacts is None:
        _dump(None)
        return 1
    _dump(
        {
            "target": artifacts.target,
            "config_name": artifacts.config_name,
            "product_name": artifacts.product_name,
            "info_plist_path": artifacts.info_plist_path,
            "entitlements_path": artifacts.entitlements_path,
        }
    )


def workspace_main(path: str, config: Config):
    ranked = rank_workspace_projects(path)
    main_paths = {r.path for r in select_main_projects(ranked)}
    _dump([{"path": r.path, "main": r.path in main_paths, "ref": r.ref} for r in ranked])


def discover_main(path: str, config: Config):
    _dump(load_project(path, config))


def main():
    COMMANDS = {
        "targets": targets_main,
        "artifacts": artifacts_main,
        "workspace": workspace_main,
        "discover": discover_main,
    }
    parser = ArgumentParser(prog="xcresolve")
    parser.add_argument("command", choices=COMMANDS.keys())
    parser.add_argument("path", type=str)
    parser.add_argument("--debug-config", action="store_true", help="prefer the Debug configuration")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    config = Config(prefer_release=not args.debug_config)
    try:
        exit_code = COMMANDS[args.command](path=args.path, config=config)
    except (XcresolveError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(1)
    if exit_code is not None:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
