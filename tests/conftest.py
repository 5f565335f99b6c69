import itertools
import re

import pytest

APPLICATION = "com.apple.product-type.application"
APP_EXTENSION = "com.apple.product-type.app-extension"
UNIT_TEST = "com.apple.product-type.bundle.unit-test"
UI_TEST = "com.apple.product-type.bundle.ui-testing"
FRAMEWORK = "com.apple.product-type.framework"

BARE_VALUE = re.compile(r"[A-Za-z0-9_./]+")


def quote(value):
    if BARE_VALUE.fullmatch(value):
        return value
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


class PbxprojBuilder:
    """Writes project.pbxproj text the way Xcode lays it out."""

    def __init__(self):
        self._counter = itertools.count(1)
        self.targets = []
        self.configurations = []
        self.lists = []

    def _next_id(self):
        return f"{next(self._counter):024X}"

    def add_target(self, name, product_type, configs=None, product_name=None):
        """configs: sequence of (config name, settings dict); None means no configuration list."""
        target_id = self._next_id()
        list_id = None
        if configs is not None:
            list_id = self._next_id()
            config_ids = []
            for config_name, settings in configs:
                config_id = self._next_id()
                config_ids.append((config_id, config_name))
                self.configurations.append((config_id, config_name, settings))
            self.lists.append((list_id, name, config_ids))
        self.targets.append((target_id, name, product_type, list_id, product_name or name))
        return target_id

    def build(self):
        lines = [
            "// !$*UTF8*$!",
            "{",
            "\tarchiveVersion = 1;",
            "\tclasses = {",
            "\t};",
            "\tobjectVersion = 56;",
            "\tobjects = {",
            "",
            "/* Begin PBXNativeTarget section */",
        ]
        for target_id, name, product_type, list_id, product_name in self.targets:
            lines.append(f"\t\t{target_id} /* {name} */ = {{")
            lines.append("\t\t\tisa = PBXNativeTarget;")
            if list_id:
                lines.append(
                    f'\t\t\tbuildConfigurationList = {list_id} '
                    f'/* Build configuration list for PBXNativeTarget "{name}" */;'
                )
            lines.append("\t\t\tbuildPhases = (")
            lines.append("\t\t\t);")
            lines.append(f"\t\t\tname = {quote(name)};")
            lines.append(f"\t\t\tproductName = {quote(product_name)};")
            lines.append(f'\t\t\tproductType = "{product_type}";')
            lines.append("\t\t};")
        lines.append("/* End PBXNativeTarget section */")
        lines.append("")
        lines.append("/* Begin XCBuildConfiguration section */")
        for config_id, config_name, settings in self.configurations:
            lines.append(f"\t\t{config_id} /* {config_name} */ = {{")
            lines.append("\t\t\tisa = XCBuildConfiguration;")
            lines.append("\t\t\tbuildSettings = {")
            for key, value in settings.items():
                lines.append(f"\t\t\t\t{quote(key)} = {quote(value)};")
            lines.append("\t\t\t};")
            lines.append(f"\t\t\tname = {quote(config_name)};")
            lines.append("\t\t};")
        lines.append("/* End XCBuildConfiguration section */")
        lines.append("")
        lines.append("/* Begin XCConfigurationList section */")
        for list_id, name, config_ids in self.lists:
            lines.append(
                f'\t\t{list_id} /* Build configuration list for PBXNativeTarget "{name}" */ = {{'
            )
            lines.append("\t\t\tisa = XCConfigurationList;")
            lines.append("\t\t\tbuildConfigurations = (")
            for config_id, config_name in config_ids:
                lines.append(f"\t\t\t\t{config_id} /* {config_name} */,")
            lines.append("\t\t\t);")
            lines.append("\t\t\tdefaultConfigurationIsVisible = 0;")
            lines.append("\t\t\tdefaultConfigurationName = Release;")
            lines.append("\t\t};")
        lines.append("/* End XCConfigurationList section */")
        lines.append("\t};")
        lines.append(f"\trootObject = {self._next_id()} /* Project object */;")
        lines.append("}")
        return "\n".join(lines) + "\n"


@pytest.fixture
def pbxproj_builder():
    return PbxprojBuilder()


@pytest.fixture
def my_app_pbxproj():
    builder = PbxprojBuilder()
    builder.add_target(
        "MyApp",
        APPLICATION,
        configs=[
            (
                "Debug",
                {
                    "INFOPLIST_FILE": "MyApp/Info-Debug.plist",
                    "CODE_SIGN_ENTITLEMENTS": "MyApp/MyApp-Debug.entitlements",
                    "PRODUCT_NAME": "$(TARGET_NAME)",
                },
            ),
            (
                "Release",
                {
                    "INFOPLIST_FILE": "$(SRCROOT)/MyApp/Info.plist",
                    "CODE_SIGN_ENTITLEMENTS": "MyApp/MyApp.entitlements",
                    "PRODUCT_NAME": "$(TARGET_NAME)",
                    "PRODUCT_BUNDLE_IDENTIFIER": "com.example.${PRODUCT_NAME:rfc1034identifier}",
                },
            ),
        ],
    )
    builder.add_target(
        "MyAppExtension",
        APP_EXTENSION,
        configs=[("Release", {"INFOPLIST_FILE": "MyAppExtension/Info.plist"})],
    )
    builder.add_target(
        "MyAppTests",
        UNIT_TEST,
        configs=[("Release", {"INFOPLIST_FILE": "MyAppTests/Info.plist"})],
    )
    return builder.build()


def workspace_xml(*locations, version="1.0"):
    refs = "\n".join(f'   <FileRef\n      location = "{location}">\n   </FileRef>' for location in locations)
    return f'<?xml version="1.0" encoding="UTF-8"?>\n<Workspace\n   version = "{version}">\n{refs}\n</Workspace>\n'


@pytest.fixture
def make_xcodeproj():
    """Create <dir>/<name>.xcodeproj/project.pbxproj and return the .xcodeproj path."""

    def make(directory, name, content):
        xcodeproj = directory / f"{name}.xcodeproj"
        xcodeproj.mkdir(parents=True)
        (xcodeproj / "project.pbxproj").write_text(content, encoding="utf-8")
        return xcodeproj

    return make


@pytest.fixture
def make_workspace():
    """Create <dir>/<name>.xcworkspace/contents.xcworkspacedata and return the .xcworkspace path."""

    def make(directory, name, *locations):
        workspace = directory / f"{name}.xcworkspace"
        workspace.mkdir(parents=True)
        (workspace / "contents.xcworkspacedata").write_text(
            workspace_xml(*locations), encoding="utf-8"
        )
        return workspace

    return make


@pytest.fixture
def single_target_pbxproj():
    """pbxproj text holding one target of the given product type with Release settings."""

    def make(name, product_type=APPLICATION, settings=None):
        builder = PbxprojBuilder()
        builder.add_target(name, product_type, configs=[("Release", settings or {})])
        return builder.build()

    return make
