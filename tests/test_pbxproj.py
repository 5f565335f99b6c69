import os

from conftest import APPLICATION, FRAMEWORK

from xcresolve.pbxproj import (
    get_main_target_artifacts,
    get_main_target_product_type,
    project_name_from_path,
    read_pbxproj,
)
from xcresolve.pbxproj.parser import parse_pbxproj


def test_main_target_artifacts_end_to_end(my_app_pbxproj, tmp_path):
    artifacts = get_main_target_artifacts(my_app_pbxproj, "MyApp", project_dir=tmp_path)
    assert artifacts.target.name == "MyApp"
    assert artifacts.config_name == "Release"
    assert artifacts.info_plist_path.endswith(os.path.join("MyApp", "Info.plist"))
    assert artifacts.entitlements_path.endswith(os.path.join("MyApp", "MyApp.entitlements"))
    assert artifacts.info_plist_path == os.path.join(str(tmp_path), "MyApp", "Info.plist")
    assert os.path.isabs(artifacts.entitlements_path)


def test_relative_paths_without_project_dir(my_app_pbxproj):
    artifacts = get_main_target_artifacts(my_app_pbxproj, "MyApp")
    assert artifacts.info_plist_path == "MyApp/Info.plist"
    assert artifacts.entitlements_path == "MyApp/MyApp.entitlements"


def test_debug_configuration(my_app_pbxproj):
    artifacts = get_main_target_artifacts(my_app_pbxproj, prefer_release=False)
    assert artifacts.config_name == "Debug"
    assert artifacts.info_plist_path == "MyApp/Info-Debug.plist"


def test_product_name_expands_from_target_name(pbxproj_builder):
    pbxproj_builder.add_target(
        "Runner",
        APPLICATION,
        configs=[("Release", {"INFOPLIST_FILE": "$(TARGET_NAME)/Info.plist", "CODE_SIGN_ENTITLEMENTS": "${PRODUCT_NAME}/App.entitlements"})],
        product_name="RunnerProduct",
    )
    artifacts = get_main_target_artifacts(pbxproj_builder.build())
    assert artifacts.info_plist_path == "Runner/Info.plist"
    assert artifacts.entitlements_path == "RunnerProduct/App.entitlements"
    assert artifacts.product_name == "RunnerProduct"


def test_accepts_parsed_project(my_app_pbxproj):
    project = parse_pbxproj(my_app_pbxproj)
    assert get_main_target_artifacts(project, "MyApp").target.name == "MyApp"


def test_target_without_configurations_keeps_name(pbxproj_builder):
    pbxproj_builder.add_target("Bare", APPLICATION)
    artifacts = get_main_target_artifacts(pbxproj_builder.build())
    assert artifacts.target_name == "Bare"
    assert artifacts.info_plist_path is None
    assert artifacts.entitlements_path is None


def test_no_targets():
    assert get_main_target_artifacts("// !$*UTF8*$!\n{\n}\n") is None
    assert get_main_target_product_type("") is None


def test_main_target_product_type(my_app_pbxproj, single_target_pbxproj):
    assert get_main_target_product_type(my_app_pbxproj, "MyApp") == APPLICATION
    assert get_main_target_product_type(single_target_pbxproj("Kit", FRAMEWORK)) == FRAMEWORK


def test_project_name_from_path():
    assert project_name_from_path("/src/MyApp.xcodeproj") == "MyApp"
    assert project_name_from_path("/src/MyApp.xcodeproj/project.pbxproj") == "MyApp"


def test_read_pbxproj(tmp_path, my_app_pbxproj):
    path = tmp_path / "project.pbxproj"
    path.write_text(my_app_pbxproj, encoding="utf-8")
    assert read_pbxproj(path) == my_app_pbxproj
    assert read_pbxproj(tmp_path / "missing.pbxproj") is None
