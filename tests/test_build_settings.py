from conftest import APPLICATION

from xcresolve.pbxproj.build_settings import get_target_build_settings, select_configuration
from xcresolve.pbxproj.model import BuildConfiguration, XcodeID
from xcresolve.pbxproj.parser import parse_pbxproj


def config(name, index):
    return BuildConfiguration(id=XcodeID(f"{index:024X}"), name=name)


def names(*config_names):
    return [config(name, i) for i, name in enumerate(config_names)]


def test_release_preferred():
    assert select_configuration(names("Debug", "Release")).name == "Release"


def test_debug_when_release_not_preferred():
    assert select_configuration(names("Release", "Debug"), prefer_release=False).name == "Debug"


def test_release_match_is_case_insensitive():
    assert select_configuration(names("Debug", "RELEASE")).name == "RELEASE"


def test_debug_kept_when_no_release():
    assert select_configuration(names("Debug", "Staging")).name == "Debug"


def test_first_unknown_is_fallback():
    assert select_configuration(names("Staging", "Beta")).name == "Staging"


def test_debug_does_not_replace_earlier_fallback_when_release_preferred():
    assert select_configuration(names("Staging", "Debug")).name == "Staging"


def test_debug_replaces_fallback_when_release_not_preferred():
    assert select_configuration(names("Staging", "Debug"), prefer_release=False).name == "Debug"


def test_release_not_preferred_falls_back_to_first():
    assert select_configuration(names("Release", "Staging"), prefer_release=False).name == "Release"


def test_no_configurations():
    assert select_configuration([]) is None


def test_info_plist_follows_preference(my_app_pbxproj):
    project = parse_pbxproj(my_app_pbxproj)
    app = project.targets[0]
    release = get_target_build_settings(project, app, prefer_release=True)
    debug = get_target_build_settings(project, app, prefer_release=False)
    assert release.config_name == "Release"
    assert release.info_plist_path == "$(SRCROOT)/MyApp/Info.plist"
    assert debug.config_name == "Debug"
    assert debug.info_plist_path == "MyApp/Info-Debug.plist"
    assert debug.entitlements_path == "MyApp/MyApp-Debug.entitlements"


def test_accepts_raw_content(my_app_pbxproj):
    app = parse_pbxproj(my_app_pbxproj).targets[0]
    settings = get_target_build_settings(my_app_pbxproj, app)
    assert settings.product_name == "$(TARGET_NAME)"
    assert settings.build_settings["PRODUCT_NAME"] == "$(TARGET_NAME)"


def test_conditional_only_setting_resolves_through_base_key(pbxproj_builder):
    pbxproj_builder.add_target(
        "App",
        APPLICATION,
        configs=[("Release", {"INFOPLIST_FILE[sdk=iphoneos*]": "App/Info.plist"})],
    )
    project = parse_pbxproj(pbxproj_builder.build())
    settings = get_target_build_settings(project, project.targets[0])
    assert settings.info_plist_path == "App/Info.plist"


def test_missing_configuration_list_degrades(pbxproj_builder):
    pbxproj_builder.add_target("App", APPLICATION, configs=None, product_name="AppProduct")
    project = parse_pbxproj(pbxproj_builder.build())
    settings = get_target_build_settings(project, project.targets[0])
    assert settings.target_name == "App"
    assert settings.product_name == "AppProduct"
    assert settings.config_name is None
    assert settings.info_plist_path is None
    assert settings.build_settings == {}


def test_empty_configuration_list_degrades(pbxproj_builder):
    pbxproj_builder.add_target("App", APPLICATION, configs=[])
    project = parse_pbxproj(pbxproj_builder.build())
    settings = get_target_build_settings(project, project.targets[0])
    assert settings.target_name == "App"
    assert settings.config_name is None
