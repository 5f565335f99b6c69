# Build configuration selection and artifact setting extraction for one target.

from typing import Iterable, Optional, Union

from xcresolve.pbxproj.model import (
    CODE_SIGN_ENTITLEMENTS,
    INFOPLIST_FILE,
    PRODUCT_NAME,
    BuildConfiguration,
    BuildSettings,
    Target,
)
from xcresolve.pbxproj.parser import ParsedProject, parse_pbxproj

RELEASE = "release"
DEBUG = "debug"


# Scan configurations in list order:
# - a preferred Release wins immediately
# - Debug replaces the candidate when none is held yet, or when Release is not preferred
# - any other name (e.g. "Staging") is only kept as the first fallback
def select_configuration(
    configs: Iterable[BuildConfiguration], prefer_release: bool = True
) -> Optional[BuildConfiguration]:
    selected: Optional[BuildConfiguration] = None
    for config in configs:
        name = config.name.lower()
        if prefer_release and name == RELEASE:
            return config
        elif name == DEBUG:
            if selected is None or not prefer_release:
                selected = config
        elif selected is None:
            selected = config
    return selected


def get_target_build_settings(
    project: Union[str, ParsedProject],
    target: Target,
    prefer_release: bool = True,
) -> BuildSettings:
    """
    Read the artifact-related build settings of a target.

    Args:
        project: Raw pbxproj contents, or an already parsed project.
        target: The target whose configuration list is consulted.
        prefer_release: Select Release over Debug when both exist.

    Returns:
        The settings of the selected configuration. If the target has no
        configuration list, or the list has no known configuration, only the
        target and product names are populated.
    """
    if isinstance(project, str):
        project = parse_pbxproj(project)
    result = BuildSettings(target_name=target.name, product_name=target.product_name)
    if not target.build_configuration_list_id:
        return result
    config_list = project.configuration_lists.get(target.build_configuration_list_id)
    if config_list is None:
        return result
    configs = (
        project.configurations[config_id]
        for config_id in config_list.build_configuration_ids
        if config_id in project.configurations
    )
    selected = select_configuration(configs, prefer_release=prefer_release)
    if selected is None:
        return result
    # Base keys already alias their first SDK-conditional variant
    settings = selected.build_settings
    result.config_name = selected.name
    result.build_settings = dict(settings)
    if settings.get(INFOPLIST_FILE):
        result.info_plist_path = settings[INFOPLIST_FILE]
    if settings.get(CODE_SIGN_ENTITLEMENTS):
        result.entitlements_path = settings[CODE_SIGN_ENTITLEMENTS]
    if settings.get(PRODUCT_NAME):
        result.product_name = settings[PRODUCT_NAME]
    return result
