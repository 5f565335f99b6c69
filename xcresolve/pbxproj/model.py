# Xcode project graph model.
#
# This module defines the records recovered from a project.pbxproj file: native
# targets, build configurations and configuration lists, plus the product-type
# priority table shared by every component that ranks candidates.

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple


# Type definition for Xcode object identifiers (24 hex characters)
class XcodeID(str):
    pass


# Product types used in PBXNativeTarget
class ProductType(Enum):
    APPLICATION = "com.apple.product-type.application"
    APPLICATION_ON_DEMAND_INSTALL = (
        "com.apple.product-type.application.on-demand-install-capable"
    )
    APP_EXTENSION = "com.apple.product-type.app-extension"
    EXTENSIONKIT_EXTENSION = "com.apple.product-type.extensionkit-extension"
    WATCH_APP = "com.apple.product-type.application.watchapp2"
    WATCH_EXTENSION = "com.apple.product-type.watchkit2-extension"
    TV_EXTENSION = "com.apple.product-type.tv-app-extension"
    UNIT_TEST_BUNDLE = "com.apple.product-type.bundle.unit-test"
    UI_TEST_BUNDLE = "com.apple.product-type.bundle.ui-testing"
    FRAMEWORK = "com.apple.product-type.framework"
    STATIC_FRAMEWORK = "com.apple.product-type.framework.static"
    STATIC_LIBRARY = "com.apple.product-type.library.static"
    DYNAMIC_LIBRARY = "com.apple.product-type.library.dynamic"
    BUNDLE = "com.apple.product-type.bundle"
    XPC_SERVICE = "com.apple.product-type.xpc-service"


# Higher score = better candidate for "the app". Unknown product types score 0.
# Read-only: both the target resolver and the workspace resolver rank with it.
PRODUCT_TYPE_PRIORITY: Mapping[str, int] = MappingProxyType(
    {
        ProductType.APPLICATION.value: 100,
        ProductType.APPLICATION_ON_DEMAND_INSTALL.value: 95,  # App Clip
        ProductType.WATCH_APP.value: 50,
        ProductType.APP_EXTENSION.value: 30,
        ProductType.EXTENSIONKIT_EXTENSION.value: 30,
        ProductType.WATCH_EXTENSION.value: 25,
        ProductType.TV_EXTENSION.value: 25,
        ProductType.FRAMEWORK.value: 20,
        ProductType.STATIC_FRAMEWORK.value: 20,
        ProductType.STATIC_LIBRARY.value: 15,
        ProductType.DYNAMIC_LIBRARY.value: 15,
        ProductType.BUNDLE.value: 10,
        ProductType.XPC_SERVICE.value: 10,
        ProductType.UNIT_TEST_BUNDLE.value: 5,
        ProductType.UI_TEST_BUNDLE.value: 5,
    }
)

APPLICATION_TYPES = frozenset(
    {
        ProductType.APPLICATION.value,
        ProductType.APPLICATION_ON_DEMAND_INSTALL.value,
    }
)

TEST_TYPES = frozenset(
    {
        ProductType.UNIT_TEST_BUNDLE.value,
        ProductType.UI_TEST_BUNDLE.value,
    }
)


def product_type_priority(product_type: Optional[str]) -> int:
    if not product_type:
        return 0
    return PRODUCT_TYPE_PRIORITY.get(product_type, 0)


def is_application_type(product_type: Optional[str]) -> bool:
    return product_type in APPLICATION_TYPES


def is_test_type(product_type: Optional[str]) -> bool:
    return product_type in TEST_TYPES


# Build setting keys that locate the artifacts downstream checks read
INFOPLIST_FILE = "INFOPLIST_FILE"
CODE_SIGN_ENTITLEMENTS = "CODE_SIGN_ENTITLEMENTS"
PRODUCT_NAME = "PRODUCT_NAME"


@dataclass(frozen=True)
class Target:
    id: XcodeID
    name: str
    product_type: str
    build_configuration_list_id: Optional[XcodeID] = None
    product_name: Optional[str] = None


@dataclass(frozen=True)
class BuildConfiguration:
    id: XcodeID
    name: str
    # SDK-conditional keys ("KEY[sdk=iphoneos*]") are kept verbatim, the base
    # key is registered too unless an earlier entry already claimed it
    build_settings: Dict[str, str] = field(default_factory=dict)

    def setting(self, key: str) -> Optional[str]:
        return self.build_settings.get(key)


@dataclass(frozen=True)
class ConfigurationList:
    id: XcodeID
    build_configuration_ids: Tuple[XcodeID, ...] = ()


# Artifact-related settings of one target, read from a single configuration
@dataclass
class BuildSettings:
    target_name: Optional[str] = None
    product_name: Optional[str] = None
    config_name: Optional[str] = None
    info_plist_path: Optional[str] = None
    entitlements_path: Optional[str] = None
    build_settings: Dict[str, str] = field(default_factory=dict)


# Terminal output of resolving one project: the chosen target, the raw settings
# it came from and the artifact paths after variable expansion
@dataclass
class ResolvedArtifacts:
    target: Target
    settings: BuildSettings
    info_plist_path: Optional[str] = None
    entitlements_path: Optional[str] = None

    @property
    def config_name(self) -> Optional[str]:
        return self.settings.config_name

    @property
    def product_name(self) -> Optional[str]:
        return self.settings.product_name or self.target.product_name

    @property
    def target_name(self) -> str:
        return self.settings.target_name or self.target.name
