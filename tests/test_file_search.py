import os

from xcresolve.details.file_search import (
    contains_sibling_xcodeproj,
    find_files,
    has_multiple_xcodeprojs,
    shallowest,
)


def is_plist(name, _path):
    return name == "Info.plist"


def touch(path):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("", encoding="utf-8")
    return path


def test_finds_nested_files(tmp_path):
    touch(tmp_path / "App" / "Info.plist")
    touch(tmp_path / "App" / "Sub" / "Info.plist")
    found = find_files(tmp_path, is_plist)
    assert sorted(found) == sorted(
        [str(tmp_path / "App" / "Info.plist"), str(tmp_path / "App" / "Sub" / "Info.plist")]
    )


def test_skips_vendor_directories(tmp_path):
    for skipped in ("node_modules", ".git", "Pods", "build", "DerivedData", ".build"):
        touch(tmp_path / skipped / "Info.plist")
    assert find_files(tmp_path, is_plist) == []


def test_custom_skip_dirs(tmp_path):
    touch(tmp_path / "Vendor" / "Info.plist")
    touch(tmp_path / "Pods" / "Info.plist")
    assert find_files(tmp_path, is_plist, skip_dirs={"Vendor"}) == [str(tmp_path / "Pods" / "Info.plist")]


def test_does_not_descend_into_bundles(tmp_path):
    for bundle in ("App.xcodeproj", "App.xcworkspace", "App.app", "Kit.framework"):
        touch(tmp_path / bundle / "Info.plist")
    assert find_files(tmp_path, is_plist) == []


def test_bundles_themselves_can_match(tmp_path):
    (tmp_path / "A" / "App.xcodeproj").mkdir(parents=True)
    found = find_files(tmp_path, lambda name, _: name.endswith(".xcodeproj"))
    assert found == [str(tmp_path / "A" / "App.xcodeproj")]


def test_depth_limit(tmp_path):
    touch(tmp_path / "a" / "b" / "c" / "Info.plist")
    assert find_files(tmp_path, is_plist, max_depth=3) == []
    assert len(find_files(tmp_path, is_plist, max_depth=4)) == 1


def test_sibling_projects_are_excluded(tmp_path):
    current = tmp_path / "App.xcodeproj"
    current.mkdir()
    (tmp_path / "Other" / "Other.xcodeproj").mkdir(parents=True)
    touch(tmp_path / "Other" / "Info.plist")
    touch(tmp_path / "App" / "Info.plist")
    found = find_files(tmp_path, is_plist, current_xcodeproj=current)
    assert found == [str(tmp_path / "App" / "Info.plist")]


def test_missing_root(tmp_path):
    assert find_files(tmp_path / "missing", is_plist) == []


def test_contains_sibling_xcodeproj(tmp_path):
    (tmp_path / "App.xcodeproj").mkdir()
    assert not contains_sibling_xcodeproj(tmp_path, None)
    assert not contains_sibling_xcodeproj(tmp_path, tmp_path / "App.xcodeproj")
    assert contains_sibling_xcodeproj(tmp_path, tmp_path / "elsewhere" / "Other.xcodeproj")


def test_has_multiple_xcodeprojs(tmp_path):
    (tmp_path / "A.xcodeproj").mkdir()
    (tmp_path / "Pods.xcodeproj").mkdir()
    assert not has_multiple_xcodeprojs(tmp_path)
    (tmp_path / "B.xcodeproj").mkdir()
    assert has_multiple_xcodeprojs(tmp_path)


def test_shallowest():
    deep = os.path.join("a", "b", "Info.plist")
    shallow = os.path.join("a", "Info.plist")
    assert shallowest([deep, shallow]) == shallow
    assert shallowest([]) is None
