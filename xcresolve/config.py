from typing import Iterable, Optional

# Directories never searched when falling back to a filesystem scan.
DEFAULT_SKIP_DIRS = frozenset(
    {
        "node_modules",
        ".git",
        "Pods",
        "build",
        "DerivedData",
        ".build",
    }
)


class Config:
    def __init__(
        self,
        prefer_release: bool = True,
        max_search_depth: int = 5,
        skip_dirs: Optional[Iterable[str]] = None,
        **kwargs
    ):
        self.prefer_release = prefer_release
        self.max_search_depth = max_search_depth
        self.skip_dirs = (
            frozenset(skip_dirs) if skip_dirs is not None else DEFAULT_SKIP_DIRS
        )
        self.__dict__.update(kwargs)
