from __future__ import annotations

import fnmatch
from pathlib import PurePosixPath


def in_skipped_folder(filename: str, folders: list[str]) -> bool:
    """Return True if filename lives under any of the skipped folders.

    Folders are relative to the repository root: "vendor" and "vendor/"
    both skip "vendor/lib/a.php" but not "src/vendor/a.php". Glob patterns
    such as "plugins/*/tests" are matched against every leading directory
    path of the file.
    """
    parents = [str(p) for p in PurePosixPath(filename).parents if str(p) != "."]
    for folder in folders:
        folder = folder.strip().strip("/")
        if not folder:
            continue
        if filename.startswith(folder + "/"):
            return True
        if any(fnmatch.fnmatch(parent, folder) for parent in parents):
            return True
    return False


def has_extension(filename: str, extensions: list[str]) -> bool:
    suffix = PurePosixPath(filename).suffix.lstrip(".").lower()
    return bool(suffix) and suffix in extensions


def is_scannable(filename: str, extensions: list[str], skip_folders: list[str]) -> bool:
    return has_extension(filename, extensions) and not in_skipped_folder(filename, skip_folders)
