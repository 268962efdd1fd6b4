"""Directory scanning with ant-style include and exclude patterns."""

import logging
from pathlib import Path
from typing import Iterable, List, Set, Union

logger = logging.getLogger(__name__)


def normalize_pattern(pattern: str) -> str:
    """Turn an ant-style pattern into one :meth:`Path.glob` understands.

    Backslashes become ``/`` and a leading ``/`` is dropped. A pattern
    ending in ``/`` or ``**`` selects every file below that directory.
    """
    normalized = pattern.strip().replace("\\", "/").lstrip("/")
    if normalized.endswith("/"):
        normalized += "**"
    if normalized == "**" or normalized.endswith("/**"):
        normalized += "/*"
    return normalized


def glob_files(root: Path, patterns: Iterable[str]) -> Set[Path]:
    """Files under ``root`` matching any of the patterns."""
    found: Set[Path] = set()
    for pattern in patterns:
        normalized = normalize_pattern(pattern)
        if not normalized:
            continue
        found.update(path for path in root.glob(normalized) if path.is_file())
    return found


class DirectoryScanner:
    """Lists files under a directory that match include/exclude patterns."""

    def scan(
        self,
        base_dir: Union[str, Path],
        includes: Iterable[str],
        excludes: Iterable[str] = (),
    ) -> List[str]:
        """Scan ``base_dir`` for matching files.

        Args:
            base_dir: Directory to scan.
            includes: Patterns a file must match; ``**`` spans directories.
            excludes: Patterns that remove a file from the result.

        Returns:
            Sorted, de-duplicated paths relative to ``base_dir`` using ``/``.
        """
        root = Path(base_dir)
        included = glob_files(root, includes)
        excluded = glob_files(root, excludes)

        for path in sorted(included & excluded):
            logger.debug(f"Excluded {path.relative_to(root).as_posix()} from scan of {root}")

        return sorted(path.relative_to(root).as_posix() for path in included - excluded)
