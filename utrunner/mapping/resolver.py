"""Resolution of source/test resources into file mapping options."""

import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from utrunner.config.models import CustomTypeMapping, MappingConfig, ResourceConfig
from utrunner.exceptions import ConfigurationError
from utrunner.mapping.models import FileMappingOptions, TypeMapping
from utrunner.mapping.scanner import DirectoryScanner

logger = logging.getLogger(__name__)


def _relative_to(path: Path, base_dir: Path) -> str:
    try:
        return path.relative_to(base_dir).as_posix()
    except ValueError:
        return path.as_posix()


def _check_directory(directory: Path, configured: str) -> None:
    if not directory.exists() or not directory.is_dir() or not os.access(directory, os.R_OK):
        raise ConfigurationError(
            f"Invalid directory '{configured}' in resource, it must be an existing readable directory",
            details={"directory": str(directory)},
        )


def find_sql_scripts(
    base_dir: Union[str, Path],
    resources: Sequence[ResourceConfig],
    default_directory: str,
    default_pattern: str,
    scanner: Optional[DirectoryScanner] = None,
) -> List[str]:
    """Scan every resource and collect the matching files.

    Resources are processed in order and their results concatenated; a
    file matched by two resources is listed twice.

    Args:
        base_dir: Project base directory; returned paths are relative to it.
        resources: Configured resources.
        default_directory: Directory used when a resource has none.
        default_pattern: Include pattern used when a resource has none.
        scanner: Directory scanner, a new one by default.

    Returns:
        Relative file paths in scan order.

    Raises:
        ConfigurationError: If a resource directory is missing or unreadable.
    """
    base = Path(base_dir)
    scanner = scanner or DirectoryScanner()
    found: List[str] = []

    for resource in resources:
        directory = resource.directory or default_directory
        includes = list(resource.includes) or [default_pattern]

        resource_dir = Path(directory)
        if not resource_dir.is_absolute():
            resource_dir = base / resource_dir
        _check_directory(resource_dir, directory)

        for relative in scanner.scan(resource_dir, includes, resource.excludes):
            found.append(_relative_to(resource_dir / relative, base))

    return found


def build_mapping_options(
    paths: Iterable[str],
    owner: Optional[str] = None,
    regex: Optional[str] = None,
    owner_subexpression: Optional[int] = None,
    name_subexpression: Optional[int] = None,
    type_subexpression: Optional[int] = None,
    type_mappings: Optional[Sequence[CustomTypeMapping]] = None,
) -> FileMappingOptions:
    """Build mapping options, applying only the values that are set."""
    return FileMappingOptions(
        file_paths=tuple(paths),
        object_owner=owner if owner and owner.strip() else None,
        regex_pattern=regex if regex and regex.strip() else None,
        owner_subexpression=owner_subexpression,
        name_subexpression=name_subexpression,
        type_subexpression=type_subexpression,
        type_mappings=tuple(
            TypeMapping(m.custom_mapping, m.type) for m in type_mappings
        ) if type_mappings else None,
    )


def resolve_mapping_options(
    base_dir: Union[str, Path],
    resources: Sequence[ResourceConfig],
    mapping: MappingConfig,
    default_directory: str,
    default_pattern: str,
    scanner: Optional[DirectoryScanner] = None,
) -> FileMappingOptions:
    """Resolve one kind of resources (sources or tests) into mapping options.

    Without configured resources the default directory is scanned if it
    exists; otherwise the result carries no paths.
    """
    if not resources:
        if not (Path(base_dir) / default_directory).exists():
            logger.debug(f"Default directory {default_directory} not found, no files to map")
            return FileMappingOptions()
        resources = [ResourceConfig(directory=default_directory, includes=[default_pattern])]

    paths = find_sql_scripts(base_dir, resources, default_directory, default_pattern, scanner)
    return build_mapping_options(
        paths,
        owner=mapping.owner,
        regex=mapping.regex_expression,
        owner_subexpression=mapping.owner_subexpression,
        name_subexpression=mapping.name_subexpression,
        type_subexpression=mapping.type_subexpression,
        type_mappings=mapping.custom_type_mappings,
    )
