"""File discovery and file-to-object mapping."""

from utrunner.mapping.models import FileMappingOptions, TypeMapping
from utrunner.mapping.resolver import (
    build_mapping_options,
    find_sql_scripts,
    resolve_mapping_options,
)
from utrunner.mapping.scanner import DirectoryScanner

__all__ = [
    "FileMappingOptions",
    "TypeMapping",
    "DirectoryScanner",
    "build_mapping_options",
    "find_sql_scripts",
    "resolve_mapping_options",
]
