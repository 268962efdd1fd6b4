"""Value objects describing how files map onto database objects."""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class TypeMapping:
    """A custom file token and the object type it stands for."""
    custom_mapping: str
    object_type: str


@dataclass(frozen=True)
class FileMappingOptions:
    """Resolved file paths and the rules to derive object identities from them.

    Fields left as None keep the engine's built-in defaults. A non-empty
    ``type_mappings`` replaces the engine's default mapping table.
    """
    file_paths: Tuple[str, ...] = field(default_factory=tuple)
    object_owner: Optional[str] = None
    regex_pattern: Optional[str] = None
    owner_subexpression: Optional[int] = None
    name_subexpression: Optional[int] = None
    type_subexpression: Optional[int] = None
    type_mappings: Optional[Tuple[TypeMapping, ...]] = None

    @property
    def is_empty(self) -> bool:
        return not self.file_paths

    def type_mapping_pairs(self) -> List[Tuple[str, str]]:
        return [(m.custom_mapping, m.object_type) for m in self.type_mappings or ()]
