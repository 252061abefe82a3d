"""
Type/status vocabulary resolution.

TypeMappings is built once per extraction run from the tool's native type
catalog and the scope config, then passed to every extract call. It is
immutable, so one run can never leak lookup state into another.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Tuple

from extraction_service.config.status_mapping import OTHER
from extraction_service.schemas.scope_config import ScopeConfig

_EMPTY: Mapping = MappingProxyType({})


@dataclass(frozen=True)
class TypeMappings:
    """Per-run lookup tables from native type/status vocabulary to the standardized one."""

    type_id_mappings: Mapping[str, str]  # native type id -> native type name
    std_type_mappings: Mapping[str, str]  # native type name -> standardized type
    std_status_mappings: Mapping[str, Mapping[str, str]]  # native type name -> status key -> standardized status
    baseline_status: Mapping[str, str]  # status key -> standardized status
    default_status: str
    default_type: Optional[str] = None  # Used instead of the upper-cased native name when set

    @classmethod
    def build(cls, issue_types: Iterable[Tuple[str, str]], scope_config: Optional[ScopeConfig],
              baseline_status: Mapping[str, str], default_status: str,
              default_type: Optional[str] = None) -> "TypeMappings":
        """
        Build the lookup tables for one run.

        Args:
            issue_types: (native id, native name) pairs of the connection's type catalog
            scope_config: User-declared mappings, if any
            baseline_status: Fixed status-key classification of the tool
            default_status: Standardized status for keys missing from the baseline
            default_type: Standardized type for unmapped native types (None = upper-cased name)
        """
        type_id_mappings = {str(type_id): name for type_id, name in issue_types if name}

        std_type_mappings = {}
        std_status_mappings = {}
        if scope_config is not None:
            for user_type, type_mapping in scope_config.type_mappings.items():
                std_type_mappings[user_type] = type_mapping.standard_type.upper()
                std_status_mappings[user_type] = MappingProxyType({
                    status_key: status_mapping.standard_status
                    for status_key, status_mapping in type_mapping.status_mappings.items()
                })

        return cls(
            type_id_mappings=MappingProxyType(type_id_mappings),
            std_type_mappings=MappingProxyType(std_type_mappings),
            std_status_mappings=MappingProxyType(std_status_mappings),
            baseline_status=MappingProxyType(dict(baseline_status)),
            default_status=default_status,
            default_type=default_type,
        )

    def native_type(self, type_id: Optional[str], fallback_name: Optional[str] = None) -> str:
        """Native type name for a type id; catalog first, then the name embedded in the payload."""
        if type_id is not None and str(type_id) in self.type_id_mappings:
            return self.type_id_mappings[str(type_id)]
        return fallback_name or (str(type_id) if type_id is not None else "")

    def std_type(self, native_type: str) -> str:
        """User mapping for the native type, else the default, else the upper-cased native name."""
        mapped = self.std_type_mappings.get(native_type)
        if mapped:
            return mapped
        if self.default_type:
            return self.default_type
        return native_type.upper() if native_type else OTHER

    def std_status(self, native_type: str, status_key: Optional[str]) -> str:
        """Baseline classification of the status key, overridden by the type's user status table."""
        status_key = status_key or ""
        std_status = self.baseline_status.get(status_key, self.default_status)
        override = self.std_status_mappings.get(native_type, _EMPTY).get(status_key)
        if override:
            std_status = override
        return std_status
