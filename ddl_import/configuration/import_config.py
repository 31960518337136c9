# Copyright 2025-present DatusAI, Inc.
# Licensed under the Apache License, Version 2.0.
# See http://www.apache.org/licenses/LICENSE-2.0 for details.

"""
Import pipeline configuration.

Settings can be supplied programmatically or loaded from a YAML file:

    import:
      excerpt_length: 80
      warning_consolidation_threshold: 20
      default_schemas:
        postgresql: app
"""

import os
from typing import Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from ddl_import.utils.constants import (
    DEFAULT_EXCERPT_LENGTH,
    DEFAULT_MAX_STATEMENTS_WARNING,
    DEFAULT_SCHEMAS,
    DEFAULT_WARNING_CONSOLIDATION_THRESHOLD,
    DatabaseType,
)
from ddl_import.utils.exceptions import DDLImportException, ErrorCode
from ddl_import.utils.loggings import get_logger

logger = get_logger(__name__)


class ImportConfig(BaseModel):
    """Tunables for validation and import."""

    excerpt_length: int = Field(DEFAULT_EXCERPT_LENGTH, ge=10, description="Statement excerpt length in warnings")
    max_statements_warning: int = Field(
        DEFAULT_MAX_STATEMENTS_WARNING, ge=1, description="Statement count that triggers a performance warning"
    )
    warning_consolidation_threshold: int = Field(
        DEFAULT_WARNING_CONSOLIDATION_THRESHOLD, ge=1, description="Warning count above which warnings are summarized"
    )
    default_schemas: Dict[DatabaseType, str] = Field(
        default_factory=dict, description="Per-dialect default schema overrides"
    )
    enable_fallback_extraction: bool = Field(True, description="Recover tables, views and foreign keys from unparsable statements")
    auto_detect_dialect: bool = Field(True, description="Detect the dialect when 'generic' is requested")

    @field_validator("default_schemas", mode="before")
    @classmethod
    def _normalize_dialect_keys(cls, value):
        if not value:
            return {}
        return {DatabaseType.from_value(key): schema for key, schema in dict(value).items()}

    def default_schema(self, dialect: DatabaseType) -> str:
        """Schema assumed for unqualified table names in ``dialect``."""
        if dialect in self.default_schemas:
            return self.default_schemas[dialect]
        return DEFAULT_SCHEMAS.get(dialect, "")


def load_import_config(config_path: Optional[str] = None) -> ImportConfig:
    """
    Load ImportConfig from a YAML file.

    The file may hold the settings at the top level or under an ``import`` key.

    Args:
        config_path: Path to the YAML file; None returns the defaults

    Returns:
        ImportConfig instance

    Raises:
        DDLImportException: If the file is missing, unreadable or invalid
    """
    if not config_path:
        return ImportConfig()

    if not os.path.exists(config_path):
        raise DDLImportException(
            ErrorCode.COMMON_CONFIG_ERROR,
            message_args={"error_message": f"Configuration file not found: {config_path}"},
        )

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise DDLImportException(
            ErrorCode.COMMON_CONFIG_ERROR,
            message_args={"error_message": f"Invalid YAML in {config_path}: {e}"},
        ) from e

    if not isinstance(raw, dict):
        raise DDLImportException(
            ErrorCode.COMMON_CONFIG_ERROR,
            message_args={"error_message": f"Expected a mapping in {config_path}"},
        )

    settings = raw.get("import", raw)
    try:
        config = ImportConfig(**settings)
    except (ValidationError, DDLImportException) as e:
        raise DDLImportException(
            ErrorCode.COMMON_CONFIG_ERROR,
            message_args={"error_message": str(e)},
        ) from e

    logger.debug(f"Loaded import configuration from {config_path}: {config.model_dump()}")
    return config
