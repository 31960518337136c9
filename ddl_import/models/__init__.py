# Copyright 2025-present DatusAI, Inc.
# Licensed under the Apache License, Version 2.0.
# See http://www.apache.org/licenses/LICENSE-2.0 for details.

from .schema_models import (
    Cardinality,
    Column,
    EnumType,
    ForeignKey,
    ForeignKeyOrigin,
    ImportResult,
    Index,
    PendingForeignKey,
    Table,
    TypeArgs,
)
from .validation_models import (
    ValidationError,
    ValidationErrorKind,
    ValidationResult,
    ValidationWarning,
    ValidationWarningKind,
)

__all__ = [
    # Schema model
    "Cardinality",
    "Column",
    "EnumType",
    "ForeignKey",
    "ForeignKeyOrigin",
    "ImportResult",
    "Index",
    "PendingForeignKey",
    "Table",
    "TypeArgs",
    # Validation model
    "ValidationError",
    "ValidationErrorKind",
    "ValidationResult",
    "ValidationWarning",
    "ValidationWarningKind",
]
