# Copyright 2025-present DatusAI, Inc.
# Licensed under the Apache License, Version 2.0.
# See http://www.apache.org/licenses/LICENSE-2.0 for details.

"""
Models returned by the pre-parse SQL validator.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ValidationErrorKind(str, Enum):
    """Validation error categories."""

    SYNTAX = "syntax"
    UNSUPPORTED = "unsupported"
    PARSER = "parser"


class ValidationWarningKind(str, Enum):
    """Validation warning categories."""

    COMPATIBILITY = "compatibility"
    DATA_LOSS = "data_loss"
    PERFORMANCE = "performance"


class ValidationError(BaseModel):
    """A problem that blocks import until fixed."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    line: int = Field(0, description="1-based line number, 0 when not tied to a line")
    column: Optional[int] = Field(None, description="1-based column number")
    message: str = Field(..., description="Human-readable description")
    kind: ValidationErrorKind = Field(ValidationErrorKind.SYNTAX, description="Error category")
    suggestion: Optional[str] = Field(None, description="How to fix the problem")
    auto_fixable: bool = Field(False, description="Whether fixedSQL can correct this error")


class ValidationWarning(BaseModel):
    """A non-blocking finding; the affected construct is skipped or approximated."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    line: Optional[int] = Field(None, description="1-based line number, if tied to one")
    message: str = Field(..., description="Human-readable description")
    kind: ValidationWarningKind = Field(ValidationWarningKind.COMPATIBILITY, description="Warning category")


class ValidationResult(BaseModel):
    """Outcome of validate_sql."""

    model_config = ConfigDict(populate_by_name=True)

    is_valid: bool = Field(..., alias="isValid")
    errors: List[ValidationError] = Field(default_factory=list)
    warnings: List[ValidationWarning] = Field(default_factory=list)
    fixed_sql: Optional[str] = Field(None, alias="fixedSQL")
    table_count: int = Field(0, alias="tableCount")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize as ``{isValid, errors, warnings, fixedSQL?, tableCount}``."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
