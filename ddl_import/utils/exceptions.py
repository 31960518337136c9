# Copyright 2025-present DatusAI, Inc.
# Licensed under the Apache License, Version 2.0.
# See http://www.apache.org/licenses/LICENSE-2.0 for details.

"""
Error codes and the exception type raised for infrastructure-level failures.

Content problems in imported SQL never raise; they are reported as validation
errors or import warnings. Only failures of the pipeline itself surface here.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Error codes as (code, description template)."""

    COMMON_UNKNOWN = ("100000", "Unknown error occurred")
    COMMON_VALIDATION_FAILED = ("100001", "Input validation failed: {error_message}")
    COMMON_CONFIG_ERROR = ("100002", "Configuration error: {error_message}")
    PARSER_LOAD_FAILED = ("200001", "Failed to load the SQL grammar library: {error_message}")
    PARSER_INVALID_RESULT = ("200002", "SQL grammar library returned an unexpected result: {error_message}")

    def __init__(self, code: str, desc: str):
        self.code = code
        self.desc = desc


class DDLImportException(Exception):
    """Exception carrying an ErrorCode and formatting arguments."""

    def __init__(
        self,
        code: ErrorCode,
        message: Optional[str] = None,
        message_args: Optional[Dict[str, Any]] = None,
    ):
        self.code = code
        self.message_args = message_args or {}
        self.message = message or self._format_desc()
        super().__init__(f"[{code.code}] {self.message}")

    def _format_desc(self) -> str:
        try:
            return self.code.desc.format(**self.message_args)
        except (KeyError, IndexError):
            return self.code.desc
