# Copyright 2025-present DatusAI, Inc.
# Licensed under the Apache License, Version 2.0.
# See http://www.apache.org/licenses/LICENSE-2.0 for details.

"""
ddl-import: dialect-aware SQL DDL import into a normalized schema model.
"""

from ddl_import.utils.sql_import import import_sql, import_sql_sync, validate_sql

__version__ = "0.1.0"

__all__ = ["import_sql", "import_sql_sync", "validate_sql", "__version__"]
