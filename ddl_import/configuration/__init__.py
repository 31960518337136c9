# Copyright 2025-present DatusAI, Inc.
# Licensed under the Apache License, Version 2.0.
# See http://www.apache.org/licenses/LICENSE-2.0 for details.

from .import_config import ImportConfig, load_import_config

__all__ = ["ImportConfig", "load_import_config"]
