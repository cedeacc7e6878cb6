"""
Configuration module for safeauth.

Centralizes configuration with environment variable support. Values are
read once at import time; tests and embedders override them by passing
explicit arguments to the objects that use them.
"""

import os
from typing import Dict, List


# ============================================================
# Environment Configuration
# ============================================================

# Nested contract-signature validation (an owner that is itself an account)
MAX_VALIDATION_DEPTH = int(os.getenv("SAFEAUTH_MAX_VALIDATION_DEPTH", "8"))

# Chain used by the CLI when --chain-id is not given
DEFAULT_CHAIN_ID = int(os.getenv("SAFEAUTH_DEFAULT_CHAIN_ID", "1"))

# Logging
LOG_LEVEL = os.getenv("SAFEAUTH_LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("SAFEAUTH_LOG_JSON", "1").lower() in ("1", "true", "yes")
LOG_FILE = os.getenv("SAFEAUTH_LOG_FILE", "")


# ============================================================
# Validation
# ============================================================

def validate_config() -> Dict[str, List[str]]:
    """
    Check configured values.

    Returns:
        Dict of setting name -> list of problems (empty when valid)
    """
    problems: Dict[str, List[str]] = {
        "max_validation_depth": [],
        "default_chain_id": [],
        "log_level": [],
    }

    if MAX_VALIDATION_DEPTH < 1:
        problems["max_validation_depth"].append("must be >= 1")
    if DEFAULT_CHAIN_ID < 1:
        problems["default_chain_id"].append("must be >= 1")
    if LOG_LEVEL.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        problems["log_level"].append(f"unknown level {LOG_LEVEL}")

    return problems
