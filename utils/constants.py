"""
Constants for the Squash Crash Reporter

This module contains the fixed values of the Squash wire contract
and the default extraction policy.
"""

# ============================================================================
# Wire Contract
# ============================================================================
# Marks a frame whose file path and symbol Squash must reconcile itself
# (no full source path is available from the runtime).
FRAME_TYPE_OBFUSCATED = "obfuscated"
NO_MESSAGE = "No message"
FIELD_ACCESS_ERROR_PREFIX = "Exception accessing field: "

# ============================================================================
# Extraction Policy
# ============================================================================
# Fields injected by mock/proxy frameworks
DEFAULT_EXCLUDED_PREFIXES = ("CGLIB",)
FOLLOW_CONTEXT = True
UNKNOWN_LINE = 0

# ============================================================================
# Client Defaults
# ============================================================================
CLIENT_NAME = "python"
ENVIRONMENT = "production"
