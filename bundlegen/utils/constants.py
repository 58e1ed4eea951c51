"""Centralized constants for bundlegen.

Single source of truth for entry-point names, output locations and the
environment variable names shared with the config runner.
"""

# ============================================================================
# PROJECT LAYOUT
# ============================================================================

# Subdirectory searched when the given directory holds no config entry point
PROJECT_DIR_NAME = ".bundlegen"

CONFIG_ENTRY_POINT = "bundlegen.config.ts"
SERVER_ENTRY_POINT = "bundlegen.server.ts"

WEBHOOKS_DIR_NAME = "webhooks"
OPERATIONS_DIR_NAME = "operations"

# Recognised source extensions, in lookup order
CODE_FILE_EXTENSIONS = (".ts", ".js")

# Runtime config file inside the project directory
RUNTIME_CONFIG_FILE = "bundlegen.json"

# ============================================================================
# OUTPUT LOCATIONS (relative to the project directory)
# ============================================================================

BUNDLE_DIR = "generated/bundle"
ERROR_LOG_FILE = "generated/bundlegen-error.log"

# ============================================================================
# STAGE NAMES
# ============================================================================

CONFIG_BUNDLER = "config-bundler"
SERVER_BUNDLER = "server-bundler"
WEBHOOKS_BUNDLER = "webhooks-bundler"
OPERATIONS_BUNDLER = "operations-bundler"
CONFIG_RUNNER = "config-runner"

# ============================================================================
# ENVIRONMENT VARIABLES
# ============================================================================

ENV_THROW_ON_OPERATION_LOADING_ERROR = "BUNDLEGEN_THROW_ON_OPERATION_LOADING_ERROR"
ENV_ENABLE_INTROSPECTION_CACHE = "BUNDLEGEN_ENABLE_INTROSPECTION_CACHE"
ENV_ENABLE_INTROSPECTION_OFFLINE = "BUNDLEGEN_ENABLE_INTROSPECTION_OFFLINE"
ENV_DIR_ABS = "BUNDLEGEN_DIR_ABS"
ENV_BINARY_PATH = "BUNDLEGEN_BINARY_PATH"
