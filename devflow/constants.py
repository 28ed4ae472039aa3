"""Global constants for devflow"""

from enum import Enum
import re

APP_NAME = "devflow"
LOG_FORMAT = "%(message)s"

# Version related
CONFIG_VERSION = "1.0"
GENERATED_VERSION = "1.0"

# Project identification
PROJECT_CONFIG_FILE = "devflow.yaml"
PROJECT_STATE_DIR = ".devflow"
GENERATED_CONFIG_FILE = "generated.yaml"

# Profiles
DEFAULT_PROFILE = "default"

# Dependency materialization
DEFAULT_HOME_DIR = "~/.devflow"
DEPENDENCIES_DIR = "dependencies"
DEFAULT_GIT_REVISION = "HEAD"

# Content hashing
DEFAULT_HASH_ALGORITHM = "sha256"
DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_HASH_EXCLUDES = [
    ".git",
    PROJECT_STATE_DIR,
]
IMAGE_TAG_LENGTH = 12

# Orchestration
DEFAULT_MAX_WORKERS = 4
DEFAULT_COMMAND_TIMEOUT = None

# Controller backends
DEFAULT_CONTROLLER_BACKEND = "shell"


class Operation(Enum):
    RESOLVE = "resolve"
    UPDATE = "update"
    BUILD = "build"
    DEPLOY = "deploy"
    PURGE = "purge"


# Error codes
class ErrorCode:
    CONFIG_FORMAT_ERROR = "DF001"
    SOURCE_NOT_FOUND = "DF002"
    SOURCE_FETCH_FAILED = "DF003"
    DEPENDENCY_CYCLE = "DF004"
    HASH_FAILED = "DF005"
    BUILD_FAILED = "DF006"
    DEPLOY_FAILED = "DF007"
    PURGE_FAILED = "DF008"
    RESOLUTION_FAILED = "DF009"
    OPERATION_FAILED = "DF010"
    STATE_WRITE_FAILED = "DF011"


# Environment variables
ENV_HOME = "DEVFLOW_HOME"
ENV_LOG_LEVEL = "DEVFLOW_LOG_LEVEL"
ENV_MAX_WORKERS = "DEVFLOW_MAX_WORKERS"
ENV_PROJECT_ROOT = "DEVFLOW_PROJECT_ROOT"
ENV_NAMESPACE = "DEVFLOW_NAMESPACE"
ENV_PROFILE = "DEVFLOW_PROFILE"
ENV_IMAGE = "IMAGE"
ENV_TAG = "TAG"

# Validation patterns
VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")

# Display constants
EMOJI_SUCCESS = "✓"
EMOJI_ERROR = "✗"
EMOJI_WARNING = "⚠"
EMOJI_SKIP = "↷"

# Messages templates
MSG_DEPENDENCY_SKIPPED = "Skipping {operation} of dependency {name}: {reason}"
MSG_DEPENDENCY_DONE = f"{EMOJI_SUCCESS} {{operation}} of dependency {{name}} finished"
MSG_DEPENDENCY_FAILED = f"{EMOJI_ERROR} {{operation}} of dependency {{name}} failed: {{error}}"
