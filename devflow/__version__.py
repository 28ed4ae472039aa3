"""Version information for devflow package"""

__version__ = "0.3.0"
__version_info__ = (0, 3, 0)
__author__ = "devflow contributors"
__license__ = "MIT"

# Version details
VERSION_MAJOR = 0
VERSION_MINOR = 3
VERSION_PATCH = 0
VERSION_SUFFIX = ""  # For pre-release versions like "alpha", "beta", "rc1"

# Full version string
if VERSION_SUFFIX:
    VERSION_STRING = f"{VERSION_MAJOR}.{VERSION_MINOR}.{VERSION_PATCH}-{VERSION_SUFFIX}"
else:
    VERSION_STRING = f"{VERSION_MAJOR}.{VERSION_MINOR}.{VERSION_PATCH}"

assert __version__ == VERSION_STRING, "Version mismatch between __version__ and VERSION_STRING"
