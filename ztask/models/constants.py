"""Constants for ztask.

This module centralizes the default values and limits used throughout the application.
"""


# Task defaults
DEFAULT_PRIORITY = 5
MIN_PRIORITY = 1
MAX_PRIORITY = 9
DEFAULT_CATEGORY = "quick"

# Ids are uuid4 values rendered as 32 lowercase hex characters
TASK_ID_LENGTH = 32
# Number of id characters shown by the renderers
ID_DISPLAY_LENGTH = 9

# Prefix resolution policy (overridable through ZTASK_MIN_PREFIX_LENGTH)
DEFAULT_MIN_PREFIX_LENGTH = 1
