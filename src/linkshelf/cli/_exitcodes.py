"""Process exit codes used by the linkshelf CLI."""

USAGE_ERROR = 2
CLIENT_ERROR = 3
NOT_FOUND = 4
EXECUTION_FAILURE = 5
