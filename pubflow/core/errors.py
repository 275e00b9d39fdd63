"""Process exit codes.

Each publish failure maps to one of these codes so that wrapper scripts can
tell a bad invocation from a repository that needs fixing.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    These values are used as process exit codes and should remain stable:
    - 0: Success
    - 1: User error (bad arguments, invalid configuration)
    - 2: Repository state error (wrong branch, uncommitted or unexpected changes)
    - 3: Command error (an external command failed)
    - 4: Network error (GitHub workflow or API failures)
    - 5: Internal error (inconsistent persisted state)
    """

    OK = 0
    USER_ERROR = 1
    STATE_ERROR = 2
    COMMAND_ERROR = 3
    NETWORK_ERROR = 4
    INTERNAL_ERROR = 5

    def __str__(self) -> str:
        """Return human-readable name."""
        return self.name.lower().replace("_", " ")
