"""Process exit codes.

The numeric values are part of the CLI contract (CI jobs branch on them) and
must remain stable.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for ``shipyard`` commands.

    - 0: Success (every leg and every distribution branch succeeded)
    - 1: User error (unknown target, bad tag)
    - 2: Environment error (invalid config, missing tool)
    - 3: Build error (no leg produced artifacts)
    - 4: Network error (release host unreachable)
    - 5: I/O error
    - 6: Partial failure (release went out, something needs a human)
    - 7: Gate conflict (draft/publish state does not allow the operation)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5
    PARTIAL_FAILURE = 6
    GATE_CONFLICT = 7

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
