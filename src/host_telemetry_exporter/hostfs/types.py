"""Raw host data types.

Pydantic models representing what was read from the process table with
minimal processing. These models provide validation and type safety for
the values handed to collector modules.
"""

from pydantic import BaseModel


class RawProcessData(BaseModel):
    """Raw descriptor data for a single process.

    ``max_open_files`` is the soft ``RLIMIT_NOFILE`` limit and is None when
    the limit is unlimited. ``name`` is empty when it could not be read.
    """

    pid: str
    name: str = ""

    # Descriptor limit and current usage
    max_open_files: float | None = None
    open_files: int = 0
