"""Wall-clock implementation of the Clock protocol."""

from typing import final

import pendulum


@final
class SystemClock:
    """Clock backed by the system time in UTC."""

    __slots__ = ()

    def now(self) -> pendulum.DateTime:
        """Return the current UTC time."""
        return pendulum.now("UTC")
