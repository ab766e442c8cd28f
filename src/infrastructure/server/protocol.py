"""Protocol for servers that can be stopped gracefully."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class Drainable(Protocol):
    """Protocol for components that stop accepting work and finish in-flight work."""

    async def drain(self) -> None:
        """Stop accepting new work and wait until in-flight work completes."""
        ...
