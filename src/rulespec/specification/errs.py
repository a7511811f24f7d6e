from __future__ import annotations

from collections.abc import Sequence


class SpecificationError(Exception):
    """Base Specification exception."""

    ...


class NotASpecificationError(SpecificationError, TypeError):
    """
    Raised when a value that is not a Specification is attached to a combinator.
    """

    def __init__(self, obj: object):
        self.obj = obj
        super().__init__(f"Expected a Specification, got {type(obj).__name__}: {obj!r}")


class SpecificationCycleError(SpecificationError):
    """
    Raised when attaching a child would make a combinator its own descendant.
    """

    def __init__(self, ring: Sequence[str]):
        """
        Args:
            ring: node reprs on the path from the combinator back to itself.
        """
        self.ring = tuple(ring)
        if len(self.ring) <= 1:
            msg = f"Cycle detected: {self.ring[0]} -> {self.ring[0]}"
        else:
            msg = "Cycle detected: " + " -> ".join(self.ring)
        super().__init__(msg)
