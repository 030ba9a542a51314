"""
Error types raised by the conversion pipeline.

Every error is terminal for the current conversion; nothing is retried.
Each class also derives from the built-in exception callers would
naturally catch (KeyError for lookups, ValueError for bad data, OSError
for persistence).
"""

from typing import Optional, Union


class SkeletonVoxError(Exception):
    """Base class for all converter errors."""


class JointNotFound(SkeletonVoxError, KeyError):
    """The requested root joint does not exist in the source hierarchy."""

    def __init__(self, identifier: Union[str, int], source: Optional[str] = None):
        self.identifier = identifier
        self.source = source
        where = f" in {source}" if source else ""
        super().__init__(f"Joint not found{where}: {identifier!r}")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0]


class MalformedHierarchy(SkeletonVoxError, ValueError):
    """A joint's name or transform cannot be resolved."""

    def __init__(self, joint: Union[str, int, None], reason: str):
        self.joint = joint
        self.reason = reason
        super().__init__(f"Malformed hierarchy at joint {joint!r}: {reason}")


class EmptyInput(SkeletonVoxError, ValueError):
    """
    No bone boxes were handed to the scene builder.

    A scene without geometry is rejected instead of emitting an empty
    group, so that a wrong root joint or a leaf-only hierarchy surfaces
    immediately.
    """

    def __init__(self, message: str = "Cannot build a scene from zero bone boxes"):
        super().__init__(message)


class SerializationFailure(SkeletonVoxError, OSError):
    """The finished buffer could not be written to its destination."""

    def __init__(self, path, cause: OSError):
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to write {path}: {cause}")
