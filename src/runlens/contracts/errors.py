# src/runlens/contracts/errors.py
"""Runlens exceptions.

Structural problems in the registry are diagnostics, not exceptions. These
classes cover the few places where a caller has to be told no: a durable
body reaching for a primitive the recorder does not model, and hot swap
requests against tasks that do not exist.
"""


class RunlensError(Exception):
    """Base class for runlens errors."""


class UnsupportedDurablePrimitiveError(RunlensError):
    """Raised inside a durable body that calls a primitive the recorder cannot model.

    Attributes:
        primitive: Name of the attribute the body tried to use
    """

    def __init__(self, primitive: str) -> None:
        self.primitive = primitive
        super().__init__(f"Unsupported durable primitive '{primitive}'")


class SwapError(RunlensError):
    """Raised when a hot swap targets an unknown task.

    Attributes:
        task_id: Id the swap was requested for
        message: Human-readable error description
    """

    def __init__(self, task_id: str, message: str) -> None:
        self.task_id = task_id
        self.message = message
        super().__init__(f"Cannot swap task '{task_id}': {message}")
