from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, Protocol, TypeVar

if TYPE_CHECKING:
    from rulespec.specification import Specification
    from rulespec.types import TraceOperator

T_contra = TypeVar("T_contra", contravariant=True)


class TraceStyle(Protocol):
    """
    Protocol for trace style rendering.
    """

    def render(self, trace: Trace, level: int = 0) -> str:
        """
        Render the trace object into a string representation with a specified indentation level.

        Returns:
            A string representation of the trace object with the specified indentation level.
        """
        ...


class DefaultTraceStyle(TraceStyle):
    """
    Indented tree, one node per line.

    Examples:
        ```
        PASS and (0.004ms)
          PASS leaf: is adult
          PASS or [1 skipped] (0.001ms)
            PASS leaf: is active
        ```
    """

    indent: str = "  "

    def render(self, trace: Trace, level: int = 0) -> str:  # noqa: D102
        lines: list[str] = []
        stack = [(trace, level)]

        while stack:
            node, depth = stack.pop()
            lines.append(self.indent * depth + self._line(node))
            stack.extend((child, depth + 1) for child in reversed(node.children))

        return "\n".join(lines)

    @staticmethod
    def _line(trace: Trace) -> str:
        verdict = "PASS" if trace.success else "FAIL"
        parts = [verdict, trace.operator]
        if trace.desc:
            parts[-1] += ":"
            parts.append(trace.desc)
        if trace.skipped:
            parts.append(f"[{trace.skipped} skipped]")
        if trace.error is not None:
            parts.append(f"<{type(trace.error).__name__}: {trace.error}>")
        if trace.operator not in ("leaf", "SKIP"):
            parts.append(f"({trace.elapsed * 1000:.3f}ms)")
        return " ".join(parts)


@dataclass(kw_only=True, slots=True, frozen=True)
class Trace(Generic[T_contra]):
    """
    Record of one specification evaluation, mirroring the shape of the evaluated tree.

    Only children that were actually evaluated appear in ``children``; the ones passed over by
    short-circuiting are counted in ``skipped``.
    """

    success: bool
    operator: TraceOperator
    children: tuple[Trace, ...] = field(default_factory=tuple)
    skipped: int = field(default=0)

    node: Specification[T_contra] | None = field(default=None, repr=False, compare=False)
    desc: str | None = field(default=None)
    error: Exception | None = field(default=None, repr=False)
    elapsed: float = field(default=0.0, compare=False)

    _style: None | TraceStyle = field(hash=False, default=None, repr=False, compare=False, init=False)

    @property
    def style(self) -> TraceStyle:
        """
        Control the print style of Trace, for use with repr.
        """

        return self._style or DefaultTraceStyle()

    @style.setter
    def style(self, style: TraceStyle):
        object.__setattr__(self, "_style", style)

    def render(self, level: int = 0) -> str:
        """
        Render this trace with its current style.
        """
        return self.style.render(self, level)

    def __bool__(self) -> bool:
        return self.success

    def __repr__(self) -> str:
        return self.render()
