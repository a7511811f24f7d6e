from __future__ import annotations

import logging
import sys
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from time import perf_counter
from typing import (
    TYPE_CHECKING,
    Any,
    ClassVar,
    Generic,
    Literal,
    TypeGuard,
    TypeVar,
    final,
    overload,
)

from rulespec.specification.errs import NotASpecificationError, SpecificationCycleError
from rulespec.trace.trace import Trace

if TYPE_CHECKING:
    from rulespec.types import CombinatorOp, SpecFn, SpecificationNodeType

if sys.version_info >= (3, 11):
    from typing import Self
else:
    from typing_extensions import Self

T_contra = TypeVar("T_contra", contravariant=True)

logger = logging.getLogger(__name__)


class Specification(Generic[T_contra], ABC):
    """
    Base class for every node in a specification tree.

    Subclass it and implement `is_satisfied_by` to write a business rule, or wrap a plain
    function with [rulespec.specification.predicate][].

    Examples:
        ```python
        class IsAdult(Specification[User]):
            def is_satisfied_by(self, candidate: User) -> bool:
                return candidate.age >= 18


        rule = IsAdult() & predicate(lambda user: user.active)
        assert rule(User(age=30, active=True))
        ```
    """

    node_type: ClassVar[SpecificationNodeType] = "leaf"
    desc: str | None = None

    @abstractmethod
    def is_satisfied_by(self, candidate: T_contra) -> bool:
        """
        Decide whether the candidate satisfies this specification.
        """
        ...

    @overload
    def __call__(
        self,
        candidate: T_contra,
        /,
        *,
        trace: Literal[True],
        short_circuit: bool = True,
    ) -> Trace[T_contra]: ...

    @overload
    def __call__(
        self,
        candidate: T_contra,
        /,
        *,
        trace: Literal[False] = False,
        short_circuit: bool = True,
    ) -> bool: ...

    def __call__(
        self,
        candidate: T_contra,
        /,
        *,
        trace: bool = False,
        short_circuit: bool = True,
    ) -> bool | Trace[T_contra]:
        """
        Evaluate the candidate.

        Args:
            candidate: The value under evaluation.
            trace: Return a [rulespec.trace.Trace][] of the evaluation instead of a bare boolean.
            short_circuit: Only used with ``trace``. When False every child of every combinator is
                evaluated and recorded; the verdict does not change.
        """
        if trace:
            return self.explain(candidate, short_circuit=short_circuit)
        return self.is_satisfied_by(candidate)

    def explain(self, candidate: T_contra, *, short_circuit: bool = True) -> Trace[T_contra]:  # noqa: ARG002
        """
        Evaluate the candidate and record how the verdict was reached.
        """
        start = perf_counter()
        success = bool(self.is_satisfied_by(candidate))
        return Trace(
            success=success,
            operator=self.node_type,
            node=self,
            desc=self.desc,
            elapsed=perf_counter() - start,
        )

    def walk(self) -> Iterator[Specification[T_contra]]:
        """
        Iterate over this node and all of its descendants, depth first, children in insertion order.
        """
        stack: list[Specification[T_contra]] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node._child_nodes()))

    def _child_nodes(self) -> Sequence[Specification[T_contra]]:
        return ()

    def __and__(self, other: Specification[T_contra]) -> AndSpecification[T_contra]:
        """
        Combine this specification with another using logical AND.
        """
        if not is_specification(other):
            return NotImplemented
        return AndSpecification(self, other)

    def __or__(self, other: Specification[T_contra]) -> OrSpecification[T_contra]:
        if not is_specification(other):
            return NotImplemented
        return OrSpecification(self, other)

    def __xor__(self, other: Specification[T_contra]) -> XorSpecification[T_contra]:
        if not is_specification(other):
            return NotImplemented
        return XorSpecification(self, other)


def is_specification(obj: Any) -> TypeGuard[Specification]:  # noqa: ANN401
    """
    Check if the given object is a valid specification.
    """

    return isinstance(obj, Specification)


def predicate(
    fn: SpecFn[T_contra],
    *,
    desc: str | None = None,
    fail_skip: tuple[type[Exception], ...] | None = None,
) -> Specification[T_contra]:
    """
    Create a leaf Specification from the function.

    Args:
        fn: Rule callable, ``fn(candidate) -> bool``.
        desc: Human readable description. Defaults to the docstring of ``fn``.
        fail_skip: Exception types that resolve the leaf to False instead of propagating.
    """

    return _SpecificationLeaf(fn=fn, desc=desc or fn.__doc__, fail_skip=fail_skip or ())


@dataclass(frozen=True, kw_only=True, slots=True, eq=False)
@final
class _SpecificationLeaf(Specification[T_contra]):
    """
    Leaf node wrapping a rule callable.
    """

    fn: SpecFn[T_contra]
    desc: str | None = field(default=None)
    fail_skip: tuple[type[Exception], ...] = field(default=())

    @property
    def name(self) -> str:  # noqa: D102
        return getattr(self.fn, "__name__", repr(self.fn))

    def is_satisfied_by(self, candidate: T_contra) -> bool:  # noqa: D102
        try:
            return bool(self.fn(candidate))
        except self.fail_skip as e:
            logger.debug("%r raised %r, resolved to False", self, e)
            return False

    def explain(self, candidate: T_contra, *, short_circuit: bool = True) -> Trace[T_contra]:  # noqa: ARG002, D102
        start = perf_counter()
        try:
            success = bool(self.fn(candidate))
        except self.fail_skip as e:
            logger.debug("%r raised %r, resolved to False", self, e)
            return Trace(
                success=False,
                operator="SKIP",
                node=self,
                desc=f"Skipped: {self.desc or self.name} (Default: False)",
                error=e,
                elapsed=perf_counter() - start,
            )
        return Trace(
            success=success,
            operator="leaf",
            node=self,
            desc=self.desc or self.name,
            elapsed=perf_counter() - start,
        )

    def __repr__(self) -> str:
        return f"predicate({self.name})"


class CompositeSpecification(Generic[T_contra]):
    """
    Ordered, append-only collection of child specifications.

    Children can be attached but never removed, replaced or reordered.
    """

    def __init__(self):
        self._children: list[Specification[T_contra]] = []

    def add_child(self, child: Specification[T_contra]) -> None:
        """
        Append a child after the existing ones.
        """
        self._children.append(child)

    @property
    def children(self) -> tuple[Specification[T_contra], ...]:
        """
        The children in insertion order.
        """
        return tuple(self._children)

    def __len__(self) -> int:
        return len(self._children)

    def __iter__(self) -> Iterator[Specification[T_contra]]:
        return iter(self._children)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._children!r})"


class _CombinatorSpecification(Specification[T_contra], ABC):
    """
    Specification folding the verdicts of the children held by its composite.

    With no children every combinator evaluates to False. Evaluation walks nested combinators
    with an explicit stack, so tree depth is not bounded by the interpreter's recursion limit.
    """

    node_type: ClassVar[CombinatorOp]

    def __init__(self, *children: Specification[T_contra], desc: str | None = None):
        self.desc = desc
        self._composite: CompositeSpecification[T_contra] = CompositeSpecification()
        for child in children:
            self.add_child(child)

    @staticmethod
    @abstractmethod
    def _settle(outcome: bool, satisfied: int) -> bool | None:  # noqa: FBT001
        """
        Decide early from the latest child verdict.

        Args:
            outcome: Verdict of the child just evaluated.
            satisfied: Satisfied children so far, this one included.

        Returns:
            The final verdict when the remaining children cannot change it, otherwise None.
        """
        ...

    @staticmethod
    @abstractmethod
    def _conclude(satisfied: int, total: int) -> bool:
        """
        Verdict once every child has been evaluated.
        """
        ...

    def add_child(self, child: Specification[T_contra]) -> Self:
        """
        Attach a child after the existing ones.

        Returns:
            The combinator itself, so calls can be chained.

        Raises:
            NotASpecificationError: If the child is not a Specification.
            SpecificationCycleError: If the combinator is the child or one of its descendants.
        """
        if not is_specification(child):
            raise NotASpecificationError(child)
        if ring := self._find_ring(child):
            raise SpecificationCycleError([repr(node) for node in ring])

        self._composite.add_child(child)
        logger.debug("Attached %r to %r", child, self)
        return self

    def _find_ring(self, child: Specification[T_contra]) -> tuple[Specification[T_contra], ...] | None:
        # Shared subtrees are visited once; the path is rebuilt from parent links only on a hit.
        parents: dict[int, Specification[T_contra] | None] = {id(child): None}
        stack = [child]
        while stack:
            node = stack.pop()
            if node is self:
                path: list[Specification[T_contra]] = []
                current: Specification[T_contra] | None = node
                while current is not None:
                    path.append(current)
                    current = parents[id(current)]
                return (self, *reversed(path))
            for grandchild in node._child_nodes():
                if id(grandchild) not in parents:
                    parents[id(grandchild)] = node
                    stack.append(grandchild)
        return None

    @property
    def children(self) -> tuple[Specification[T_contra], ...]:
        """
        The children in insertion order.
        """
        return self._composite.children

    def _child_nodes(self) -> Sequence[Specification[T_contra]]:
        return self._composite.children

    def is_satisfied_by(self, candidate: T_contra) -> bool:  # noqa: D102
        return _evaluate(self, candidate, trace=False, short_circuit=True)

    def explain(self, candidate: T_contra, *, short_circuit: bool = True) -> Trace[T_contra]:  # noqa: D102
        return _evaluate(self, candidate, trace=True, short_circuit=short_circuit)

    def __repr__(self) -> str:
        if self.desc:
            return f"{type(self).__name__}({self.desc!r}, children={len(self._composite)})"
        return f"{type(self).__name__}(children={len(self._composite)})"


class _EvalFrame(Generic[T_contra]):
    """
    Evaluation state of one combinator on the explicit stack.
    """

    __slots__ = ("children", "index", "node", "satisfied", "settled", "start", "traces")

    def __init__(self, node: _CombinatorSpecification[T_contra]):
        self.node = node
        self.children = node.children
        self.index = 0
        self.satisfied = 0
        self.settled: bool | None = None
        self.traces: list[Trace[T_contra]] = []
        self.start = perf_counter()

    def pending(self) -> bool:
        return self.settled is None and self.index < len(self.children)

    def accept(self, outcome: bool | Trace[T_contra], *, short_circuit: bool) -> None:  # noqa: FBT001
        if isinstance(outcome, Trace):
            self.traces.append(outcome)
            success = outcome.success
        else:
            success = outcome
        if success:
            self.satisfied += 1
        if short_circuit:
            self.settled = self.node._settle(success, self.satisfied)

    def finish(self, *, trace: bool) -> bool | Trace[T_contra]:
        if not self.children:
            logger.debug("%r has no children, evaluating to False", self.node)
            success = False
        elif self.settled is not None:
            success = self.settled
        else:
            success = self.node._conclude(self.satisfied, len(self.children))

        if not trace:
            return success
        return Trace(
            success=success,
            operator=self.node.node_type,
            children=tuple(self.traces),
            skipped=len(self.children) - self.index,
            node=self.node,
            desc=self.node.desc,
            elapsed=perf_counter() - self.start,
        )


@overload
def _evaluate(
    root: _CombinatorSpecification[T_contra],
    candidate: T_contra,
    *,
    trace: Literal[True],
    short_circuit: bool,
) -> Trace[T_contra]: ...


@overload
def _evaluate(
    root: _CombinatorSpecification[T_contra],
    candidate: T_contra,
    *,
    trace: Literal[False],
    short_circuit: bool,
) -> bool: ...


def _evaluate(
    root: _CombinatorSpecification[T_contra],
    candidate: T_contra,
    *,
    trace: bool,
    short_circuit: bool,
) -> bool | Trace[T_contra]:
    """
    Post-order evaluation of a combinator tree with an explicit stack.

    Nested combinators get their own frame; any other node is evaluated in place.
    """
    stack = [_EvalFrame(root)]

    while stack:
        frame = stack[-1]
        if frame.pending():
            child = frame.children[frame.index]
            frame.index += 1
            if isinstance(child, _CombinatorSpecification):
                stack.append(_EvalFrame(child))
            elif trace:
                frame.accept(child.explain(candidate, short_circuit=short_circuit), short_circuit=short_circuit)
            else:
                frame.accept(child.is_satisfied_by(candidate), short_circuit=short_circuit)
            continue

        stack.pop()
        outcome = frame.finish(trace=trace)
        if not stack:
            return outcome
        stack[-1].accept(outcome, short_circuit=short_circuit)

    msg = "unreachable: the root frame always returns"
    raise AssertionError(msg)


@final
class AndSpecification(_CombinatorSpecification[T_contra]):
    """
    Satisfied when every child is satisfied.

    Children are evaluated in insertion order and evaluation stops at the first unsatisfied one.
    An AND without children is not satisfiable: it evaluates to False rather than to the vacuous True.
    """

    node_type: ClassVar[Literal["and"]] = "and"

    @staticmethod
    def _settle(outcome: bool, satisfied: int) -> bool | None:  # noqa: ARG004, FBT001
        return None if outcome else False

    @staticmethod
    def _conclude(satisfied: int, total: int) -> bool:
        return satisfied == total


@final
class OrSpecification(_CombinatorSpecification[T_contra]):
    """
    Satisfied when at least one child is satisfied.

    Children are evaluated in insertion order and evaluation stops at the first satisfied one.
    """

    node_type: ClassVar[Literal["or"]] = "or"

    @staticmethod
    def _settle(outcome: bool, satisfied: int) -> bool | None:  # noqa: ARG004, FBT001
        return True if outcome else None

    @staticmethod
    def _conclude(satisfied: int, total: int) -> bool:  # noqa: ARG004
        return satisfied > 0


@final
class XorSpecification(_CombinatorSpecification[T_contra]):
    """
    Satisfied when exactly one child is satisfied.

    This is "exactly one of N", not a chain of pairwise XORs: three satisfied children give False.
    Evaluation stops once a second satisfied child is seen. The verdict depends only on how many
    children are satisfied, never on their positions.
    """

    node_type: ClassVar[Literal["xor"]] = "xor"

    @staticmethod
    def _settle(outcome: bool, satisfied: int) -> bool | None:  # noqa: ARG004, FBT001
        return False if satisfied > 1 else None

    @staticmethod
    def _conclude(satisfied: int, total: int) -> bool:  # noqa: ARG004
        return satisfied == 1


def all_of(specs: Iterable[Specification[T_contra]], *, desc: str | None = None) -> AndSpecification[T_contra]:
    """
    AND together the specifications, in iteration order.
    """
    return AndSpecification(*specs, desc=desc)


def any_of(specs: Iterable[Specification[T_contra]], *, desc: str | None = None) -> OrSpecification[T_contra]:
    """
    OR together the specifications, in iteration order.
    """
    return OrSpecification(*specs, desc=desc)


def one_of(specs: Iterable[Specification[T_contra]], *, desc: str | None = None) -> XorSpecification[T_contra]:
    """
    Require exactly one of the specifications to be satisfied.
    """
    return XorSpecification(*specs, desc=desc)
