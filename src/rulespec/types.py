from typing import Literal, Protocol, TypeVar

T_contra = TypeVar("T_contra", contravariant=True)

CombinatorOp = Literal["and", "or", "xor"]
SpecificationNodeType = Literal["leaf", CombinatorOp]
TraceOperator = Literal[SpecificationNodeType, "SKIP"]


class SpecFn(Protocol[T_contra]):
    """
    A callable that takes a candidate and returns a boolean verdict.
    """

    def __call__(self, candidate: T_contra, /) -> bool:
        """
        Decide whether the candidate satisfies the rule.

        Args:
            candidate: The value under evaluation.

        Examples:
            >>> class Order:
            ...     total: float
            ...     ...
            >>> def is_large_order(order: Order) -> bool:
            ...     return order.total >= 1000
            >>> is_large_order.__name__
            'is_large_order'

        """

        ...
