from .specification import (
    AndSpecification,
    CompositeSpecification,
    NotASpecificationError,
    OrSpecification,
    Specification,
    SpecificationCycleError,
    SpecificationError,
    XorSpecification,
    all_of,
    any_of,
    is_specification,
    one_of,
    predicate,
)
from .trace import Trace

__all__ = [
    "AndSpecification",
    "CompositeSpecification",
    "NotASpecificationError",
    "OrSpecification",
    "Specification",
    "SpecificationCycleError",
    "SpecificationError",
    "Trace",
    "XorSpecification",
    "all_of",
    "any_of",
    "is_specification",
    "one_of",
    "predicate",
]
