from .errs import NotASpecificationError, SpecificationCycleError, SpecificationError
from .specification import (
    AndSpecification,
    CompositeSpecification,
    OrSpecification,
    Specification,
    XorSpecification,
    all_of,
    any_of,
    is_specification,
    one_of,
    predicate,
)

__all__ = [
    "AndSpecification",
    "CompositeSpecification",
    "NotASpecificationError",
    "OrSpecification",
    "Specification",
    "SpecificationCycleError",
    "SpecificationError",
    "XorSpecification",
    "all_of",
    "any_of",
    "is_specification",
    "one_of",
    "predicate",
]
