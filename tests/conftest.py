"""
Shared fixtures for specification tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypedDict

import pytest

from rulespec import Specification, predicate

# ============================================================================
# Context Types
# ============================================================================


@dataclass
class User:
    """Dataclass context type."""

    age: int
    active: bool
    name: str = "Anonymous"


class OrderCtx(TypedDict):
    """TypedDict context type."""

    order_id: str
    total: float
    is_priority: bool


# ============================================================================
# Leaf Specifications
# ============================================================================


class TrueSpecification(Specification[Any]):
    """Satisfied by every candidate."""

    def is_satisfied_by(self, candidate: Any) -> bool:
        return True


class FalseSpecification(Specification[Any]):
    """Satisfied by no candidate."""

    def is_satisfied_by(self, candidate: Any) -> bool:
        return False


class CountingSpecification(Specification[Any]):
    """Returns a fixed verdict and counts how often it was asked."""

    def __init__(self, verdict: bool):
        self.verdict = verdict
        self.calls = 0

    def is_satisfied_by(self, candidate: Any) -> bool:
        self.calls += 1
        return self.verdict

    def __repr__(self) -> str:
        return f"Counting({self.verdict})"


def T() -> TrueSpecification:  # noqa: N802
    return TrueSpecification()


def F() -> FalseSpecification:  # noqa: N802
    return FalseSpecification()


def leaves(pattern: str) -> list[Specification[Any]]:
    """Build leaves from a pattern such as ``"TFT"``."""
    return [T() if flag == "T" else F() for flag in pattern]


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def candidate() -> object:
    """An opaque candidate; the constant leaves ignore it."""
    return object()


@pytest.fixture
def adult_user() -> User:
    """Provides an adult active user."""
    return User(age=25, active=True, name="Alice")


@pytest.fixture
def minor_user() -> User:
    """Provides a minor inactive user."""
    return User(age=16, active=False, name="Bob")


@pytest.fixture
def is_adult() -> Specification[User]:
    def is_adult(user: User) -> bool:
        """User is at least 18."""
        return user.age >= 18

    return predicate(is_adult)


@pytest.fixture
def is_active() -> Specification[User]:
    return predicate(lambda user: user.active, desc="User is active")


@pytest.fixture
def priority_order() -> OrderCtx:
    """Provides a priority order."""
    return {"order_id": "ORD-001", "total": 150.0, "is_priority": True}


@pytest.fixture
def regular_order() -> OrderCtx:
    """Provides a regular order."""
    return {"order_id": "ORD-002", "total": 50.0, "is_priority": False}
