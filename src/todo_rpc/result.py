"""
Explicit success/failure values returned across the handler/dispatcher seam.

Handlers never raise for expected failures (bad params, missing items); they
return ``Err``. Only genuine faults propagate as exceptions.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E


Result = Union[Ok[T], Err[E]]
