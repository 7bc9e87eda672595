# custom_types.py
"""
Type aliases shared across metalogpipe.

We generally follow the conventions:
- Annotate function input with `ArrayLike`
- Annotate function output with `Array`
"""
from __future__ import annotations
from typing import Literal, TypeAlias, TypeVar
from numpy.random import Generator as NumpyRNG

from numpy.typing import (
    NDArray as NumpyArray,
    ArrayLike as NumpyArrayLike
)

from numpy import (
    floating as NumpyFloating,
    number as NumpyNumber
)

Array = NumpyArray
ArrayLike: TypeAlias = NumpyArrayLike
Float: TypeAlias = NumpyFloating
Number: TypeAlias = NumpyNumber
PRNG: TypeAlias = NumpyRNG

T = TypeVar("T", bound=NumpyNumber)

# Basis orderings understood by metalogpipe.basis
Ordering: TypeAlias = Literal["centered", "keelin"]
