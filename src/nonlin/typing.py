from typing import Any, Callable, Tuple, TypeAlias

from numpy.typing import ArrayLike, NDArray

# Residual and Jacobian callbacks take the iterate followed by the
# caller-defined context tuple, which is passed through untouched.
ResidualFunction: TypeAlias = Callable[..., ArrayLike]
JacobianFunction: TypeAlias = Callable[..., ArrayLike]
ScalarFunction: TypeAlias = Callable[..., float]

Context: TypeAlias = Tuple[Any, ...]

__all__ = [
    "ArrayLike",
    "NDArray",
    "ResidualFunction",
    "JacobianFunction",
    "ScalarFunction",
    "Context",
]
