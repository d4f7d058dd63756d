from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

import numpy as np

from bundleresidual import autodiff


class ResidualValidationError(ValueError):
    pass


class ParameterBlockError(ResidualValidationError):
    pass


def _require(cond: bool, msg: str, exc: type[ValueError] = ResidualValidationError) -> None:
    if not cond:
        raise exc(msg)


def _constant_vector(x: Any, size: int, name: str) -> tuple[np.float64, ...]:
    """
    Copy a constant operand into an immutable tuple of float64 scalars.

    numpy scalars keep a division by zero inside the formulas at inf/nan even
    when the variable blocks are plain Python floats.
    """
    arr = np.asarray(x, dtype=np.float64).reshape(-1)
    _require(arr.size == size, f"{name} must have {size} values, got {arr.size}")
    return tuple(np.float64(v) for v in arr)


@dataclass(frozen=True)
class CostEvaluation:
    residuals: np.ndarray  # (num_residuals,)
    jacobians: list[np.ndarray] | None  # one (num_residuals, block_size) per block
    success: bool = True


@dataclass(frozen=True)
class CostFunction:
    """
    A residual bound to its constant data.

    Subclasses implement `__call__(*blocks)` as a formula over generic
    arithmetic returning `num_residuals` scalars, and declare the sizes of the
    parameter blocks it expects, in order. Called directly, the blocks must be
    numpy or JAX values; `residuals()` is the plain-number entry point and
    accepts any sequence. Singular configurations are not guarded: they show
    up as inf/nan in the residual and `success` stays True.
    """

    num_residuals: ClassVar[int] = 0

    @property
    def parameter_block_sizes(self) -> tuple[int, ...]:
        raise NotImplementedError

    def __call__(self, *blocks: Any) -> tuple[Any, ...]:
        raise NotImplementedError

    def _check_blocks(self, blocks: tuple[Any, ...]) -> tuple[np.ndarray, ...]:
        sizes = self.parameter_block_sizes
        _require(
            len(blocks) == len(sizes),
            f"{type(self).__name__} expects {len(sizes)} parameter blocks, got {len(blocks)}",
            ParameterBlockError,
        )
        out = []
        for i, (b, n) in enumerate(zip(blocks, sizes)):
            arr = np.asarray(b, dtype=np.float64).reshape(-1)
            _require(arr.size == n, f"parameter block {i} must have size {n}, got {arr.size}", ParameterBlockError)
            out.append(arr)
        return tuple(out)

    def residuals(self, *blocks: Any) -> np.ndarray:
        """Plain float64 evaluation."""
        checked = self._check_blocks(blocks)
        return np.array([float(r) for r in self(*checked)], dtype=np.float64)

    def evaluate(self, *blocks: Any, jacobians: bool = True) -> CostEvaluation:
        checked = self._check_blocks(blocks)
        if not jacobians:
            return CostEvaluation(residuals=self.residuals(*checked), jacobians=None)
        values, jacs = autodiff.jacobians(self, checked)
        return CostEvaluation(residuals=values, jacobians=jacs)
