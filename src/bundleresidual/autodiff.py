"""
Forward-mode automatic differentiation of residual formulas with JAX.

Residual formulas return a tuple of scalars built from `+ - * /` on their
inputs. Here they are evaluated with JAX values so that the derivative of every
output with respect to every parameter block comes out of the same code that
produces the plain-number residual.
"""

from __future__ import annotations

from typing import Any, Callable, Sequence

import jax
import jax.numpy as jnp
import numpy as np

# Residuals are compared against numpy float64 results; JAX defaults to float32.
jax.config.update("jax_enable_x64", True)

ResidualFormula = Callable[..., Sequence[Any]]


def _as_jax_blocks(blocks: Sequence[Any]) -> tuple[jnp.ndarray, ...]:
    return tuple(jnp.asarray(np.asarray(b, dtype=np.float64).reshape(-1)) for b in blocks)


def _stacked(func: ResidualFormula) -> Callable[..., jnp.ndarray]:
    def f(*args: jnp.ndarray) -> jnp.ndarray:
        return jnp.stack([jnp.asarray(r, dtype=jnp.float64) for r in func(*args)])

    return f


def jacobians(func: ResidualFormula, blocks: Sequence[Any]) -> tuple[np.ndarray, list[np.ndarray]]:
    """
    Returns (residuals (M,), [J_k (M, n_k) for each block k]).
    """
    args = _as_jax_blocks(blocks)
    f = _stacked(func)
    values = f(*args)
    jacs = jax.jacfwd(f, argnums=tuple(range(len(args))))(*args)
    return np.asarray(values, dtype=np.float64), [np.asarray(j, dtype=np.float64) for j in jacs]


def jvp(
    func: ResidualFormula, blocks: Sequence[Any], tangents: Sequence[Any]
) -> tuple[np.ndarray, np.ndarray]:
    """
    Directional derivative: returns (residuals, d residuals / d blocks . tangents).
    """
    args = _as_jax_blocks(blocks)
    tans = _as_jax_blocks(tangents)
    if len(args) != len(tans):
        raise ValueError("blocks and tangents must have the same length")
    values, tangent_out = jax.jvp(_stacked(func), args, tans)
    return np.asarray(values, dtype=np.float64), np.asarray(tangent_out, dtype=np.float64)
