from __future__ import annotations

from typing import Any, Sequence

import numpy as np

# Quaternions are stored as (w, x, y, z). Every function below that takes raw
# sequences only uses +, -, * and item indexing, so the same code runs on numpy
# scalars and on JAX tracers.


def unit_quaternion_rotate_point(q: Sequence[Any], p: Sequence[Any]) -> tuple[Any, Any, Any]:
    """
    Rotate `p` by the unit quaternion `q`.

    `q` is not renormalized: a non-unit quaternion also scales the result.
    """
    t2 = q[0] * q[1]
    t3 = q[0] * q[2]
    t4 = q[0] * q[3]
    t5 = -q[1] * q[1]
    t6 = q[1] * q[2]
    t7 = q[1] * q[3]
    t8 = -q[2] * q[2]
    t9 = q[2] * q[3]
    t1 = -q[3] * q[3]
    x = 2.0 * ((t8 + t1) * p[0] + (t6 - t4) * p[1] + (t3 + t7) * p[2]) + p[0]
    y = 2.0 * ((t4 + t6) * p[0] + (t5 + t1) * p[1] + (t9 - t2) * p[2]) + p[1]
    z = 2.0 * ((t7 - t3) * p[0] + (t2 + t9) * p[1] + (t5 + t8) * p[2]) + p[2]
    return x, y, z


def quaternion_product(a: Sequence[Any], b: Sequence[Any]) -> tuple[Any, Any, Any, Any]:
    """Hamilton product a*b: rotating by the result applies b first, then a."""
    return (
        a[0] * b[0] - a[1] * b[1] - a[2] * b[2] - a[3] * b[3],
        a[0] * b[1] + a[1] * b[0] + a[2] * b[3] - a[3] * b[2],
        a[0] * b[2] - a[1] * b[3] + a[2] * b[0] + a[3] * b[1],
        a[0] * b[3] + a[1] * b[2] - a[2] * b[1] + a[3] * b[0],
    )


def quaternion_conjugate(q: Sequence[Any]) -> tuple[Any, Any, Any, Any]:
    return q[0], -q[1], -q[2], -q[3]


def quaternion_to_rotation_matrix(q: Sequence[Any]) -> tuple[tuple[Any, Any, Any], ...]:
    """
    Row-major 3x3 rotation matrix of `q`, as a tuple of rows.

    The matrix is divided by |q|^2, so it is orthonormal for any non-zero `q`.
    """
    aa = q[0] * q[0]
    ab = q[0] * q[1]
    ac = q[0] * q[2]
    ad = q[0] * q[3]
    bb = q[1] * q[1]
    bc = q[1] * q[2]
    bd = q[1] * q[3]
    cc = q[2] * q[2]
    cd = q[2] * q[3]
    dd = q[3] * q[3]
    s = 1.0 / (aa + bb + cc + dd)
    return (
        ((aa + bb - cc - dd) * s, 2.0 * (bc - ad) * s, 2.0 * (ac + bd) * s),
        (2.0 * (ad + bc) * s, (aa - bb + cc - dd) * s, 2.0 * (cd - ab) * s),
        (2.0 * (bd - ac) * s, 2.0 * (ab + cd) * s, (aa - bb - cc + dd) * s),
    )


def compose_poses(
    qa: Sequence[Any], ta: Sequence[Any], qb: Sequence[Any], tb: Sequence[Any]
) -> tuple[tuple[Any, Any, Any, Any], tuple[Any, Any, Any]]:
    """
    Chain two rigid transforms x -> R_a x + t_a -> R_b (R_a x + t_a) + t_b.

    Returns (q_b * q_a, R_b t_a + t_b).
    """
    q = quaternion_product(qb, qa)
    r = unit_quaternion_rotate_point(qb, ta)
    return q, (r[0] + tb[0], r[1] + tb[1], r[2] + tb[2])


def invert_pose(q: Sequence[Any], t: Sequence[Any]) -> tuple[tuple[Any, Any, Any, Any], tuple[Any, Any, Any]]:
    q_inv = quaternion_conjugate(q)
    r = unit_quaternion_rotate_point(q_inv, t)
    return q_inv, (-r[0], -r[1], -r[2])


def quaternion_from_rotvec(rvec: np.ndarray) -> np.ndarray:
    """Axis-angle vector (3,) -> unit quaternion (w, x, y, z)."""
    from scipy.spatial.transform import Rotation as R  # type: ignore

    xyzw = R.from_rotvec(np.asarray(rvec, dtype=np.float64).reshape(3)).as_quat()
    return np.array([xyzw[3], xyzw[0], xyzw[1], xyzw[2]], dtype=np.float64)


def quaternion_to_rotvec(q: np.ndarray) -> np.ndarray:
    from scipy.spatial.transform import Rotation as R  # type: ignore

    q = np.asarray(q, dtype=np.float64).reshape(4)
    return R.from_quat([q[1], q[2], q[3], q[0]]).as_rotvec()


def quaternion_from_matrix(Rm: np.ndarray) -> np.ndarray:
    """
    Rotation matrix (3,3) -> unit quaternion (w, x, y, z) with w >= 0.
    """
    from scipy.spatial.transform import Rotation as R  # type: ignore

    xyzw = R.from_matrix(np.asarray(Rm, dtype=np.float64).reshape(3, 3)).as_quat()
    q = np.array([xyzw[3], xyzw[0], xyzw[1], xyzw[2]], dtype=np.float64)
    if q[0] < 0:
        q = -q
    return q
