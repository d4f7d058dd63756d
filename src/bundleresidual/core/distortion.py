from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np


def brown_distort(x: Any, y: Any, k1: Any, k2: Any, p1: Any, p2: Any, k3: Any = 0.0) -> tuple[Any, Any]:
    """
    Brown-Conrady distortion on normalized camera coordinates (x=X/Z, y=Y/Z).

    Arithmetic only: coefficients may be plain floats or differentiable values.
    """
    r2 = x * x + y * y
    radial = 1.0 + k1 * r2 + k2 * r2 * r2 + k3 * r2 * r2 * r2
    xy = x * y
    x_tan = 2.0 * p1 * xy + p2 * (r2 + 2.0 * x * x)
    y_tan = p1 * (r2 + 2.0 * y * y) + 2.0 * p2 * xy
    return x * radial + x_tan, y * radial + y_tan


@dataclass(frozen=True)
class BrownDistortion:
    """
    Brown-Conrady distortion with fixed coefficients.

    Parameters follow common OpenCV naming:
      radial: k1, k2, k3
      tangential: p1, p2
    """

    k1: float = 0.0
    k2: float = 0.0
    p1: float = 0.0
    p2: float = 0.0
    k3: float = 0.0

    def distort(self, x: np.ndarray, y: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        return brown_distort(x, y, self.k1, self.k2, self.p1, self.p2, self.k3)

    def undistort(self, xd: np.ndarray, yd: np.ndarray, iterations: int = 100) -> tuple[np.ndarray, np.ndarray]:
        """
        Fixed-point inverse of distort() for small/moderate distortion.
        """
        xd = np.asarray(xd, dtype=np.float64)
        yd = np.asarray(yd, dtype=np.float64)
        x = xd.copy()
        y = yd.copy()
        for _ in range(int(iterations)):
            x_est, y_est = self.distort(x, y)
            x += xd - x_est
            y += yd - y_est
        return x, y
