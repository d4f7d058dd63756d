from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from bundleresidual.core.rotation import quaternion_to_rotation_matrix
from bundleresidual.residuals.base import CostFunction, _constant_vector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EpipolarResidual(CostFunction):
    """
    Squared Sampson error of a normalized correspondence under E = [t]x R.

    The first camera sits at the origin with identity rotation. The second pose
    is (qvec, tvec) with tvec on the unit sphere. The residual does not depend
    on the scale of tvec, so tvec is over-parameterized as is and should be
    constrained to |tvec| = 1 by the optimizer.

    Blocks: qvec (4), tvec (3).
    """

    x1: tuple[float, float]
    x2: tuple[float, float]

    num_residuals = 1

    @classmethod
    def create(cls, x1: np.ndarray, x2: np.ndarray) -> EpipolarResidual:
        logger.debug("epipolar residual")
        return cls(x1=_constant_vector(x1, 2, "x1"), x2=_constant_vector(x2, 2, "x2"))

    @property
    def parameter_block_sizes(self) -> tuple[int, ...]:
        return (4, 3)

    def __call__(self, qvec, tvec):
        R = quaternion_to_rotation_matrix(qvec)

        # Cross-product matrix [t]x.
        zero = 0.0 * tvec[0]
        t_x = (
            (zero, -tvec[2], tvec[1]),
            (tvec[2], zero, -tvec[0]),
            (-tvec[1], tvec[0], zero),
        )

        E = tuple(tuple(sum(t_x[i][k] * R[k][j] for k in range(3)) for j in range(3)) for i in range(3))

        x1_h = (self.x1[0], self.x1[1], 1.0)
        x2_h = (self.x2[0], self.x2[1], 1.0)

        Ex1 = tuple(E[i][0] * x1_h[0] + E[i][1] * x1_h[1] + E[i][2] * x1_h[2] for i in range(3))
        Etx2 = tuple(E[0][j] * x2_h[0] + E[1][j] * x2_h[1] + E[2][j] * x2_h[2] for j in range(3))
        x2tEx1 = x2_h[0] * Ex1[0] + x2_h[1] * Ex1[1] + x2_h[2] * Ex1[2]

        denom = Ex1[0] * Ex1[0] + Ex1[1] * Ex1[1] + Etx2[0] * Etx2[0] + Etx2[1] * Etx2[1]
        return (x2tEx1 * x2tEx1 / denom,)
