"""
Residuals for bundle adjustment and two-view refinement.

Each residual is a frozen object holding its constant observations. Calling it
with numpy or JAX parameter blocks evaluates the residual formula;
`residuals()` converts any sequence to float64 first and `evaluate()` adds
autodiff Jacobians.
"""

from bundleresidual.residuals.base import CostEvaluation, CostFunction, ParameterBlockError, ResidualValidationError
from bundleresidual.residuals.epipolar import EpipolarResidual
from bundleresidual.residuals.reprojection import (
    FixedPoseReprojectionResidual,
    ReprojectionResidual,
    RigReprojectionResidual,
)

__all__ = [
    "CostEvaluation",
    "CostFunction",
    "ParameterBlockError",
    "ResidualValidationError",
    "ReprojectionResidual",
    "FixedPoseReprojectionResidual",
    "RigReprojectionResidual",
    "EpipolarResidual",
]
