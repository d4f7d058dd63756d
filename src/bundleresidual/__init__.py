from bundleresidual import config
from bundleresidual.core.camera_models import CameraModel, CameraModelError, camera_model_from_id, camera_model_from_name
from bundleresidual.residuals import (
    CostEvaluation,
    EpipolarResidual,
    FixedPoseReprojectionResidual,
    ReprojectionResidual,
    RigReprojectionResidual,
)

__all__ = [
    "config",
    "CameraModel",
    "CameraModelError",
    "camera_model_from_id",
    "camera_model_from_name",
    "CostEvaluation",
    "ReprojectionResidual",
    "FixedPoseReprojectionResidual",
    "RigReprojectionResidual",
    "EpipolarResidual",
]
