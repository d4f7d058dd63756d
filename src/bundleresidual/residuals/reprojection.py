from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np

from bundleresidual.core.camera_models import CameraModel
from bundleresidual.core.rotation import compose_poses, unit_quaternion_rotate_point
from bundleresidual.residuals.base import CostFunction, _constant_vector

logger = logging.getLogger(__name__)


def _reprojection_error(
    camera_model: CameraModel,
    qvec: Sequence[Any],
    tvec: Sequence[Any],
    point3D: Sequence[Any],
    camera_params: Sequence[Any],
    point2D: tuple[float, float],
) -> tuple[Any, Any]:
    # Rotate and translate.
    p = unit_quaternion_rotate_point(qvec, point3D)
    X = p[0] + tvec[0]
    Y = p[1] + tvec[1]
    Z = p[2] + tvec[2]

    # Normalize to image plane. Points at or behind the camera are not
    # rejected here.
    u = X / Z
    v = Y / Z

    x, y = camera_model.world_to_image(camera_params, u, v)
    return x - point2D[0], y - point2D[1]


@dataclass(frozen=True)
class ReprojectionResidual(CostFunction):
    """
    Bundle adjustment residual with variable pose, point and intrinsics.

    Blocks: qvec (4), tvec (3), point3D (3), camera_params (num_params).
    """

    camera_model: CameraModel
    point2D: tuple[float, float]

    num_residuals = 2

    @classmethod
    def create(cls, camera_model: CameraModel, point2D: np.ndarray) -> ReprojectionResidual:
        logger.debug("reprojection residual for %s", camera_model.model_name)
        return cls(camera_model=camera_model, point2D=_constant_vector(point2D, 2, "point2D"))

    @property
    def parameter_block_sizes(self) -> tuple[int, ...]:
        return (4, 3, 3, self.camera_model.num_params)

    def __call__(self, qvec, tvec, point3D, camera_params):
        return _reprojection_error(self.camera_model, qvec, tvec, point3D, camera_params, self.point2D)


@dataclass(frozen=True)
class FixedPoseReprojectionResidual(CostFunction):
    """
    Same as ReprojectionResidual with the camera pose held constant.

    Blocks: point3D (3), camera_params (num_params).
    """

    camera_model: CameraModel
    qvec: tuple[float, float, float, float]
    tvec: tuple[float, float, float]
    point2D: tuple[float, float]

    num_residuals = 2

    @classmethod
    def create(
        cls, camera_model: CameraModel, qvec: np.ndarray, tvec: np.ndarray, point2D: np.ndarray
    ) -> FixedPoseReprojectionResidual:
        logger.debug("fixed-pose residual for %s", camera_model.model_name)
        return cls(
            camera_model=camera_model,
            qvec=_constant_vector(qvec, 4, "qvec"),
            tvec=_constant_vector(tvec, 3, "tvec"),
            point2D=_constant_vector(point2D, 2, "point2D"),
        )

    @property
    def parameter_block_sizes(self) -> tuple[int, ...]:
        return (3, self.camera_model.num_params)

    def __call__(self, point3D, camera_params):
        return _reprojection_error(self.camera_model, self.qvec, self.tvec, point3D, camera_params, self.point2D)


@dataclass(frozen=True)
class RigReprojectionResidual(CostFunction):
    """
    Bundle adjustment residual for a camera mounted in a rig.

    The point is first moved into the rig frame (rig_qvec, rig_tvec), then into
    the frame of the camera within the rig (rel_qvec, rel_tvec). Sharing the
    relative pose between captures keeps the rig geometry consistent while the
    rig pose varies per capture.

    Blocks: rig_qvec (4), rig_tvec (3), rel_qvec (4), rel_tvec (3),
    point3D (3), camera_params (num_params).
    """

    camera_model: CameraModel
    point2D: tuple[float, float]

    num_residuals = 2

    @classmethod
    def create(cls, camera_model: CameraModel, point2D: np.ndarray) -> RigReprojectionResidual:
        logger.debug("rig reprojection residual for %s", camera_model.model_name)
        return cls(camera_model=camera_model, point2D=_constant_vector(point2D, 2, "point2D"))

    @property
    def parameter_block_sizes(self) -> tuple[int, ...]:
        return (4, 3, 4, 3, 3, self.camera_model.num_params)

    def __call__(self, rig_qvec, rig_tvec, rel_qvec, rel_tvec, point3D, camera_params):
        qvec, tvec = compose_poses(rig_qvec, rig_tvec, rel_qvec, rel_tvec)
        return _reprojection_error(self.camera_model, qvec, tvec, point3D, camera_params, self.point2D)
