from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, ClassVar, Sequence

import numpy as np

from bundleresidual.core.distortion import BrownDistortion, brown_distort

logger = logging.getLogger(__name__)


class CameraModelError(ValueError):
    pass


@dataclass(frozen=True)
class CameraModel:
    """
    Projection strategy: normalized camera coordinates (u=X/Z, v=Y/Z) -> pixels.

    `world_to_image` only uses arithmetic on `params`, so it is evaluated with
    plain numbers as well as with autodiff values. `image_to_world` is the numpy
    inverse, used to build observations and for diagnostics.
    """

    model_id: ClassVar[int] = -1
    model_name: ClassVar[str] = ""
    num_params: ClassVar[int] = 0
    param_names: ClassVar[tuple[str, ...]] = ()

    def world_to_image(self, params: Sequence[Any], u: Any, v: Any) -> tuple[Any, Any]:
        raise NotImplementedError

    def image_to_world(self, params: Sequence[float], x: np.ndarray, y: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        raise NotImplementedError


@dataclass(frozen=True)
class SimplePinholeCameraModel(CameraModel):
    model_id: ClassVar[int] = 0
    model_name: ClassVar[str] = "SIMPLE_PINHOLE"
    num_params: ClassVar[int] = 3
    param_names: ClassVar[tuple[str, ...]] = ("f", "cx", "cy")

    def world_to_image(self, params, u, v):
        return params[0] * u + params[1], params[0] * v + params[2]

    def image_to_world(self, params, x, y):
        f, cx, cy = (float(p) for p in params)
        return (np.asarray(x, dtype=np.float64) - cx) / f, (np.asarray(y, dtype=np.float64) - cy) / f


@dataclass(frozen=True)
class PinholeCameraModel(CameraModel):
    model_id: ClassVar[int] = 1
    model_name: ClassVar[str] = "PINHOLE"
    num_params: ClassVar[int] = 4
    param_names: ClassVar[tuple[str, ...]] = ("fx", "fy", "cx", "cy")

    def world_to_image(self, params, u, v):
        return params[0] * u + params[2], params[1] * v + params[3]

    def image_to_world(self, params, x, y):
        fx, fy, cx, cy = (float(p) for p in params)
        return (np.asarray(x, dtype=np.float64) - cx) / fx, (np.asarray(y, dtype=np.float64) - cy) / fy


@dataclass(frozen=True)
class SimpleRadialCameraModel(CameraModel):
    model_id: ClassVar[int] = 2
    model_name: ClassVar[str] = "SIMPLE_RADIAL"
    num_params: ClassVar[int] = 4
    param_names: ClassVar[tuple[str, ...]] = ("f", "cx", "cy", "k")

    def world_to_image(self, params, u, v):
        r2 = u * u + v * v
        radial = params[3] * r2
        ud = u + u * radial
        vd = v + v * radial
        return params[0] * ud + params[1], params[0] * vd + params[2]

    def image_to_world(self, params, x, y):
        f, cx, cy, k = (float(p) for p in params)
        xd = (np.asarray(x, dtype=np.float64) - cx) / f
        yd = (np.asarray(y, dtype=np.float64) - cy) / f
        return BrownDistortion(k1=k).undistort(xd, yd)


@dataclass(frozen=True)
class RadialCameraModel(CameraModel):
    model_id: ClassVar[int] = 3
    model_name: ClassVar[str] = "RADIAL"
    num_params: ClassVar[int] = 5
    param_names: ClassVar[tuple[str, ...]] = ("f", "cx", "cy", "k1", "k2")

    def world_to_image(self, params, u, v):
        r2 = u * u + v * v
        radial = params[3] * r2 + params[4] * r2 * r2
        ud = u + u * radial
        vd = v + v * radial
        return params[0] * ud + params[1], params[0] * vd + params[2]

    def image_to_world(self, params, x, y):
        f, cx, cy, k1, k2 = (float(p) for p in params)
        xd = (np.asarray(x, dtype=np.float64) - cx) / f
        yd = (np.asarray(y, dtype=np.float64) - cy) / f
        return BrownDistortion(k1=k1, k2=k2).undistort(xd, yd)


@dataclass(frozen=True)
class OpenCVCameraModel(CameraModel):
    model_id: ClassVar[int] = 4
    model_name: ClassVar[str] = "OPENCV"
    num_params: ClassVar[int] = 8
    param_names: ClassVar[tuple[str, ...]] = ("fx", "fy", "cx", "cy", "k1", "k2", "p1", "p2")

    def world_to_image(self, params, u, v):
        ud, vd = brown_distort(u, v, params[4], params[5], params[6], params[7])
        return params[0] * ud + params[2], params[1] * vd + params[3]

    def image_to_world(self, params, x, y):
        fx, fy, cx, cy, k1, k2, p1, p2 = (float(p) for p in params)
        xd = (np.asarray(x, dtype=np.float64) - cx) / fx
        yd = (np.asarray(y, dtype=np.float64) - cy) / fy
        return BrownDistortion(k1=k1, k2=k2, p1=p1, p2=p2).undistort(xd, yd)


CAMERA_MODELS: tuple[CameraModel, ...] = (
    SimplePinholeCameraModel(),
    PinholeCameraModel(),
    SimpleRadialCameraModel(),
    RadialCameraModel(),
    OpenCVCameraModel(),
)

_BY_NAME = {m.model_name: m for m in CAMERA_MODELS}
_BY_ID = {m.model_id: m for m in CAMERA_MODELS}


def camera_model_from_name(name: str) -> CameraModel:
    key = str(name).strip().upper()
    if key not in _BY_NAME:
        raise CameraModelError(f"unknown camera model {name!r}; expected one of {sorted(_BY_NAME)}")
    logger.debug("resolved camera model %s", key)
    return _BY_NAME[key]


def camera_model_from_id(model_id: int) -> CameraModel:
    if int(model_id) not in _BY_ID:
        raise CameraModelError(f"unknown camera model id {model_id}")
    model = _BY_ID[int(model_id)]
    logger.debug("resolved camera model id %d as %s", int(model_id), model.model_name)
    return model
