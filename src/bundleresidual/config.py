from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np

from bundleresidual.core.camera_models import CameraModel, CameraModelError, camera_model_from_id, camera_model_from_name


@dataclass(frozen=True)
class CameraConfig:
    model: CameraModel
    params: np.ndarray  # (model.num_params,)
    width_px: int | None = None
    height_px: int | None = None


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise CameraModelError(msg)


def _is_number(x: Any) -> bool:
    return isinstance(x, (int, float, np.integer, np.floating)) and not isinstance(x, bool)


def _is_integral(x: Any) -> bool:
    return _is_number(x) and float(x).is_integer()


def load_camera_config(path: Path) -> CameraConfig:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return parse_camera_config(data)


def parse_camera_config(data: dict[str, Any]) -> CameraConfig:
    """
    Parse `{"model": "PINHOLE" | 1, "params": [...], "width": W, "height": H}`.

    `width`/`height` are optional; when given both must be positive.
    """
    _require(isinstance(data, dict), "camera config must be a mapping")
    model_key = data.get("model")
    _require(model_key is not None, "model is required")
    _require(isinstance(model_key, str) or _is_integral(model_key), "model must be a name or an integer id")
    if isinstance(model_key, str):
        model = camera_model_from_name(model_key)
    else:
        model = camera_model_from_id(int(model_key))

    params_raw = data.get("params")
    _require(isinstance(params_raw, (list, tuple)), "params must be a list of numbers")
    _require(
        len(params_raw) == model.num_params,
        f"{model.model_name} expects {model.num_params} params {list(model.param_names)}, got {len(params_raw)}",
    )
    _require(all(_is_number(p) for p in params_raw), "params must be numbers")
    params = np.asarray([float(p) for p in params_raw], dtype=np.float64)
    _require(bool(np.all(np.isfinite(params))), "params must be finite")

    w_raw = data.get("width")
    h_raw = data.get("height")
    _require((w_raw is None) == (h_raw is None), "width and height must be given together")
    w = h = None
    if w_raw is not None:
        _require(_is_integral(w_raw) and _is_integral(h_raw), "width and height must be integers")
        w, h = int(w_raw), int(h_raw)
        _require(w > 0 and h > 0, "width and height must be > 0")

    return CameraConfig(model=model, params=params, width_px=w, height_px=h)


def camera_config_to_dict(cfg: CameraConfig) -> dict[str, Any]:
    out: dict[str, Any] = {
        "model": cfg.model.model_name,
        "params": np.asarray(cfg.params, dtype=np.float64).reshape(-1).tolist(),
    }
    if cfg.width_px is not None:
        out["width"] = int(cfg.width_px)
        out["height"] = int(cfg.height_px)
    return out
