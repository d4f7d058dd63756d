import logging
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from bundleresidual.core.camera_models import camera_model_from_name
from bundleresidual.core.rotation import (
    invert_pose,
    quaternion_from_rotvec,
    quaternion_to_rotation_matrix,
    unit_quaternion_rotate_point,
)
from bundleresidual.residuals import (
    FixedPoseReprojectionResidual,
    ParameterBlockError,
    ReprojectionResidual,
    ResidualValidationError,
    RigReprojectionResidual,
)

OPENCV_PARAMS = np.array([510.0, 495.0, 318.0, 242.0, -0.08, 0.02, 1e-3, -5e-4])


def _scene(seed: int = 0):
    rng = np.random.default_rng(seed)
    q = quaternion_from_rotvec(rng.normal(scale=0.3, size=3))
    t = rng.normal(scale=0.5, size=3)
    # World point in front of the camera.
    X_cam = np.array([rng.uniform(-1, 1), rng.uniform(-1, 1), rng.uniform(4, 8)])
    q_inv, t_inv = invert_pose(q, t)
    X_world = np.array(unit_quaternion_rotate_point(q_inv, X_cam)) + np.array(t_inv)
    return rng, q, t, X_world


def test_zero_residual_for_noiseless_observation():
    model = camera_model_from_name("OPENCV")
    for seed in range(5):
        rng, q, t, _X = _scene(seed)
        # Back-project a pixel to a world point, so the observation is exact by construction.
        pixel = np.array([rng.uniform(100, 540), rng.uniform(80, 400)])
        u, v = model.image_to_world(OPENCV_PARAMS, pixel[0], pixel[1])
        depth = rng.uniform(2.0, 10.0)
        X_cam = np.array([u * depth, v * depth, depth])
        q_inv, t_inv = invert_pose(q, t)
        X_world = np.array(unit_quaternion_rotate_point(q_inv, X_cam)) + np.array(t_inv)

        cost = ReprojectionResidual.create(model, pixel)
        r = cost.residuals(q, t, X_world, OPENCV_PARAMS)
        assert r.shape == (2,)
        assert np.max(np.abs(r)) < 1e-8


def test_residual_matches_matrix_projection():
    model = camera_model_from_name("PINHOLE")
    params = np.array([500.0, 480.0, 320.0, 240.0])
    _rng, q, t, X = _scene(1)
    obs = np.array([300.0, 250.0])

    Rm = np.array(quaternion_to_rotation_matrix(q))
    P = Rm @ X + t
    expected = np.array([500.0 * P[0] / P[2] + 320.0, 480.0 * P[1] / P[2] + 240.0]) - obs

    r = ReprojectionResidual.create(model, obs).residuals(q, t, X, params)
    assert np.max(np.abs(r - expected)) < 1e-9


def test_fixed_pose_matches_variable_pose():
    model = camera_model_from_name("OPENCV")
    _rng, q, t, X = _scene(2)
    obs = np.array([320.5, 241.0])
    variable = ReprojectionResidual.create(model, obs)
    fixed = FixedPoseReprojectionResidual.create(model, q, t, obs)
    assert fixed.parameter_block_sizes == (3, 8)
    assert np.array_equal(fixed.residuals(X, OPENCV_PARAMS), variable.residuals(q, t, X, OPENCV_PARAMS))


def test_rig_with_identity_relative_pose_matches_standard():
    model = camera_model_from_name("OPENCV")
    _rng, q, t, X = _scene(3)
    obs = np.array([100.0, 50.0])
    rig = RigReprojectionResidual.create(model, obs)
    standard = ReprojectionResidual.create(model, obs)
    r_rig = rig.residuals(q, t, np.array([1.0, 0.0, 0.0, 0.0]), np.zeros(3), X, OPENCV_PARAMS)
    r_std = standard.residuals(q, t, X, OPENCV_PARAMS)
    assert np.max(np.abs(r_rig - r_std)) < 1e-12


def test_rig_matches_composed_matrix_pose():
    model = camera_model_from_name("SIMPLE_PINHOLE")
    params = np.array([600.0, 320.0, 240.0])
    rng, rig_q, rig_t, X = _scene(4)
    rel_q = quaternion_from_rotvec(np.array([0.0, 0.05, 0.0]))
    rel_t = np.array([-0.12, 0.0, 0.01])
    obs = np.array([310.0, 230.0])

    R_rig = np.array(quaternion_to_rotation_matrix(rig_q))
    R_rel = np.array(quaternion_to_rotation_matrix(rel_q))
    P = R_rel @ (R_rig @ X + rig_t) + rel_t
    expected = np.array([600.0 * P[0] / P[2] + 320.0, 600.0 * P[1] / P[2] + 240.0]) - obs

    cost = RigReprojectionResidual.create(model, obs)
    assert cost.parameter_block_sizes == (4, 3, 4, 3, 3, 3)
    r = cost.residuals(rig_q, rig_t, rel_q, rel_t, X, params)
    assert np.max(np.abs(r - expected)) < 1e-9


def test_point_on_camera_plane_gives_non_finite_residual():
    model = camera_model_from_name("PINHOLE")
    params = np.array([500.0, 500.0, 320.0, 240.0])
    q = np.array([1.0, 0.0, 0.0, 0.0])
    t = np.zeros(3)
    cost = ReprojectionResidual.create(model, np.array([320.0, 240.0]))
    with np.errstate(divide="ignore", invalid="ignore"):
        ev = cost.evaluate(q, t, np.array([1.0, 2.0, 0.0]), params, jacobians=False)
    assert ev.success
    assert not np.all(np.isfinite(ev.residuals))


def test_point_behind_camera_is_not_rejected():
    model = camera_model_from_name("PINHOLE")
    params = np.array([500.0, 500.0, 320.0, 240.0])
    q = np.array([1.0, 0.0, 0.0, 0.0])
    cost = ReprojectionResidual.create(model, np.array([320.0, 240.0]))
    r = cost.residuals(q, np.zeros(3), np.array([0.1, 0.2, -1.0]), params)
    assert np.allclose(r, [-50.0, -100.0])


def test_parameter_blocks_are_validated():
    model = camera_model_from_name("PINHOLE")
    cost = ReprojectionResidual.create(model, np.array([1.0, 2.0]))
    assert cost.parameter_block_sizes == (4, 3, 3, 4)
    q = np.array([1.0, 0.0, 0.0, 0.0])
    with pytest.raises(ParameterBlockError):
        cost.residuals(q, np.zeros(3), np.ones(3))
    with pytest.raises(ParameterBlockError):
        cost.evaluate(q, np.zeros(3), np.ones(3), np.ones(3))


def test_constants_are_validated_and_copied():
    model = camera_model_from_name("PINHOLE")
    with pytest.raises(ResidualValidationError):
        ReprojectionResidual.create(model, np.array([1.0, 2.0, 3.0]))
    with pytest.raises(ResidualValidationError):
        FixedPoseReprojectionResidual.create(model, np.zeros(3), np.zeros(3), np.zeros(2))

    obs = np.array([1.0, 2.0])
    cost = ReprojectionResidual.create(model, obs)
    obs[0] = 100.0
    assert cost.point2D == (1.0, 2.0)


def test_concurrent_evaluation_is_consistent():
    model = camera_model_from_name("OPENCV")
    _rng, q, t, X = _scene(5)
    cost = ReprojectionResidual.create(model, np.array([300.0, 200.0]))
    expected = cost.residuals(q, t, X, OPENCV_PARAMS)
    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(lambda _: cost.residuals(q, t, X, OPENCV_PARAMS), range(32)))
    for r in results:
        assert np.array_equal(r, expected)


def test_direct_call_with_python_floats_at_zero_depth_returns_non_finite():
    model = camera_model_from_name("PINHOLE")
    cost = FixedPoseReprojectionResidual.create(model, [1.0, 0.0, 0.0, 0.0], [0.0, 0.0, 0.0], [1.0, 2.0])
    with np.errstate(divide="ignore", invalid="ignore"):
        r = cost((1.0, 2.0, 0.0), (500.0, 500.0, 320.0, 240.0))
    assert len(r) == 2
    assert not np.all(np.isfinite(np.array(r, dtype=np.float64)))


def test_factories_and_lookups_log_at_debug(caplog):
    from bundleresidual.core.camera_models import camera_model_from_id
    from bundleresidual.residuals import EpipolarResidual

    caplog.set_level(logging.DEBUG, logger="bundleresidual")
    model = camera_model_from_id(1)
    ReprojectionResidual.create(model, [1.0, 2.0])
    FixedPoseReprojectionResidual.create(model, [1.0, 0.0, 0.0, 0.0], [0.0, 0.0, 0.0], [1.0, 2.0])
    RigReprojectionResidual.create(model, [1.0, 2.0])
    EpipolarResidual.create([0.1, 0.2], [0.3, 0.4])
    messages = [r.getMessage() for r in caplog.records]
    assert "resolved camera model id 1 as PINHOLE" in messages
    assert "reprojection residual for PINHOLE" in messages
    assert "fixed-pose residual for PINHOLE" in messages
    assert "rig reprojection residual for PINHOLE" in messages
    assert "epipolar residual" in messages
