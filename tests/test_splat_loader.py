import os
import sys

import numpy as np
import pytest
from plyfile import PlyData, PlyElement

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from splat_loader import SH_C0, SplatFormatError, downsample_indices, load_splat_ply


def _write_gaussians(path, n=5):
    dtype = [
        ("x", "f4"), ("y", "f4"), ("z", "f4"),
        ("f_dc_0", "f4"), ("f_dc_1", "f4"), ("f_dc_2", "f4"),
        ("opacity", "f4"),
        ("scale_0", "f4"), ("scale_1", "f4"), ("scale_2", "f4"),
    ]
    data = np.zeros(n, dtype=dtype)
    data["x"] = np.arange(n)
    data["y"] = 1.0
    data["z"] = -1.0
    data["f_dc_0"] = 1.0
    data["opacity"] = 0.0  # logits
    data["opacity"][0] = -2.0
    data["scale_0"] = np.log(0.1)
    data["scale_1"] = np.log(0.1)
    data["scale_2"] = np.log(0.1)
    PlyData([PlyElement.describe(data, "vertex")]).write(str(path))


def test_load_gaussian_ply(tmp_path):
    path = tmp_path / "cloud.ply"
    _write_gaussians(path)
    cloud = load_splat_ply(path)

    assert len(cloud) == 5
    assert cloud.positions.shape == (5, 3)
    assert np.allclose(cloud.positions[:, 0], np.arange(5))
    assert cloud.colors[0, 0] == pytest.approx(min(1.0, 0.5 + SH_C0))
    assert cloud.colors[0, 1] == pytest.approx(0.5)
    assert cloud.colors[1, 3] == pytest.approx(0.5)
    assert cloud.colors[0, 3] == pytest.approx(1.0 / (1.0 + np.exp(2.0)), rel=1e-5)
    assert np.allclose(cloud.sizes, 0.2, rtol=1e-5)


def test_plain_rgb_point_cloud(tmp_path):
    data = np.zeros(3, dtype=[("x", "f4"), ("y", "f4"), ("z", "f4"), ("red", "u1"), ("green", "u1"), ("blue", "u1")])
    data["red"] = 255
    path = tmp_path / "rgb.ply"
    PlyData([PlyElement.describe(data, "vertex")]).write(str(path))

    cloud = load_splat_ply(path)
    assert np.allclose(cloud.colors[:, 0], 1.0)
    assert np.allclose(cloud.colors[:, 3], 1.0)


def test_downsampling_is_reproducible(tmp_path):
    path = tmp_path / "big.ply"
    _write_gaussians(path, n=50)
    a = load_splat_ply(path, max_points=10)
    b = load_splat_ply(path, max_points=10)
    assert len(a) == 10
    assert np.array_equal(a.positions, b.positions)
    assert downsample_indices(5, 10) is None


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_splat_ply(tmp_path / "missing.ply")


def test_missing_xyz_is_format_error(tmp_path):
    data = np.zeros(2, dtype=[("a", "f4")])
    path = tmp_path / "bad.ply"
    PlyData([PlyElement.describe(data, "vertex")]).write(str(path))
    with pytest.raises(SplatFormatError):
        load_splat_ply(path)
