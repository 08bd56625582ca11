"""
ColorStack - Heightfield mesh property tests (Property-Based Tests)

Every generated solid must be closed and consistently wound, whatever
the band layout.
"""

import os
import sys

import numpy as np
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from hypothesis.extra.numpy import arrays

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from colorstack.heightfield import (
    STL_RECORD_DTYPE,
    triangle_count,
    build_heightfield_mesh,
)
from colorstack.quantizer import band_heights

band_rasters = arrays(
    np.int32,
    st.tuples(st.integers(2, 9), st.integers(2, 9)),
    elements=st.integers(0, 3),
)
sizes = st.floats(10.0, 500.0, allow_nan=False, allow_infinity=False)


# ============================================================================
# Property 1: triangle count formula
# ============================================================================

@settings(max_examples=100, deadline=None)
@given(bands=band_rasters)
def test_triangle_count_formula(bands):
    h, w = bands.shape
    mesh = build_heightfield_mesh(bands, band_heights(4), 50.0, 50.0)
    expected = 4 * (w - 1) * (h - 1) + 4 * (w - 1) + 4 * (h - 1)
    assert len(mesh) == expected == triangle_count(w, h)
    assert len(mesh.to_stl_bytes()) == 84 + 50 * expected


# ============================================================================
# Property 2: unit normals
# ============================================================================

@settings(max_examples=100, deadline=None)
@given(bands=band_rasters, width=sizes, depth=sizes)
def test_unit_normals(bands, width, depth):
    mesh = build_heightfield_mesh(bands, band_heights(4), width, depth)
    records = np.frombuffer(mesh.to_stl_bytes(), dtype=STL_RECORD_DTYPE, offset=84)
    lengths = np.linalg.norm(records['normal'].astype(np.float64), axis=1)
    np.testing.assert_allclose(lengths, 1.0, atol=1e-5)


# ============================================================================
# Property 3: closed, outward-facing solid
# ============================================================================

@settings(max_examples=50, deadline=None)
@given(bands=band_rasters)
def test_watertight_and_outward(bands):
    mesh = build_heightfield_mesh(bands, band_heights(4), 30.0, 20.0).to_trimesh()
    assert mesh.is_watertight
    assert mesh.is_winding_consistent
    assert mesh.volume > 0


def test_flat_slab_volume():
    mesh = build_heightfield_mesh(np.zeros((4, 4), dtype=np.int32), [0.2], 10.0, 10.0)
    tm = mesh.to_trimesh()
    assert tm.is_watertight
    assert tm.volume == pytest.approx(20.0)


def test_walls_face_outward():
    mesh = build_heightfield_mesh(np.zeros((3, 3), dtype=np.int32), [1.0], 10.0, 10.0)
    normals = mesh.face_normals()
    centers = mesh.triangles.mean(axis=1)
    walls = slice(4 * 2 * 2, None)
    outward = centers[walls] - np.array([5.0, 5.0, centers[walls][:, 2].mean()])
    outward[:, 2] = 0.0
    assert np.all(np.sum(normals[walls] * outward, axis=1) > 0)
