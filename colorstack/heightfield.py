"""
ColorStack - Heightfield Mesh Generator
Band raster + height table -> closed triangulated solid -> binary STL bytes.

Vertex layout: one bottom (z=0) and one top vertex per pixel, interleaved,
so pixel p = j*W + i owns vertices 2p (bottom) and 2p+1 (top). Grid row j
runs along +Y and reads raster row H-1-j (image rows go top-down).
"""

import os

import numpy as np
import trimesh

from config import STL_HEADER


# Binary STL record: normal, 3 vertices, attribute byte count (50 bytes)
STL_RECORD_DTYPE = np.dtype([
    ('normal', '<f4', (3,)),
    ('vertices', '<f4', (3, 3)),
    ('attributes', '<u2'),
])

NORMAL_EPSILON = 1e-12


def triangle_count(width_px: int, height_px: int) -> int:
    """Triangles emitted for a W x H raster (surfaces + four walls)."""
    w1, h1 = width_px - 1, height_px - 1
    return 4 * w1 * h1 + 4 * w1 + 4 * h1


class HeightfieldMesh:
    """Indexed triangle mesh of a stepped heightfield solid."""

    def __init__(self, vertices: np.ndarray, faces: np.ndarray):
        self.vertices = vertices
        self.faces = faces

    def __len__(self):
        return len(self.faces)

    @property
    def triangles(self) -> np.ndarray:
        """(F, 3, 3) vertex positions per face."""
        return self.vertices[self.faces]

    def face_normals(self) -> np.ndarray:
        """
        Unit normals from (v1 - v0) x (v2 - v0).
        Degenerate faces are divided by 1 instead of their zero length.
        """
        tri = self.triangles
        normals = np.cross(tri[:, 1] - tri[:, 0], tri[:, 2] - tri[:, 0])
        length = np.linalg.norm(normals, axis=1)
        length[length < NORMAL_EPSILON] = 1.0
        return normals / length[:, None]

    def to_stl_bytes(self, header: bytes = STL_HEADER) -> bytes:
        """80-byte header, uint32 count, 50-byte little-endian records."""
        records = np.zeros(len(self.faces), dtype=STL_RECORD_DTYPE)
        records['normal'] = self.face_normals()
        records['vertices'] = self.triangles

        head = header[:80].ljust(80, b'\0')
        count = np.array([len(self.faces)], dtype='<u4').tobytes()
        return head + count + records.tobytes()

    def export_stl(self, path: str, header: bytes = STL_HEADER) -> str:
        folder = os.path.dirname(path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        data = self.to_stl_bytes(header)
        with open(path, 'wb') as f:
            f.write(data)
        print(f"[MESH] Wrote {len(self.faces):,} triangles ({len(data):,} bytes) to {path}")
        return path

    def to_trimesh(self) -> trimesh.Trimesh:
        """trimesh view for previews (GLB) and geometry checks."""
        return trimesh.Trimesh(vertices=self.vertices, faces=self.faces, process=False)


def build_heightfield_mesh(bands: np.ndarray, heights, width_mm: float,
                           depth_mm: float) -> HeightfieldMesh:
    """
    Triangulate a band raster into a watertight heightfield solid.

    Args:
        bands: (H, W) int band raster, H and W >= 2
        heights: per-band top height (mm), indexed by band value
        width_mm: physical X extent
        depth_mm: physical Y extent

    Returns:
        HeightfieldMesh
    """
    bands = np.asarray(bands).astype(np.int64, copy=False)
    heights = np.asarray(heights, dtype=np.float64)
    if bands.ndim != 2:
        raise ValueError(f"Band raster must be 2D, got shape {bands.shape}")
    h, w = bands.shape
    if w < 2 or h < 2:
        raise ValueError(
            f"Band raster must be at least 2x2 pixels for meshing, got {w}x{h}"
        )
    if not (width_mm > 0 and depth_mm > 0):
        raise ValueError(f"Physical size must be positive, got {width_mm}x{depth_mm}mm")
    if bands.min() < 0 or bands.max() >= len(heights):
        raise ValueError(
            f"Band values span [{bands.min()}, {bands.max()}] "
            f"but only {len(heights)} band heights were given"
        )

    dx = width_mm / (w - 1)
    dy = depth_mm / (h - 1)

    ys, xs = np.mgrid[0:h, 0:w]
    top_z = heights[bands[::-1, :]]

    vertices = np.zeros((h * w, 2, 3), dtype=np.float64)
    vertices[:, :, 0] = (xs * dx).reshape(-1, 1)
    vertices[:, :, 1] = (ys * dy).reshape(-1, 1)
    vertices[:, 1, 2] = top_z.reshape(-1)
    vertices = vertices.reshape(-1, 3)

    pix = np.arange(h * w).reshape(h, w)
    bot = 2 * pix
    top = 2 * pix + 1

    # Surfaces: per quad two top faces (+Z) then two bottom faces (-Z)
    t00, t10, t01, t11 = top[:-1, :-1], top[:-1, 1:], top[1:, :-1], top[1:, 1:]
    b00, b10, b01, b11 = bot[:-1, :-1], bot[:-1, 1:], bot[1:, :-1], bot[1:, 1:]
    surfaces = np.stack([
        np.stack([t00, t10, t11], axis=-1),
        np.stack([t00, t11, t01], axis=-1),
        np.stack([b00, b11, b10], axis=-1),
        np.stack([b00, b01, b11], axis=-1),
    ], axis=2).reshape(-1, 3)

    # Front (y=0, -Y) and back (y=max, +Y) walls
    fb, ft = bot[0], top[0]
    kb, kt = bot[-1], top[-1]
    front_back = np.stack([
        np.stack([fb[:-1], ft[1:], ft[:-1]], axis=-1),
        np.stack([fb[:-1], fb[1:], ft[1:]], axis=-1),
        np.stack([kb[:-1], kt[:-1], kt[1:]], axis=-1),
        np.stack([kb[:-1], kt[1:], kb[1:]], axis=-1),
    ], axis=1).reshape(-1, 3)

    # Left (x=0, -X) and right (x=max, +X) walls
    lb, lt = bot[:, 0], top[:, 0]
    rb, rt = bot[:, -1], top[:, -1]
    left_right = np.stack([
        np.stack([lb[:-1], lt[:-1], lt[1:]], axis=-1),
        np.stack([lb[:-1], lt[1:], lb[1:]], axis=-1),
        np.stack([rb[:-1], rt[1:], rt[:-1]], axis=-1),
        np.stack([rb[:-1], rb[1:], rt[1:]], axis=-1),
    ], axis=1).reshape(-1, 3)

    faces = np.concatenate([surfaces, front_back, left_right], axis=0).astype(np.int64)
    print(f"[MESH] {w}x{h}px -> {len(vertices):,} vertices, {len(faces):,} triangles "
          f"({width_mm:.1f}x{depth_mm:.1f}mm, dx={dx:.3f}, dy={dy:.3f})")
    return HeightfieldMesh(vertices, faces)


def generate_stl(bands: np.ndarray, heights, width_mm: float, depth_mm: float,
                 header: bytes = STL_HEADER) -> bytes:
    """Band raster -> binary STL bytes in one call."""
    return build_heightfield_mesh(bands, heights, width_mm, depth_mm).to_stl_bytes(header)
