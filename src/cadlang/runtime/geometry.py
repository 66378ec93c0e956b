"""Planar sketch helpers used by the modeling functions.

Everything here is pure numpy arithmetic on the tuples stored in
``SketchGroup``: winding direction of a profile, quaternion products, and
the placement of the side walls an extrusion generates.  Quaternions are
``(x, y, z, w)``.
"""

from typing import List, Sequence, Tuple

import numpy as np

from .values import (
    Point2D, Point3D, Quaternion, SketchGroup, ExtrudeSurface,
)


def clockwise_sign(points: Sequence[Point2D]) -> int:
    """Return ``1`` for a clockwise (or degenerate) loop, ``-1`` otherwise.

    Uses the shoelace sum of ``(x2 - x1) * (y2 + y1)`` over the closed loop.
    """
    if len(points) < 2:
        return 1
    pts = np.asarray(points, dtype=float)
    nxt = np.roll(pts, -1, axis=0)
    total = np.sum((nxt[:, 0] - pts[:, 0]) * (nxt[:, 1] + pts[:, 1]))
    return 1 if total >= 0 else -1


def quaternion_multiply(a: Quaternion, b: Quaternion) -> Quaternion:
    ax, ay, az, aw = a
    bx, by, bz, bw = b
    return (
        aw * bx + ax * bw + ay * bz - az * by,
        aw * by - ax * bz + ay * bw + az * bx,
        aw * bz + ax * by - ay * bx + az * bw,
        aw * bw - ax * bx - ay * by - az * bz,
    )


def rotate_vector(q: Quaternion, v: Point3D) -> Point3D:
    """Rotate ``v`` by the unit quaternion ``q``."""
    u = np.asarray(q[:3], dtype=float)
    w = float(q[3])
    vec = np.asarray(v, dtype=float)
    t = 2.0 * np.cross(u, vec)
    out = vec + w * t + np.cross(u, t)
    return (float(out[0]), float(out[1]), float(out[2]))


def z_rotation(angle: float) -> Quaternion:
    half = angle / 2.0
    return (0.0, 0.0, float(np.sin(half)), float(np.cos(half)))


def wall_surfaces(sketch: SketchGroup, height: float) -> Tuple[ExtrudeSurface, ...]:
    """Side walls for every named segment of ``sketch`` extruded by ``height``.

    A wall sits at the segment midpoint, half way up the extrusion, turned
    about Z so that its local +X axis is the outward normal of the profile.
    """
    direction = clockwise_sign(sketch.points())
    walls: List[ExtrudeSurface] = []
    for seg in sketch.segments:
        if not seg.name:
            continue
        start = np.asarray(seg.from_, dtype=float)
        end = np.asarray(seg.to, dtype=float)
        mid = (start + end) / 2.0
        dx, dy = end - start
        angle = float(np.arctan2(dy, dx)) + direction * np.pi / 2.0
        local = (float(mid[0]), float(mid[1]), height / 2.0)
        offset = rotate_vector(sketch.rotation, local)
        position = tuple(float(p + o) for p, o in zip(sketch.position, offset))
        rotation = quaternion_multiply(sketch.rotation, z_rotation(angle))
        walls.append(ExtrudeSurface(
            name=seg.name,
            position=position,
            rotation=rotation,
            source_range=seg.source_range,
        ))
    return tuple(walls)
