"""Matrix and quaternion helpers.

Matrices are 16 floats, row-major, column-vector convention (translation in
elements 3, 7 and 11), which is how the scene decoder hands them over.
Quaternions are (x, y, z, w) tuples.
"""

import math


# ============================================================
# Matrix Math
# ============================================================

def mat4_identity():
    return [1.0, 0.0, 0.0, 0.0,
            0.0, 1.0, 0.0, 0.0,
            0.0, 0.0, 1.0, 0.0,
            0.0, 0.0, 0.0, 1.0]


def mat4_multiply(a, b):
    """Multiply two 4x4 matrices (row-major)."""
    r = [0.0] * 16
    for i in range(4):
        for j in range(4):
            s = 0.0
            for k in range(4):
                s += a[i*4+k] * b[k*4+j]
            r[i*4+j] = s
    return r


def mat3_determinant(m):
    """Determinant of the upper-left 3x3 of a 4x4 matrix."""
    return (m[0] * (m[5]*m[10] - m[6]*m[9])
            - m[1] * (m[4]*m[10] - m[6]*m[8])
            + m[2] * (m[4]*m[9] - m[5]*m[8]))


def decompose_no_scaling(m):
    """Split a transform into translation and unit rotation, dropping scale.

    Basis columns are normalised before the rotation is extracted, so uniform
    and non-uniform scale both disappear. A mirrored basis is flipped back
    into a proper rotation first.
    """
    translation = (m[3], m[7], m[11])

    cols = [[m[0], m[4], m[8]], [m[1], m[5], m[9]], [m[2], m[6], m[10]]]
    sign = -1.0 if mat3_determinant(m) < 0 else 1.0
    for col in cols:
        length = math.sqrt(col[0]**2 + col[1]**2 + col[2]**2)
        if length > 1e-12:
            for i in range(3):
                col[i] = sign * col[i] / length

    # rows of the pure rotation
    rot = [[cols[0][r], cols[1][r], cols[2][r]] for r in range(3)]
    return translation, quat_from_mat3(rot)


# ============================================================
# Quaternion Math
# ============================================================

def quat_from_mat3(r):
    """Rotation matrix (list of 3 rows) to a unit quaternion."""
    a1, a2, a3 = r[0]
    b1, b2, b3 = r[1]
    c1, c2, c3 = r[2]

    t = a1 + b2 + c3
    if t > 0:
        s = math.sqrt(1.0 + t) * 2.0
        q = ((c2 - b3) / s, (a3 - c1) / s, (b1 - a2) / s, 0.25 * s)
    elif a1 > b2 and a1 > c3:
        s = math.sqrt(1.0 + a1 - b2 - c3) * 2.0
        q = (0.25 * s, (a2 + b1) / s, (a3 + c1) / s, (c2 - b3) / s)
    elif b2 > c3:
        s = math.sqrt(1.0 + b2 - a1 - c3) * 2.0
        q = ((a2 + b1) / s, 0.25 * s, (b3 + c2) / s, (a3 - c1) / s)
    else:
        s = math.sqrt(1.0 + c3 - a1 - b2) * 2.0
        q = ((a3 + c1) / s, (b3 + c2) / s, 0.25 * s, (b1 - a2) / s)
    return quat_normalize(q)


def quat_normalize(q):
    length = math.sqrt(q[0]**2 + q[1]**2 + q[2]**2 + q[3]**2)
    if length < 1e-12:
        return (0.0, 0.0, 0.0, 1.0)
    return (q[0] / length, q[1] / length, q[2] / length, q[3] / length)


def quat_dot(a, b):
    return a[0]*b[0] + a[1]*b[1] + a[2]*b[2] + a[3]*b[3]


def lerp3(a, b, t):
    return (a[0] + (b[0] - a[0]) * t,
            a[1] + (b[1] - a[1]) * t,
            a[2] + (b[2] - a[2]) * t)


def slerp(a, b, t):
    """Shortest-arc spherical interpolation between two unit quaternions.

    Nearly identical inputs fall back to a linear blend. When `b` lies in the
    opposite hemisphere it is negated first, so `t = 1` yields `-b`: the same
    rotation with the other sign. Key sampling returns the key itself at its
    own time and never relies on this endpoint.
    """
    cosom = quat_dot(a, b)
    if cosom < 0.0:
        cosom = -cosom
        b = (-b[0], -b[1], -b[2], -b[3])

    if 1.0 - cosom > 0.0001:
        omega = math.acos(min(cosom, 1.0))
        sinom = math.sin(omega)
        sclp = math.sin((1.0 - t) * omega) / sinom
        sclq = math.sin(t * omega) / sinom
    else:
        sclp = 1.0 - t
        sclq = t

    return (sclp * a[0] + sclq * b[0],
            sclp * a[1] + sclq * b[1],
            sclp * a[2] + sclq * b[2],
            sclp * a[3] + sclq * b[3])
