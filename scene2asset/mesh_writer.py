"""Mesh asset (.msh) encoder: mesh table, index buffer, vertex buffer,
skeleton and LOD sections.

Vertex layouts:

    skinned (56 bytes)                 rigid (24 bytes)
    float4 in_weights       (16)
    int4   in_indices       (16)
    float3 in_position      (12)       float3 in_position    (12)
    byte4  in_normal        (4)        byte4  in_normal      (4)
    byte4  in_tangents      (4)        byte4  in_tangents    (4)
    short2 in_tex_coords    (4)        short2 in_tex_coords  (4)

Normals and tangents are stored (x, z, y, 0).
"""

import logging
import math

from .formats import (
    FLT_MAX, MESH_MAGIC, MESH_VERSION, NORMAL_SCALE, RIGID_VERTEX_SIZE,
    SKINNED_VERTEX_SIZE, UV_SCALE, vertex_attributes,
)
from .skeleton import write_skeleton

_log = logging.getLogger(__name__)

INT8_RANGE = (-128, 127)
INT16_RANGE = (-32768, 32767)


def is_skinned(scene):
    """A scene whose root has any child node uses the skinned layout."""
    return len(scene.root.children) > 0


def vertex_size(scene):
    return SKINNED_VERTEX_SIZE if is_skinned(scene) else RIGID_VERTEX_SIZE


# ============================================================
# Quantization
# ============================================================

def round_half_away(x):
    return int(math.copysign(math.floor(abs(x) + 0.5), x))


def _clamp(value, bounds):
    lo, hi = bounds
    return lo if value < lo else hi if value > hi else value


def quantize_direction(v):
    """Unit vector to 4 signed bytes, axes reordered (x, z, y, 0)."""
    x, y, z = (_clamp(round_half_away(c * NORMAL_SCALE), INT8_RANGE) for c in v)
    return (x, z, y, 0)


def quantize_uv(uv):
    return tuple(_clamp(round_half_away(c * UV_SCALE), INT16_RANGE) for c in uv[:2])


# ============================================================
# Sections
# ============================================================

def write_header(writer):
    writer.u32(MESH_MAGIC)
    writer.u32(MESH_VERSION)


def write_mesh_table(writer, scene, skinned):
    stride = SKINNED_VERTEX_SIZE if skinned else RIGID_VERTEX_SIZE
    attributes = vertex_attributes(skinned)

    writer.i32(len(scene.meshes))
    vbuf_offset = 0
    ibuf_offset = 0
    for mesh in scene.meshes:
        material_name = scene.material_name(mesh.material_index)
        vbuf_size = mesh.vertex_count * stride

        writer.string(material_name)
        writer.i32(vbuf_offset)
        writer.i32(vbuf_size)
        writer.i32(ibuf_offset)
        writer.i32(len(mesh.faces))
        # the engine keys meshes by their material name
        writer.string(material_name)

        writer.i32(len(attributes))
        for name, attr_type in attributes:
            writer.string(name)
            writer.u32(int(attr_type))

        vbuf_offset += vbuf_size
        ibuf_offset += len(mesh.faces) * 3


def write_indices(writer, meshes):
    """Index count, then the original vertex indices of every face."""
    writer.i32(sum(len(m.faces) for m in meshes) * 3)
    for mesh in meshes:
        for face in mesh.faces:
            writer.ints(face)


def write_vertices(writer, meshes, skin_infos, skinned, strict_vertex_layout=False):
    """Vertex buffer size, then one record per vertex in mesh order.

    The skin block is written for every vertex unless `strict_vertex_layout`
    is set, in which case rigid layouts omit it to match the declared stride.
    """
    stride = SKINNED_VERTEX_SIZE if skinned else RIGID_VERTEX_SIZE
    with_skin = skinned or not strict_vertex_layout

    writer.i32(sum(m.vertex_count for m in meshes) * stride)

    ii = 0
    for mesh in meshes:
        for j in range(mesh.vertex_count):
            if with_skin:
                info = skin_infos[ii]
                writer.pack('4f4i', *info.weights, *info.bone_indices)
            ii += 1

            writer.pack('3f4b4b2h',
                        *mesh.positions[j],
                        *quantize_direction(mesh.normals[j]),
                        *quantize_direction(mesh.tangents[j]),
                        *quantize_uv(mesh.uvs[j]))


def write_lods(writer, meshes):
    """Single placeholder LOD covering every mesh."""
    writer.i32(1)
    writer.i32(len(meshes) - 1)
    writer.f32(FLT_MAX)


def write_mesh_asset(writer, scene, skeleton, skin_infos, strict_vertex_layout=False,
                     checkpoint=None):
    """Encode the whole mesh asset.

    `checkpoint(stage)` is called after the mesh table and after the geometry
    buffers, never in the middle of a section.
    """
    skinned = is_skinned(scene)
    _log.info("writing %d meshes, %s layout", len(scene.meshes), "skinned" if skinned else "rigid")

    write_header(writer)
    write_mesh_table(writer, scene, skinned)
    if checkpoint:
        checkpoint('mesh table')

    write_indices(writer, scene.meshes)
    write_vertices(writer, scene.meshes, skin_infos, skinned, strict_vertex_layout)
    if checkpoint:
        checkpoint('geometry')

    write_skeleton(writer, skeleton)
    write_lods(writer, scene.meshes)
    return writer.written
