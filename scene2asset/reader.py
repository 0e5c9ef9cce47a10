"""Decoders for the written .msh and .ani assets.

Used by the inspection commands and to check written files against the
scene they came from.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .binary import AssetReadError, BinaryReader
from .formats import (
    ANIMATION_MAGIC, MESH_MAGIC, RIGID_VERTEX_SIZE, SKINNED_VERTEX_SIZE,
)


@dataclass
class MeshEntry:
    material_name: str
    vbuf_offset: int
    vbuf_size: int
    ibuf_offset: int
    tri_count: int
    name: str
    attributes: List[Tuple[str, int]]

    @property
    def skinned(self):
        return any(name == 'in_weights' for name, _ in self.attributes)

    @property
    def vertex_stride(self):
        return SKINNED_VERTEX_SIZE if self.skinned else RIGID_VERTEX_SIZE

    @property
    def vertex_count(self):
        return self.vbuf_size // self.vertex_stride


@dataclass
class VertexRecord:
    position: Tuple[float, float, float]
    normal: Tuple[int, int, int, int]
    tangent: Tuple[int, int, int, int]
    uv: Tuple[int, int]
    weights: Optional[Tuple[float, ...]] = None
    bone_indices: Optional[Tuple[int, ...]] = None


@dataclass
class NodeRecord:
    name: str
    parent_name: str
    position: Tuple[float, float, float]
    rotation: Tuple[float, float, float, float]


@dataclass
class MeshAsset:
    version: int
    meshes: List[MeshEntry]
    indices: List[int]
    vbuf_size: int
    vertices: List[VertexRecord]
    nodes: List[NodeRecord]
    lods: List[Tuple[int, float]] = field(default_factory=list)

    @property
    def triangle_count(self):
        return len(self.indices) // 3


@dataclass
class AnimationAsset:
    version: int
    fps: float
    frame_count: int
    bone_count: int
    positions: List[Tuple[float, float, float]]
    rotations: List[Tuple[float, float, float, float]]
    hashes: List[int]

    def position(self, frame, bone):
        return self.positions[frame * self.bone_count + bone]

    def rotation(self, frame, bone):
        return self.rotations[frame * self.bone_count + bone]


def _load(source):
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    with open(source, 'rb') as f:
        return f.read()


def read_mesh_asset(source, strict_vertex_layout=False):
    """Decode a .msh file (path or bytes).

    `strict_vertex_layout` must match the writer setting: when False every
    vertex record carries the 32-byte skin block whatever the declared layout.
    """
    b = BinaryReader(_load(source))
    magic = b.u32()
    if magic != MESH_MAGIC:
        raise AssetReadError(f"Not a mesh asset (magic 0x{magic:08X})")
    version = b.u32()

    meshes = []
    for _ in range(b.i32()):
        material_name = b.string()
        vbuf_offset, vbuf_size, ibuf_offset, tri_count = b.ints(4)
        name = b.string()
        attributes = [(b.string(), b.u32()) for _ in range(b.i32())]
        meshes.append(MeshEntry(material_name, vbuf_offset, vbuf_size, ibuf_offset,
                                tri_count, name, attributes))

    index_count = b.i32()
    indices = list(b.ints(index_count)) if index_count else []

    vbuf_size = b.i32()
    skinned = bool(meshes) and meshes[0].skinned
    with_skin = skinned or not strict_vertex_layout
    vertices = []
    for _ in range(sum(m.vertex_count for m in meshes)):
        weights = bone_indices = None
        if with_skin:
            weights = b.floats(4)
            bone_indices = b.ints(4)
        values = b.unpack('3f4b4b2h')
        vertices.append(VertexRecord(values[0:3], values[3:7], values[7:11], values[11:13],
                                     weights, bone_indices))

    nodes = []
    for _ in range(b.i32()):
        name = b.string()
        parent_name = b.string()
        nodes.append(NodeRecord(name, parent_name, b.floats(3), b.floats(4)))

    lods = []
    for _ in range(b.i32()):
        to_mesh = b.i32()
        lods.append((to_mesh, b.f32()))

    if b.remaining():
        raise AssetReadError(f"{b.remaining()} trailing bytes after LOD section")
    return MeshAsset(version, meshes, indices, vbuf_size, vertices, nodes, lods)


def read_animation_asset(source):
    b = BinaryReader(_load(source))
    magic = b.u32()
    if magic != ANIMATION_MAGIC:
        raise AssetReadError(f"Not an animation asset (magic 0x{magic:08X})")
    version = b.u32()
    fps = b.f32()
    frame_count = b.i32()
    bone_count = b.i32()
    total = frame_count * bone_count
    positions = [b.floats(3) for _ in range(total)]
    rotations = [b.floats(4) for _ in range(total)]
    hashes = [b.u32() for _ in range(bone_count)]
    if b.remaining():
        raise AssetReadError(f"{b.remaining()} trailing bytes after bone hashes")
    return AnimationAsset(version, fps, frame_count, bone_count, positions, rotations, hashes)
