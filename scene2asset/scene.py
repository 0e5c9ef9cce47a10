"""Read-only scene model and the adapter from decoder objects.

The converter never touches decoder objects directly: `adapt_scene` copies
what it needs into the immutable dataclasses below and `validate_scene`
rejects scenes that cannot be encoded.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple

from .errors import DecodeError
from .mathutil import mat4_identity

_log = logging.getLogger(__name__)

# aiTextureType_DIFFUSE
DIFFUSE_TEXTURE = 1


# ============================================================
# Scene Model
# ============================================================

@dataclass(frozen=True)
class Node:
    name: str
    transform: Tuple[float, ...] = tuple(mat4_identity())
    children: Tuple['Node', ...] = ()


@dataclass(frozen=True)
class Bone:
    """Influence list of one node on one mesh: (vertex_id, weight) pairs."""

    name: str
    weights: Tuple[Tuple[int, float], ...] = ()


@dataclass(frozen=True)
class Mesh:
    name: str
    material_index: int
    positions: Tuple[Tuple[float, float, float], ...]
    normals: Tuple[Tuple[float, float, float], ...]
    tangents: Tuple[Tuple[float, float, float], ...]
    uvs: Tuple[Tuple[float, float], ...]
    faces: Tuple[Tuple[int, int, int], ...]
    bones: Tuple[Bone, ...] = ()

    @property
    def vertex_count(self):
        return len(self.positions)


@dataclass(frozen=True)
class Material:
    name: str
    diffuse_textures: Tuple[str, ...] = ()

    @property
    def diffuse_texture(self) -> Optional[str]:
        return self.diffuse_textures[0] if self.diffuse_textures else None


@dataclass(frozen=True)
class Channel:
    """Keys of one animated node. Rotations are (x, y, z, w)."""

    node_name: str
    position_keys: Tuple[Tuple[float, Tuple[float, float, float]], ...] = ()
    rotation_keys: Tuple[Tuple[float, Tuple[float, float, float, float]], ...] = ()


@dataclass(frozen=True)
class Animation:
    name: str
    duration: float
    ticks_per_second: float
    channels: Tuple[Channel, ...] = ()


@dataclass(frozen=True)
class Scene:
    root: Node
    meshes: Tuple[Mesh, ...]
    materials: Tuple[Material, ...] = ()
    animations: Tuple[Animation, ...] = field(default=())

    def material_name(self, index):
        return self.materials[index].name


# ============================================================
# Validation
# ============================================================

def validate_scene(scene):
    """Raise DecodeError unless every mesh can be encoded."""
    if scene is None:
        raise DecodeError("scene could not be decoded")
    if scene.root is None:
        raise DecodeError("scene has no root node")
    if not scene.meshes:
        raise DecodeError("scene contains no meshes")

    for i, mesh in enumerate(scene.meshes):
        label = f"mesh {i} ('{mesh.name}')"
        count = mesh.vertex_count
        if not mesh.normals or len(mesh.normals) != count:
            raise DecodeError(f"{label} has no per-vertex normals")
        if not mesh.tangents or len(mesh.tangents) != count:
            raise DecodeError(f"{label} has no per-vertex tangents")
        if not mesh.uvs or len(mesh.uvs) != count:
            raise DecodeError(f"{label} has no texture coordinates")
        if not 0 <= mesh.material_index < len(scene.materials):
            raise DecodeError(f"{label} references missing material {mesh.material_index}")
        for face in mesh.faces:
            if len(face) != 3:
                raise DecodeError(f"{label} has a {len(face)}-sided face, expected triangles")
            for idx in face:
                if not 0 <= idx < count:
                    raise DecodeError(f"{label} face index {idx} out of range ({count} vertices)")
        for bone in mesh.bones:
            for vertex_id, _ in bone.weights:
                if not 0 <= vertex_id < count:
                    raise DecodeError(f"{label} bone '{bone.name}' weights vertex {vertex_id} "
                                      f"out of range ({count} vertices)")
    return scene


# ============================================================
# Decoder Adapter
# ============================================================

def _is_number(value):
    return isinstance(value, (int, float))


def _group(values, size):
    """Accept flat [x, y, z, x, y, z, ...] or [(x, y, z), ...] sequences."""
    if values is None:
        return ()
    values = list(values)
    if not values:
        return ()
    if _is_number(values[0]):
        return tuple(tuple(float(v) for v in values[i:i + size])
                     for i in range(0, len(values) - size + 1, size))
    return tuple(tuple(float(v) for v in item[:size]) for item in values)


def _faces(indices):
    if indices is None:
        return ()
    indices = list(indices)
    if not indices:
        return ()
    if _is_number(indices[0]):
        if len(indices) % 3:
            raise DecodeError("index buffer length is not a multiple of 3")
        return tuple((int(indices[i]), int(indices[i + 1]), int(indices[i + 2]))
                     for i in range(0, len(indices), 3))
    return tuple(tuple(int(i) for i in face) for face in indices)


def _uv_channel(texcoords, vertex_count):
    """First texture coordinate channel as (u, v) pairs."""
    if not texcoords:
        return ()
    channel = texcoords[0]
    if channel is None:
        return ()
    channel = list(channel)
    if channel and _is_number(channel[0]) and vertex_count:
        stride = len(channel) // vertex_count
        return tuple((float(channel[i]), float(channel[i + 1]))
                     for i in range(0, stride * vertex_count, stride))
    return _group(channel, 2)


def _weights(raw_weights):
    if not raw_weights:
        return ()
    raw_weights = list(raw_weights)
    if _is_number(raw_weights[0]):
        return tuple((int(raw_weights[i]), float(raw_weights[i + 1]))
                     for i in range(0, len(raw_weights) - 1, 2))
    return tuple((int(vid), float(w)) for vid, w in raw_weights)


def _keys(raw_keys, width):
    """Keys as (time, value) pairs from flat [t, v0, v1, ...] or nested data."""
    if not raw_keys:
        return ()
    raw_keys = list(raw_keys)
    if _is_number(raw_keys[0]):
        stride = width + 1
        return tuple((float(raw_keys[i]), tuple(float(v) for v in raw_keys[i + 1:i + stride]))
                     for i in range(0, len(raw_keys) - width, stride))
    keys = []
    for key in raw_keys:
        if len(key) == 2 and not _is_number(key[1]):
            time, value = key
        else:
            time, value = key[0], key[1:]
        keys.append((float(time), tuple(float(v) for v in value)))
    return tuple(keys)


def _wxyz_to_xyzw(keys):
    return tuple((time, (q[1], q[2], q[3], q[0])) for time, q in keys)


def _matrix(raw):
    if raw is None:
        return tuple(mat4_identity())
    values = list(raw)
    if values and not _is_number(values[0]):
        values = [x for row in values for x in row]
    if len(values) != 16:
        raise DecodeError(f"node transform has {len(values)} elements, expected 16")
    return tuple(float(v) for v in values)


def _node_children(raw):
    return list(getattr(raw, 'children', None) or ())


def adapt_node(raw_root):
    """Copy a decoder node tree bottom-up without recursion."""
    built = {}
    seen = set()
    stack = [(raw_root, False)]
    while stack:
        raw, expanded = stack.pop()
        if expanded:
            children = tuple(built.pop(id(c)) for c in _node_children(raw))
            built[id(raw)] = Node(name=raw.name or '',
                                  transform=_matrix(getattr(raw, 'transformation', None)),
                                  children=children)
            continue
        if id(raw) in seen:
            raise DecodeError(f"node '{raw.name}' appears more than once in the hierarchy")
        seen.add(id(raw))
        stack.append((raw, True))
        for child in reversed(_node_children(raw)):
            stack.append((child, False))
    return built[id(raw_root)]


def adapt_mesh(raw):
    positions = _group(raw.vertices, 3)
    bones = tuple(Bone(name=b.name, weights=_weights(b.weights))
                  for b in (getattr(raw, 'bones', None) or ()))
    return Mesh(
        name=getattr(raw, 'name', '') or '',
        material_index=int(getattr(raw, 'material_index', 0)),
        positions=positions,
        normals=_group(getattr(raw, 'normals', None), 3),
        tangents=_group(getattr(raw, 'tangents', None), 3),
        uvs=_uv_channel(getattr(raw, 'texcoords', None), len(positions)),
        faces=_faces(raw.indices),
        bones=bones,
    )


def adapt_material(raw, diffuse_key=DIFFUSE_TEXTURE):
    if isinstance(raw, dict):
        name = raw.get('NAME', '')
        textures = raw.get('TEXTURES') or {}
    else:
        name = getattr(raw, 'name', '')
        textures = getattr(raw, 'textures', None) or {}
    diffuse = textures.get(diffuse_key) or ()
    return Material(name=str(name), diffuse_textures=tuple(str(p) for p in diffuse))


def adapt_animation(raw):
    channels = tuple(
        Channel(
            node_name=ch.name,
            position_keys=_keys(ch.position_keys, 3),
            rotation_keys=_wxyz_to_xyzw(_keys(ch.rotation_keys, 4)),
        )
        for ch in (raw.channels or ())
    )
    return Animation(
        name=raw.name or '',
        duration=float(raw.duration),
        ticks_per_second=float(raw.ticks_per_second or 0.0),
        channels=channels,
    )


def adapt_scene(raw, diffuse_key=DIFFUSE_TEXTURE):
    """Copy a decoder scene into the read-only model and validate it.

    `raw` is shaped like an assimp_py scene: root_node, meshes, materials and
    animations, with rotation keys stored (w, x, y, z).
    """
    if raw is None:
        raise DecodeError("scene could not be decoded")
    root = getattr(raw, 'root_node', None)
    if root is None:
        raise DecodeError("scene has no root node")

    scene = Scene(
        root=adapt_node(root),
        meshes=tuple(adapt_mesh(m) for m in (raw.meshes or ())),
        materials=tuple(adapt_material(m, diffuse_key) for m in (raw.materials or ())),
        animations=tuple(adapt_animation(a) for a in (getattr(raw, 'animations', None) or ())),
    )
    _log.debug("adapted scene: %d meshes, %d materials, %d animations",
               len(scene.meshes), len(scene.materials), len(scene.animations))
    return validate_scene(scene)
