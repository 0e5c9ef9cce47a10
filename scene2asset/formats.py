"""Binary layout constants shared by the engine asset writers and readers.

Mesh asset (.msh), little-endian:

    [4]  uint32 magic  ('_LMO')
    [4]  uint32 version
    [4]  int32  mesh_count
         per mesh: material name, vbuf offset/size, ibuf offset, tri count,
                   mesh name, attribute descriptors
    [4]  int32  index_count, int32[index_count]
    [4]  int32  vbuf_size, vertex records
         skeleton: int32 node_count, nodes (name, parent name, pos, quat)
    [4]  int32  lod_count (1), int32 to_mesh, float max_distance

Animation asset (.ani):

    [4]  uint32 magic  ('_LAF')
    [4]  uint32 version (1)
    [4]  float  fps
    [4]  int32  frame_count
    [4]  int32  bone_count
         float3[frame_count * bone_count] positions
         float4[frame_count * bone_count] rotations (x, y, z, w)
         uint32[bone_count] crc32 of bone names
"""

from enum import IntEnum

MESH_MAGIC = 0x5F4C4D4F
MESH_VERSION = 1

ANIMATION_MAGIC = 0x5F4C4146
ANIMATION_VERSION = 1
DEFAULT_FPS = 25.0

RIGID_VERTEX_SIZE = 24
SKINNED_VERTEX_SIZE = 56
MAX_INFLUENCES = 4

NORMAL_SCALE = 127
UV_SCALE = 2048

FLT_MAX = 3.4028234663852886e38

TEXT_ENCODING = 'utf-8'


class AttributeType(IntEnum):
    POSITION = 0
    FLOAT1 = 1
    FLOAT2 = 2
    FLOAT3 = 3
    FLOAT4 = 4
    INT1 = 5
    INT2 = 6
    INT3 = 7
    INT4 = 8
    SHORT2 = 9
    SHORT4 = 10
    BYTE4 = 11
    NONE = 12


SKIN_ATTRIBUTES = (
    ('in_weights', AttributeType.FLOAT4),
    ('in_indices', AttributeType.INT4),
)

BASE_ATTRIBUTES = (
    ('in_position', AttributeType.POSITION),
    ('in_normal', AttributeType.BYTE4),
    ('in_tangents', AttributeType.BYTE4),
    ('in_tex_coords', AttributeType.SHORT2),
)


def vertex_attributes(skinned):
    """Attribute descriptors for the rigid or skinned layout, in file order."""
    if skinned:
        return SKIN_ATTRIBUTES + BASE_ATTRIBUTES
    return BASE_ATTRIBUTES
