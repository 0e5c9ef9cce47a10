"""Per-vertex bone influences for the skinned vertex layout."""

import logging

from .formats import MAX_INFLUENCES

_log = logging.getLogger(__name__)


class SkinInfo:
    __slots__ = ('weights', 'bone_indices', 'filled_count')

    def __init__(self):
        self.weights = [0.0] * MAX_INFLUENCES
        self.bone_indices = [0] * MAX_INFLUENCES
        self.filled_count = 0

    def add(self, bone_index, weight):
        """Fill the next free slot. Returns False when all slots are taken."""
        if self.filled_count >= MAX_INFLUENCES:
            return False
        self.weights[self.filled_count] = weight
        self.bone_indices[self.filled_count] = bone_index
        self.filled_count += 1
        return True

    def __repr__(self):
        return f"SkinInfo(weights={self.weights}, bone_indices={self.bone_indices})"


def bind_skin(meshes, skeleton):
    """Build one SkinInfo per vertex over all meshes, in mesh order.

    Slots are filled in the order bones and weights appear; weights are not
    renormalised and influences past the fourth are dropped. Meshes without
    bones keep zero-filled records.
    """
    infos = [SkinInfo() for _ in range(sum(m.vertex_count for m in meshes))]

    offset = 0
    for mesh_index, mesh in enumerate(meshes):
        dropped = 0
        for bone in mesh.bones:
            bone_index = skeleton.resolve(bone.name, f"mesh {mesh_index} ('{mesh.name}')")
            for vertex_id, weight in bone.weights:
                if not infos[offset + vertex_id].add(bone_index, weight):
                    dropped += 1
        if dropped:
            _log.warning("mesh %d ('%s'): %d influences beyond %d per vertex dropped",
                         mesh_index, mesh.name, dropped, MAX_INFLUENCES)
        offset += mesh.vertex_count

    return infos
