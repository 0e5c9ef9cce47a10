"""Flatten the node tree into the bone table and write the skeleton section.

Bone indices everywhere in the asset formats are positions in the pre-order
(root first, depth-first) list of node names. Duplicate names resolve to the
first node carrying them.
"""

import logging

from .errors import DecodeError, NameResolutionError
from .mathutil import decompose_no_scaling, mat4_identity, mat4_multiply

_log = logging.getLogger(__name__)


class Skeleton:
    """Arena of nodes in pre-order, addressed by integer id.

    `parents[i]` is the id of node i's parent, -1 for the root. Parents always
    precede their children.
    """

    def __init__(self, names, parents, transforms):
        self.names = names
        self.parents = parents
        self.transforms = transforms
        self._index = {}
        for i, name in enumerate(names):
            self._index.setdefault(name, i)

    def __len__(self):
        return len(self.names)

    def index_of(self, name):
        """Bone index of `name`, or None."""
        return self._index.get(name)

    def resolve(self, name, referenced_by):
        index = self._index.get(name)
        if index is None:
            raise NameResolutionError(name, referenced_by)
        return index

    def parent_name(self, index):
        parent = self.parents[index]
        return self.names[parent] if parent >= 0 else ''


def flatten_skeleton(root):
    """Walk the tree once, pre-order, into a Skeleton."""
    names = []
    parents = []
    transforms = []
    seen = set()

    stack = [(root, -1)]
    while stack:
        node, parent = stack.pop()
        if id(node) in seen:
            raise DecodeError(f"node '{node.name}' is reachable twice; hierarchy is not a tree")
        seen.add(id(node))

        index = len(names)
        names.append(node.name)
        parents.append(parent)
        transforms.append(node.transform)

        for child in reversed(node.children):
            stack.append((child, index))

    _log.debug("flattened %d nodes", len(names))
    return Skeleton(names, parents, transforms)


def flatten_bone_names(root):
    return flatten_skeleton(root).names


def count_nodes(root):
    count = 0
    stack = [root]
    while stack:
        node = stack.pop()
        count += 1
        stack.extend(node.children)
    return count


# ============================================================
# Skeleton Section
# ============================================================

def encode_node(writer, skeleton, index, parent_transform):
    """Write one node record and return its accumulated transform.

    The stored pose is `parent_transform x local`, i.e. relative to the root,
    with scale dropped; the hierarchy itself is kept only through the parent
    name.
    """
    transform = mat4_multiply(parent_transform, skeleton.transforms[index])
    position, rotation = decompose_no_scaling(transform)

    writer.string(skeleton.names[index])
    writer.string(skeleton.parent_name(index))
    writer.floats(position)
    writer.floats(rotation)
    return transform


def write_skeleton(writer, skeleton):
    writer.i32(len(skeleton))
    accumulated = []
    for index in range(len(skeleton)):
        parent = skeleton.parents[index]
        parent_transform = accumulated[parent] if parent >= 0 else mat4_identity()
        accumulated.append(encode_node(writer, skeleton, index, parent_transform))
