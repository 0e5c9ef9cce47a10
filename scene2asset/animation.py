"""Resample keyframe channels at integer frames and write .ani assets.

Each clip becomes a dense frame-major, bone-minor buffer of positions and
rotations covering every node of the bone table. Nodes without a channel hold
their local rest pose for the whole clip.
"""

import logging
import zlib
from dataclasses import dataclass
from typing import List, Tuple

from .errors import MalformedChannelError
from .formats import ANIMATION_MAGIC, ANIMATION_VERSION, DEFAULT_FPS, TEXT_ENCODING
from .mathutil import decompose_no_scaling, lerp3, slerp

_log = logging.getLogger(__name__)


# ============================================================
# Sampling
# ============================================================

def _sample(keys, frame, interpolate):
    if frame <= keys[0][0]:
        return keys[0][1]
    for i in range(len(keys) - 1):
        t0 = keys[i][0]
        t1 = keys[i + 1][0]
        if frame < t1:
            span = t1 - t0
            t = (frame - t0) / span if span > 0 else 0.0
            return interpolate(keys[i][1], keys[i + 1][1], t)
    return keys[-1][1]


def sample_position(keys, frame):
    """Linear blend of the keys bracketing `frame`; clamps outside the keys."""
    return tuple(_sample(keys, frame, lerp3))


def sample_rotation(keys, frame):
    """Shortest-arc slerp of the keys bracketing `frame`; clamps outside the keys."""
    return tuple(_sample(keys, frame, slerp))


def bone_name_hash(name):
    return zlib.crc32(name.encode(TEXT_ENCODING)) & 0xFFFFFFFF


# ============================================================
# Resampling
# ============================================================

@dataclass
class ResampledClip:
    name: str
    fps: float
    frame_count: int
    bone_count: int
    positions: List[Tuple[float, float, float]]
    rotations: List[Tuple[float, float, float, float]]
    hashes: List[int]


def check_channels(animation):
    for channel in animation.channels:
        if not channel.position_keys:
            raise MalformedChannelError(animation.name, channel.node_name, 'position')
        if not channel.rotation_keys:
            raise MalformedChannelError(animation.name, channel.node_name, 'rotation')


def resample(animation, skeleton):
    """Sample every channel of `animation` at frames 0 .. int(duration) - 1."""
    check_channels(animation)

    fps = animation.ticks_per_second if animation.ticks_per_second else DEFAULT_FPS
    frame_count = max(int(animation.duration), 0)
    bone_count = len(skeleton)

    rest = [decompose_no_scaling(t) for t in skeleton.transforms]
    positions = [rest[b][0] for b in range(bone_count)] * frame_count
    rotations = [rest[b][1] for b in range(bone_count)] * frame_count

    for channel in animation.channels:
        bone_index = skeleton.resolve(channel.node_name, f"animation '{animation.name}'")
        for frame in range(frame_count):
            slot = frame * bone_count + bone_index
            positions[slot] = sample_position(channel.position_keys, frame)
            rotations[slot] = sample_rotation(channel.rotation_keys, frame)

    _log.debug("clip '%s': %d frames x %d bones at %g fps, %d channels",
               animation.name, frame_count, bone_count, fps, len(animation.channels))
    return ResampledClip(
        name=animation.name,
        fps=float(fps),
        frame_count=frame_count,
        bone_count=bone_count,
        positions=positions,
        rotations=rotations,
        hashes=[bone_name_hash(n) for n in skeleton.names],
    )


# ============================================================
# Binary Output (.ani)
# ============================================================

def write_animation(writer, clip):
    writer.u32(ANIMATION_MAGIC)
    writer.u32(ANIMATION_VERSION)
    writer.f32(clip.fps)
    writer.i32(clip.frame_count)
    writer.i32(clip.bone_count)
    for position in clip.positions:
        writer.floats(position)
    for rotation in clip.rotations:
        writer.floats(rotation)
    for value in clip.hashes:
        writer.u32(value)
    return writer.written
