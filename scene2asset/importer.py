"""Load a scene file through assimp_py and hand back the read-only model."""

import logging
import os

import assimp_py

from .errors import DecodeError
from .scene import adapt_scene

_log = logging.getLogger(__name__)

IMPORT_FLAGS = assimp_py.Process_Triangulate | assimp_py.Process_CalcTangentSpace


def load_scene(path, flags=IMPORT_FLAGS):
    """Decode `path` with assimp and adapt it. Raises DecodeError on failure."""
    if not os.path.isfile(path):
        raise DecodeError(f"source not found: {path}")
    _log.info("importing %s (%d bytes)", path, os.path.getsize(path))
    try:
        raw = assimp_py.import_file(path, flags)
    except Exception as e:
        raise DecodeError(f"{path}: {e}") from e
    return adapt_scene(raw, diffuse_key=getattr(assimp_py, 'TextureType_DIFFUSE', 1))
