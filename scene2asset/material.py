"""Material files (.mat) and their diffuse texture sidecars.

A material file is a small JSON record:

    {"shader": "shaders/skinned.shd", "texture": {"source": "textures/body.dds"}}

The texture entry is present only when the material has a diffuse texture.
Converting textures to another format is left to a caller-supplied converter;
without conversion the texture is copied next to the material file.
"""

import json
import logging
import ntpath
import os
import posixpath
import shlex
import shutil
import subprocess

from .errors import AssetIOError

_log = logging.getLogger(__name__)

CONVERTED_TEXTURE_EXT = '.dds'


def shader_name(skinned):
    return f"shaders/{'skinned' if skinned else 'rigid'}.shd"


def destination_texture_path(texture_path):
    """Where a texture lands below the output folder.

    Drive letters, leading slashes and `..` steps are dropped, so absolute and
    parent-relative paths stay inside the destination:

        C:\\art\\wood.png   -> art/wood.png
        /tmp/wood.png      -> tmp/wood.png
        ../shared/wood.png -> shared/wood.png
    """
    path = ntpath.splitdrive(texture_path.replace('\\', '/'))[1]
    parts = posixpath.normpath(path).split('/')
    return '/'.join(p for p in parts if p not in ('', '.', '..'))


def _texture_parts(texture_path):
    """Source path as written in the scene, plus the destination-side split."""
    source = texture_path.replace('\\', '/')
    relative = destination_texture_path(texture_path)
    directory, filename = posixpath.split(relative)
    stem, ext = posixpath.splitext(filename)
    return source, relative, directory, stem, ext


def texture_reference(texture_path, convert_textures):
    """Path the material file points at, re-pointed to the converted sidecar."""
    _, relative, directory, stem, _ = _texture_parts(texture_path)
    if convert_textures:
        return posixpath.join(directory, stem + CONVERTED_TEXTURE_EXT)
    return relative


def material_document(material, skinned, convert_textures=False):
    doc = {'shader': shader_name(skinned)}
    texture = material.diffuse_texture
    if texture:
        doc['texture'] = {'source': texture_reference(texture, convert_textures)}
    return doc


def material_path(destination, material):
    return os.path.join(destination, f"{material.name}.mat")


def write_material_file(path, document):
    try:
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(document, f)
    except OSError as e:
        raise AssetIOError(path, e.strerror or str(e)) from e


# ============================================================
# Texture Sidecars
# ============================================================

def make_command_converter(template):
    """Converter running an external tool, e.g. "nvcompress {src} {dst}"."""
    def convert(src, dst):
        cmd = [part.format(src=src, dst=dst) for part in shlex.split(template)]
        _log.debug("running %s", ' '.join(cmd))
        subprocess.check_call(cmd)
    return convert


def export_texture(texture_path, source_dir, destination, convert_textures=False,
                   converter=None):
    """Copy or convert one texture into `destination`, keeping its relative folder.

    Returns the written path. Raises AssetIOError on any failure.
    """
    source, relative, directory, stem, ext = _texture_parts(texture_path)
    src = os.path.join(source_dir, source)
    if not os.path.isfile(src):
        raise AssetIOError(src, "texture not found")
    if not stem:
        raise AssetIOError(src, "texture path has no file name")

    out_dir = os.path.join(destination, directory)
    os.makedirs(out_dir, exist_ok=True)

    if convert_textures and ext.lower() != CONVERTED_TEXTURE_EXT:
        dst = os.path.join(out_dir, stem + CONVERTED_TEXTURE_EXT)
        if converter is None:
            raise AssetIOError(dst, "texture conversion requested but no converter configured")
        try:
            converter(src, dst)
        except (OSError, subprocess.CalledProcessError) as e:
            raise AssetIOError(dst, f"texture conversion failed: {e}") from e
    else:
        dst = os.path.join(destination, relative)
        try:
            shutil.copyfile(src, dst)
        except OSError as e:
            raise AssetIOError(dst, e.strerror or str(e)) from e
    _log.debug("texture %s -> %s", src, dst)
    return dst


def save_material(material, skinned, source_dir, destination, convert_textures=False,
                  converter=None):
    """Write `<name>.mat` and its texture sidecar; returns the material path."""
    path = material_path(destination, material)
    write_material_file(path, material_document(material, skinned, convert_textures))
    if material.diffuse_texture:
        export_texture(material.diffuse_texture, source_dir, destination,
                       convert_textures, converter)
    return path
