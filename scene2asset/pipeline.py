"""Scene to engine asset conversion.

Stages run strictly in order, each finishing before the next starts:

    scene -> skeleton -> skin binding -> mesh asset (.msh)
          -> materials (.mat + texture sidecars), only if the mesh succeeded
          -> one animation asset (.ani) per clip

Errors local to one artifact are recorded in the report and do not stop the
others; DecodeError aborts before anything is written.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .animation import resample, write_animation
from .binary import BinaryWriter
from .errors import AssetIOError, ConversionCancelled, ConversionError
from .material import material_path, save_material
from .mesh_writer import is_skinned, write_mesh_asset
from .scene import validate_scene
from .skeleton import flatten_skeleton
from .skinning import bind_skin

_log = logging.getLogger(__name__)

MESH_EXT = '.msh'
ANIMATION_EXT = '.ani'


@dataclass
class ExportOptions:
    import_materials: bool = True
    import_animations: bool = True
    convert_textures: bool = False
    texture_converter: Optional[Callable[[str, str], None]] = None
    strict_vertex_layout: bool = False


@dataclass
class ArtifactResult:
    kind: str
    path: str
    error: Optional[ConversionError] = None

    @property
    def ok(self):
        return self.error is None


@dataclass
class ConversionReport:
    results: List[ArtifactResult] = field(default_factory=list)

    @property
    def ok(self):
        return all(r.ok for r in self.results)

    def failures(self):
        return [r for r in self.results if not r.ok]

    def of_kind(self, kind):
        return [r for r in self.results if r.kind == kind]


def _null_progress(fraction, stage):
    pass


class Conversion:
    """One conversion call; owns every derived buffer it creates."""

    def __init__(self, scene, source_path, destination, options=None, progress=None,
                 should_cancel=None):
        self.scene = scene
        self.source_path = source_path
        self.destination = destination
        self.options = options or ExportOptions()
        self.progress = progress or _null_progress
        self.should_cancel = should_cancel
        self.report = ConversionReport()
        self.base_name = os.path.splitext(os.path.basename(source_path))[0]

    def _boundary(self, stage):
        if self.should_cancel is not None and self.should_cancel():
            _log.info("cancelled before %s", stage)
            raise ConversionCancelled(stage, self.report)

    def _record(self, kind, path, error=None):
        if error is None:
            _log.info("written: %s", path)
        else:
            _log.error("%s failed: %s", kind, error)
        self.report.results.append(ArtifactResult(kind, path, error))
        return error is None

    def _write_binary(self, path, encode):
        try:
            with open(path, 'wb') as f:
                return encode(BinaryWriter(f))
        except OSError as e:
            if isinstance(e, AssetIOError):
                raise
            raise AssetIOError(path, e.strerror or str(e)) from e

    # ------------------------------------------------------------

    def save_mesh(self, skeleton):
        path = os.path.join(self.destination, self.base_name + MESH_EXT)
        try:
            skin_infos = bind_skin(self.scene.meshes, skeleton)
            self._boundary('mesh asset')
            checkpoints = {'mesh table': 1 / 3 + 1 / 9, 'geometry': 1 / 3 + 2 / 9}
            size = self._write_binary(path, lambda w: write_mesh_asset(
                w, self.scene, skeleton, skin_infos,
                strict_vertex_layout=self.options.strict_vertex_layout,
                checkpoint=lambda stage: self.progress(checkpoints[stage], stage)))
        except ConversionCancelled:
            raise
        except ConversionError as e:
            return self._record('mesh', path, e)
        _log.debug("mesh asset is %d bytes", size)
        self.progress(2 / 3, 'mesh written')
        return self._record('mesh', path)

    def save_materials(self):
        skinned = is_skinned(self.scene)
        source_dir = os.path.dirname(os.path.abspath(self.source_path))
        count = len(self.scene.materials)
        for i, material in enumerate(self.scene.materials):
            self._boundary(f"material '{material.name}'")
            self.progress(2 / 3 + i / (3 * count), 'materials')
            path = material_path(self.destination, material)
            try:
                save_material(material, skinned, source_dir, self.destination,
                              self.options.convert_textures, self.options.texture_converter)
            except ConversionError as e:
                self._record('material', path, e)
            else:
                self._record('material', path)

    def save_animations(self, skeleton):
        for i, animation in enumerate(self.scene.animations):
            self._boundary(f"animation '{animation.name}'")
            name = animation.name or f"{self.base_name}_{i}"
            path = os.path.join(self.destination, name + ANIMATION_EXT)
            try:
                clip = resample(animation, skeleton)
                self._write_binary(path, lambda w: write_animation(w, clip))
            except ConversionError as e:
                self._record('animation', path, e)
            else:
                self._record('animation', path)

    def run(self, announce_start=True):
        if announce_start:
            self.progress(0.0, 'start')
        validate_scene(self.scene)
        skeleton = flatten_skeleton(self.scene.root)

        self._boundary('skin binding')
        mesh_ok = self.save_mesh(skeleton)

        if mesh_ok and self.options.import_materials:
            self.save_materials()
        if self.options.import_animations:
            self.save_animations(skeleton)

        self.progress(1.0, 'done')
        return self.report


def convert_scene(scene, source_path, destination, options=None, progress=None,
                  should_cancel=None):
    """Convert an already decoded scene; returns a ConversionReport."""
    return Conversion(scene, source_path, destination, options, progress, should_cancel).run()


def convert_file(source_path, destination, options=None, progress=None, should_cancel=None):
    """Decode `source_path` and convert it into `destination`."""
    from .importer import load_scene

    if progress:
        progress(0.0, 'decode')
    scene = load_scene(source_path)
    if progress:
        progress(1 / 3, 'decoded')
    if should_cancel is not None and should_cancel():
        raise ConversionCancelled('mesh asset', ConversionReport())
    conversion = Conversion(scene, source_path, destination, options, progress, should_cancel)
    # decoding already reported the start
    return conversion.run(announce_start=False)
