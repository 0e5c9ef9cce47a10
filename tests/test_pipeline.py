import dataclasses
import json
import os

import pytest

from scene2asset import (
    AssetIOError, ConversionCancelled, DecodeError, ExportOptions, MalformedChannelError,
    NameResolutionError, convert_file, convert_scene,
)
from scene2asset.material import destination_texture_path
from scene2asset.reader import read_animation_asset, read_mesh_asset
from scene2asset.scene import Animation, Bone, Channel, Material
from scenes import make_mesh, rigid_scene, skinned_scene, walk_clip


def listing(path):
    return sorted(os.listdir(path))


def test_skinned_scene_writes_every_artifact(tmp_path):
    scene = skinned_scene([walk_clip("walk"), walk_clip("run", duration=5.0)])
    report = convert_scene(scene, "assets/hero.fbx", str(tmp_path))

    assert report.ok
    assert listing(tmp_path) == ["body.mat", "hero.msh", "run.ani", "walk.ani"]
    assert [r.kind for r in report.results] == ["mesh", "material", "animation", "animation"]

    mesh = read_mesh_asset(str(tmp_path / "hero.msh"))
    assert mesh.meshes[0].name == "body"
    assert [n.name for n in mesh.nodes] == ["root", "upper", "lower"]
    assert read_animation_asset(str(tmp_path / "run.ani")).frame_count == 5

    doc = json.loads((tmp_path / "body.mat").read_text())
    assert doc == {"shader": "shaders/skinned.shd"}


def test_rigid_scene_uses_rigid_shader(tmp_path):
    report = convert_scene(rigid_scene(), "crate.obj", str(tmp_path))
    assert report.ok
    doc = json.loads((tmp_path / "crate.mat").read_text())
    assert doc["shader"] == "shaders/rigid.shd"


def test_options_skip_materials_and_animations(tmp_path):
    options = ExportOptions(import_materials=False, import_animations=False)
    report = convert_scene(skinned_scene([walk_clip()]), "hero.fbx", str(tmp_path), options)
    assert report.ok
    assert listing(tmp_path) == ["hero.msh"]


def test_unnamed_clips_are_numbered(tmp_path):
    convert_scene(skinned_scene([walk_clip(""), walk_clip("")]), "hero.fbx", str(tmp_path))
    assert "hero_0.ani" in listing(tmp_path)
    assert "hero_1.ani" in listing(tmp_path)


def test_progress_is_monotonic_from_zero_to_one(tmp_path):
    seen = []
    convert_scene(skinned_scene([walk_clip()]), "hero.fbx", str(tmp_path),
                  progress=lambda fraction, stage: seen.append((fraction, stage)))

    fractions = [f for f, _ in seen]
    assert fractions[0] == 0.0
    assert fractions[-1] == 1.0
    assert fractions == sorted(fractions)
    stages = [s for _, s in seen]
    assert "mesh table" in stages
    assert "geometry" in stages
    assert 2 / 3 in fractions


def test_file_conversion_progress_never_goes_back(tmp_path, monkeypatch):
    from scene2asset import importer

    monkeypatch.setattr(importer, 'load_scene', lambda path: skinned_scene([walk_clip()]))
    seen = []
    convert_file("hero.fbx", str(tmp_path), progress=lambda f, s: seen.append((f, s)))

    fractions = [f for f, _ in seen]
    assert seen[0] == (0.0, 'decode')
    assert (1 / 3, 'decoded') in seen
    assert fractions.count(0.0) == 1
    assert fractions == sorted(fractions)
    assert fractions[-1] == 1.0


def test_material_progress_is_spread_over_last_third(tmp_path):
    scene = dataclasses.replace(rigid_scene(), materials=(Material("a"), Material("b")))
    seen = []
    convert_scene(scene, "x.obj", str(tmp_path), progress=lambda f, s: seen.append((f, s)))
    material_steps = [f for f, s in seen if s == 'materials']
    assert material_steps == pytest.approx([2 / 3, 2 / 3 + 1 / 6])


def test_failing_clip_does_not_stop_the_others(tmp_path):
    broken = Animation("broken", 5.0, 25.0, (Channel("upper", (), ((0.0, (0.0, 0.0, 0.0, 1.0)),)),))
    scene = skinned_scene([walk_clip("walk"), broken, walk_clip("idle")])
    report = convert_scene(scene, "hero.fbx", str(tmp_path))

    assert not report.ok
    failure, = report.failures()
    assert isinstance(failure.error, MalformedChannelError)
    assert failure.path.endswith("broken.ani")
    assert {"walk.ani", "idle.ani", "hero.msh", "body.mat"} <= set(listing(tmp_path))


def test_unknown_bone_fails_mesh_and_skips_materials(tmp_path):
    scene = skinned_scene([walk_clip()])
    mesh = dataclasses.replace(scene.meshes[0], bones=(Bone("tail", ((0, 1.0),)),))
    scene = dataclasses.replace(scene, meshes=(mesh,))

    report = convert_scene(scene, "hero.fbx", str(tmp_path))

    mesh_result, = report.of_kind('mesh')
    assert isinstance(mesh_result.error, NameResolutionError)
    assert mesh_result.error.name == "tail"
    assert report.of_kind('material') == []
    assert listing(tmp_path) == ["walk.ani"]


def test_missing_destination_is_reported_per_artifact(tmp_path):
    missing = str(tmp_path / "nope")
    report = convert_scene(skinned_scene([walk_clip()]), "hero.fbx", missing)

    assert [r.kind for r in report.failures()] == ["mesh", "animation"]
    assert all(isinstance(r.error, AssetIOError) for r in report.failures())
    assert isinstance(report.failures()[0].error, OSError)


def test_undecodable_scene_writes_nothing(tmp_path):
    scene = dataclasses.replace(rigid_scene(), meshes=(make_mesh(3, [(0, 1, 9)]),))
    with pytest.raises(DecodeError):
        convert_scene(scene, "bad.obj", str(tmp_path))
    assert listing(tmp_path) == []


def test_cancel_before_start_writes_nothing(tmp_path):
    with pytest.raises(ConversionCancelled) as exc:
        convert_scene(skinned_scene(), "hero.fbx", str(tmp_path), should_cancel=lambda: True)
    assert exc.value.stage == 'skin binding'
    assert listing(tmp_path) == []


def test_cancel_between_stages_keeps_finished_artifacts(tmp_path):
    calls = []

    def should_cancel():
        calls.append(1)
        return len(calls) > 2

    with pytest.raises(ConversionCancelled) as exc:
        convert_scene(skinned_scene([walk_clip()]), "hero.fbx", str(tmp_path),
                      should_cancel=should_cancel)
    assert exc.value.report.of_kind('mesh')[0].ok
    assert listing(tmp_path) == ["hero.msh"]


# ============================================================
# Textures
# ============================================================

def textured_scene(texture):
    return dataclasses.replace(rigid_scene(), materials=(Material("crate", (texture,)),))


def test_texture_is_copied_next_to_material(tmp_path):
    src = tmp_path / "src"
    out = tmp_path / "out"
    (src / "tex").mkdir(parents=True)
    out.mkdir()
    (src / "tex" / "wood.png").write_bytes(b"png")

    report = convert_scene(textured_scene("tex\\wood.png"), str(src / "crate.obj"), str(out))

    assert report.ok
    assert (out / "tex" / "wood.png").read_bytes() == b"png"
    doc = json.loads((out / "crate.mat").read_text())
    assert doc["texture"] == {"source": "tex/wood.png"}


def test_texture_conversion_uses_converter(tmp_path):
    src = tmp_path / "src"
    out = tmp_path / "out"
    src.mkdir()
    out.mkdir()
    (src / "wood.tga").write_bytes(b"tga")
    calls = []

    def converter(source, dest):
        calls.append((source, dest))
        with open(dest, 'wb') as f:
            f.write(b"dds")

    options = ExportOptions(convert_textures=True, texture_converter=converter)
    report = convert_scene(textured_scene("wood.tga"), str(src / "crate.obj"), str(out), options)

    assert report.ok
    assert calls == [(str(src / "wood.tga"), str(out / "wood.dds"))]
    assert json.loads((out / "crate.mat").read_text())["texture"] == {"source": "wood.dds"}


def test_conversion_without_converter_fails_material(tmp_path):
    src = tmp_path / "src"
    out = tmp_path / "out"
    src.mkdir()
    out.mkdir()
    (src / "wood.tga").write_bytes(b"tga")

    options = ExportOptions(convert_textures=True)
    report = convert_scene(textured_scene("wood.tga"), str(src / "crate.obj"), str(out), options)
    failure, = report.failures()
    assert failure.kind == 'material'
    assert isinstance(failure.error, AssetIOError)


def test_missing_texture_fails_only_that_material(tmp_path):
    report = convert_scene(textured_scene("gone.png"), str(tmp_path / "crate.obj"), str(tmp_path))
    assert report.of_kind('mesh')[0].ok
    failure, = report.failures()
    assert failure.kind == 'material'
    assert "texture not found" in str(failure.error)


@pytest.mark.parametrize("texture, expected", [
    ("tex\\wood.png", "tex/wood.png"),
    ("C:\\art\\wood.png", "art/wood.png"),
    ("/tmp/wood.png", "tmp/wood.png"),
    ("../shared/wood.png", "shared/wood.png"),
    ("a/../../b/./wood.png", "b/wood.png"),
])
def test_destination_texture_path_stays_relative(texture, expected):
    assert destination_texture_path(texture) == expected


def test_absolute_texture_is_converted_into_destination(tmp_path):
    elsewhere = tmp_path / "elsewhere"
    src = tmp_path / "src"
    out = tmp_path / "out"
    for d in (elsewhere, src, out):
        d.mkdir()
    texture = elsewhere / "wood.tga"
    texture.write_bytes(b"tga")
    calls = []

    def converter(source, dest):
        calls.append((source, dest))
        with open(dest, 'wb') as f:
            f.write(b"dds")

    options = ExportOptions(convert_textures=True, texture_converter=converter)
    report = convert_scene(textured_scene(str(texture)), str(src / "crate.obj"), str(out), options)

    assert report.ok
    relative = str(texture).replace('\\', '/').lstrip('/')
    (source, dest), = calls
    assert source == str(texture)
    assert os.path.commonpath([dest, str(out)]) == str(out)
    assert dest == os.path.join(str(out), relative[:-len(".tga")] + ".dds")
    reference = json.loads((out / "crate.mat").read_text())["texture"]["source"]
    assert reference == relative[:-len(".tga")] + ".dds"
    assert not (elsewhere / "wood.dds").exists()


def test_absolute_texture_is_copied_into_destination(tmp_path):
    elsewhere = tmp_path / "elsewhere"
    out = tmp_path / "out"
    elsewhere.mkdir()
    out.mkdir()
    texture = elsewhere / "wood.png"
    texture.write_bytes(b"png")

    report = convert_scene(textured_scene(str(texture)), str(tmp_path / "crate.obj"), str(out))

    assert report.ok
    relative = str(texture).replace('\\', '/').lstrip('/')
    assert (out / relative).read_bytes() == b"png"
    assert json.loads((out / "crate.mat").read_text())["texture"] == {"source": relative}


def test_parent_relative_texture_stays_inside_destination(tmp_path):
    src = tmp_path / "src"
    out = tmp_path / "out"
    (tmp_path / "shared").mkdir()
    src.mkdir()
    out.mkdir()
    (tmp_path / "shared" / "wood.png").write_bytes(b"png")

    report = convert_scene(textured_scene("../shared/wood.png"), str(src / "crate.obj"), str(out))

    assert report.ok
    assert (out / "shared" / "wood.png").read_bytes() == b"png"
    assert json.loads((out / "crate.mat").read_text())["texture"] == {"source": "shared/wood.png"}
