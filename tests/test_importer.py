import pytest

from scene2asset.errors import DecodeError
from scene2asset.importer import load_scene
from scene2asset.pipeline import convert_file
from scene2asset.reader import read_mesh_asset

TRIANGLE_OBJ = """\
v 0.0 0.0 0.0
v 1.0 0.0 0.0
v 0.0 1.0 0.0
vt 0.0 0.0
vt 1.0 0.0
vt 0.0 1.0
vn 0.0 0.0 1.0
f 1/1/1 2/2/1 3/3/1
"""


@pytest.fixture
def triangle(tmp_path):
    path = tmp_path / "tri.obj"
    path.write_text(TRIANGLE_OBJ)
    return path


def test_load_scene_decodes_obj(triangle):
    scene = load_scene(str(triangle))
    mesh, = scene.meshes
    assert mesh.vertex_count == 3
    assert len(mesh.faces) == 1
    assert len(mesh.tangents) == 3
    assert len(mesh.uvs) == 3
    assert sorted(mesh.positions) == [(0.0, 0.0, 0.0), (0.0, 1.0, 0.0), (1.0, 0.0, 0.0)]


def test_convert_file_writes_mesh_asset(triangle, tmp_path):
    out = tmp_path / "out"
    out.mkdir()
    seen = []
    report = convert_file(str(triangle), str(out), progress=lambda f, s: seen.append(f))

    assert report.of_kind('mesh')[0].ok
    asset = read_mesh_asset(str(out / "tri.msh"))
    assert asset.triangle_count == 1
    assert sum(m.vertex_count for m in asset.meshes) == 3

    assert seen[0] == 0.0
    assert seen[-1] == 1.0
    assert seen == sorted(seen)


def test_missing_file_is_a_decode_error(tmp_path):
    with pytest.raises(DecodeError, match="not found"):
        load_scene(str(tmp_path / "nope.obj"))
