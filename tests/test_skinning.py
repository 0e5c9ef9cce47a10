import pytest

from scene2asset.errors import NameResolutionError
from scene2asset.scene import Bone
from scene2asset.skeleton import flatten_skeleton
from scene2asset.skinning import bind_skin
from scenes import make_mesh, skinned_scene


def test_two_influences_leave_two_trailing_zero_slots():
    scene = skinned_scene()
    infos = bind_skin(scene.meshes, flatten_skeleton(scene.root))
    assert len(infos) == 4
    for info in infos:
        assert info.filled_count == 2
        assert info.weights == [0.75, 0.25, 0.0, 0.0]
        assert info.bone_indices == [1, 2, 0, 0]
        assert sum(1 for w in info.weights if w != 0.0) == 2


def test_mesh_without_bones_gets_zero_records():
    scene = skinned_scene()
    infos = bind_skin([make_mesh(3, [(0, 1, 2)])], flatten_skeleton(scene.root))
    assert [i.filled_count for i in infos] == [0, 0, 0]
    assert all(i.weights == [0.0] * 4 and i.bone_indices == [0] * 4 for i in infos)


def test_records_follow_mesh_order():
    skeleton = flatten_skeleton(skinned_scene().root)
    first = make_mesh(2, [])
    second = make_mesh(3, [], bones=[Bone("lower", ((1, 1.0),))])
    infos = bind_skin([first, second], skeleton)
    assert len(infos) == 5
    assert infos[3].filled_count == 1
    assert infos[3].bone_indices[0] == 2
    assert all(infos[i].filled_count == 0 for i in (0, 1, 2, 4))


def test_weights_are_not_renormalised():
    skeleton = flatten_skeleton(skinned_scene().root)
    mesh = make_mesh(1, [], bones=[Bone("upper", ((0, 0.2),)), Bone("lower", ((0, 0.3),))])
    info = bind_skin([mesh], skeleton)[0]
    assert info.weights[:2] == [0.2, 0.3]


def test_influences_past_four_are_dropped():
    skeleton = flatten_skeleton(skinned_scene().root)
    bones = [Bone(name, ((0, 0.1 * (i + 1)),))
             for i, name in enumerate(["root", "upper", "lower", "root", "upper"])]
    info = bind_skin([make_mesh(1, [], bones=bones)], skeleton)[0]
    assert info.filled_count == 4
    assert info.weights == pytest.approx([0.1, 0.2, 0.3, 0.4])
    assert info.bone_indices == [0, 1, 2, 0]


def test_unknown_bone_is_surfaced():
    skeleton = flatten_skeleton(skinned_scene().root)
    mesh = make_mesh(1, [], bones=[Bone("ghost", ((0, 1.0),))])
    with pytest.raises(NameResolutionError) as exc:
        bind_skin([mesh], skeleton)
    assert exc.value.name == "ghost"
