"""Human-readable dumps of scenes and written assets, plus OBJ export of a
mesh asset through trimesh for a quick visual check."""

import trimesh

from .formats import AttributeType, NORMAL_SCALE
from .skeleton import count_nodes


def print_scene(scene, path=None):
    print(f"\n{'='*60}")
    if path:
        print(f"SCENE: {path}")
    print(f"{'='*60}")

    print(f"\n--- NODE HIERARCHY ({count_nodes(scene.root)} nodes) ---")
    stack = [(scene.root, 0)]
    while stack:
        node, depth = stack.pop()
        name = node.name if node.name else "(unnamed)"
        print(f"{'  '*depth}{name}  children={len(node.children)}")
        for c in reversed(node.children):
            stack.append((c, depth + 1))

    print(f"\n--- MESHES ({len(scene.meshes)}) ---")
    for i, mesh in enumerate(scene.meshes):
        print(f"  Mesh[{i}]: name='{mesh.name}' verts={mesh.vertex_count} faces={len(mesh.faces)} "
              f"material={mesh.material_index}")
        for j, bone in enumerate(mesh.bones):
            print(f"      Bone[{j}]: '{bone.name}' weights={len(bone.weights)}")
        if mesh.positions:
            xs = [p[0] for p in mesh.positions]
            ys = [p[1] for p in mesh.positions]
            zs = [p[2] for p in mesh.positions]
            print(f"    bounds: X[{min(xs):.2f}, {max(xs):.2f}] Y[{min(ys):.2f}, {max(ys):.2f}] "
                  f"Z[{min(zs):.2f}, {max(zs):.2f}]")

    print(f"\n--- MATERIALS ({len(scene.materials)}) ---")
    for i, mat in enumerate(scene.materials):
        print(f"  Material[{i}]: '{mat.name}' diffuse={mat.diffuse_texture or '-'}")

    print(f"\n--- ANIMATIONS ({len(scene.animations)}) ---")
    for i, anim in enumerate(scene.animations):
        print(f"  Animation[{i}]: name='{anim.name}'")
        print(f"    duration={anim.duration} ticks_per_sec={anim.ticks_per_second}")
        for j, ch in enumerate(anim.channels):
            print(f"      Channel[{j}]: bone='{ch.node_name}' pos_keys={len(ch.position_keys)} "
                  f"rot_keys={len(ch.rotation_keys)}")


def print_mesh_asset(asset, path=None):
    print(f"MESH ASSET: {path or ''} version={asset.version}")
    for i, m in enumerate(asset.meshes):
        attrs = ', '.join(f"{name}:{AttributeType(tag).name}" for name, tag in m.attributes)
        print(f"  Mesh[{i}]: '{m.name}' material='{m.material_name}' verts={m.vertex_count} "
              f"tris={m.tri_count} vbuf=[{m.vbuf_offset}+{m.vbuf_size}] ibuf={m.ibuf_offset}")
        print(f"    attributes: {attrs}")
    print(f"  Indices: {len(asset.indices)} ({asset.triangle_count} triangles)")
    print(f"  Vertex buffer: {asset.vbuf_size} bytes declared, {len(asset.vertices)} vertices")
    print(f"  Skeleton: {len(asset.nodes)} nodes")
    for n in asset.nodes:
        print(f"    {n.name}  parent='{n.parent_name}'  pos=({n.position[0]:.3f}, "
              f"{n.position[1]:.3f}, {n.position[2]:.3f})")
    for to_mesh, distance in asset.lods:
        print(f"  LOD: to_mesh={to_mesh} distance={distance:g}")


def print_animation_asset(asset, path=None):
    print(f"ANIMATION ASSET: {path or ''} version={asset.version}")
    print(f"  fps={asset.fps:g} frames={asset.frame_count} bones={asset.bone_count}")
    for i, h in enumerate(asset.hashes):
        print(f"    Bone[{i}]: crc32=0x{h:08X}")


# ============================================================
# OBJ Export
# ============================================================

def mesh_asset_to_trimesh(asset):
    """Merge every mesh of a decoded asset into one trimesh.Trimesh.

    Index buffer entries are per-mesh vertex indices, so each mesh's faces are
    offset by the position of its first vertex in the shared buffer.
    """
    positions = [v.position for v in asset.vertices]
    # stored (x, z, y, 0)
    normals = [(v.normal[0] / NORMAL_SCALE, v.normal[2] / NORMAL_SCALE, v.normal[1] / NORMAL_SCALE)
               for v in asset.vertices]

    faces = []
    for m in asset.meshes:
        base = m.vbuf_offset // m.vertex_stride
        ids = asset.indices[m.ibuf_offset:m.ibuf_offset + m.tri_count * 3]
        for i in range(0, len(ids), 3):
            faces.append((ids[i] + base, ids[i + 1] + base, ids[i + 2] + base))

    return trimesh.Trimesh(vertices=positions, faces=faces, vertex_normals=normals, process=False)


def export_obj(asset, obj_path):
    mesh = mesh_asset_to_trimesh(asset)
    mesh.export(obj_path, file_type='obj')
    return mesh
