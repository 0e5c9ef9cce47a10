"""Command line entry point.

Usage: scene2asset convert <scene file> [destination] [--no-materials] [--no-animations]
                           [--convert-textures --texture-tool "tool {src} {dst}"]
                           [--strict-vertex-layout]
       scene2asset inspect <scene file>
       scene2asset dump <file.msh|file.ani> [--strict-vertex-layout]
       scene2asset to-obj <file.msh> [output.obj] [--strict-vertex-layout]
"""

import argparse
import logging
import os
import sys

from .errors import ConversionCancelled, DecodeError
from .material import make_command_converter
from .pipeline import ExportOptions, convert_file
from .reader import read_animation_asset, read_mesh_asset


def _progress(fraction, stage):
    print(f"  [{fraction * 100:5.1f}%] {stage}")


def cmd_convert(args):
    destination = args.destination or os.path.dirname(os.path.abspath(args.source))
    os.makedirs(destination, exist_ok=True)

    converter = make_command_converter(args.texture_tool) if args.texture_tool else None
    options = ExportOptions(
        import_materials=not args.no_materials,
        import_animations=not args.no_animations,
        convert_textures=args.convert_textures,
        texture_converter=converter,
        strict_vertex_layout=args.strict_vertex_layout,
    )

    print(f"Converting: {args.source}")
    print(f"Output: {destination}")
    try:
        report = convert_file(args.source, destination, options, progress=_progress)
    except DecodeError as e:
        print(f"ERROR: {e}")
        return 1
    except ConversionCancelled as e:
        print(f"Cancelled: {e}")
        return 1

    for r in report.results:
        status = "ok" if r.ok else f"FAILED ({r.error})"
        print(f"  {r.kind:9s} {r.path}: {status}")
    print("Done!" if report.ok else f"Done with {len(report.failures())} failure(s).")
    return 0 if report.ok else 1


def cmd_inspect(args):
    from .describe import print_scene
    from .importer import load_scene

    try:
        scene = load_scene(args.source)
    except DecodeError as e:
        print(f"ERROR: {e}")
        return 1
    print_scene(scene, args.source)
    return 0


def cmd_dump(args):
    from .describe import print_animation_asset, print_mesh_asset

    if args.asset.lower().endswith('.ani'):
        print_animation_asset(read_animation_asset(args.asset), args.asset)
    else:
        print_mesh_asset(read_mesh_asset(args.asset, args.strict_vertex_layout), args.asset)
    return 0


def cmd_to_obj(args):
    from .describe import export_obj

    out = args.out or os.path.splitext(args.asset)[0] + ".obj"
    asset = read_mesh_asset(args.asset, args.strict_vertex_layout)
    mesh = export_obj(asset, out)
    print(f"  -> {os.path.basename(out)} ({len(mesh.vertices)} verts, {len(mesh.faces)} tris)")
    return 0


def build_parser():
    p = argparse.ArgumentParser(prog="scene2asset")
    p.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    c = sub.add_parser("convert", help="Convert a scene file into .msh/.mat/.ani assets")
    c.add_argument("source")
    c.add_argument("destination", nargs="?")
    c.add_argument("--no-materials", action="store_true")
    c.add_argument("--no-animations", action="store_true")
    c.add_argument("--convert-textures", action="store_true",
                   help="point materials at .dds sidecars and convert textures")
    c.add_argument("--texture-tool", help='converter command, e.g. "nvcompress {src} {dst}"')
    c.add_argument("--strict-vertex-layout", action="store_true",
                   help="omit the skin block from rigid vertices")
    c.set_defaults(fn=cmd_convert)

    i = sub.add_parser("inspect", help="Print the structure of a scene file")
    i.add_argument("source")
    i.set_defaults(fn=cmd_inspect)

    d = sub.add_parser("dump", help="Print the contents of a .msh or .ani asset")
    d.add_argument("asset")
    d.add_argument("--strict-vertex-layout", action="store_true")
    d.set_defaults(fn=cmd_dump)

    o = sub.add_parser("to-obj", help="Export a .msh asset as OBJ")
    o.add_argument("asset")
    o.add_argument("out", nargs="?")
    o.add_argument("--strict-vertex-layout", action="store_true")
    o.set_defaults(fn=cmd_to_obj)
    return p


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")
    return int(args.fn(args))


if __name__ == "__main__":
    sys.exit(main())
