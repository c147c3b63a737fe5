#!/usr/bin/env python3
"""
isomesh - Orchestrator

Sample or load a scalar field, extract its isosurface and export a GLB mesh.

Usage:
    isomesh sphere --size 32 --radius 10 --scale 0.1
    isomesh terrain --width 64 --height 16 --depth 64 --noise-scale 2 --height-scale 4
    isomesh volume data/density.npy --isolevel 0.5 --dedup
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from .assembler import assemble
from .config import Config, MeshMetadata, SignConvention
from .field import ScalarField, InvalidInput
from .generator import MarchingCubesGenerator
from .io import load_volume, save_mesh
from .mesh_ops import compute_mesh_stats
from .samplers import sphere_field, terrain_field

logger = logging.getLogger(__name__)


def build_field(args: argparse.Namespace) -> Tuple[ScalarField, str, dict]:
    """Sample or load the field described by the command line."""
    if args.source == "sphere":
        params = {"size": args.size, "radius": args.radius}
        return sphere_field(args.size, args.radius), f"sphere_{args.size}", params

    if args.source == "terrain":
        params = {
            "width": args.width,
            "height": args.height,
            "depth": args.depth,
            "noise_scale": args.noise_scale,
            "height_scale": args.height_scale
        }
        field = terrain_field(args.width, args.height, args.depth, args.noise_scale, args.height_scale)
        return field, f"terrain_{args.width}x{args.height}x{args.depth}", params

    return load_volume(args.path), args.path.stem, {"path": str(args.path)}


def run(args: argparse.Namespace, config: Config) -> dict:
    """
    Run one extraction and export.

    Returns:
        Summary dictionary
    """
    summary = {
        "timestamp": datetime.now().isoformat(),
        "config": config.to_dict(),
        "source": args.source,
        "status": "pending",
        "errors": []
    }

    try:
        field, name, params = build_field(args)
        generator = MarchingCubesGenerator(config)
        result = generator.generate(field)

        if result.is_empty:
            logger.warning(f"No surface at isolevel {config.isolevel} for {name}")
            summary["status"] = "empty"
            return summary

        renderable = assemble(result.mesh, result.normals, config.scale)

        metadata = MeshMetadata(
            source=args.source,
            isolevel=config.isolevel,
            scale=config.scale,
            dimensions=field.shape,
            n_triangles=result.mesh.n_triangles,
            n_vertices=result.mesh.n_vertices,
            sign_convention=config.sign.value,
            deduplicated=config.deduplicate_vertices,
            generation_params=params
        )
        output_path = config.output_dir / "meshes" / f"{name}.glb"
        save_mesh(renderable, output_path, metadata)

        summary["status"] = "success"
        summary["output"] = str(output_path)
        summary["metadata"] = metadata.to_dict()
        summary["stats"] = compute_mesh_stats(renderable)

    except (InvalidInput, OSError) as e:
        logger.error(f"Extraction failed: {e}")
        summary["status"] = "error"
        summary["errors"].append(str(e))

    return summary


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="isomesh - Extract isosurface meshes from scalar fields"
    )
    sub = parser.add_subparsers(dest="source", required=True)

    sphere = sub.add_parser("sphere", help="Sample a sphere field")
    sphere.add_argument("--size", type=int, default=32, help="Grid size along each axis")
    sphere.add_argument("--radius", type=float, default=10.0, help="Sphere radius in cells")

    terrain = sub.add_parser("terrain", help="Sample a height-function terrain")
    terrain.add_argument("--width", type=int, default=64)
    terrain.add_argument("--height", type=int, default=16)
    terrain.add_argument("--depth", type=int, default=64)
    terrain.add_argument("--noise-scale", type=float, default=1.0)
    terrain.add_argument("--height-scale", type=float, default=4.0)

    volume = sub.add_parser("volume", help="Load a .npy volume shaped (depth, height, width)")
    volume.add_argument("path", type=Path)

    for p in (sphere, terrain, volume):
        p.add_argument(
            "--config", "-c",
            type=Path,
            help="JSON config file (command line flags override it)"
        )
        p.add_argument("--isolevel", "-l", type=float, default=None, help="Surface threshold")
        p.add_argument("--scale", "-s", type=float, default=None, help="Vertex scale factor")
        p.add_argument(
            "--sign",
            choices=[s.value for s in SignConvention],
            default=None,
            help="Which side of the isolevel is solid"
        )
        p.add_argument("--dedup", action="store_true", help="Weld vertices shared by neighbouring cubes")
        p.add_argument("--slab-depth", type=int, default=None, help="Cube layers per partition")
        p.add_argument("--output", "-o", type=Path, default=None, help="Output directory")
        p.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    return parser


def build_config(args: argparse.Namespace) -> Config:
    config = Config.from_json(args.config) if args.config else Config()
    if args.isolevel is not None:
        config.isolevel = args.isolevel
    if args.scale is not None:
        config.scale = args.scale
    if args.sign is not None:
        config.sign = SignConvention(args.sign)
    if args.dedup:
        config.deduplicate_vertices = True
    if args.slab_depth is not None:
        config.slab_depth = args.slab_depth
    if args.output is not None:
        config.output_dir = args.output
    return config


def main(argv: Optional[List[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    # Setup logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    config = build_config(args)

    logger.info(f"Source: {args.source}")
    logger.info(f"Isolevel: {config.isolevel}, scale: {config.scale}, sign: {config.sign.value}")
    logger.info(f"Output: {config.output_dir}")

    summary = run(args, config)

    # Save summary
    summary_path = config.output_dir / "run_summary.json"
    summary_path.parent.mkdir(parents=True, exist_ok=True)
    with open(summary_path, 'w') as f:
        json.dump(summary, f, indent=2)

    logger.info(f"Summary saved to: {summary_path}")
    logger.info(f"{'='*60}")
    logger.info(f"COMPLETE: {summary['status']}")
    logger.info(f"{'='*60}")

    if summary["status"] != "success":
        sys.exit(1)


if __name__ == "__main__":
    main()
