#!/usr/bin/env python3
"""Render a scene to a PNG file.

Renders the built-in Cornell box, or a JSON scene file, block by block and
writes the gamma-corrected result as an 8-bit PNG.

Usage:
    python examples/render_scene.py [options]

Options:
    --scene FILE          JSON scene file (default: the Cornell box)
    --width WIDTH         Image width in pixels
    --height HEIGHT       Image height in pixels
    --samples SAMPLES     Samples per pixel
    --jittered            Use the jittered sampler (SAMPLES must be a square)
    --integrator NAME     path_tracer, direct, ambient_occlusion or point_lights
    --depth DEPTH         Path tracer depth limit
    --output OUTPUT       Output file path
    --verbose             Log every rendered block
    --quiet               Suppress progress output

Example:
    python examples/render_scene.py --width 256 --height 256 --samples 16
"""

import argparse
import dataclasses
import logging
import math
import sys
import time
from pathlib import Path

import taichi as ti

logger = logging.getLogger("render_scene")

INTEGRATORS = ("path_tracer", "direct", "ambient_occlusion", "point_lights")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a scene to a PNG file.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--scene", type=str, default=None, help="JSON scene file (default: Cornell box)")
    parser.add_argument("--width", type=int, default=None, help="Image width in pixels (default: 256)")
    parser.add_argument("--height", type=int, default=None, help="Image height in pixels (default: 256)")
    parser.add_argument("--samples", type=int, default=None, help="Samples per pixel")
    parser.add_argument("--jittered", action="store_true", help="Use the jittered sampler")
    parser.add_argument("--integrator", choices=INTEGRATORS, default=None, help="Integrator to use")
    parser.add_argument("--depth", type=int, default=None, help="Path tracer depth limit")
    parser.add_argument("--output", type=str, default=None, help="Output file path")
    parser.add_argument("--verbose", action="store_true", help="Log every rendered block")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    return parser.parse_args(argv)


def render_scene(args: argparse.Namespace) -> Path:
    """Build the requested scene, render it and save it.

    Command-line values override those of the scene file.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports so that Taichi is initialized before fields are declared
    from raycore.config import RenderSettings, load_scene_file
    from raycore.core.block_renderer import BlockRenderer
    from raycore.core.integrator import PathTracerIntegrator, integrator_from_dict
    from raycore.sampling.sampler import IndependentSampler, JitteredSampler
    from raycore.scene.cornell_box import create_cornell_box_scene

    if args.scene is not None:
        scene, settings = load_scene_file(args.scene)
    else:
        settings = RenderSettings(width=256, height=256, output="cornell_box.png")
        scene = create_cornell_box_scene()
        scene.set_sampler(IndependentSampler(num_samples=16))

    resized = args.scene is None or args.width is not None or args.height is not None
    if args.width is not None:
        settings.width = args.width
    if args.height is not None:
        settings.height = args.height
    if args.output is not None:
        settings.output = args.output
    settings.validate()
    if resized and scene.camera is not None:
        scene.set_camera(dataclasses.replace(scene.camera, aspect_ratio=settings.aspect_ratio))

    if args.samples is not None:
        if args.jittered:
            side = math.isqrt(args.samples)
            if side * side != args.samples:
                raise ValueError(f"--jittered needs a square sample count, got {args.samples}")
            scene.set_sampler(JitteredSampler(num_samples_u=side, num_samples_v=side))
        else:
            scene.set_sampler(IndependentSampler(num_samples=args.samples))

    if args.integrator is not None:
        scene.set_integrator(integrator_from_dict({"type": args.integrator}))
    if args.depth is not None:
        if not isinstance(scene.integrator, PathTracerIntegrator):
            raise ValueError("--depth only applies to the path_tracer integrator")
        scene.integrator.depth_limit = args.depth
        scene.set_integrator(scene.integrator)

    renderer = BlockRenderer(scene, settings.width, settings.height, settings.block_size)
    start_time = time.time()

    def progress_callback(done: int, total: int) -> None:
        if not args.quiet:
            elapsed = time.time() - start_time
            print(
                f"\r  Progress: {done}/{total} blocks ({100.0 * done / total:.1f}%) - {elapsed:.1f}s",
                end="",
                flush=True,
            )

    renderer.render(callback=progress_callback)
    if not args.quiet:
        print()

    output_file = renderer.save_png(settings.output)
    logger.info("Total time: %.2fs", time.time() - start_time)
    return output_file


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    ti.init(arch=ti.cpu)

    from raycore.config import setup_logging

    setup_logging(args.verbose)

    try:
        render_scene(args)
        return 0
    except Exception as e:
        logger.error("Rendering failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
