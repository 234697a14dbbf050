"""
SurfaceGrapher - 3D Function Grapher for z = f(x, y)
Copyright (C) 2026 balguljang2 (lzpxilfe)
Licensed under the GNU General Public License v2.0 (GPL2)

Main entry point
"""

import sys
import logging
from pathlib import Path

# Ensure repository root is on sys.path so "src" is importable.
ROOT_DIR = Path(__file__).resolve().parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from src.core.runtime_defaults import DEFAULTS
from src.core.output_paths import mesh_output_path, snapshot_output_path

_LOGGER = logging.getLogger(__name__)
DEFAULT_EXPORT_DPI = DEFAULTS.export_dpi
DEFAULT_RENDER_SIZE = DEFAULTS.render_size


def run_cli(argv=None) -> int:
    """커맨드라인 인터페이스 실행"""
    try:
        from src.core.logging_utils import setup_logging

        setup_logging(console_level=logging.WARNING)
    except Exception as e:
        _LOGGER.debug("Failed to initialize logging: %s", e, exc_info=True)

    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print_help()
        return 0

    cmd = args[0]

    if cmd == '--help' or cmd == '-h':
        print_help()
        return 0

    if cmd == '--info' and len(args) > 1:
        return show_expression_info(args[1])

    if cmd == '--render' and len(args) > 1:
        return render_expression(args[1], args[2] if len(args) > 2 else None)

    if cmd == '--export' and len(args) > 1:
        return export_expression(args[1], args[2] if len(args) > 2 else None)

    if cmd == '--gui':
        return launch_gui()

    print(f"Error: Unknown command: {cmd}")
    print("Use --help for usage information")
    return 2


def print_help():
    """도움말 출력"""
    from src.core.expression_engine import EXAMPLE_EXPRESSIONS, SUPPORTED_FUNCTIONS

    print("=" * 60)
    print("SurfaceGrapher - 3D Function Grapher")
    print("=" * 60)
    print()
    print("Usage:")
    print("  python main.py --info <expression>              # Parse and sample stats")
    print("  python main.py --render <expression> [output]   # Save projected PNG")
    print("  python main.py --export <expression> [output]   # Export surface mesh")
    print("  python main.py --gui                            # Launch GUI (interactive)")
    print()
    print(f"Functions: {', '.join(SUPPORTED_FUNCTIONS)}")
    print("Operators: + - * / ^ %   Constants: pi, e   Variables: x, y")
    print()
    print("Examples:")
    for text in EXAMPLE_EXPRESSIONS[:3]:
        print(f'  python main.py --render "{text}"')


def _build(expression: str):
    from src.core.expression_engine import parse
    from src.core.surface_mesh import build_surface_mesh

    expr = parse(expression)
    mesh = build_surface_mesh(expr, DEFAULTS.resolution, DEFAULTS.range)
    return expr, mesh


def show_expression_info(expression: str) -> int:
    """수식 정보 표시"""
    from src.core.expression_engine import ParseError

    print(f"\nExpression: {expression}")
    print("-" * 40)

    try:
        expr, mesh = _build(expression)
    except ParseError as e:
        print(f"  Error parsing expression: {e.reason}")
        return 1

    print(f"  Canonical: {expr.canonical}")
    print(f"  Variables: {', '.join(expr.free_variables) or '(none)'}")
    print(f"  Grid: {mesh.resolution} x {mesh.resolution} over [-{mesh.range:g}, {mesh.range:g}]^2")
    print(f"  Undefined samples: {mesh.failed_count:,} / {mesh.n_vertices:,}")
    if mesh.z_min is None:
        print("  Z range: undefined everywhere")
    else:
        print(f"  Z range: [{mesh.z_min:.6g}, {mesh.z_max:.6g}]")
    return 0


def render_expression(expression: str, output_path: str | None = None) -> int:
    """정사투영 스냅샷 저장"""
    from src.core.expression_engine import ParseError
    from src.core.projection_renderer import save_projection
    from src.core.projector import RotationState, SurfaceProjector

    print(f"\nRendering: {expression}")
    print("-" * 40)

    try:
        _expr, mesh = _build(expression)
        state = RotationState(DEFAULTS.rotation_x, DEFAULTS.rotation_y, DEFAULTS.rotation_z, DEFAULTS.zoom)
        geometry = SurfaceProjector().project(mesh, state)

        save_path = snapshot_output_path(expression, output_path)
        saved = save_projection(geometry, save_path, dpi=DEFAULT_EXPORT_DPI, width=DEFAULT_RENDER_SIZE)
        print(f"  Projected: {geometry.n_points:,} points, {len(geometry.polylines)} polylines")
        print(f"  Saved: {saved}")
    except ParseError as e:
        print(f"Error parsing expression: {e.reason}")
        return 1
    except Exception as e:
        print(f"Error: {e}")
        import traceback
        traceback.print_exc()
        return 1
    return 0


def export_expression(expression: str, output_path: str | None = None) -> int:
    """표면 메쉬 내보내기 (trimesh 사용)"""
    from src.core.expression_engine import ParseError

    print(f"\nExporting: {expression}")
    print("-" * 40)

    try:
        _expr, mesh = _build(expression)
        save_path = mesh_output_path(expression, output_path)
        save_path.parent.mkdir(parents=True, exist_ok=True)
        tm = mesh.to_trimesh()
        tm.export(str(save_path))
        print(f"  Mesh: {len(tm.vertices):,} vertices, {len(tm.faces):,} faces")
        print(f"  Saved: {save_path}")
    except ParseError as e:
        print(f"Error parsing expression: {e.reason}")
        return 1
    except Exception as e:
        print(f"Error: {e}")
        import traceback
        traceback.print_exc()
        return 1
    return 0


def launch_gui() -> int:
    """Launch the interactive GUI (app_gui.py)."""
    try:
        import app_gui
    except Exception as e:
        print("Failed to import GUI.")
        print("Make sure PyQt6 is installed: pip install PyQt6")
        print(f"Error: {type(e).__name__}: {e}")
        return 1

    sys.argv = [sys.argv[0]]
    try:
        app_gui.main()
    except SystemExit as e:
        return int(e.code or 0)
    except Exception as e:
        print(f"GUI failed to start: {type(e).__name__}: {e}")
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(run_cli())
