import unittest
from pathlib import Path

from src.core.output_paths import (
    MAX_STEM_LENGTH,
    expression_stem,
    mesh_output_path,
    snapshot_output_path,
)


class TestOutputPaths(unittest.TestCase):
    def test_expression_stem(self):
        self.assertEqual(expression_stem("sin(x) * cos(y)"), "sin_x_cos_y")
        self.assertEqual(expression_stem("x^2 + y^2"), "x_2_y_2")
        self.assertEqual(expression_stem(""), "surface")
        self.assertEqual(expression_stem("*/()"), "surface")

    def test_long_stem_is_truncated(self):
        stem = expression_stem(" + ".join(["sin(x)"] * 40))
        self.assertLessEqual(len(stem), MAX_STEM_LENGTH)
        self.assertFalse(stem.endswith("_"))

    def test_default_names_in_directory(self):
        base = Path("exports")
        self.assertEqual(
            snapshot_output_path("sin(x*y)", directory=base),
            base / "sin_x_y.surface.png",
        )
        self.assertEqual(
            mesh_output_path("sin(x*y)", directory=base),
            base / "sin_x_y.surface.ply",
        )

    def test_default_directory_is_cwd(self):
        path = snapshot_output_path("x")
        self.assertEqual(path.parent, Path.cwd())

    def test_explicit_path_wins(self):
        self.assertEqual(snapshot_output_path("x", "out/a.png"), Path("out/a.png"))
        self.assertEqual(mesh_output_path("x", Path("b.obj"), directory="ignored"), Path("b.obj"))


if __name__ == "__main__":
    unittest.main()
