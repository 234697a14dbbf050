import unittest

import numpy as np

from src.core.expression_engine import EvalFailure, parse
from src.core.height_color import color_for
from src.core.surface_mesh import SurfaceMesh, build_surface_mesh


MIDPOINT = np.array(color_for(0.5), dtype=np.uint8)


class TestSurfaceMeshRebuild(unittest.TestCase):
    def test_grid_dimensions_and_corners(self):
        for resolution, domain_range in ((1, 1.0), (4, 2.5), (20, 3.0), (50, 10.0)):
            with self.subTest(resolution=resolution, domain_range=domain_range):
                mesh = SurfaceMesh.rebuild(resolution, domain_range, parse("x + y"))

                self.assertEqual(mesh.n_vertices, (resolution + 1) ** 2)
                self.assertEqual(mesh.positions.shape, (resolution + 1, resolution + 1, 3))
                self.assertAlmostEqual(mesh.step, 2.0 * domain_range / resolution)
                np.testing.assert_allclose(mesh.positions[0, 0, :2], [-domain_range, -domain_range], atol=1e-12)
                np.testing.assert_allclose(
                    mesh.positions[resolution, resolution, :2], [domain_range, domain_range], atol=1e-12
                )

    def test_row_is_y_and_column_is_x(self):
        mesh = SurfaceMesh.rebuild(2, 1.0, lambda x, y: 10.0 * x + y)
        v = mesh.vertex(0, 2)
        self.assertAlmostEqual(v.x, 1.0)
        self.assertAlmostEqual(v.y, -1.0)
        self.assertAlmostEqual(v.z, 9.0)

    def test_heights_and_extent(self):
        mesh = build_surface_mesh(parse("x^2 + y^2"), 2, 1.0)
        self.assertEqual(mesh.failed_count, 0)
        self.assertAlmostEqual(mesh.z_min, 0.0)
        self.assertAlmostEqual(mesh.z_max, 2.0)
        self.assertFalse(mesh.is_flat)

        # 최저점 파랑, 최고점 빨강
        self.assertEqual(mesh.vertex(1, 1).color, (0, 0, 255, 255))
        self.assertEqual(mesh.vertex(0, 0).color, (255, 0, 0, 255))

    def test_constant_surface_uses_midpoint_color(self):
        mesh = build_surface_mesh(parse("5"), 5, 2.0)
        self.assertTrue(mesh.is_flat)
        self.assertEqual(mesh.z_min, 5.0)
        self.assertEqual(mesh.z_max, 5.0)
        self.assertTrue(np.all(mesh.colors == MIDPOINT))
        np.testing.assert_allclose(mesh.positions[:, :, 2], 5.0)

    def test_failed_samples_fall_back_to_zero(self):
        mesh = build_surface_mesh(parse("1/x"), 2, 1.0)

        # x = 0 column is undefined for all three rows
        self.assertEqual(mesh.failed_count, 3)
        np.testing.assert_allclose(mesh.positions[:, 1, 2], 0.0)
        self.assertTrue(np.all(np.isfinite(mesh.positions)))
        self.assertAlmostEqual(mesh.z_min, -1.0)
        self.assertAlmostEqual(mesh.z_max, 1.0)

    def test_all_failures_produce_flat_midpoint_mesh(self):
        mesh = build_surface_mesh(parse("sqrt(-1 - x^2)"), 3, 1.0)
        self.assertEqual(mesh.failed_count, 16)
        self.assertIsNone(mesh.z_min)
        self.assertIsNone(mesh.z_max)
        self.assertTrue(mesh.is_flat)
        np.testing.assert_allclose(mesh.positions[:, :, 2], 0.0)
        self.assertTrue(np.all(mesh.colors == MIDPOINT))

    def test_accepts_plain_callables(self):
        mesh = SurfaceMesh.rebuild(2, 1.0, lambda x, y: None)
        self.assertEqual(mesh.failed_count, 9)

        mesh = SurfaceMesh.rebuild(2, 1.0, lambda x, y: EvalFailure("nope"))
        self.assertEqual(mesh.failed_count, 9)

        mesh = SurfaceMesh.rebuild(2, 1.0, lambda x, y: float("inf") if x > 0 else 1.0)
        self.assertEqual(mesh.failed_count, 3)
        self.assertTrue(np.all(np.isfinite(mesh.positions)))

    def test_invalid_parameters_raise(self):
        expr = parse("x")
        for resolution, domain_range in ((0, 1.0), (-3, 1.0), (2.5, 1.0), (2, 0.0), (2, -1.0), (2, float("nan"))):
            with self.subTest(resolution=resolution, domain_range=domain_range):
                with self.assertRaises(ValueError):
                    SurfaceMesh.rebuild(resolution, domain_range, expr)

    def test_mesh_is_read_only(self):
        mesh = build_surface_mesh(parse("x"), 2, 1.0)
        with self.assertRaises(ValueError):
            mesh.positions[0, 0, 2] = 42.0
        with self.assertRaises(ValueError):
            mesh.colors[0, 0, 0] = 1

    def test_rebuild_returns_new_mesh(self):
        expr = parse("x * y")
        a = SurfaceMesh.rebuild(4, 1.0, expr)
        b = SurfaceMesh.rebuild(4, 1.0, expr)
        self.assertIsNot(a, b)
        np.testing.assert_array_equal(a.positions, b.positions)


class TestSurfaceMeshTopology(unittest.TestCase):
    def test_grid_faces(self):
        mesh = build_surface_mesh(parse("x"), 3, 1.0)
        faces = mesh.grid_faces()
        self.assertEqual(faces.shape, (2 * 3 * 3, 3))
        self.assertEqual(int(faces.min()), 0)
        self.assertEqual(int(faces.max()), mesh.n_vertices - 1)
        np.testing.assert_array_equal(faces[0], [0, 1, 5])
        np.testing.assert_array_equal(faces[1], [0, 5, 4])

    def test_flat_views_are_row_major(self):
        mesh = build_surface_mesh(parse("x + 2*y"), 2, 1.0)
        flat = mesh.flat_positions()
        self.assertEqual(flat.shape, (9, 3))
        np.testing.assert_allclose(flat[5], mesh.positions[1, 2])
        self.assertEqual(mesh.flat_colors().shape, (9, 4))
        self.assertEqual(len(list(mesh.iter_vertices())), 9)

    def test_bounds(self):
        mesh = build_surface_mesh(parse("x + y"), 2, 1.5)
        np.testing.assert_allclose(mesh.bounds, [[-1.5, -1.5, -3.0], [1.5, 1.5, 3.0]])

    def test_to_trimesh(self):
        mesh = build_surface_mesh(parse("sin(x) * cos(y)"), 4, 2.0)
        tm = mesh.to_trimesh()
        self.assertEqual(len(tm.vertices), 25)
        self.assertEqual(len(tm.faces), 32)
        np.testing.assert_allclose(np.asarray(tm.vertices), mesh.flat_positions())
        np.testing.assert_array_equal(np.asarray(tm.visual.vertex_colors), mesh.flat_colors())


if __name__ == "__main__":
    unittest.main()
