import logging

import numpy as np
import pytest
from scipy.spatial import Delaunay

from dtmesh import (CoincidentPointError, DegenerateGeometryError, DelaunayTriangulation,
                    DuplicatePointError, LocationFailure, MeshInvariantError, PreconditionError,
                    TriangulationConfig, check_triangulation)
from dtmesh.core.geometry import triangles_signed_areas
from dtmesh.core.validation import check_connectivity, check_neighbor_symmetry, check_orientation


def planar_triples(cells):
    return {frozenset((p.x, p.y) for p in c.points) for c in cells}


def harvested_area(points, tris):
    return float(np.abs(triangles_signed_areas(points, tris)).sum())


def test_square_example_harvest(square_example):
    cells = square_example.collect()
    assert len(cells) == 3
    assert planar_triples(cells) == {
        frozenset({(1.0, 1.0), (9.0, 1.0), (5.0, 5.0)}),
        frozenset({(1.0, 1.0), (5.0, 5.0), (5.0, 9.0)}),
        frozenset({(9.0, 1.0), (5.0, 5.0), (5.0, 9.0)}),
    }
    pts, tris = square_example.to_arrays()
    assert harvested_area(pts, tris) == pytest.approx(32.0)


def test_square_example_is_valid(square_example):
    ok, msgs = check_triangulation(square_example)
    assert ok, msgs
    assert square_example.anomalies == []
    assert square_example.num_vertices == 4


def test_harvested_cells_are_clockwise(square_example):
    pts, tris = square_example.to_arrays()
    assert np.all(triangles_signed_areas(pts, tris) < 0)


def test_collect_is_idempotent(square_example):
    first = [c.index for c in square_example.collect()]
    second = [c.index for c in square_example.collect()]
    assert sorted(first) == sorted(second)


def test_empty_and_single_point_harvest_nothing():
    tri = DelaunayTriangulation(0.0, 10.0, 0.0, 10.0)
    assert tri.collect() == []
    tri.insert([(3.0, 4.0, 1.0)])
    assert tri.collect() == []
    assert len(tri.mesh) == 3
    pts, tris = tri.to_arrays()
    assert pts.shape == (1, 3) and tris.shape == (0, 3)


def test_collinear_input_harvests_nothing():
    tri = DelaunayTriangulation(0.0, 10.0, 0.0, 10.0)
    tri.insert([(1, 5), (3, 5), (7, 5), (9, 5)])
    assert tri.anomalies == []
    assert tri.collect() == []
    ok, msgs = check_triangulation(tri)
    assert ok, msgs


def test_point_on_existing_edge_splits_it():
    tri = DelaunayTriangulation(0.0, 10.0, 0.0, 10.0)
    tri.insert([(2, 5), (8, 5)])
    splits_before = tri.stats.splits
    tri.insert_point(5.0, 5.0)
    assert tri.stats.edge_splits == 1
    assert tri.stats.splits == splits_before
    ok, msgs = check_triangulation(tri)
    assert ok, msgs
    # no cell may span the split edge any more
    left, right = 3, 4
    for cell in tri.mesh.live_cells():
        assert not {left, right} <= set(cell.vertices)


def test_random_points_are_delaunay(random_points):
    tri = DelaunayTriangulation(0.0, 100.0, 0.0, 100.0)
    tri.insert(random_points)
    assert tri.anomalies == []
    assert tri.num_vertices == len(random_points)
    ok, msgs = check_triangulation(tri)
    assert ok, msgs
    # Euler: a triangulation of n points plus 3 bounding vertices has 2(n+3)-5 cells
    assert len(tri.mesh) == 2 * (len(random_points) + 3) - 5


def test_harvest_is_subset_of_scipy_delaunay():
    pts = np.random.RandomState(11).rand(100, 2) * 50.0
    tri = DelaunayTriangulation(0.0, 50.0, 0.0, 50.0)
    tri.insert(pts)
    _, tris = tri.to_arrays()
    oracle = Delaunay(pts)
    ref = {frozenset(s) for s in oracle.simplices.tolist()}
    mine = {frozenset(t) for t in tris.tolist()}
    assert mine <= ref
    assert len(mine) > len(ref) // 2
    # harvest never covers more than the convex hull
    assert harvested_area(pts, tris) <= harvested_area(pts, oracle.simplices) + 1e-9


def test_grid_with_cocircular_and_collinear_points():
    xs, ys = np.meshgrid(np.arange(6, dtype=float), np.arange(6, dtype=float))
    grid = np.column_stack((xs.ravel(), ys.ravel()))
    tri = DelaunayTriangulation(0.0, 5.0, 0.0, 5.0)
    tri.insert(grid)
    assert tri.anomalies == []
    ok, msgs = check_triangulation(tri)
    assert ok, msgs
    pts, tris = tri.to_arrays()
    assert harvested_area(pts, tris) <= 25.0 + 1e-9


def test_elevation_is_carried():
    tri = DelaunayTriangulation(0.0, 10.0, 0.0, 10.0)
    tri.insert([(5, 5, 2.0), (1, 1, -1.0), (9, 1, 3.5)])
    assert [p.z for p in tri.vertices] == [2.0, -1.0, 3.5]
    pts, _ = tri.to_arrays()
    assert pts[:, 2].tolist() == [2.0, -1.0, 3.5]


def test_two_column_input_defaults_z():
    tri = DelaunayTriangulation(0.0, 10.0, 0.0, 10.0)
    tri.insert(np.array([[2.0, 3.0], [4.0, 4.0]]))
    assert all(p.z == 0.0 for p in tri.vertices)


def test_insert_rejects_bad_shape():
    tri = DelaunayTriangulation(0.0, 10.0, 0.0, 10.0)
    with pytest.raises(ValueError):
        tri.insert(np.zeros((3, 4)))
    tri.insert([])
    assert tri.num_vertices == 0


def test_insert_point_returns_sequential_indices():
    tri = DelaunayTriangulation(0.0, 10.0, 0.0, 10.0)
    assert tri.insert_point(1.0, 1.0) == 0
    assert tri.insert_point(2.0, 7.0) == 1
    assert tri.vertices[1] == (2.0, 7.0, 0.0)
    assert tri.vertex_index(4) == 1


def test_point_outside_box_but_inside_bounding_triangle():
    tri = DelaunayTriangulation(0.0, 10.0, 0.0, 10.0)
    tri.insert_point(5.0, -1.0)
    assert tri.num_vertices == 1


def test_far_point_raises_location_failure():
    tri = DelaunayTriangulation(0.0, 10.0, 0.0, 10.0)
    with pytest.raises(LocationFailure):
        tri.insert_point(1e6, 1e6)
    assert tri.num_vertices == 0
    assert len(tri.mesh) == 1
    assert tri.stats.location_failures == 1


def test_duplicate_point_is_rejected(square_example):
    cells_before = len(square_example.mesh.cells)
    with pytest.raises(DuplicatePointError) as exc:
        square_example.insert_point(5.0, 5.0, 3.0)
    assert exc.value.existing == 0
    assert isinstance(exc.value, PreconditionError)
    assert len(square_example.mesh.cells) == cells_before


def test_near_vertex_point_is_degenerate(square_example):
    with pytest.raises(DegenerateGeometryError):
        square_example.insert_point(5.0 + 1e-14, 5.0)
    assert square_example.num_vertices == 4
    assert square_example.stats.degenerate_rejects == 1


def test_non_finite_point_is_rejected():
    tri = DelaunayTriangulation(0.0, 10.0, 0.0, 10.0)
    with pytest.raises(PreconditionError):
        tri.insert_point(float('nan'), 1.0)


def test_batch_insert_records_anomalies(caplog):
    tri = DelaunayTriangulation(0.0, 10.0, 0.0, 10.0)
    with caplog.at_level(logging.WARNING, logger='dtmesh'):
        tri.insert([(5, 5), (5, 5), (1e9, 1e9), (1, 1)])
    assert [a.position for a in tri.anomalies] == [1, 2]
    assert isinstance(tri.anomalies[0].error, CoincidentPointError)
    assert isinstance(tri.anomalies[1].error, LocationFailure)
    assert tri.num_vertices == 2
    assert sum('skipped point' in r.getMessage() for r in caplog.records) == 2


def test_strict_mode_propagates():
    tri = DelaunayTriangulation(0.0, 10.0, 0.0, 10.0, config=TriangulationConfig(strict=True))
    with pytest.raises(CoincidentPointError):
        tri.insert([(5, 5), (5, 5), (1, 1)])
    assert tri.num_vertices == 1
    assert tri.anomalies == []


def test_degenerate_box_fails_at_construction():
    with pytest.raises(DegenerateGeometryError):
        DelaunayTriangulation(1.0, 1.0, 1.0, 1.0)


def test_invalid_config_values():
    with pytest.raises(ValueError):
        TriangulationConfig(slack=1.0)
    with pytest.raises(ValueError):
        TriangulationConfig(incircle_tolerance=-1.0)
    with pytest.raises(ValueError):
        TriangulationConfig(edge_tolerance=0.5)


def test_locate(square_example):
    cell = square_example.locate(5.0, 4.0)
    assert cell.contains_point((5.0, 4.0))
    with pytest.raises(LocationFailure):
        square_example.locate(1e6, -1e6)


def test_current_is_live_after_inserts(random_points):
    tri = DelaunayTriangulation(0.0, 100.0, 0.0, 100.0)
    for x, y in random_points[:30]:
        tri.insert_point(x, y)
        assert tri.mesh.cells[tri.current].alive


def violating_pairs(tri):
    cells = tri.mesh.cells
    pairs = []
    for cell in tri.mesh.live_cells():
        for nb in cell.neighbors:
            if nb is not None and tri._violates(cell, cells[nb]):
                pairs.append((cell.index, nb))
    return pairs


def assert_sound(tri):
    assert check_orientation(tri) == []
    assert check_neighbor_symmetry(tri) == []
    assert check_connectivity(tri) == []
    assert violating_pairs(tri) == []


@pytest.mark.parametrize('offset', [1e-12, -1e-12, 1e-9])
def test_point_just_off_an_edge_is_not_snapped(offset):
    tri = DelaunayTriangulation(0.0, 10.0, 0.0, 10.0)
    tri.insert([(2, 5), (8, 5)])
    tri.insert_point(5.0, 5.0 + offset)
    assert tri.stats.edge_splits == 0
    assert_sound(tri)
    ok, msgs = check_triangulation(tri)
    assert ok, msgs


@pytest.mark.parametrize('height', [1e-2, 1e-3])
def test_thin_input_settles_to_delaunay(height):
    rng = np.random.RandomState(5)
    pts = np.column_stack((rng.rand(200), rng.rand(200) * height))
    tri = DelaunayTriangulation(0.0, 1.0, 0.0, height)
    tri.insert(pts)
    assert tri.anomalies == []
    assert_sound(tri)
    ok, msgs = check_triangulation(tri)
    assert ok, msgs


@pytest.mark.parametrize('offset', [1e-12, 1e-8, 1e-6])
def test_points_near_edges_keep_mesh_sound(offset):
    rng = np.random.RandomState(17)
    tri = DelaunayTriangulation(0.0, 1.0, 0.0, 1.0)
    tri.insert(rng.rand(20, 2))
    for _ in range(15):
        cells = tri.collect()
        cell = cells[rng.randint(len(cells))]
        p0, p1 = cell.points[0], cell.points[1]
        t = rng.uniform(0.2, 0.8)
        x = p0.x + t * (p1.x - p0.x) + offset
        y = p0.y + t * (p1.y - p0.y) - offset
        cells_before = len(tri.mesh.cells)
        try:
            tri.insert_point(x, y)
        except DegenerateGeometryError:
            # rejected before any change
            assert len(tri.mesh.cells) == cells_before
        assert_sound(tri)
    ok, msgs = check_triangulation(tri)
    assert ok, msgs


def test_edge_sides_agree_across_shared_edges(random_points):
    tri = DelaunayTriangulation(0.0, 100.0, 0.0, 100.0)
    tri.insert(random_points[:40])
    cells = tri.mesh.cells
    samples = np.random.RandomState(23).rand(50, 2) * 100.0
    for cell in tri.mesh.live_cells():
        for k, nb in enumerate(cell.neighbors):
            if nb is None:
                continue
            j = cells[nb].neighbor_slot(cell.index)
            for q in samples:
                assert tri._edge_side(cell, k, q) == -tri._edge_side(cells[nb], j, q)


def test_exact_repeat_is_coincident(square_example):
    cells_before = len(square_example.mesh.cells)
    with pytest.raises(CoincidentPointError) as exc:
        square_example.insert_point(1.0, 1.0, 0.0)
    assert exc.value.existing == 1
    assert isinstance(exc.value, DegenerateGeometryError)
    assert not isinstance(exc.value, PreconditionError)
    assert len(square_example.mesh.cells) == cells_before
    assert square_example.stats.degenerate_rejects == 1


def test_failure_after_mutation_is_not_skipped(monkeypatch):
    tri = DelaunayTriangulation(0.0, 10.0, 0.0, 10.0)
    tri.insert([(5, 5), (1, 1)])

    def broken_repair(seeds):
        raise DegenerateGeometryError("repair failed")

    monkeypatch.setattr(tri, '_repair', broken_repair)
    with pytest.raises(MeshInvariantError) as exc:
        tri.insert([(9, 1)])
    assert isinstance(exc.value.__cause__, DegenerateGeometryError)
    assert tri.anomalies == []
    assert (9.0, 1.0) not in tri._planar_index
    assert tri.stats.fail == 1


def test_clockwise_check_rejects_inverted_plan():
    tri = DelaunayTriangulation(0.0, 10.0, 0.0, 10.0)
    point = (5.0, 5.0, 0.0)
    tri._check_clockwise([list(tri.bounding_handles)], point)
    a, b, c = tri.bounding_handles
    with pytest.raises(DegenerateGeometryError):
        tri._check_clockwise([[a, c, b]], point)
    # the not-yet-added handle resolves to the point being inserted
    with pytest.raises(DegenerateGeometryError):
        tri._check_clockwise([[a, b, len(tri.mesh.points)]], tri.mesh.points[a])
