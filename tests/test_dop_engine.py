import math

import numpy as np
import numpy.testing as npt
import pytest

import constants as c
from dop_engine import (DopResult, Invert4x4, ComputeDOP,
                        ComputeDOPByConstellation, DopHistory,
                        BuildDesignMatrix)
from ephemeris_store import Constellation

# Observer at lat 0, lon 0: East = +y, North = +z, Up = +x
OBS_KM = np.array([c.EARTH_R_KM, 0.0, 0.0])


def sat_at(az_deg, el_deg, dist_km=20000.0, tag=Constellation.GPS):
    az = math.radians(az_deg)
    el = math.radians(el_deg)
    e = math.cos(el) * math.sin(az)
    n = math.cos(el) * math.cos(az)
    u = math.sin(el)
    return tag, OBS_KM + dist_km * np.array([u, e, n])


GOOD_GEOMETRY = [sat_at(0, 90), sat_at(0, 30), sat_at(120, 30), sat_at(240, 30),
                 sat_at(60, 60)]


def test_unavailable_sentinel():
    d = DopResult.unavailable()
    assert (d.gdop, d.pdop, d.hdop, d.vdop, d.tdop) == (99.9,) * 5
    assert d.n_sats == 0
    assert not d.is_available
    assert DopResult.unavailable(7).n_sats == 7


def test_poor_geometry_is_still_available():
    # finite values above the sentinel come from a solvable but weak geometry
    d = DopResult(150.0, 140.0, 100.0, 99.0, 50.0, 5)
    assert d.is_available
    assert not DopResult.unavailable(7).is_available


def test_invert_matches_numpy():
    rng = np.random.default_rng(3)
    m = rng.normal(size=(4, 4))
    a = m @ m.T + 4.0 * np.eye(4)
    npt.assert_allclose(Invert4x4(a), np.linalg.inv(a), rtol=1e-10, atol=1e-12)


def test_invert_needs_pivoting():
    perm = np.array([[0, 1, 0, 0],
                     [1, 0, 0, 0],
                     [0, 0, 0, 2],
                     [0, 0, 4, 0]], dtype=float)
    npt.assert_allclose(Invert4x4(perm) @ perm, np.eye(4), atol=1e-12)


def test_invert_singular():
    assert Invert4x4(np.ones((4, 4))) is None
    assert Invert4x4(np.zeros((4, 4))) is None


def test_design_matrix_rows():
    h = BuildDesignMatrix([sat_at(0, 90)], OBS_KM, 5.0)
    assert h.dtype == np.float32
    npt.assert_allclose(h, [[0.0, 0.0, 1.0, 1.0]], atol=1e-6)
    assert BuildDesignMatrix([], OBS_KM, 5.0).shape == (0, 4)


def test_good_geometry():
    d = ComputeDOP(GOOD_GEOMETRY, OBS_KM, 5.0)
    assert d.is_available
    assert d.n_sats == 5
    for v in (d.gdop, d.pdop, d.hdop, d.vdop, d.tdop):
        assert math.isfinite(v) and v > 0.0
    npt.assert_allclose(d.gdop ** 2, d.pdop ** 2 + d.tdop ** 2, rtol=1e-9)
    npt.assert_allclose(d.pdop ** 2, d.hdop ** 2 + d.vdop ** 2, rtol=1e-9)
    assert d.gdop < 10.0


def test_fewer_than_four_reports_count():
    d = ComputeDOP(GOOD_GEOMETRY[:3], OBS_KM, 5.0)
    assert d.gdop == 99.9 and d.tdop == 99.9
    assert d.n_sats == 3
    assert not d.is_available


def test_elevation_mask_filters():
    low = [sat_at(45, 2), sat_at(200, 3)]
    below = [sat_at(90, -10)]
    d = ComputeDOP(GOOD_GEOMETRY[:3] + low + below, OBS_KM, 5.0)
    assert d.n_sats == 3
    d = ComputeDOP(GOOD_GEOMETRY[:3] + low + below, OBS_KM, 0.0)
    assert d.n_sats == 5
    assert d.is_available


def test_mask_is_inclusive():
    sats = GOOD_GEOMETRY[1:4] + [sat_at(45, 10.0)]
    assert ComputeDOP(sats, OBS_KM, 10.0 - 1e-9).n_sats == 4


def test_identical_directions_are_degenerate():
    # every row is [0, 0, 1, 1]: the east/north columns are all zero
    sats = [sat_at(0, 90, dist_km=20000.0 + k) for k in range(5)]
    d = ComputeDOP(sats, OBS_KM, 5.0)
    assert not d.is_available
    assert d.gdop == 99.9
    assert d.n_sats == 5


def test_more_satellites_do_not_worsen_gdop():
    base = ComputeDOP(GOOD_GEOMETRY[:4], OBS_KM, 5.0)
    more = ComputeDOP(GOOD_GEOMETRY, OBS_KM, 5.0)
    assert more.gdop <= base.gdop + 1e-9


def test_by_constellation():
    gps = [(Constellation.GPS, p) for _, p in GOOD_GEOMETRY]
    glo = [sat_at(10, 40, tag=Constellation.GLONASS), sat_at(200, 50, tag=Constellation.GLONASS)]
    out = ComputeDOPByConstellation(glo + gps, OBS_KM, 5.0)
    assert [tag for tag, _ in out] == [Constellation.GPS, Constellation.GLONASS]
    assert out[0][1].is_available
    assert out[1][1].n_sats == 2
    assert not out[1][1].is_available
    assert ComputeDOPByConstellation([], OBS_KM, 5.0) == []


def test_history_ring_buffer():
    hist = DopHistory(maxlen=3)
    assert hist.latest() is None
    good = ComputeDOP(GOOD_GEOMETRY, OBS_KM, 5.0)
    for k in range(5):
        hist.push(100.0 + k, good if k != 3 else DopResult.unavailable(2))
    assert len(hist) == 3
    assert [s.epoch for s in hist.samples()] == [102.0, 103.0, 104.0]
    assert hist.latest().epoch == 104.0

    epochs, gdop = hist.series('gdop')
    npt.assert_array_equal(epochs, [102.0, 103.0, 104.0])
    assert math.isnan(gdop[1])
    npt.assert_allclose(gdop[[0, 2]], good.gdop)

    hist.clear()
    assert len(hist) == 0


def test_history_default_length():
    assert DopHistory().maxlen == 512
