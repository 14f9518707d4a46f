import json

import numpy as np
import numpy.testing as npt
import pytest

import constants as c
from ephemeris_store import (EphemerisStore, EphemerisFormatError,
                             Constellation, ClassifyConstellation,
                             ElementsFromOMM)
from hybrid_propagator import PropagatePrimary, MinutesSinceEpoch
from TimeRoutines import EpochToUnix


@pytest.mark.parametrize("name, expected", [
    ("GPS BIIR-2  (PRN 13)", Constellation.GPS),
    ("NAVSTAR 43 (USA 132)", Constellation.GPS),
    ("gps biif-1", Constellation.GPS),
    ("GLONASS-M 755", Constellation.GLONASS),
    ("COSMOS 2433 (720)", Constellation.GLONASS),
    ("GSAT0201 (GALILEO 5)", Constellation.GALILEO),
    ("GALILEO-FM2", Constellation.GALILEO),
    ("BEIDOU-3 M1 (C19)", Constellation.BEIDOU),
    ("BDSM-3", Constellation.BEIDOU),
    ("CZ-3B BEIDOU G7", Constellation.BEIDOU),
    ("QZS-2 (MICHIBIKI-2)", Constellation.OTHER),
    ("IRNSS-1A", Constellation.OTHER),
    ("", Constellation.OTHER),
])
def test_classify(name, expected):
    assert ClassifyConstellation(name) is expected


def test_constellation_tags():
    assert [int(t) for t in Constellation] == [0, 1, 2, 3, 4]
    assert Constellation.GALILEO.label == "Galileo"


def test_elements_from_omm_defaults(omm_records):
    rec = omm_records[2]
    assert "BSTAR" not in rec
    el = ElementsFromOMM(rec, 1.0)
    assert el.bstar == 0.0
    assert el.mean_motion_dot == 0.0
    assert el.mean_motion_ddot == 0.0
    assert el.norad_id == 40128
    assert el.constellation is Constellation.GALILEO


def test_load_all(omm_json):
    store = EphemerisStore()
    assert store.is_empty
    assert store.load_from_json(omm_json) == 5
    assert len(store) == 5
    assert store.names()[0] == "GPS BIIR-2  (PRN 13)"
    assert [r.constellation for r in store.records] == [
        Constellation.GPS, Constellation.GLONASS, Constellation.GALILEO,
        Constellation.BEIDOU, Constellation.OTHER]
    stats = store.last_load_stats()
    assert stats == (5, 0, 0)


def test_load_skips_bad_records(omm_records):
    omm_records[0]["EPOCH"] = "not an epoch"
    del omm_records[1]["EPOCH"]
    omm_records[2]["ECCENTRICITY"] = 1.2
    omm_records[3]["MEAN_MOTION"] = "fast"
    del omm_records[4]["INCLINATION"]
    omm_records.append("not a record")
    good = dict(omm_records[2], ECCENTRICITY=0.001, OBJECT_NAME="GSAT0203 (GALILEO 7)")
    omm_records.append(good)

    store = EphemerisStore()
    assert store.load_records(omm_records) == 1
    assert store.names() == ["GSAT0203 (GALILEO 7)"]
    assert store.skipped_epoch == 2
    assert store.skipped_elements == 4


def test_fresh_load_replaces(omm_records):
    store = EphemerisStore()
    store.load_records(omm_records)
    assert store.load_records(omm_records[:2]) == 2
    assert len(store) == 2
    assert store.load_records([]) == 0
    assert store.is_empty


@pytest.mark.parametrize("text", ["{not json", '{"OBJECT_NAME": "GPS"}', "42", "null"])
def test_malformed_batch_leaves_store_intact(omm_json, text):
    store = EphemerisStore()
    store.load_from_json(omm_json)
    with pytest.raises(EphemerisFormatError):
        store.load_from_json(text)
    assert len(store) == 5


def test_format_error_is_value_error():
    with pytest.raises(ValueError):
        EphemerisStore().load_records({"records": []})


def test_propagate_all(omm_json, reference_unix):
    store = EphemerisStore()
    store.load_from_json(omm_json)
    out = store.propagate_all(reference_unix)
    assert len(out) == 5
    assert [tag for tag, _ in out] == [r.constellation for r in store.records]
    for _, pos in out:
        assert pos.shape == (3,)
        assert np.all(np.isfinite(pos))
        assert 20000.0 < np.linalg.norm(pos) < 50000.0
    assert store.last_fallback_count == 0


def test_reingestion_is_deterministic(omm_records, reference_unix):
    a = EphemerisStore()
    b = EphemerisStore()
    assert a.load_from_json(json.dumps(omm_records)) == b.load_from_json(json.dumps(omm_records))
    for (ta, pa), (tb, pb) in zip(a.propagate_all(reference_unix),
                                  b.propagate_all(reference_unix)):
        assert ta == tb
        npt.assert_array_equal(pa, pb)


def test_clear(omm_records):
    store = EphemerisStore()
    store.load_records(omm_records)
    store.clear()
    assert store.is_empty
    assert store.propagate_all(0.0) == []


def test_decayed_orbit_uses_circular_fallback():
    # low, high-drag orbit: SGP4 reports decay long before 400 days
    leo = {
        "OBJECT_NAME": "LEO DEBRIS",
        "NORAD_CAT_ID": 49999,
        "EPOCH": "2024-01-15T00:00:00",
        "MEAN_MOTION": 16.0,
        "ECCENTRICITY": 0.0007,
        "INCLINATION": 51.6,
        "RA_OF_ASC_NODE": 120.0,
        "ARG_OF_PERICENTER": 90.0,
        "MEAN_ANOMALY": 270.0,
        "BSTAR": 0.01,
    }
    store = EphemerisStore()
    assert store.load_records([leo]) == 1
    rec = store.records[0]
    later = EpochToUnix(leo["EPOCH"]) + 400 * c.SEC_PER_DAY

    primary = PropagatePrimary(rec.satrec, MinutesSinceEpoch(rec.fallback.epoch_unix, later))
    assert not primary.ok
    assert primary.error_code != 0

    out = store.propagate_all(later)
    assert store.last_fallback_count == 1
    tag, pos = out[0]
    assert tag is Constellation.OTHER
    npt.assert_allclose(np.linalg.norm(pos), c.EARTH_R_KM + rec.fallback.alt_km, rtol=1e-12)
