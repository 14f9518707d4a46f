import copy
import json

import pytest


# Celestrak-style OMM records, one per constellation
_RECORDS = [
    {
        "OBJECT_NAME": "GPS BIIR-2  (PRN 13)",
        "NORAD_CAT_ID": 24876,
        "EPOCH": "2024-01-15T12:00:00.000000",
        "MEAN_MOTION": 2.00563862,
        "ECCENTRICITY": 0.0093,
        "INCLINATION": 55.6,
        "RA_OF_ASC_NODE": 100.0,
        "ARG_OF_PERICENTER": 50.0,
        "MEAN_ANOMALY": 310.0,
        "BSTAR": 0.0,
        "MEAN_MOTION_DOT": -0.00000086,
        "MEAN_MOTION_DDOT": 0,
    },
    {
        "OBJECT_NAME": "COSMOS 2433 (720)",
        "NORAD_CAT_ID": 32275,
        "EPOCH": "2024-015.50000000",
        "MEAN_MOTION": 2.13102,
        "ECCENTRICITY": 0.0012,
        "INCLINATION": 65.1,
        "RA_OF_ASC_NODE": 220.0,
        "ARG_OF_PERICENTER": 280.0,
        "MEAN_ANOMALY": 80.0,
        "BSTAR": 0.0,
    },
    {
        "OBJECT_NAME": "GSAT0201 (GALILEO 5)",
        "NORAD_CAT_ID": 40128,
        "EPOCH": "2024-01-15T06:30:00",
        "MEAN_MOTION": 1.8554,
        "ECCENTRICITY": 0.16,
        "INCLINATION": 49.9,
        "RA_OF_ASC_NODE": 10.0,
        "ARG_OF_PERICENTER": 120.0,
        "MEAN_ANOMALY": 250.0,
    },
    {
        "OBJECT_NAME": "BEIDOU-3 M1 (C19)",
        "NORAD_CAT_ID": 43001,
        "EPOCH": "2024-01-15T00:00:00",
        "MEAN_MOTION": 1.86231,
        "ECCENTRICITY": 0.0005,
        "INCLINATION": 55.2,
        "RA_OF_ASC_NODE": 330.0,
        "ARG_OF_PERICENTER": 10.0,
        "MEAN_ANOMALY": 350.0,
        "BSTAR": 0.0,
    },
    {
        "OBJECT_NAME": "QZS-2 (MICHIBIKI-2)",
        "NORAD_CAT_ID": 42738,
        "EPOCH": "2024-01-14T18:00:00",
        "MEAN_MOTION": 1.00270,
        "ECCENTRICITY": 0.075,
        "INCLINATION": 41.0,
        "RA_OF_ASC_NODE": 150.0,
        "ARG_OF_PERICENTER": 270.0,
        "MEAN_ANOMALY": 90.0,
    },
]

# 2024-01-15 12:00:00 UTC
REFERENCE_UNIX = 1705320000.0


@pytest.fixture
def omm_records():
    return copy.deepcopy(_RECORDS)


@pytest.fixture
def omm_json(omm_records):
    return json.dumps(omm_records)


@pytest.fixture
def reference_unix():
    return REFERENCE_UNIX
