"""
ephemeris_store.py

Owns the set of GNSS satellites currently being tracked.

A load takes a batch of Celestrak OMM records (the JSON "gp.php?FORMAT=json"
shape), and for each one:
    1. parses the epoch string to a Unix timestamp     (skip on failure)
    2. builds the SGP4 Satrec from the elements         (skip on failure)
    3. derives the circular-orbit fallback parameters
    4. classifies the satellite by name
and appends it. A load always replaces everything loaded before; records are
built into a local list and swapped in at the end, so a failed load leaves the
previous contents untouched.

Only a malformed top-level batch (invalid JSON, not a list) raises. Bad
individual records are skipped and counted.
"""

import enum
import json
import logging
from collections import namedtuple
from collections.abc import Mapping
from dataclasses import dataclass

from TimeRoutines import EpochToUnix
from hybrid_propagator import (BuildSatrec, BuildFallbackOrbit,
                               PropagateHybrid, PropagatorInitError,
                               FallbackOrbit)

logger = logging.getLogger(__name__)


class EphemerisFormatError(ValueError):
    """The ephemeris batch as a whole could not be read."""


class Constellation(enum.IntEnum):
    GPS = 0
    GLONASS = 1
    GALILEO = 2
    BEIDOU = 3      # BeiDou MEO
    OTHER = 4

    @property
    def label(self):
        return CONSTELLATION_LABELS[self]


CONSTELLATION_LABELS = {
    Constellation.GPS: "GPS",
    Constellation.GLONASS: "GLONASS",
    Constellation.GALILEO: "Galileo",
    Constellation.BEIDOU: "BeiDou",
    Constellation.OTHER: "Other",
}


@dataclass(frozen=True)
class ElementSet:
    """One satellite's orbital elements as published in the OMM feed."""
    norad_id: int
    name: str
    constellation: Constellation
    epoch_unix: float           # seconds since 1970-01-01T00:00:00Z
    mean_motion: float          # rev/day
    eccentricity: float
    inclination_deg: float
    raan_deg: float
    arg_perigee_deg: float
    mean_anomaly_deg: float
    bstar: float = 0.0
    mean_motion_dot: float = 0.0
    mean_motion_ddot: float = 0.0


@dataclass
class SatelliteRecord:
    """An element set together with its propagator state."""
    elements: ElementSet
    satrec: object
    fallback: FallbackOrbit

    @property
    def name(self):
        return self.elements.name

    @property
    def constellation(self):
        return self.elements.constellation


LoadStats = namedtuple('LoadStats', ['admitted', 'skipped_epoch', 'skipped_elements'])

# OMM key -> ElementSet field, all required
OMM_REQUIRED = {
    'MEAN_MOTION': 'mean_motion',
    'ECCENTRICITY': 'eccentricity',
    'INCLINATION': 'inclination_deg',
    'RA_OF_ASC_NODE': 'raan_deg',
    'ARG_OF_PERICENTER': 'arg_perigee_deg',
    'MEAN_ANOMALY': 'mean_anomaly_deg',
}

# Optional drag terms, 0 when absent
OMM_OPTIONAL = {
    'BSTAR': 'bstar',
    'MEAN_MOTION_DOT': 'mean_motion_dot',
    'MEAN_MOTION_DDOT': 'mean_motion_ddot',
}


###############################################################################
# Function: ClassifyConstellation
###############################################################################
def ClassifyConstellation(name):
    """
    Assign a constellation from the satellite name alone.

    Case-insensitive rules, first match wins:
        "GPS" / "NAVSTAR" prefix                 -> GPS
        "GLONASS" / "COSMOS" prefix              -> GLONASS
        "GSAT" / "GALILEO" prefix                -> GALILEO
        "BEIDOU" / "BDSM" prefix, or "BEIDOU"
        anywhere in the name                     -> BEIDOU
        anything else                            -> OTHER
    """
    upper = name.upper()
    if upper.startswith(("GPS", "NAVSTAR")):
        return Constellation.GPS
    if upper.startswith(("GLONASS", "COSMOS")):
        return Constellation.GLONASS
    if upper.startswith(("GSAT", "GALILEO")):
        return Constellation.GALILEO
    if upper.startswith(("BEIDOU", "BDSM")) or "BEIDOU" in upper:
        return Constellation.BEIDOU
    return Constellation.OTHER


def ElementsFromOMM(record, epoch_unix):
    """
    Build an ElementSet from one OMM mapping whose epoch is already parsed.

    Raises KeyError for a missing required key, and ValueError/TypeError for
    a value that is not numeric.
    """
    name = str(record['OBJECT_NAME']).strip()
    values = {field: float(record[key]) for key, field in OMM_REQUIRED.items()}
    for key, field in OMM_OPTIONAL.items():
        raw = record.get(key)
        values[field] = 0.0 if raw is None else float(raw)

    return ElementSet(
        norad_id=int(record['NORAD_CAT_ID']),
        name=name,
        constellation=ClassifyConstellation(name),
        epoch_unix=epoch_unix,
        **values
    )


class EphemerisStore:
    """
    Ordered collection of SatelliteRecord, in load order.

    The store is owned by a single caller; there is no locking.
    """

    def __init__(self):
        self._records = []
        self._stats = LoadStats(0, 0, 0)
        self.last_fallback_count = 0

    def __len__(self):
        return len(self._records)

    @property
    def is_empty(self):
        return not self._records

    @property
    def records(self):
        return tuple(self._records)

    @property
    def skipped_epoch(self):
        return self._stats.skipped_epoch

    @property
    def skipped_elements(self):
        return self._stats.skipped_elements

    def last_load_stats(self):
        return self._stats

    def names(self):
        return [rec.name for rec in self._records]

    def clear(self):
        self._records = []
        self._stats = LoadStats(0, 0, 0)

    def load_from_json(self, text):
        """
        Replace the store with the records of an OMM JSON array.

        Returns:
            int: number of satellites admitted.

        Raises:
            EphemerisFormatError if `text` is not JSON or not a JSON array.
        """
        try:
            data = json.loads(text)
        except (TypeError, ValueError) as e:
            raise EphemerisFormatError(f"invalid ephemeris JSON: {e}") from e
        return self.load_records(data)

    def load_records(self, records):
        """
        Replace the store with a batch of OMM mappings.

        Returns:
            int: number of satellites admitted.

        Raises:
            EphemerisFormatError if `records` is not a list.
        """
        if not isinstance(records, list):
            raise EphemerisFormatError(
                f"expected a list of records, got {type(records).__name__}")

        fresh = []
        skipped_epoch = 0
        skipped_elements = 0

        for idx, record in enumerate(records):
            if not isinstance(record, Mapping):
                logger.debug("record %d: not an object, skipped", idx)
                skipped_elements += 1
                continue

            epoch_unix = EpochToUnix(record.get('EPOCH'))
            if epoch_unix is None:
                logger.debug("record %d (%s): bad epoch %r, skipped",
                             idx, record.get('OBJECT_NAME'), record.get('EPOCH'))
                skipped_epoch += 1
                continue

            try:
                elements = ElementsFromOMM(record, epoch_unix)
                satrec = BuildSatrec(elements)
            except (KeyError, ValueError, TypeError, PropagatorInitError) as e:
                logger.debug("record %d (%s): rejected elements: %s",
                             idx, record.get('OBJECT_NAME'), e)
                skipped_elements += 1
                continue

            fresh.append(SatelliteRecord(elements, satrec, BuildFallbackOrbit(elements)))

        # swap in one step
        self._records = fresh
        self._stats = LoadStats(len(fresh), skipped_epoch, skipped_elements)
        logger.info("Loaded %d satellites (%d bad epoch, %d bad elements)",
                    len(fresh), skipped_epoch, skipped_elements)
        return len(fresh)

    def propagate_all(self, unix_s):
        """
        Position of every satellite at `unix_s`.

        Returns:
            list of (Constellation, ndarray km TEME), one per satellite in
            load order. SGP4 failures fall back to circular motion silently;
            the number of fallbacks is kept in `last_fallback_count`.
        """
        out = []
        fallbacks = 0
        for rec in self._records:
            pos, used_fallback = PropagateHybrid(rec.satrec, rec.fallback, unix_s)
            if used_fallback:
                fallbacks += 1
            out.append((rec.constellation, pos))
        self.last_fallback_count = fallbacks
        return out
