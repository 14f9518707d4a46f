"""
hybrid_propagator.py

Turns one satellite's orbital elements into a position at a target time.

Two paths are available and chosen per call (nothing is remembered between
calls):
    Primary  - SGP4 via the `sgp4` package. The expensive Satrec object is
               built once per satellite by BuildSatrec() and reused every tick.
    Fallback - circular Keplerian motion, used whenever SGP4 reports an error
               (decayed or degenerate elements, very long extrapolation).

Both paths return kilometres in the TEME frame (z = polar axis), which is
treated as inertial at GNSS altitudes.
"""

import logging
import math
from collections import namedtuple
from dataclasses import dataclass

import numpy as np
from sgp4.api import Satrec, WGS72

import constants as c

logger = logging.getLogger(__name__)

# rev/day -> rad/min divisor used by the SGP4 element conventions
XPDOTP = c.MIN_PER_DAY / c.twoPi

# Largest catalog number sgp4init() accepts (Alpha-5 range)
MAX_SATNUM = 339999


class PropagatorInitError(ValueError):
    """Raised when SGP4 rejects a satellite's elements."""


# Result of the primary (SGP4) call: either ok with a position, or a failure
# carrying the SGP4 error code (-1 for a non-finite position).
PrimaryResult = namedtuple('PrimaryResult', ['ok', 'position', 'error_code'])


@dataclass(frozen=True)
class FallbackOrbit:
    """Circular-orbit parameters precomputed for the fallback path."""
    alt_km: float              # semi-major axis minus Earth radius
    inclination_rad: float
    raan_rad: float
    mean_motion_rad_s: float
    epoch_unix: float


###############################################################################
# Function: ValidateElements
###############################################################################
def ValidateElements(elements):
    """
    Reject element sets that cannot describe a closed orbit.

    Raises PropagatorInitError for non-finite values, a non-positive mean
    motion, or an eccentricity outside [0, 1).
    """
    values = (elements.epoch_unix, elements.mean_motion, elements.eccentricity,
              elements.inclination_deg, elements.raan_deg,
              elements.arg_perigee_deg, elements.mean_anomaly_deg,
              elements.bstar, elements.mean_motion_dot,
              elements.mean_motion_ddot)
    if not all(math.isfinite(v) for v in values):
        raise PropagatorInitError("non-finite orbital element")
    if elements.mean_motion <= 0.0:
        raise PropagatorInitError(f"mean motion {elements.mean_motion} rev/day")
    if not 0.0 <= elements.eccentricity < 1.0:
        raise PropagatorInitError(f"eccentricity {elements.eccentricity}")


###############################################################################
# Function: BuildSatrec
###############################################################################
def BuildSatrec(elements):
    """
    Initialise an SGP4 Satrec from an element set.

    Unit conversions from the OMM feed:
        mean motion          rev/day   -> rad/min   (n / XPDOTP)
        mean motion dot      rev/day^2 -> rad/min^2 (/ (XPDOTP * 1440))
        mean motion ddot     rev/day^3 -> rad/min^3 (/ (XPDOTP * 1440^2))
        angles               degrees   -> radians
        epoch                Unix s    -> days since 1949-12-31 00:00 UT

    Parameters:
        elements : ElementSet

    Returns:
        sgp4.api.Satrec

    Raises:
        PropagatorInitError if the elements are invalid or sgp4init() flags
        an error.
    """
    ValidateElements(elements)

    satnum = elements.norad_id if 0 <= elements.norad_id <= MAX_SATNUM else 0
    epoch_days = elements.epoch_unix / c.SEC_PER_DAY + c.SGP4_EPOCH_OFFSET_DAYS

    satrec = Satrec()
    try:
        satrec.sgp4init(
            WGS72,
            'i',
            satnum,
            epoch_days,
            elements.bstar,
            elements.mean_motion_dot / (XPDOTP * c.MIN_PER_DAY),
            elements.mean_motion_ddot / (XPDOTP * c.MIN_PER_DAY * c.MIN_PER_DAY),
            elements.eccentricity,
            elements.arg_perigee_deg * c.deg2rad,
            elements.inclination_deg * c.deg2rad,
            elements.mean_anomaly_deg * c.deg2rad,
            elements.mean_motion / XPDOTP,
            elements.raan_deg * c.deg2rad,
        )
    except (ValueError, TypeError, OverflowError) as e:
        raise PropagatorInitError(str(e)) from e

    if satrec.error != 0:
        raise PropagatorInitError(f"sgp4init error code {satrec.error}")
    return satrec


###############################################################################
# Function: BuildFallbackOrbit
###############################################################################
def BuildFallbackOrbit(elements):
    """
    Precompute the circular-orbit fallback parameters.

    The semi-major axis comes from Kepler's third law with n in rad/s:

        a = (mu / n^2)^(1/3),   mu = 398600.4418 km^3/s^2

    and the altitude is a minus the mean Earth radius.
    """
    mm_rad_s = elements.mean_motion * c.revday2rads
    a_km = (c.MU / (mm_rad_s * mm_rad_s)) ** (1.0 / 3.0)
    return FallbackOrbit(
        alt_km=a_km - c.EARTH_R_KM,
        inclination_rad=elements.inclination_deg * c.deg2rad,
        raan_rad=elements.raan_deg * c.deg2rad,
        mean_motion_rad_s=mm_rad_s,
        epoch_unix=elements.epoch_unix,
    )


def MinutesSinceEpoch(epoch_unix, unix_s):
    return (unix_s - epoch_unix) / 60.0


###############################################################################
# Function: PropagatePrimary
###############################################################################
def PropagatePrimary(satrec, minutes):
    """
    Run SGP4 for `minutes` elapsed since the satellite's own epoch.

    Returns:
        PrimaryResult(ok=True, position=ndarray km TEME, error_code=0) on
        success, otherwise PrimaryResult(ok=False, position=None, error_code).
    """
    jd = satrec.jdsatepoch
    fr = satrec.jdsatepochF + minutes / c.MIN_PER_DAY
    e, r, _ = satrec.sgp4(jd, fr)
    if e != 0:
        return PrimaryResult(False, None, e)

    position = np.array(r, dtype=float)
    if not np.all(np.isfinite(position)):
        return PrimaryResult(False, None, -1)
    return PrimaryResult(True, position, 0)


###############################################################################
# Function: PropagateCircular
###############################################################################
def PropagateCircular(fallback, unix_s, phase_rad=0.0):
    """
    Circular Keplerian position in the TEME frame, in km.

    Steps:
        1. Mean anomaly from epoch: M = n * (t - t0). The mean anomaly at
           epoch is taken as zero, so this is a visual approximation only.
        2. In-plane position (eccentricity 0, so E = M):
               (r cos M, 0, r sin M)   with r = R_earth + alt
           where the first component lies along the line of nodes.
        3. Tilt the plane by the inclination about the line of nodes.
        4. Rotate by RAAN about the polar (z) axis.

    At t = t0 with inclination = RAAN = 0 the satellite sits at (r, 0, 0).
    `phase_rad` shifts the satellite along its orbit (nominal slot spacing).
    """
    r_km = c.EARTH_R_KM + fallback.alt_km
    dt = unix_s - fallback.epoch_unix
    ma = phase_rad + fallback.mean_motion_rad_s * dt

    x_orb = r_km * math.cos(ma)     # along the line of nodes
    z_orb = r_km * math.sin(ma)     # 90 deg ahead in the orbit

    inc = fallback.inclination_rad
    y_eq = z_orb * math.cos(inc)    # equatorial component
    z = z_orb * math.sin(inc)       # out of the equator (north for prograde)

    raan = fallback.raan_rad
    x = x_orb * math.cos(raan) - y_eq * math.sin(raan)
    y = x_orb * math.sin(raan) + y_eq * math.cos(raan)
    return np.array([x, y, z])


###############################################################################
# Function: PropagateHybrid
###############################################################################
def PropagateHybrid(satrec, fallback, unix_s):
    """
    Position of one satellite at `unix_s`.

    Returns:
        (position_km, used_fallback): the SGP4 position when it succeeds,
        otherwise the circular fallback position.
    """
    result = PropagatePrimary(satrec, MinutesSinceEpoch(fallback.epoch_unix, unix_s))
    if result.ok:
        return result.position, False
    logger.debug("SGP4 error %d, using circular fallback", result.error_code)
    return PropagateCircular(fallback, unix_s), True


###############################################################################
# Function: PropagateNominal
###############################################################################
def PropagateNominal(unix_s, table=c.NOMINAL_CONSTELLATIONS):
    """
    Positions of the nominal (design) constellations at `unix_s`.

    Used when no ephemeris is loaded. Each constellation has `planes` orbital
    planes spaced in RAAN, with `sats_per_plane` satellites evenly spaced in
    mean anomaly (slot i at phase i * 2pi / sats_per_plane). Motion is
    circular, with the mean motion of the altitude and t = 0 at the Unix
    epoch.

    Returns:
        list of (tag, ndarray km TEME), constellation by constellation,
        plane by plane.
    """
    out = []
    for tag, alt_km, inc_deg, planes, per_plane, raan_step, raan_offset in table:
        a_km = c.EARTH_R_KM + alt_km
        mm_rad_s = math.sqrt(c.MU / (a_km * a_km * a_km))
        for p in range(planes):
            fallback = FallbackOrbit(
                alt_km=alt_km,
                inclination_rad=inc_deg * c.deg2rad,
                raan_rad=(raan_offset + p * raan_step) * c.deg2rad,
                mean_motion_rad_s=mm_rad_s,
                epoch_unix=0.0,
            )
            for i in range(per_plane):
                phase = i * c.twoPi / per_plane
                out.append((tag, PropagateCircular(fallback, unix_s, phase)))
    return out
