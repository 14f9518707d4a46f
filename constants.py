"""
constants.py

This module defines the physical and mathematical constants, together with
the configuration defaults, used by the GNSS constellation core. Every other
module imports it as ``import constants as c``.

Constants include:
- Gravitational parameter and the spherical Earth radius
- Time references (J2000.0 as a Unix timestamp, GMST model coefficients)
- Conversion factors (degrees/radians, days/seconds, rev/day to rad/s)
- DOP engine tolerances and the "unavailable" sentinel value
- Session defaults (observer location, elevation mask, time warp)
- Ephemeris feed location and cache lifetime

Distances are in kilometres and times in seconds unless otherwise noted.
A sphere is assumed for the Earth throughout.
"""

import numpy as np

# Gravitational constant times the Earth's mass (mu factor), km^3/s^2.
# Used to recover the semi-major axis from the mean motion (Kepler's 3rd law).
MU = 398600.4418

# Mean Earth radius in km. The whole core uses a spherical Earth, and the
# rendering scene is normalised so that this radius maps to 1.0.
EARTH_R_KM = 6371.0

# Conversion factors:
deg2rad = np.pi / 180.0    # Convert degrees to radians
rad2deg = 180.0 / np.pi    # Convert radians to degrees
twoPi   = 2.0 * np.pi      # Full circle in radians

# Seconds in one day
SEC_PER_DAY = 86400.0

# Minutes in one day (SGP4 works in minutes since epoch)
MIN_PER_DAY = 1440.0

# Mean motion conversion: rev/day -> rad/s
revday2rads = twoPi / SEC_PER_DAY

# Unix timestamp of the J2000.0 epoch (2000-01-01 12:00:00 UTC).
J2000_UNIX = 946728000.0

# Linear GMST model (degrees):  GMST = GMST_J2000_DEG + GMST_RATE_DEG * days
GMST_J2000_DEG = 280.46061837
GMST_RATE_DEG = 360.98564736629

# Days between the SGP4 reference date (1949-12-31 00:00 UT) and the Unix
# epoch. sgp4init() expects its epoch counted from 1949-12-31.
SGP4_EPOCH_OFFSET_DAYS = 7306.0

# Supported range of epoch years for the from-scratch day count.
MIN_EPOCH_YEAR = 1970
MAX_EPOCH_YEAR = 2100

# DOP engine: a pivot smaller than this marks the 4x4 matrix as singular.
DOP_SINGULAR_EPS = 1e-14

# DOP value reported for every scalar when geometry is unusable.
DOP_UNAVAILABLE = 99.9

# Minimum number of satellites needed to solve for x, y, z and clock.
DOP_MIN_SATS = 4

# Number of samples kept by the DOP time-history ring buffer.
DOP_HISTORY_LEN = 512

# Default observer: Chicago, IL (41.85 N, 87.65 W).
DEFAULT_OBSERVER_LAT = 41.85
DEFAULT_OBSERVER_LON = -87.65

# Default elevation mask (degrees) for "visible only" mode and the DOP query.
DEFAULT_ELEV_MASK = 5.0

# Default simulation time acceleration (120 = 2 minutes of orbit per second).
DEFAULT_TIME_WARP = 120.0

# Celestrak GNSS group, OMM JSON format.
EPHEMERIS_URL = "https://celestrak.org/NORAD/elements/gp.php?GROUP=gnss&FORMAT=json"
EPHEMERIS_FILENAME = "gnss.json"

# Ephemeris cache lifetime: 12 hours, in seconds.
EPHEMERIS_TTL = 12 * 60 * 60

# Nominal constellations, propagated with circular orbits when no ephemeris
# is loaded. Columns:
#   (tag, altitude km, inclination deg, planes, sats per plane,
#    RAAN spacing deg, RAAN offset deg)
NOMINAL_CONSTELLATIONS = (
    (0, 20200.0, 55.0, 6, 4, 60.0, 0.0),        # GPS
    (1, 19130.0, 64.8, 3, 8, 120.0, 15.0),      # GLONASS
    (2, 23222.0, 56.0, 3, 10, 120.0, 40.0),     # Galileo
    (3, 21528.0, 55.0, 3, 8, 120.0, 80.0),      # BeiDou MEO
)
