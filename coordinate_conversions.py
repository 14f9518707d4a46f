"""
coordinate_conversions.py

Reference-frame conversions for the GNSS constellation core. It includes:
    • Rotation from the SGP4 output frame (TEME, treated as inertial at GNSS
      altitudes) to Earth-Centered Earth-Fixed (ECEF) using GMST.
    • Geodetic latitude/longitude to an ECEF unit vector, and back.
    • Projection of an observer->satellite look vector onto the observer's
      local East-North-Up (ENU) basis, giving azimuth and elevation.
    • Normalisation of kilometre positions to scene units (Earth radius = 1).

The Earth is a sphere throughout: there is no altitude or flattening term.
All trigonometry runs in float64; only ScaleToScene() downcasts to float32.
"""

import numpy as np
import constants as c


def ConvertECIToECEF(pos_eci, gmst):
    """
    Convert an inertial (TEME/ECI) position to Earth-Centered Earth-Fixed
    (ECEF) coordinates using Greenwich Mean Sidereal Time (GMST).

    Parameters:
        pos_eci : array_like, shape (3,) or (N, 3)
            Position(s) in the inertial frame. Units are preserved (km or
            normalised).
        gmst : float
            Greenwich Mean Sidereal Time in radians.

    Returns:
        ndarray: ECEF position(s), same shape as the input.

    Explanation:
        The conversion applies a rotation about the Z-axis by -GMST to
        account for the Earth's rotation:

            x_ecef =  cos(gmst) * x + sin(gmst) * y
            y_ecef = -sin(gmst) * x + cos(gmst) * y
            z_ecef =  z
    """
    pos = np.asarray(pos_eci, dtype=float)
    cg = np.cos(gmst)
    sg = np.sin(gmst)
    out = np.empty_like(pos)
    out[..., 0] = cg * pos[..., 0] + sg * pos[..., 1]
    out[..., 1] = -sg * pos[..., 0] + cg * pos[..., 1]
    out[..., 2] = pos[..., 2]
    return out


def ConvertGeodeticToECEFUnit(lat_deg, lon_deg):
    """
    Convert geodetic latitude/longitude (degrees) to an ECEF unit vector.

    Spherical Earth (radius = 1):

        [cos(lat) cos(lon), cos(lat) sin(lon), sin(lat)]
    """
    lat = lat_deg * c.deg2rad
    lon = lon_deg * c.deg2rad
    return np.array([
        np.cos(lat) * np.cos(lon),
        np.cos(lat) * np.sin(lon),
        np.sin(lat),
    ])


def ComputeGeodeticLatLon(pos_ecef):
    """
    Spherical sub-point of an ECEF position.

    Returns:
        (lat_deg, lon_deg): latitude from atan2(z, hypot(x, y)) and longitude
        from atan2(y, x), both in degrees.
    """
    x, y, z = np.asarray(pos_ecef, dtype=float)
    lon = np.arctan2(y, x)
    lat = np.arctan2(z, np.hypot(x, y))
    return float(lat * c.rad2deg), float(lon * c.rad2deg)


def _ENUComponents(obs_ecef, sat_ecef):
    obs = np.asarray(obs_ecef, dtype=float)
    sat = np.asarray(sat_ecef, dtype=float)

    # Observer latitude/longitude from its own ECEF direction
    lon_obs = np.arctan2(obs[1], obs[0])
    lat_obs = np.arctan2(obs[2], np.hypot(obs[0], obs[1]))

    slat, clat = np.sin(lat_obs), np.cos(lat_obs)
    slon, clon = np.sin(lon_obs), np.cos(lon_obs)

    # Look vector (observer -> satellite)
    d = sat - obs

    east = -slon * d[0] + clon * d[1]
    north = -slat * clon * d[0] - slat * slon * d[1] + clat * d[2]
    up = clat * clon * d[0] + clat * slon * d[1] + slat * d[2]
    return east, north, up


def ComputeAzEl(obs_ecef, sat_ecef):
    """
    Azimuth and elevation of a satellite as seen from a ground observer.

    Parameters:
        obs_ecef, sat_ecef : array_like, shape (3,)
            Observer and satellite ECEF positions in the same units (km or
            normalised). Only direction matters; neither needs unit length.

    Returns:
        (az_deg, el_deg):
            az_deg in [0, 360), compass convention (0 = North, 90 = East).
            el_deg in [-90, 90], positive above the horizon.

    Explanation:
        The observer's local East-North-Up basis is built from its own
        latitude/longitude, the look vector is projected onto it, then

            el = atan2(up, hypot(east, north))
            az = atan2(east, north)  mod 360
    """
    east, north, up = _ENUComponents(obs_ecef, sat_ecef)
    el = np.arctan2(up, np.hypot(east, north)) * c.rad2deg
    az = (np.arctan2(east, north) * c.rad2deg) % 360.0
    if az >= 360.0:
        az = 0.0
    return float(az), float(el)


def ComputeENUUnit(obs_ecef, sat_ecef):
    """
    Unit line-of-sight vector from observer to satellite in local ENU.

    Used to build the DOP design-matrix rows. A zero-length look vector
    returns the zero vector.
    """
    enu = np.array(_ENUComponents(obs_ecef, sat_ecef))
    norm = np.linalg.norm(enu)
    if norm == 0.0:
        return np.zeros(3)
    return enu / norm


def ComputeSlantRange(obs_ecef, sat_ecef):
    """Straight-line distance between observer and satellite (input units)."""
    d = np.asarray(sat_ecef, dtype=float) - np.asarray(obs_ecef, dtype=float)
    return float(np.linalg.norm(d))


def ScaleToScene(pos_km):
    """
    Normalise a kilometre position to scene units where Earth radius = 1.

    Divides by the mean Earth radius (6371 km) and casts to float32 for the
    rendering front-end. This is the only single-precision boundary.
    """
    return (np.asarray(pos_km, dtype=float) / c.EARTH_R_KM).astype(np.float32)
