"""
sky_view.py

Observer-side display data for the rendering front-end:
    - the ground observer (spherical Earth)
    - sky-plot records (azimuth/elevation + constellation colour)
    - observer -> satellite line segments in scene units
    - short PRN-style labels ("G25", "C19", "E05", ...)

Nothing here draws anything; the front-end consumes these records.
"""

import re
from dataclasses import dataclass

import numpy as np

import constants as c
from coordinate_conversions import (ConvertGeodeticToECEFUnit, ComputeAzEl,
                                    ScaleToScene)


# RGB per constellation tag (GPS, GLONASS, Galileo, BeiDou, Other)
CONSTELLATION_COLORS = (
    (57, 255, 20),      # GPS      neon green
    (255, 68, 68),      # GLONASS  red
    (0, 255, 204),      # Galileo  cyan
    (255, 170, 0),      # BeiDou   orange
)
UNKNOWN_COLOR = (128, 128, 128)

# Label prefixes by constellation tag; "Other" uses A (augmentation/other)
LABEL_PREFIXES = ('G', 'R', 'E', 'C', 'A')

_PRN_RE = re.compile(r'\(PRN\s*(\d+)\)', re.IGNORECASE)
_BDS_RE = re.compile(r'\(C(\d{1,3})\)')
_GAL_RE = re.compile(r'\(GALILEO[- ]*(?:FM)?(\d+)\)', re.IGNORECASE)
_QZSS_RE = re.compile(r'MICHIBIKI[-\s]*(\d+)', re.IGNORECASE)
_IRNSS_RE = re.compile(r'IRNSS[-\s]*\d+([A-I])', re.IGNORECASE)
_PAREN_RE = re.compile(r'\(.*?\)')
_TRAILING_NUM_RE = re.compile(r'(\d+)\s*$')


@dataclass(frozen=True)
class ObserverLocation:
    """Ground observer on a spherical Earth. Relocating means a new instance."""
    lat_deg: float = c.DEFAULT_OBSERVER_LAT
    lon_deg: float = c.DEFAULT_OBSERVER_LON

    def ecef_unit(self):
        return ConvertGeodeticToECEFUnit(self.lat_deg, self.lon_deg)

    def ecef_km(self):
        return self.ecef_unit() * c.EARTH_R_KM

    def scene_pos(self):
        # already on the unit sphere
        return self.ecef_unit().astype(np.float32)


@dataclass(frozen=True)
class SkySat:
    """One satellite entry for the sky plot."""
    name: str
    constellation: int
    az_deg: float       # [0, 360), 0 = North, 90 = East
    el_deg: float
    r: int
    g: int
    b: int


def ConstellationColor(tag):
    tag = int(tag)
    if 0 <= tag < len(CONSTELLATION_COLORS):
        return CONSTELLATION_COLORS[tag]
    return UNKNOWN_COLOR


def DisplayColor(tag, constellation_visible, highlighted=-1):
    """
    Scene colour of a constellation given the toggle and highlight state.

    Hidden constellations are black. While one constellation is highlighted
    (highlighted != -1) every other one is dimmed to a quarter brightness.
    """
    tag = int(tag)
    if not constellation_visible[tag]:
        return (0, 0, 0)
    rgb = ConstellationColor(tag)
    if highlighted != -1 and highlighted != tag:
        return tuple(v // 4 for v in rgb)
    return rgb


def IsVisible(el_deg, min_el_deg):
    """True when the elevation is at or above the mask (inclusive)."""
    return el_deg >= min_el_deg


###############################################################################
# Function: BuildSkyData
###############################################################################
def BuildSkyData(snapshot_ecef, observer, visible_only=False,
                 mask_deg=c.DEFAULT_ELEV_MASK, constellation_visible=None,
                 names=None, highlighted=-1):
    """
    Sky-plot records for the latest position snapshot.

    Parameters:
        snapshot_ecef : list of (constellation, ndarray km)
            Earth-fixed positions, as produced each tick.
        observer : ObserverLocation
        visible_only : bool
            When set, satellites below `mask_deg` are dropped as well.
        mask_deg : float
        constellation_visible : sequence of 5 bools, or None for all shown
        names : sequence of str parallel to `snapshot_ecef`, optional
        highlighted : constellation tag to keep at full colour, -1 for none

    Returns:
        list of SkySat for satellites above the horizon (el >= 0), skipping
        hidden constellations.
    """
    obs_km = observer.ecef_km()
    out = []
    for idx, (tag, pos_km) in enumerate(snapshot_ecef):
        if constellation_visible is not None and not constellation_visible[int(tag)]:
            continue
        az, el = ComputeAzEl(obs_km, pos_km)
        if el < 0.0:
            continue
        if visible_only and not IsVisible(el, mask_deg):
            continue
        r, g, b = ConstellationColor(tag)
        if highlighted != -1 and highlighted != int(tag):
            r, g, b = r // 4, g // 4, b // 4
        name = names[idx] if names is not None else ""
        out.append(SkySat(name, int(tag), az, el, r, g, b))
    return out


def VisibleScenePositions(snapshot_ecef, obs_km, mask_deg=c.DEFAULT_ELEV_MASK,
                          constellation_visible=None):
    """(constellation, float32 scene position) for shown satellites above the mask."""
    out = []
    for tag, pos_km in snapshot_ecef:
        if constellation_visible is not None and not constellation_visible[int(tag)]:
            continue
        _, el = ComputeAzEl(obs_km, pos_km)
        if IsVisible(el, mask_deg):
            out.append((tag, ScaleToScene(pos_km)))
    return out


def BuildLineSegments(obs_scene, visible_scene):
    """
    Flat float32 buffer of observer -> satellite line segments.

    Layout: [obs_x, obs_y, obs_z, sat_x, sat_y, sat_z, ...], 6 floats per
    satellite in `visible_scene` (pairs of (constellation, scene position)).
    """
    obs = np.asarray(obs_scene, dtype=np.float32)
    buf = np.empty((len(visible_scene), 6), dtype=np.float32)
    for i, (_, sat_pos) in enumerate(visible_scene):
        buf[i, :3] = obs
        buf[i, 3:] = sat_pos
    return buf.ravel()


###############################################################################
# Function: SatShortLabel
###############################################################################
def SatShortLabel(name, constellation, fallback_n):
    """
    Short PRN-style label from a Celestrak OBJECT_NAME.

    The parenthetical designator is checked first, then the base name:
        "GPS BIIF-1  (PRN 25)"     -> G25
        "BEIDOU-3 M1 (C19)"        -> C19
        "GSAT0201 (GALILEO 5)"     -> E05
        "GSAT0102 (GALILEO-FM2)"   -> E02
        "MICHIBIKI-2"              -> J02
        "IRNSS-1A"                 -> I01  (A=1, B=2, ...)
        "COSMOS 2433 (720)"        -> R33  (last two digits of the base name)
    With no usable number the label is prefix + (fallback_n + 1).
    """
    tag = int(constellation)
    prefix = LABEL_PREFIXES[tag] if 0 <= tag < len(LABEL_PREFIXES) else '?'

    if name:
        m = _PRN_RE.search(name)
        if m:
            return 'G' + m.group(1).zfill(2)
        m = _BDS_RE.search(name)
        if m:
            return 'C' + m.group(1).zfill(2)
        m = _GAL_RE.search(name)
        if m:
            return 'E' + m.group(1).zfill(2)
        m = _QZSS_RE.search(name)
        if m:
            return 'J' + m.group(1).zfill(2)
        m = _IRNSS_RE.search(name)
        if m:
            return 'I' + str(ord(m.group(1).upper()) - 64).zfill(2)

        base = _PAREN_RE.sub('', name).strip()
        m = _TRAILING_NUM_RE.search(base)
        if m:
            return prefix + m.group(1)[-2:].zfill(2)

    return prefix + str(fallback_n + 1).zfill(2)
