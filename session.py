"""
session.py

GnssSession holds everything the front-end changes between ticks (observer,
simulation clock, toggles) together with the ephemeris store and the most
recent Earth-fixed snapshot, and runs the per-tick pipeline:

    advance clock -> propagate (TEME) -> GMST rotation (ECEF) -> snapshot

Until an ephemeris is injected the nominal design constellations are shown
instead, on circular orbits.

Sky records, line segments and DOP are all derived from that snapshot, so
they always describe the same instant.
"""

import logging

import constants as c
from TimeRoutines import CalculateGMSTFromUnix, FormatUTCClock
from coordinate_conversions import ConvertECIToECEF, ComputeAzEl, ScaleToScene
from ephemeris_store import EphemerisStore, Constellation
from hybrid_propagator import PropagateNominal
from dop_engine import ComputeDOP, ComputeDOPByConstellation, DopHistory
from sky_view import (ObserverLocation, BuildSkyData, BuildLineSegments,
                      VisibleScenePositions, DisplayColor)

logger = logging.getLogger(__name__)

N_CONSTELLATIONS = len(Constellation)


class GnssSession:

    def __init__(self, observer=None, sim_epoch=0.0,
                 time_warp=c.DEFAULT_TIME_WARP,
                 elev_mask_deg=c.DEFAULT_ELEV_MASK):
        self.store = EphemerisStore()
        self.observer = observer if observer is not None else ObserverLocation()
        self.sim_epoch = float(sim_epoch)
        self.time_warp = max(0.0, float(time_warp))
        self.elev_mask_deg = elev_mask_deg
        self.paused = False
        self.visible_only = False
        self.constellation_visible = [True] * N_CONSTELLATIONS
        self.highlighted = -1           # -1 = none, else a constellation tag
        self.sat_ecef_km = []           # [(constellation, ndarray km)]
        self._snapshot_names = []
        self.dop_history = DopHistory()

    # ---- front-end controls ------------------------------------------------

    def set_ground_location(self, lat_deg, lon_deg):
        self.observer = ObserverLocation(lat_deg, lon_deg)

    def toggle_constellation(self, idx, on):
        if 0 <= idx < N_CONSTELLATIONS:
            self.constellation_visible[idx] = bool(on)

    def set_highlighted_constellation(self, idx):
        self.highlighted = idx

    def set_visible_only(self, on):
        self.visible_only = bool(on)

    def set_paused(self, on):
        self.paused = bool(on)

    def set_time_warp(self, warp):
        self.time_warp = max(0.0, float(warp))

    def set_sim_epoch(self, unix_s):
        self.sim_epoch = float(unix_s)

    def inject_ephemeris(self, json_text):
        """
        Replace the tracked satellites with an OMM JSON batch.

        Raises EphemerisFormatError (store unchanged) on a malformed batch.
        """
        count = self.store.load_from_json(json_text)
        self.sat_ecef_km = []
        self._snapshot_names = []
        return count

    # ---- per-tick pipeline -------------------------------------------------

    def advance(self, elapsed_s):
        """Move the simulation clock by real elapsed seconds times the warp."""
        if not self.paused:
            self.sim_epoch += elapsed_s * self.time_warp
        return self.sim_epoch

    def propagate(self):
        """Refresh the Earth-fixed snapshot at the current simulation time."""
        teme = self.store.propagate_all(self.sim_epoch)
        gmst = CalculateGMSTFromUnix(self.sim_epoch)
        self.sat_ecef_km = [(tag, ConvertECIToECEF(pos, gmst)) for tag, pos in teme]
        self._snapshot_names = self.store.names()
        if self.store.last_fallback_count:
            logger.debug("%d of %d satellites on circular fallback at %s",
                         self.store.last_fallback_count, len(teme),
                         FormatUTCClock(self.sim_epoch))
        return self.sat_ecef_km

    @property
    def nominal(self):
        """True while no ephemeris is loaded and the nominal constellations are shown."""
        return self.store.is_empty

    def propagate_nominal(self):
        teme = PropagateNominal(self.sim_epoch)
        gmst = CalculateGMSTFromUnix(self.sim_epoch)
        self.sat_ecef_km = [(Constellation(tag), ConvertECIToECEF(pos, gmst))
                            for tag, pos in teme]
        self._snapshot_names = [""] * len(self.sat_ecef_km)
        return self.sat_ecef_km

    def tick(self, elapsed_s):
        self.advance(elapsed_s)
        if self.nominal:
            return self.propagate_nominal()
        return self.propagate()

    # ---- derived views of the snapshot --------------------------------------

    def _shown(self):
        return [(tag, pos) for tag, pos in self.sat_ecef_km
                if self.constellation_visible[int(tag)]]

    def scene_positions(self):
        """
        (constellation, float32 scene position) for every shown satellite.

        In visible-only mode satellites below the elevation mask are dropped.
        """
        obs_km = self.observer.ecef_km()
        out = []
        for tag, pos in self._shown():
            if self.visible_only:
                _, el = ComputeAzEl(obs_km, pos)
                if el < self.elev_mask_deg:
                    continue
            out.append((tag, ScaleToScene(pos)))
        return out

    def sky_data(self):
        return BuildSkyData(self.sat_ecef_km, self.observer,
                            visible_only=self.visible_only,
                            mask_deg=self.elev_mask_deg,
                            constellation_visible=self.constellation_visible,
                            names=self._snapshot_names,
                            highlighted=self.highlighted)

    def scene_colors(self):
        """RGB per constellation tag, with hiding and highlight dimming applied."""
        return [DisplayColor(tag, self.constellation_visible, self.highlighted)
                for tag in range(N_CONSTELLATIONS)]

    def line_segments(self):
        visible = VisibleScenePositions(self.sat_ecef_km, self.observer.ecef_km(),
                                        self.elev_mask_deg,
                                        self.constellation_visible)
        return BuildLineSegments(self.observer.scene_pos(), visible)

    def get_dop(self):
        """
        Returns:
            (combined DopResult, [(constellation, DopResult), ...])
            computed over the shown constellations.
        """
        shown = self._shown()
        obs_km = self.observer.ecef_km()
        combined = ComputeDOP(shown, obs_km, self.elev_mask_deg)
        by_constellation = ComputeDOPByConstellation(shown, obs_km, self.elev_mask_deg)
        return combined, by_constellation

    def record_dop(self):
        """Compute the combined DOP and append it to the history buffer."""
        combined, _ = self.get_dop()
        self.dop_history.push(self.sim_epoch, combined)
        return combined
