#!/usr/bin/env python3
"""
main.py

Console + matplotlib front-end for the GNSS constellation core.

Loads the GNSS ephemeris (cached Celestrak feed or a local JSON file), runs
the simulation for a number of ticks from the chosen start time, prints the
sky table and DOP for the final tick, then shows a polar sky plot next to the
DOP time history.

Example:
    > python main.py --lat 51.5 --lon -0.1 --steps 120 --step-seconds 60
"""

import argparse
import logging
import math
import sys
import time

import constants as c
from TimeRoutines import ConvertUTCToUnix, FormatUTCClock
from ephemeris_store import Constellation, EphemerisFormatError
from fetch_ephemeris import fetch_and_cache, EphemerisFetchError
from session import GnssSession
from sky_view import SatShortLabel

logger = logging.getLogger(__name__)


def ParseArgs(argv=None):
    p = argparse.ArgumentParser(description="GNSS constellation sky view and DOP")
    p.add_argument('--ephemeris', help="local OMM JSON file (skips the download)")
    p.add_argument('--url', default=c.EPHEMERIS_URL, help="ephemeris feed URL")
    p.add_argument('--cache', default=c.EPHEMERIS_FILENAME, help="cache file for the feed")
    p.add_argument('--lat', type=float, default=c.DEFAULT_OBSERVER_LAT, help="observer latitude (deg)")
    p.add_argument('--lon', type=float, default=c.DEFAULT_OBSERVER_LON, help="observer longitude (deg)")
    p.add_argument('--time', help='start time, UTC "YYYY MM DD HH MM SS" (default: now)')
    p.add_argument('--mask', type=float, default=c.DEFAULT_ELEV_MASK, help="elevation mask (deg)")
    p.add_argument('--visible-only', action='store_true', help="hide satellites below the mask")
    p.add_argument('--steps', type=int, default=60, help="number of simulation ticks")
    p.add_argument('--step-seconds', type=float, default=60.0, help="simulated seconds per tick")
    p.add_argument('--no-plot', action='store_true', help="print only, no matplotlib window")
    p.add_argument('--log-level', default='WARNING',
                   choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
    return p.parse_args(argv)


def LoadEphemerisText(args):
    if args.ephemeris:
        with open(args.ephemeris, 'r', encoding='utf-8') as f:
            return f.read()
    return fetch_and_cache(args.url, args.cache)


def PrintSkyTable(session):
    sky = session.sky_data()
    sky.sort(key=lambda s: -s.el_deg)
    print(f"\nSky at {FormatUTCClock(session.sim_epoch)}  "
          f"(observer {session.observer.lat_deg:.2f}, {session.observer.lon_deg:.2f})")
    print(f"{'Label':<6} {'Name':<28} {'System':<8} {'Az':>7} {'El':>6}")
    for n, s in enumerate(sky):
        label = SatShortLabel(s.name, s.constellation, n)
        print(f"{label:<6} {s.name[:28]:<28} {Constellation(s.constellation).label:<8} "
              f"{s.az_deg:7.1f} {s.el_deg:6.1f}")
    print(f"{len(sky)} satellites above the horizon")


def FormatDop(d):
    if not d.is_available:
        return f"N/A ({d.n_sats} sats)"
    return (f"GDOP {d.gdop:5.2f}  PDOP {d.pdop:5.2f}  HDOP {d.hdop:5.2f}  "
            f"VDOP {d.vdop:5.2f}  TDOP {d.tdop:5.2f}  ({d.n_sats} sats)")


def PrintDop(session):
    combined, by_constellation = session.get_dop()
    print(f"\nCombined  {FormatDop(combined)}")
    for tag, d in by_constellation:
        pdop = 'N/A' if not d.is_available else f"{d.pdop:.1f}"
        print(f"  {Constellation(tag).label:<8} PDOP {pdop:>5}  ({d.n_sats} sats)")


def PlotSession(session):
    import numpy as np
    import matplotlib.pyplot as plt
    import matplotlib.patheffects as pe

    fig = plt.figure(figsize=(13, 6))
    gs = fig.add_gridspec(1, 2, wspace=0.25)
    ax_sky = fig.add_subplot(gs[0, 0], projection='polar')
    ax_dop = fig.add_subplot(gs[0, 1])

    # ── Sky plot: compass rose with zenith at the centre
    ax_sky.set_facecolor('black')
    ax_sky.set_theta_zero_location('N')     # 0° at North
    ax_sky.set_theta_direction(-1)          # clockwise azimuth
    ax_sky.set_rlim(0, 90)
    ax_sky.set_rticks([])
    ax_sky.set_xticklabels([])
    for r in (30, 60, 90):
        ax_sky.plot([0, 2 * math.pi], [r, r], color='white', alpha=0.15, linewidth=1)
        ax_sky.text(math.radians(45), r, f"{90 - r}°", color='white', alpha=0.5, fontsize=8)
    for ang in range(0, 360, 30):
        t = math.radians(ang)
        ax_sky.plot([t, t], [0, 90], color='white', alpha=0.15, linewidth=1)
    for ang, lab in [(0, 'N'), (90, 'E'), (180, 'S'), (270, 'W')]:
        ax_sky.text(math.radians(ang), 97, lab, color='red', ha='center', va='center', fontsize=10)

    # shade below the elevation mask
    ax_sky.bar(0, session.elev_mask_deg, width=2 * math.pi, bottom=90 - session.elev_mask_deg,
               alpha=0.14, color='red', edgecolor=None)

    for n, s in enumerate(session.sky_data()):
        theta = math.radians(s.az_deg)
        rad = 90.0 - s.el_deg
        color = (s.r / 255.0, s.g / 255.0, s.b / 255.0)
        ax_sky.plot([theta], [rad], marker='o', markersize=7,
                    markeredgecolor='white', markerfacecolor=color, zorder=5)
        ax_sky.text(theta, rad + 4, SatShortLabel(s.name, s.constellation, n),
                    color='white', fontsize=7, ha='center', zorder=6,
                    path_effects=[pe.withStroke(linewidth=2, foreground='black')])

    ax_sky.text(0.5, 1.08, f"Sky @ {FormatUTCClock(session.sim_epoch)}",
                transform=ax_sky.transAxes, ha='center', va='bottom',
                color='white', fontsize=12, clip_on=False,
                path_effects=[pe.withStroke(linewidth=3, foreground='black')])

    # ── DOP history
    ax_dop.set_facecolor('darkslategray')
    ax_dop.set_title("DOP history", color='white')
    ax_dop.set_xlabel("Minutes from start", color='white')
    ax_dop.set_ylabel("DOP", color='white')
    ax_dop.tick_params(colors='white')

    history = session.dop_history
    if len(history):
        t0 = history.samples()[0].epoch
        for field, color in (('gdop', 'white'), ('pdop', '#39ff14'),
                             ('hdop', '#80cbc4'), ('vdop', '#ffab40')):
            epochs, values = history.series(field)
            ax_dop.plot((epochs - t0) / 60.0, values, color=color, linewidth=2,
                        label=field.upper())
        # y range: 0 to max(10, ceil(max GDOP))
        _, gdop = history.series('gdop')
        finite = gdop[~np.isnan(gdop)]
        ax_dop.set_ylim(0, max(10.0, math.ceil(finite.max())) if finite.size else 10.0)
        ax_dop.legend(loc='upper right')

    fig.patch.set_facecolor('black')
    plt.show()


def main(argv=None):
    args = ParseArgs(argv)
    logging.basicConfig(level=getattr(logging, args.log_level),
                        format='%(asctime)s %(name)s %(levelname)s: %(message)s')

    try:
        start = ConvertUTCToUnix(args.time) if args.time else time.time()
    except ValueError as e:
        print(f"[ERROR] Invalid --time \"{args.time}\": {e}")
        return 1
    session = GnssSession(sim_epoch=start, time_warp=1.0, elev_mask_deg=args.mask)
    session.set_ground_location(args.lat, args.lon)
    session.set_visible_only(args.visible_only)

    try:
        text = LoadEphemerisText(args)
        count = session.inject_ephemeris(text)
    except (OSError, EphemerisFetchError, EphemerisFormatError) as e:
        print(f"[ERROR] Could not load ephemeris: {e}")
        return 1

    stats = session.store.last_load_stats()
    print(f"[OK] Loaded {count} satellites "
          f"(skipped {stats.skipped_epoch} bad epochs, {stats.skipped_elements} bad elements)")
    if session.nominal:
        print("[WARN] No usable satellites, showing the nominal constellations")

    # first tick at the start time, then one per step
    session.tick(0.0)
    session.record_dop()
    for _ in range(args.steps):
        session.tick(args.step_seconds)
        session.record_dop()
    logger.info("Simulated %d ticks of %.0f s from %s", args.steps,
                args.step_seconds, FormatUTCClock(start))

    PrintSkyTable(session)
    PrintDop(session)

    if not args.no_plot:
        PlotSession(session)
    return 0


if __name__ == "__main__":
    sys.exit(main())
