"""
dop_engine.py

Dilution of Precision (DOP) for the satellites an observer can see.

For every satellite above the elevation mask a design-matrix row

    [e, n, u, 1]

is formed from the East-North-Up unit line of sight. The normal-equations
matrix A = H^T H (4x4) is inverted with Gauss-Jordan elimination and the DOP
scalars come from the diagonal of Q = A^-1:

    GDOP = sqrt(q00 + q11 + q22 + q33)
    PDOP = sqrt(q00 + q11 + q22)
    HDOP = sqrt(q00 + q11)
    VDOP = sqrt(q22)
    TDOP = sqrt(q33)

Insufficient or degenerate geometry never raises: it yields the "unavailable"
result (99.9 for every scalar) which callers must check for.
"""

from collections import deque, namedtuple
from dataclasses import dataclass

import numpy as np

import constants as c
from coordinate_conversions import ComputeAzEl, ComputeENUUnit


@dataclass(frozen=True)
class DopResult:
    gdop: float
    pdop: float
    hdop: float
    vdop: float
    tdop: float
    n_sats: int

    @classmethod
    def unavailable(cls, n_sats=0):
        """Sentinel for unusable geometry; `n_sats` keeps the satellite count."""
        u = c.DOP_UNAVAILABLE
        return cls(u, u, u, u, u, n_sats)

    @property
    def is_available(self):
        # large but finite DOP from poor geometry is still a solution
        u = c.DOP_UNAVAILABLE
        return (self.gdop, self.pdop, self.hdop, self.vdop, self.tdop) != (u, u, u, u, u)


###############################################################################
# Function: Invert4x4
###############################################################################
def Invert4x4(a):
    """
    Invert a 4x4 matrix by Gauss-Jordan elimination with partial pivoting.

    The augmented matrix [A | I] is reduced column by column. At each step the
    row with the largest absolute value in the pivot column is swapped into
    place; if that value is below 1e-14 the matrix is treated as singular.

    Parameters:
        a : array_like, shape (4, 4)

    Returns:
        ndarray (4, 4) float64, or None when the matrix is singular.
    """
    m = np.zeros((4, 8))
    m[:, :4] = np.asarray(a, dtype=float)
    m[:, 4:] = np.eye(4)

    for col in range(4):
        max_row = col + int(np.argmax(np.abs(m[col:, col])))
        if abs(m[max_row, col]) < c.DOP_SINGULAR_EPS:
            return None

        if max_row != col:
            m[[col, max_row]] = m[[max_row, col]]

        m[col] /= m[col, col]

        for row in range(4):
            if row == col:
                continue
            m[row] -= m[row, col] * m[col]

    return m[:, 4:].copy()


def BuildDesignMatrix(sats, obs_km, elev_mask_deg):
    """
    Rows [e, n, u, 1] (float32) for satellites at or above the mask.

    Parameters:
        sats : iterable of (constellation, ECEF km position)
        obs_km : observer ECEF km position
        elev_mask_deg : float
    """
    rows = []
    for _, pos_km in sats:
        _, el = ComputeAzEl(obs_km, pos_km)
        if el < elev_mask_deg:
            continue
        e, n, u = ComputeENUUnit(obs_km, pos_km)
        rows.append((e, n, u, 1.0))
    return np.array(rows, dtype=np.float32).reshape(-1, 4)


###############################################################################
# Function: ComputeDOP
###############################################################################
def ComputeDOP(sats, obs_km, elev_mask_deg=c.DEFAULT_ELEV_MASK):
    """
    DOP scalars for the satellites visible from an observer.

    Parameters:
        sats : iterable of (constellation, ndarray)
            Earth-fixed satellite positions in km.
        obs_km : array_like (3,)
            Observer Earth-fixed position in km.
        elev_mask_deg : float
            Satellites below this elevation are excluded.

    Returns:
        DopResult. The unavailable sentinel is returned when fewer than 4
        satellites survive the mask (n_sats = survivors), when A is singular,
        or when any diagonal entry of A^-1 is not positive (n_sats kept).
    """
    h = BuildDesignMatrix(sats, obs_km, elev_mask_deg)
    n = h.shape[0]
    if n < c.DOP_MIN_SATS:
        return DopResult.unavailable(n)

    # single-precision rows, double-precision accumulation
    h64 = h.astype(np.float64)
    a = h64.T @ h64

    q = Invert4x4(a)
    if q is None:
        return DopResult.unavailable(n)

    q00, q11, q22, q33 = np.diag(q)
    if q00 <= 0.0 or q11 <= 0.0 or q22 <= 0.0 or q33 <= 0.0:
        return DopResult.unavailable(n)

    return DopResult(
        gdop=float(np.sqrt(q00 + q11 + q22 + q33)),
        pdop=float(np.sqrt(q00 + q11 + q22)),
        hdop=float(np.sqrt(q00 + q11)),
        vdop=float(np.sqrt(q22)),
        tdop=float(np.sqrt(q33)),
        n_sats=n,
    )


def ComputeDOPByConstellation(sats, obs_km, elev_mask_deg=c.DEFAULT_ELEV_MASK):
    """
    One DopResult per constellation present in `sats`, in tag order.

    Returns:
        list of (constellation, DopResult)
    """
    groups = {}
    for tag, pos_km in sats:
        groups.setdefault(int(tag), []).append((tag, pos_km))

    return [(groups[tag][0][0], ComputeDOP(groups[tag], obs_km, elev_mask_deg))
            for tag in sorted(groups)]


DopSample = namedtuple('DopSample', ['epoch', 'result'])


class DopHistory:
    """
    Ring buffer of the most recent DOP samples, oldest first.

    Once full, each new sample drops the oldest one.
    """

    def __init__(self, maxlen=c.DOP_HISTORY_LEN):
        self._samples = deque(maxlen=maxlen)

    def __len__(self):
        return len(self._samples)

    @property
    def maxlen(self):
        return self._samples.maxlen

    def push(self, epoch, result):
        self._samples.append(DopSample(epoch, result))

    def samples(self):
        return list(self._samples)

    def latest(self):
        return self._samples[-1] if self._samples else None

    def clear(self):
        self._samples.clear()

    def series(self, field):
        """
        Epochs and values of one scalar ('gdop', 'pdop', ...) as arrays.

        Unavailable samples are returned as NaN so plots show gaps.
        """
        epochs = np.array([s.epoch for s in self._samples], dtype=float)
        values = np.array([getattr(s.result, field) if s.result.is_available else np.nan
                           for s in self._samples], dtype=float)
        return epochs, values
