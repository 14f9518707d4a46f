"""
TimeRoutines.py

Time handling for the GNSS constellation core:
    - Greenwich Mean Sidereal Time from a Unix timestamp (linear J2000 model)
    - Gregorian leap-year rule, day-of-year and Unix day counts computed from
      scratch (no calendar library), valid for 1970-2100
    - Parsing of Celestrak epoch strings in the two formats found in OMM feeds:
          "YYYY-DDD.FFFFFFFF"         fractional day-of-year
          "YYYY-MM-DDTHH:MM:SS[.sss]" ISO date/time
    - UTC formatting and parsing helpers for the front-end

No leap-second correction is applied anywhere.
"""

import datetime

import pytz

import constants as c


# Days in each month of a non-leap year.
MONTH_DAYS = (31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)


###############################################################################
# Function: CalculateGMSTFromUnix
###############################################################################
def CalculateGMSTFromUnix(unix_s):
    """
    Calculate the Greenwich Mean Sidereal Time (GMST) for a Unix timestamp.

    Uses the linear model referenced to J2000.0:

        GMST_deg = 280.46061837 + 360.98564736629 * d

    where d is the number of days (fractional) since J2000.0
    (Unix 946728000.0). The angle is wrapped into [0, 360) before being
    converted to radians. Accurate to about 0.1 s over +/-50 years.

    Parameters:
        unix_s : float
            Seconds since 1970-01-01T00:00:00Z.

    Returns:
        float: GMST in radians, in [0, 2*pi).
    """
    d = (unix_s - c.J2000_UNIX) / c.SEC_PER_DAY
    gmst_deg = (c.GMST_J2000_DEG + c.GMST_RATE_DEG * d) % 360.0
    # a tiny negative angle can round up to exactly 360.0
    if gmst_deg >= 360.0:
        gmst_deg = 0.0
    return float(gmst_deg * c.deg2rad)


###############################################################################
# Function: IsLeapYear
###############################################################################
def IsLeapYear(year):
    """Gregorian rule: divisible by 4, except centuries not divisible by 400."""
    return (year % 4 == 0 and year % 100 != 0) or (year % 400 == 0)


def DaysInYear(year):
    return 366 if IsLeapYear(year) else 365


###############################################################################
# Function: DayOfYear
###############################################################################
def DayOfYear(year, month, day):
    """
    Return the 1-indexed day-of-year for a calendar date.

    Parameters:
        year : int
        month : int
            1..12
        day : int
            1..length of the month (February has 29 days in leap years)

    Returns:
        int or None: Day number (Jan 1 = 1), or None if month/day are out of range.
    """
    if month < 1 or month > 12:
        return None
    month_len = MONTH_DAYS[month - 1]
    if month == 2 and IsLeapYear(year):
        month_len += 1
    if day < 1 or day > month_len:
        return None

    doy = 0
    for m in range(month - 1):
        doy += MONTH_DAYS[m]
        # leap day sits after February
        if m == 1 and IsLeapYear(year):
            doy += 1
    return doy + day


###############################################################################
# Function: YearToUnix
###############################################################################
def YearToUnix(year):
    """
    Unix timestamp (integer seconds) of midnight UTC on January 1 of `year`.

    Sums 365/366 days for every year from 1970 up to (not including) `year`.
    Returns None outside the supported 1970..2100 range.
    """
    if year < c.MIN_EPOCH_YEAR or year > c.MAX_EPOCH_YEAR:
        return None
    days = 0
    for y in range(c.MIN_EPOCH_YEAR, year):
        days += DaysInYear(y)
    return days * int(c.SEC_PER_DAY)


def DayOfYearToUnix(year, doy):
    """
    Convert (year, fractional day-of-year) to a Unix timestamp.

    doy is 1-indexed: doy = 1.0 is Jan 1 00:00:00, so (doy - 1) days are added
    to the start of the year.
    """
    base = YearToUnix(year)
    if base is None:
        return None
    return base + (doy - 1.0) * c.SEC_PER_DAY


###############################################################################
# Function: ParseEpoch
###############################################################################
def ParseEpoch(epoch_str):
    """
    Parse a Celestrak epoch string.

    Supported formats:
        "YYYY-DDD.FFFFFFFF"        e.g. "2024-001.50000000"
        "YYYY-MM-DDTHH:MM:SS"      e.g. "2024-01-15T12:00:00"
        "YYYY-MM-DDTHH:MM:SS.sss"  with fractional seconds (a trailing 'Z' is tolerated)

    The presence of a 'T' selects the ISO parser, otherwise the day-of-year
    parser is used.

    Parameters:
        epoch_str : str

    Returns:
        tuple or None:
            (year_2digit, day_of_year, unix_ts) where day_of_year is fractional
            and 1-indexed, or None when the string cannot be parsed.
    """
    if not isinstance(epoch_str, str):
        return None
    s = epoch_str.strip()
    if not s:
        return None
    if 'T' in s:
        return _ParseEpochISO(s)
    return _ParseEpochDOY(s)


def _ParseEpochDOY(s):
    parts = s.split('-', 1)
    if len(parts) != 2:
        return None
    try:
        year = int(parts[0].strip())
        doy = float(parts[1].strip())
    except ValueError:
        return None

    # NaN fails both comparisons and is rejected here too
    if not (1.0 <= doy < DaysInYear(year) + 1.0):
        return None

    unix_ts = DayOfYearToUnix(year, doy)
    if unix_ts is None:
        return None
    return year % 100, doy, unix_ts


def _ParseEpochISO(s):
    date_part, time_part = s.split('T', 1)
    time_part = time_part.strip().rstrip('Zz') or "00:00:00"

    date_fields = date_part.strip().split('-')
    if len(date_fields) != 3:
        return None
    time_fields = time_part.split(':')
    if len(time_fields) < 2 or len(time_fields) > 3:
        return None

    try:
        year = int(date_fields[0])
        month = int(date_fields[1])
        day = int(date_fields[2])
        hh = int(time_fields[0])
        mm = int(time_fields[1])
        ss = float(time_fields[2]) if len(time_fields) == 3 else 0.0
    except ValueError:
        return None

    if not (0 <= hh < 24 and 0 <= mm < 60 and 0.0 <= ss < 60.0):
        return None

    doy_int = DayOfYear(year, month, day)
    if doy_int is None:
        return None

    frac_day = (hh * 3600.0 + mm * 60.0 + ss) / c.SEC_PER_DAY
    doy = doy_int + frac_day

    unix_ts = DayOfYearToUnix(year, doy)
    if unix_ts is None:
        return None
    return year % 100, doy, unix_ts


###############################################################################
# Function: EpochToUnix
###############################################################################
def EpochToUnix(epoch_str):
    """Unix timestamp for an epoch string, or None if it cannot be parsed."""
    parsed = ParseEpoch(epoch_str)
    if parsed is None:
        return None
    return parsed[2]


###############################################################################
# Function: ConvertUTCToUnix
###############################################################################
def ConvertUTCToUnix(utc_time, used_format='%Y %m %d %H %M %S'):
    """
    Convert a UTC time string into a Unix timestamp.

    Parameters:
        utc_time (str): The UTC time as a string (e.g., "2024 01 15 12 00 00").
        used_format (str): The format of the date/time string.

    Returns:
        float: Seconds since 1970-01-01T00:00:00Z.
    """
    utc_dt = datetime.datetime.strptime(utc_time, used_format)
    utc_dt = pytz.utc.localize(utc_dt)
    return utc_dt.timestamp()


###############################################################################
# Function: FormatUTCClock
###############################################################################
def FormatUTCClock(unix_s):
    """Format a Unix timestamp as "YYYY-MM-DD HH:MM:SS UTC"."""
    utc_dt = datetime.datetime.fromtimestamp(unix_s, tz=pytz.utc)
    return utc_dt.strftime('%Y-%m-%d %H:%M:%S UTC')
