"""
fetch_ephemeris.py

This module fetches the GNSS ephemeris feed (Celestrak OMM records in JSON)
and keeps a local copy so the feed is not downloaded on every start.

Key Functionality:
    - A cached file is reused while it is younger than the TTL (12 hours by
      default) and still holds a non-empty JSON array.
    - Otherwise the feed is downloaded with urllib.request, sending a
      User-Agent header (to avoid being blocked), validated, and written to
      the cache file.
    - Any failure raises EphemerisFetchError.

Usage:
    > python fetch_ephemeris.py

Dependencies:
    - urllib.request: For making HTTP requests
"""

import json
import logging
import os
import time
from urllib.error import URLError
from urllib.request import Request, urlopen

import constants as c

logger = logging.getLogger(__name__)


class EphemerisFetchError(RuntimeError):
    """The ephemeris feed could not be downloaded or was not usable."""


def IsValidFeed(text):
    """True when `text` is a JSON array with at least one element."""
    try:
        data = json.loads(text)
    except ValueError:
        return False
    return isinstance(data, list) and len(data) > 0


def _ReadFreshCache(filename, ttl, now):
    if not os.path.exists(filename):
        return None
    age = now - os.path.getmtime(filename)
    if age >= ttl:
        logger.debug("cache %s is %.0f s old, refreshing", filename, age)
        return None
    with open(filename, 'r', encoding='utf-8') as f:
        text = f.read()
    if not IsValidFeed(text):
        logger.warning("cache %s is not a usable ephemeris array, refreshing", filename)
        return None
    return text


def fetch_and_cache(url=c.EPHEMERIS_URL, filename=c.EPHEMERIS_FILENAME,
                    ttl=c.EPHEMERIS_TTL, timeout=30.0):
    """
    Return the ephemeris JSON text, from cache when fresh, else from `url`.

    Parameters:
        url (str): The feed URL (Celestrak GNSS group, JSON format).
        filename (str): The local cache file.
        ttl (float): Maximum cache age in seconds.
        timeout (float): Network timeout in seconds.

    Process:
        1. Use the cache file if it is younger than `ttl` and valid.
        2. Otherwise send an HTTP GET with a custom 'User-Agent' header.
        3. Decode the body as UTF-8 and check it is a non-empty JSON array.
        4. Write it to `filename` and return it.

    Returns:
        str: JSON text.

    Raises:
        EphemerisFetchError if the download fails or the body is not valid.
    """
    cached = _ReadFreshCache(filename, ttl, time.time())
    if cached is not None:
        logger.info("Using cached ephemeris %s", filename)
        return cached

    req = Request(url, headers={'User-Agent': 'Mozilla/5.0'})
    try:
        with urlopen(req, timeout=timeout) as response:
            data = response.read().decode('utf-8')
    except (URLError, OSError, UnicodeDecodeError) as e:
        raise EphemerisFetchError(f"failed to fetch {url}: {e}") from e

    if not IsValidFeed(data):
        raise EphemerisFetchError(f"feed from {url} is not a non-empty JSON array")

    try:
        with open(filename, 'w', encoding='utf-8') as f:
            f.write(data)
    except OSError as e:
        raise EphemerisFetchError(f"failed to write {filename}: {e}") from e

    logger.info("Ephemeris saved to %s", filename)
    return data


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    try:
        fetch_and_cache()
        print(f"[OK] Ephemeris data saved to {c.EPHEMERIS_FILENAME}")
    except EphemerisFetchError as e:
        print(f"[ERROR] {e}")
