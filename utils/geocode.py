"""
Reverse geocoding with an explicit, bounded cache.

The cache is an object handed to the geocoder rather than a module-level map:
entries expire after ttl_seconds and the least recently used entry is evicted
once max_entries is reached.
"""

import logging
import time
from collections import OrderedDict
from threading import Lock

import requests

logger = logging.getLogger(__name__)

_MISSING = object()


class GeocodeCache:
    def __init__(self, max_entries=1024, ttl_seconds=24 * 60 * 60, clock=time.monotonic):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries = OrderedDict()
        self._lock = Lock()

    def get(self, key, default=None):
        with self._lock:
            item = self._entries.get(key, _MISSING)
            if item is _MISSING:
                return default
            value, expires_at = item
            if expires_at <= self._clock():
                del self._entries[key]
                return default
            self._entries.move_to_end(key)
            return value

    def set(self, key, value):
        with self._lock:
            self._entries[key] = (value, self._clock() + self.ttl_seconds)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def __contains__(self, key):
        return self.get(key, _MISSING) is not _MISSING

    def __len__(self):
        with self._lock:
            return len(self._entries)

    def clear(self):
        with self._lock:
            self._entries.clear()


def coordinate_key(latitude, longitude, precision=4):
    # ~11 m at 4 decimals
    return round(float(latitude), precision), round(float(longitude), precision)


class ReverseGeocoder:
    def __init__(self, lookup, cache=None):
        self.lookup = lookup
        self.cache = cache if cache is not None else GeocodeCache()

    def address_for(self, latitude, longitude):
        key = coordinate_key(latitude, longitude)
        address = self.cache.get(key)
        if address is not None:
            return address
        try:
            address = self.lookup(*key)
        except Exception as e:
            logger.warning("Reverse geocode failed for %s,%s: %s", key[0], key[1], e)
            return None
        if address:
            self.cache.set(key, address)
        return address or None


def http_lookup(url, timeout=5, user_agent="intern-attendance-tracker"):
    """Lookup for a Nominatim-style /reverse endpoint returning display_name."""
    session = requests.Session()
    session.headers.update({"User-Agent": user_agent})

    def lookup(latitude, longitude):
        response = session.get(
            url,
            params={"lat": latitude, "lon": longitude, "format": "json"},
            timeout=timeout,
        )
        response.raise_for_status()
        return response.json().get("display_name")

    return lookup


def geocoder_from_config(config):
    url = config.get("GEOCODER_URL")
    if not url:
        return None
    cache = GeocodeCache(
        max_entries=config.get("GEOCODE_CACHE_SIZE", 1024),
        ttl_seconds=config.get("GEOCODE_CACHE_TTL", 24 * 60 * 60),
    )
    return ReverseGeocoder(http_lookup(url), cache)
