"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "castarr",
    "environment": "dev",
    "http": {
        "timeout_seconds": 15.0,
        "follow_redirects": True,
        "user_agent": "Castarr/0.1.0",
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
    "cache": {
        "backend": "diskcache",
        "dir": "./.cache/castarr",
        "ttl_seconds": 3600,
    },
    "probe": {
        "latency_timeout_seconds": 5.0,
        "throughput_timeout_seconds": 8.0,
        "cache_ttl_seconds": 600.0,
        "max_concurrent": 8,
    },
    "manifest": {
        "remove_ads": True,
        "min_segment_duration_seconds": 3.0,
        "cache_ttl_seconds": 600.0,
        "public_base_url": "http://localhost:7979",
    },
    "session": {
        "save_throttle_seconds": 10.0,
        "seek_settle_seconds": 0.5,
        "load_timeout_seconds": 60.0,
        "near_end_ratio": 0.95,
    },
}
