from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from transit_arrivals.adapters.aws import DEFAULT_REGION, AwsRuntimeConfig
from transit_arrivals.domain.exceptions.transit import ConfigError
from transit_arrivals.domain.models import GeoBounds

BUS_BACKENDS = {"memory", "sqs"}


def _get(env: Mapping[str, str], name: str) -> str | None:
    raw = env.get(name)
    if raw is None:
        return None
    return raw.strip() or None


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = _get(env, name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "y", "on"}


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = _get(env, name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = _get(env, name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True, slots=True)
class FeedConfig:
    base_url: str
    api_key: str
    positions_path: str = "/v3/gtfsposition"
    timeout_s: float = 10.0
    max_retries: int = 3
    backoff_base_s: float = 2.0


@dataclass(frozen=True, slots=True)
class PollingConfig:
    interval_s: float = 30.0
    initial_delay_s: float = 5.0
    enabled: bool = True


@dataclass(frozen=True, slots=True)
class BusConfig:
    backend: str = "memory"
    topic: str = "vehicle-positions"
    queue_url: str | None = None
    aws: AwsRuntimeConfig | None = None


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Runtime settings, read once at boot.

    Env vars (a .env file in the working directory is loaded first):
      - FEED_BASE_URL, FEED_API_KEY (required while polling is enabled)
      - FEED_POSITIONS_PATH, FEED_TIMEOUT_S, FEED_MAX_RETRIES, FEED_BACKOFF_BASE_S
      - POLLING_INTERVAL_SECONDS, POLLING_INITIAL_DELAY_SECONDS, POLLING_ENABLED
      - BUS_BACKEND (memory|sqs), VEHICLE_POSITIONS_TOPIC, SQS_QUEUE_URL
      - ENDPOINT_URL, AWS_REGION
      - GTFS_ZIP_PATH, AGENCY_TIMEZONE (required), AGENCY_BOUNDS
      - ETA_AVG_SPEED_KMH, VEHICLE_RETENTION_SECONDS, LOG_LEVEL
    """

    feed: FeedConfig
    polling: PollingConfig
    bus: BusConfig
    timezone: ZoneInfo
    gtfs_zip_path: str = "google_transit.zip"
    bounds: GeoBounds | None = None
    eta_avg_speed_kmh: float = 35.0
    vehicle_retention_s: int = 24 * 60 * 60
    log_level: str = "INFO"

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> "AppConfig":
        if env is None:
            load_dotenv()
            env = os.environ

        tz_name = _get(env, "AGENCY_TIMEZONE")
        if tz_name is None:
            raise ConfigError("Missing AGENCY_TIMEZONE")
        try:
            timezone = ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ConfigError(f"Unknown AGENCY_TIMEZONE {tz_name!r}") from exc

        polling = PollingConfig(
            interval_s=_env_float(env, "POLLING_INTERVAL_SECONDS", 30.0),
            initial_delay_s=_env_float(env, "POLLING_INITIAL_DELAY_SECONDS", 5.0),
            enabled=_env_bool(env, "POLLING_ENABLED", True),
        )
        if polling.interval_s <= 0:
            raise ConfigError("POLLING_INTERVAL_SECONDS must be positive")

        base_url = _get(env, "FEED_BASE_URL")
        api_key = _get(env, "FEED_API_KEY")
        if polling.enabled and (base_url is None or api_key is None):
            raise ConfigError("FEED_BASE_URL and FEED_API_KEY are required for polling")

        feed = FeedConfig(
            base_url=(base_url or "").rstrip("/"),
            api_key=api_key or "",
            positions_path=_get(env, "FEED_POSITIONS_PATH") or "/v3/gtfsposition",
            timeout_s=_env_float(env, "FEED_TIMEOUT_S", 10.0),
            max_retries=_env_int(env, "FEED_MAX_RETRIES", 3),
            backoff_base_s=_env_float(env, "FEED_BACKOFF_BASE_S", 2.0),
        )

        backend = (_get(env, "BUS_BACKEND") or "memory").lower()
        if backend not in BUS_BACKENDS:
            raise ConfigError(f"BUS_BACKEND must be one of {sorted(BUS_BACKENDS)}")
        bus = BusConfig(
            backend=backend,
            topic=_get(env, "VEHICLE_POSITIONS_TOPIC") or "vehicle-positions",
            queue_url=_get(env, "SQS_QUEUE_URL"),
            aws=AwsRuntimeConfig(
                region=_get(env, "AWS_REGION") or DEFAULT_REGION,
                endpoint_url=_get(env, "ENDPOINT_URL"),
            ),
        )

        bounds = None
        raw_bounds = _get(env, "AGENCY_BOUNDS")
        if raw_bounds is not None:
            try:
                bounds = GeoBounds.parse(raw_bounds)
            except ValueError as exc:
                raise ConfigError(f"Invalid AGENCY_BOUNDS: {exc}") from exc

        speed = _env_float(env, "ETA_AVG_SPEED_KMH", 35.0)
        if speed <= 0:
            raise ConfigError("ETA_AVG_SPEED_KMH must be positive")

        return AppConfig(
            feed=feed,
            polling=polling,
            bus=bus,
            timezone=timezone,
            gtfs_zip_path=_get(env, "GTFS_ZIP_PATH") or "google_transit.zip",
            bounds=bounds,
            eta_avg_speed_kmh=speed,
            vehicle_retention_s=_env_int(env, "VEHICLE_RETENTION_SECONDS", 86400),
            log_level=(_get(env, "LOG_LEVEL") or "INFO").upper(),
        )


def configure_logging(level: str | None = None) -> None:
    """Root logger setup shared by the API and the worker."""

    logging.basicConfig(
        level=(level or os.getenv("LOG_LEVEL") or "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
