"""Configuration management for PhishCheck."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Collection, Mapping, Optional

import yaml
from dotenv import load_dotenv

from .utils.similarity import DEFAULT_METRIC, METRICS

logger = logging.getLogger(__name__)


# Well-known brands compared against for typosquatting / homograph lookalikes.
DEFAULT_LEGIT_DOMAINS: tuple[str, ...] = (
    "paypal.com",
    "google.com",
    "bankofamerica.com",
    "apple.com",
    "amazon.com",
    "microsoft.com",
    "facebook.com",
    "twitter.com",
    "instagram.com",
    "netflix.com",
    "chase.com",
    "wellsfargo.com",
    "citibank.com",
    "usbank.com",
    "capitalone.com",
)

DEFAULT_PHISHING_KEYWORDS: tuple[str, ...] = (
    "login",
    "secure",
    "account",
    "verify",
    "update",
    "banking",
    "password",
    "signin",
    "auth",
    "recovery",
    "billing",
    "payment",
    "support",
    "helpdesk",
)

DEFAULT_SUSPICIOUS_TLDS: frozenset[str] = frozenset(
    {"tk", "ml", "ga", "cf", "gq", "xyz", "top", "club", "site", "online"}
)

DEFAULT_URL_SHORTENERS: frozenset[str] = frozenset(
    {"bit.ly", "tinyurl.com", "goo.gl", "t.co", "ow.ly", "is.gd", "buff.ly"}
)

DEFAULT_URGENCY_PHRASES: tuple[str, ...] = (
    "urgent",
    "immediate",
    "action required",
    "suspended",
    "verify now",
    "click here",
)

DEFAULT_WEIGHTS: dict[str, float] = {
    # Heuristics
    "ip_address": 30,
    "shortener": 20,
    "typosquatting": 40,
    "idn_homograph": 35,
    "idn_similarity": 20,
    "suspicious_tld": 15,
    "keyword": 10,
    "long_url": 10,
    "non_https": 25,
    "at_symbol": 30,
    "encoded_chars": 15,
    "custom_pattern": 20,
    "urgency": 10,
    # Network verifiers
    "dns_failure": 20,
    "redirect": 20,
    # Threat intelligence
    "google_safe_browsing": 50,
    "virustotal": 30,
    "phishtank": 60,
}

DEFAULT_PHISHING_SCORE = 50.0

THRESHOLD_KEYS: frozenset[str] = frozenset({"phishing_score"})
THRESHOLD_ALIASES: dict[str, str] = {"phishingScore": "phishing_score"}


@dataclass(frozen=True)
class DetectorConfig:
    """Immutable snapshot of detection settings used for one analysis.

    Collections are stored as tuples/frozensets and ``weights`` as a
    read-only mapping; use :meth:`merge` to derive a snapshot with caller
    overrides applied.
    """

    legit_domains: tuple[str, ...] = DEFAULT_LEGIT_DOMAINS
    phishing_keywords: tuple[str, ...] = DEFAULT_PHISHING_KEYWORDS
    suspicious_tlds: frozenset[str] = DEFAULT_SUSPICIOUS_TLDS
    url_shorteners: frozenset[str] = DEFAULT_URL_SHORTENERS
    urgency_phrases: tuple[str, ...] = DEFAULT_URGENCY_PHRASES
    custom_patterns: tuple[str, ...] = ()
    weights: Mapping[str, float] = field(
        default_factory=lambda: MappingProxyType(dict(DEFAULT_WEIGHTS))
    )
    thresholds: Mapping[str, float] = field(
        default_factory=lambda: MappingProxyType({"phishing_score": DEFAULT_PHISHING_SCORE})
    )
    similarity_metric: str = DEFAULT_METRIC
    typosquat_threshold: float = 0.7
    homograph_threshold: float = 0.8
    long_url_length: int = 100
    max_subdomain_depth: int = 2

    def __post_init__(self):
        # Normalize whatever the caller passed into immutable containers.
        object.__setattr__(self, "legit_domains", _lower_tuple(self.legit_domains))
        object.__setattr__(self, "phishing_keywords", _lower_tuple(self.phishing_keywords))
        object.__setattr__(
            self,
            "suspicious_tlds",
            frozenset(t.lstrip(".") for t in _lower_tuple(self.suspicious_tlds)),
        )
        object.__setattr__(self, "url_shorteners", frozenset(_lower_tuple(self.url_shorteners)))
        object.__setattr__(self, "urgency_phrases", _lower_tuple(self.urgency_phrases))
        object.__setattr__(
            self, "custom_patterns", tuple(str(p) for p in _as_items(self.custom_patterns))
        )
        object.__setattr__(self, "weights", MappingProxyType(dict(self.weights)))
        object.__setattr__(self, "thresholds", MappingProxyType(dict(self.thresholds)))

    @property
    def phishing_threshold(self) -> float:
        return float(self.thresholds.get("phishing_score", DEFAULT_PHISHING_SCORE))

    def weight(self, key: str) -> float:
        """Configured weight for a signal (0 when unknown)."""
        return float(self.weights.get(key, DEFAULT_WEIGHTS.get(key, 0)))

    def merge(self, overrides: Optional[Mapping[str, Any]] = None) -> "DetectorConfig":
        """Return a new snapshot with ``overrides`` applied.

        ``weights`` and ``thresholds`` are merged key by key; every other
        field is replaced wholesale. Unknown keys, at either level, and
        unknown similarity metrics are ignored with a warning.
        """
        if not overrides:
            return self

        known = {f.name for f in fields(self)}
        changes: dict[str, Any] = {}
        for key, value in overrides.items():
            if key not in known:
                logger.warning("Ignoring unknown configuration override: %s", key)
                continue
            if key == "weights":
                changes[key] = _merge_numbers(key, self.weights, value, DEFAULT_WEIGHTS)
            elif key == "thresholds":
                changes[key] = _merge_numbers(
                    key, self.thresholds, value, THRESHOLD_KEYS, aliases=THRESHOLD_ALIASES
                )
            elif key == "similarity_metric":
                metric = str(value or "").strip().lower()
                if metric in METRICS:
                    changes[key] = metric
                else:
                    logger.warning(
                        "Ignoring unknown similarity metric %r, keeping %s",
                        value,
                        self.similarity_metric,
                    )
            else:
                changes[key] = value

        return replace(self, **changes)


@dataclass(frozen=True)
class Credentials:
    """Threat-intelligence API credentials (each provider is optional)."""

    safe_browsing_api_key: str = ""
    virustotal_api_key: str = ""
    phishtank_api_key: str = ""


@dataclass
class Config:
    """Application configuration loaded from environment."""

    detector: DetectorConfig = field(default_factory=DetectorConfig)
    credentials: Credentials = field(default_factory=Credentials)

    # ML model (optional; deterministic fallback when unset)
    model_path: str = ""

    # Network limits for verifiers
    dns_timeout: float = 3.0
    http_timeout: float = 3.0
    max_redirects: int = 5

    # HTTP API
    api_host: str = "127.0.0.1"
    api_port: int = 3000

    log_level: str = "INFO"
    config_dir: Path = field(default_factory=lambda: Path("./config"))


def _as_items(values) -> tuple:
    # A bare string is one item, not a sequence of characters.
    if isinstance(values, str):
        return (values,)
    return tuple(values or ())


def _lower_tuple(values) -> tuple[str, ...]:
    return tuple(str(v).strip().lower() for v in _as_items(values) if str(v).strip())


def _merge_numbers(
    name: str,
    current: Mapping[str, float],
    updates: Any,
    allowed: Collection[str],
    aliases: Optional[Mapping[str, str]] = None,
) -> dict[str, float]:
    """Merge numeric overrides into ``current``, skipping unknown or invalid entries."""
    merged = dict(current)
    if not updates:
        return merged
    if not isinstance(updates, Mapping):
        logger.warning("Ignoring %s override: expected a mapping, got %r", name, updates)
        return merged

    for key, value in updates.items():
        key = (aliases or {}).get(key, key)
        if key not in allowed:
            logger.warning("Ignoring unknown %s override: %s", name, key)
            continue
        try:
            merged[key] = float(value)
        except (TypeError, ValueError):
            logger.warning("Ignoring non-numeric %s override for %s: %r", name, key, value)
    return merged


def _load_heuristics(config_dir: Path) -> dict:
    """Load detector overrides from config/heuristics.yaml (optional)."""
    path = Path(config_dir or ".") / "heuristics.yaml"
    if not path.exists():
        return {}

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except Exception as exc:
        logger.warning("Failed to parse heuristics.yaml: %s", exc)
        return {}

    if not isinstance(data, dict):
        logger.warning("Ignoring heuristics.yaml: expected a mapping at top level")
        return {}

    def _coerce_list(raw):
        if not isinstance(raw, (list, tuple, set)):
            return None
        items = [str(item).strip() for item in raw if str(item).strip()]
        return items or None

    def _coerce_weights(raw):
        weights: dict[str, float] = {}
        for key, value in (raw or {}).items() if isinstance(raw, dict) else []:
            try:
                weights[str(key)] = float(value)
            except (TypeError, ValueError):
                logger.warning("Ignoring non-numeric weight for %s: %r", key, value)
        return weights

    overrides: dict[str, Any] = {}
    for key in (
        "legit_domains",
        "phishing_keywords",
        "suspicious_tlds",
        "url_shorteners",
        "urgency_phrases",
        "custom_patterns",
    ):
        items = _coerce_list(data.get(key))
        if items is not None:
            overrides[key] = items

    weights = _coerce_weights(data.get("weights"))
    if weights:
        overrides["weights"] = weights

    thresholds = data.get("thresholds")
    if isinstance(thresholds, dict) and "phishing_score" in thresholds:
        try:
            overrides["thresholds"] = {"phishing_score": float(thresholds["phishing_score"])}
        except (TypeError, ValueError):
            logger.warning("Ignoring non-numeric phishing_score: %r", thresholds["phishing_score"])

    metric = data.get("similarity_metric")
    if isinstance(metric, str) and metric.strip():
        overrides["similarity_metric"] = metric.strip().lower()

    return overrides


def _env_number(name: str, default, cast=float):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
        return default


def load_config() -> Config:
    """Load configuration from environment variables and heuristics.yaml."""
    load_dotenv()

    config_dir = Path(os.getenv("CONFIG_DIR", "./config"))
    overrides = _load_heuristics(config_dir)

    threshold = _env_number("PHISHING_SCORE_THRESHOLD", None)
    if threshold is not None:
        overrides["thresholds"] = {"phishing_score": threshold}

    return Config(
        detector=DetectorConfig().merge(overrides),
        credentials=Credentials(
            safe_browsing_api_key=os.getenv("SAFE_BROWSING_API_KEY", ""),
            virustotal_api_key=os.getenv("VIRUSTOTAL_API_KEY", ""),
            phishtank_api_key=os.getenv("PHISHTANK_API_KEY", ""),
        ),
        model_path=os.getenv("PHISH_MODEL_PATH", ""),
        dns_timeout=_env_number("DNS_TIMEOUT", 3.0),
        http_timeout=_env_number("HTTP_TIMEOUT", 3.0),
        max_redirects=_env_number("MAX_REDIRECTS", 5, int),
        api_host=os.getenv("API_HOST", "127.0.0.1"),
        api_port=_env_number("API_PORT", 3000, int),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        config_dir=config_dir,
    )


def validate_config(config: Config) -> list[str]:
    """Validate configuration and return list of error messages."""
    errors: list[str] = []

    if config.model_path and not Path(config.model_path).exists():
        errors.append(f"PHISH_MODEL_PATH does not exist: {config.model_path}")

    if config.detector.similarity_metric not in METRICS:
        errors.append(f"Unknown similarity metric: {config.detector.similarity_metric}")

    threshold = config.detector.phishing_threshold
    if not 0 <= threshold <= 100:
        errors.append(f"Phishing score threshold must be within 0-100 (got {threshold})")

    if config.dns_timeout <= 0 or config.http_timeout <= 0:
        errors.append("DNS_TIMEOUT and HTTP_TIMEOUT must be positive")

    enabled = [
        name
        for name, key in (
            ("Google Safe Browsing", config.credentials.safe_browsing_api_key),
            ("VirusTotal", config.credentials.virustotal_api_key),
            ("PhishTank", config.credentials.phishtank_api_key),
        )
        if key
    ]
    if not enabled:
        logger.info("No threat-intelligence API keys configured; provider lookups disabled")

    return errors
