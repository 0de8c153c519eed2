"""Configuration management with environment variable support."""

import os
import secrets
from dataclasses import dataclass, field

from fairjack.rules import RuleSet


def _parse_cors_origins() -> list[str]:
    """Parse CORS_ORIGINS environment variable."""
    origins = os.getenv("CORS_ORIGINS", "http://localhost:8000")
    return [o.strip() for o in origins.split(",") if o.strip()]


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass(frozen=True)
class CORSConfig:
    """CORS configuration."""

    allowed_origins: list[str] = field(default_factory=_parse_cors_origins)
    allow_credentials: bool = True
    allow_methods: list[str] = field(default_factory=lambda: ["*"])
    allow_headers: list[str] = field(default_factory=lambda: ["*"])


@dataclass(frozen=True)
class RateLimitConfig:
    """Rate limiting configuration."""

    enabled: bool = field(default_factory=lambda: _env_flag("RATE_LIMIT_ENABLED", "true"))
    requests_per_minute: int = field(
        default_factory=lambda: int(os.getenv("RATE_LIMIT_RPM", "60"))
    )


@dataclass(frozen=True)
class SecurityConfig:
    """Security configuration."""

    secret_key: str = field(
        default_factory=lambda: os.getenv("SECRET_KEY", secrets.token_urlsafe(32))
    )


@dataclass(frozen=True)
class GameConfig:
    """Default table configuration."""

    min_bet: int = field(default_factory=lambda: int(os.getenv("MIN_BET", "1")))
    max_bet: int = field(default_factory=lambda: int(os.getenv("MAX_BET", "1000")))
    dealer_hits_soft_17: bool = field(
        default_factory=lambda: _env_flag("DEALER_HITS_SOFT_17", "false")
    )
    blackjack_payout: float = 1.5
    max_hands: int = 4
    resplit: bool = field(default_factory=lambda: _env_flag("RESPLIT", "true"))
    hit_split_aces: bool = field(default_factory=lambda: _env_flag("HIT_SPLIT_ACES", "true"))
    double_after_split: bool = True

    def rules(self) -> RuleSet:
        """Build the table RuleSet from this configuration."""
        return RuleSet(
            dealer_hits_soft_17=self.dealer_hits_soft_17,
            blackjack_payout=self.blackjack_payout,
            max_hands=self.max_hands,
            resplit=self.resplit,
            hit_split_aces=self.hit_split_aces,
            double_after_split=self.double_after_split,
        )


@dataclass(frozen=True)
class AppConfig:
    """Application configuration."""

    debug: bool = field(default_factory=lambda: _env_flag("DEBUG", "false"))
    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())
    round_ttl: int = field(default_factory=lambda: int(os.getenv("ROUND_TTL", "3600")))

    game: GameConfig = field(default_factory=GameConfig)
    cors: CORSConfig = field(default_factory=CORSConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)


# Global configuration instance
config = AppConfig()
