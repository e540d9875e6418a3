import os
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(val: str | None) -> list[str]:
    return [v.strip() for v in (val or "").split(",") if v.strip()]


class Settings(BaseSettings):
    # App
    APP_NAME: str = "AiDogs Backend"
    ENV: str = os.getenv("ENV", "production")
    LOG_LEVEL: str = "INFO"

    # DB
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./aidogs.db")

    # CORS (mini-app origins)
    ALLOW_ORIGINS: list[str] = Field(default_factory=lambda: ["*"])  # override via ALLOWED_ORIGINS (CSV)
    ALLOW_METHODS: list[str] = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
    ALLOW_HEADERS: list[str] = ["*"]
    ALLOW_CREDENTIALS: bool = False

    # Auth / JWT (task catalog admin)
    JWT_SECRET: str = os.getenv("SECRET_KEY") or os.getenv("JWT_SECRET", "dev-secret-change-me")
    JWT_ALG: str = "HS256"
    ACCESS_TOKEN_EXPIRES_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRES_MINUTES", "43200"))  # 30 days

    # Referral codes
    REFERRAL_CODE_BYTES: int = 4  # 8 hex chars
    CODE_MAX_ATTEMPTS: int = 10
    REFERRAL_PASS_THROUGH_DIVISOR: int = 20  # referrer gets 1/20 (5%) of task points

    # Points
    MAX_POINTS_CREDIT: float = 1_000_000_000  # largest single credit accepted

    # Daily rewards (7 slots, last key completes the cycle)
    DAILY_REWARD_KEYS: str = "5,10,15,20,25,30,35"
    DAILY_CLAIM_STALE_HOURS: int = 24

    # 7-day streak schedule
    STREAK_POINTS: str = "250,500,1000,1500,2000,2500,3000"

    # Leaderboards
    LEADERBOARD_SIZE: int = 100
    LEADERBOARD_INTERVAL_HOURS: int = 6
    LEADERBOARD_CACHE_TTL_SECONDS: int = 300

    # Reference accounts kept visible on the referral board
    REF_ACCOUNTS_FILE: str | None = None
    REF_ACCOUNTS_BATCH_SIZE: int = 20
    REF_ACCOUNTS_VISIBLE_TOP: int = 80
    REF_ACCOUNTS_INTERVAL_HOURS: int = 4
    REF_TOPUP_MAX_POINTS: int = 1000
    REF_TOPUP_REFERRALS_MIN: int = 496
    REF_TOPUP_REFERRALS_MAX: int = 935

    # Boost competition
    BOOST_START_BONUS: int = 7000
    BOOST_REFERRER_BONUS: int = 2800

    # Runtime
    SCHEDULER_ENABLED: bool = True
    EXIT_ON_UNHANDLED_ERROR: bool = True

    # Load .env file
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # ---------- Helpers ----------

    def daily_reward_keys(self) -> list[str]:
        return _split_csv(self.DAILY_REWARD_KEYS)

    def final_daily_reward_key(self) -> str:
        return self.daily_reward_keys()[-1]

    def streak_points(self) -> list[int]:
        return [int(v) for v in _split_csv(self.STREAK_POINTS)]


def build_settings() -> Settings:
    s = Settings()

    # Heroku/Render style URLs
    if s.DATABASE_URL.startswith("postgres://"):
        s.DATABASE_URL = s.DATABASE_URL.replace("postgres://", "postgresql://", 1)

    # Load CORS overrides
    env_origins = _split_csv(os.getenv("ALLOWED_ORIGINS"))
    if env_origins:
        s.ALLOW_ORIGINS = env_origins

    if len(s.daily_reward_keys()) != 7:
        raise ValueError("DAILY_REWARD_KEYS must list exactly 7 slot keys")
    if len(s.streak_points()) != 7:
        raise ValueError("STREAK_POINTS must list exactly 7 values")

    return s


settings = build_settings()
