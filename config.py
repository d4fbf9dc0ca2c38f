import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.environ.get("CONFIG_FILE_PATH", os.path.join(ROOT_PATH, "env.yaml"))

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file) or dict()
else:
    data = dict()


def _get(key, default=None):
    """Environment variable wins over env.yaml, env.yaml over the default."""
    if key in os.environ:
        raw = os.environ[key]
        # Only structured/typed settings are parsed; strings (secrets, URLs) stay verbatim
        if default is None or isinstance(default, str):
            return raw
        return yaml.safe_load(raw)
    return data.get(key, default)


class ApplicationConfig:
    ENVIRONMENT = str(_get("ENVIRONMENT", "development")).lower()
    DB_URI = _get("DB_URI", "sqlite+aiosqlite:///./test.db")
    API_PORT = _get("API_PORT", 8000)
    API_HOST = _get("API_HOST", "0.0.0.0")
    CORS_ORIGINS = _get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = _get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = _get("LOG_LEVEL", "INFO")

    # Counter store / mail queue
    REDIS_URL = _get("REDIS_URL", "redis://localhost:6379/0")
    REDIS_KEY_PREFIX = _get("REDIS_KEY_PREFIX", "")
    REDIS_SOCKET_TIMEOUT = float(_get("REDIS_SOCKET_TIMEOUT", 2))
    REDIS_CONNECT_TIMEOUT = float(_get("REDIS_CONNECT_TIMEOUT", 2))

    # Rate limiting
    RATE_LIMIT_FAIL_OPEN = bool(_get("RATE_LIMIT_FAIL_OPEN", True))
    RATE_LIMITS = _get("RATE_LIMITS", {}) or {}
    RATE_LIMIT_ROUTES = _get("RATE_LIMIT_ROUTES", {}) or {}
    PASSWORD_RESET_RATE_LIMIT_POLICY = _get("PASSWORD_RESET_RATE_LIMIT_POLICY", "password_reset")

    # Auth
    JWT_SECRET = _get("JWT_SECRET", "dev-secret-key-change-in-production")
    JWT_TTL = str(_get("JWT_TTL", "15m"))
    ACCESS_TOKEN_COOKIE_NAME = _get("ACCESS_TOKEN_COOKIE_NAME", "access_token")
    COOKIE_DOMAIN = _get("COOKIE_DOMAIN", None)
    BCRYPT_ROUNDS = int(_get("BCRYPT_ROUNDS", 12))
    OTP_HMAC_SECRET = _get("OTP_HMAC_SECRET", "dev-otp-secret-change-in-production")
    APP_BASE_URL = _get("APP_BASE_URL", "http://localhost:3000")
    APP_NAME = _get("APP_NAME", "Account Service")

    # Mail
    MAIL_QUEUE_NAME = _get("MAIL_QUEUE_NAME", "mail")
    MAIL_JOB_ATTEMPTS = int(_get("MAIL_JOB_ATTEMPTS", 3))

    ADMIN_API_KEY = _get("ADMIN_API_KEY", "test-admin-key-12345")

    @classmethod
    def is_production(cls) -> bool:
        return cls.ENVIRONMENT == "production"
