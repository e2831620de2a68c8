from .settings import *  # noqa: F401,F403

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

FISCAL_PROVIDER = "acube"
FISCAL_ENABLED = True
FISCAL_MOCK_MODE = True
FISCAL_API_KEY = ""
FISCAL_API_ENDPOINT = ""
FISCAL_MOCK_FAILURE_RATE = 0.0
FISCAL_MOCK_HEALTH_FAILURE_RATE = 0.0
FISCAL_RETRY_INTERVAL_SECONDS = 0.0
FISCAL_MOCK_SIMULATE_LATENCY = False
