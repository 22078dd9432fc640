import os


def get_settings_module() -> str:
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "config.production"

    if env in {"test", "testing"}:
        return "config.testing"

    return "config.development"


def weekly_off_days(value: str) -> frozenset:
    # Sunday-based day numbers, comma separated ("0" = Sunday, "0,6" = weekend).
    return frozenset(int(p) for p in value.split(",") if p.strip())
