from datetime import datetime, timezone


def now_iso_utc_z() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


now_iso = now_iso_utc_z


__all__ = ["now_iso_utc_z", "now_iso"]
