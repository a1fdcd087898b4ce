from __future__ import annotations
"""Service settings and their persistence helpers."""

from dataclasses import asdict, dataclass, fields
import json
from pathlib import Path

from .errors import UsageError

MIN_PROBE_WINDOW = 2

_MINIMUMS = {
    "list_max_attempts": 1,
    "fetch_max_attempts": 1,
    "probe_window": MIN_PROBE_WINDOW,
    "request_timeout": 1,
    "chunk_size": 1,
    "parallel_workers": 1,
}


@dataclass(frozen=True)
class ServiceSettings:
    """Immutable configuration shared by every call of a service.

    Construction raises :class:`UsageError` when a count is below its
    minimum or a backoff is negative. The probe window must hold the
    two-byte gzip magic.
    """

    list_max_attempts: int = 3
    fetch_max_attempts: int = 3
    probe_window: int = 4
    retry_backoff: float = 0.0
    retry_backoff_max: float = 2.0
    request_timeout: int = 60
    chunk_size: int = 8 * 1024 * 1024
    parallel_workers: int = 4
    endpoint_host: str = ""

    def __post_init__(self) -> None:
        for name, minimum in _MINIMUMS.items():
            value = getattr(self, name)
            if value < minimum:
                raise UsageError(f"{name} must be at least {minimum}, got {value}")
        for name in ("retry_backoff", "retry_backoff_max"):
            value = getattr(self, name)
            if value < 0:
                raise UsageError(f"{name} must not be negative, got {value}")


def _sanitize_int(value: object, default: int, minimum: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    if number < minimum:
        return default
    return number


def _sanitize_float(value: object, default: float) -> float:
    if isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if number < 0:
        return default
    return number


class SettingsStorage:
    """JSON-backed persistence for :class:`ServiceSettings`."""

    def __init__(self, storage_path: str | Path | None = None):
        if storage_path is None:
            storage_path = Path.home() / ".s3access_settings.json"
        self._path = Path(storage_path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> ServiceSettings:
        if not self._path.exists():
            return ServiceSettings()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return ServiceSettings()
        if not isinstance(data, dict):
            return ServiceSettings()

        defaults = ServiceSettings()
        values: dict[str, object] = {}
        for item in fields(ServiceSettings):
            default = getattr(defaults, item.name)
            raw = data.get(item.name, default)
            if item.name in _MINIMUMS:
                values[item.name] = _sanitize_int(raw, default, _MINIMUMS[item.name])
            elif item.name == "endpoint_host":
                values[item.name] = raw.strip() if isinstance(raw, str) else default
            else:
                values[item.name] = _sanitize_float(raw, default)
        return ServiceSettings(**values)

    def save(self, settings: ServiceSettings) -> None:
        payload = asdict(settings)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError:
            # Persist best-effort; ignore filesystem issues.
            return
