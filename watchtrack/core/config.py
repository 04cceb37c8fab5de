from __future__ import annotations

import json
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any


def resolve_profile_config_path(*, repo_root: Path, base_name: str, profile: str | None) -> tuple[Path, str]:
    """Return the config path to use for a given base file name and profile.

    Resolution order:
    1) config/{base_name}.{profile}.json if profile is provided and file exists
    2) config/{base_name}.json

    Returns (path, reason) where reason is "profile" or "fallback".
    """

    config_dir = repo_root / "config"
    if profile:
        prof = str(profile).strip().lower()
        prof_path = config_dir / f"{base_name}.{prof}.json"
        if prof_path.exists():
            return prof_path, "profile"
    return config_dir / f"{base_name}.json", "fallback"


@dataclass(frozen=True)
class Settings:
    # Coverage tunables. Both tolerances are empirical; tune per deployment.
    merge_tolerance_sec: float = 1.0
    seek_threshold_sec: float = 2.0
    min_segment_sec: float = 0.5
    autosave_interval_sec: float = 10.0

    # Persistence
    store_dir: Path = Path("data")
    store_key: str = "watch_progress"

    # Player loop
    poll_interval_sec: float = 0.2
    mpv_exe: str = "mpv"

    debug: bool = False
    ipc_trace: bool = False


def load_settings_profile(*, repo_root: Path, profile: str | None = None, path_override: Path | None = None) -> Settings:
    """Load settings honoring per-profile files and optional overrides."""

    if path_override is not None:
        print(f"[config] profile={profile or '-'} settings={path_override} (override)")
        return load_settings(path_override, repo_root=repo_root)
    path, reason = resolve_profile_config_path(repo_root=repo_root, base_name="settings", profile=profile)
    if not path.exists():
        print(f"[config] profile={profile or '-'} settings=defaults ({path} not found)")
        return _anchor_store_dir(Settings(), repo_root)
    print(f"[config] profile={profile or '-'} settings={path} ({reason})")
    return load_settings(path, repo_root=repo_root)


def _positive(data: dict[str, Any], key: str, default: float) -> float:
    value = float(data.get(key, default))
    if not (value > 0):
        raise ValueError(f"settings.json {key} must be > 0, got {value!r}")
    return value


def _anchor_store_dir(settings: Settings, repo_root: Path | None) -> Settings:
    if repo_root is None or settings.store_dir.is_absolute():
        return settings
    return replace(settings, store_dir=repo_root / settings.store_dir)


def load_settings(path: Path, *, repo_root: Path | None = None) -> Settings:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path}: settings must be a JSON object")

    known = {f.name for f in fields(Settings)}
    unknown = sorted(set(data) - known)
    if unknown:
        print(f"[config] ignoring unknown settings keys: {', '.join(unknown)}")

    defaults = Settings()
    merge_tolerance_sec = float(data.get("merge_tolerance_sec", defaults.merge_tolerance_sec))
    if merge_tolerance_sec < 0:
        raise ValueError(f"settings.json merge_tolerance_sec must be >= 0, got {merge_tolerance_sec!r}")
    min_segment_sec = float(data.get("min_segment_sec", defaults.min_segment_sec))
    if min_segment_sec < 0:
        raise ValueError(f"settings.json min_segment_sec must be >= 0, got {min_segment_sec!r}")

    store_key = str(data.get("store_key", defaults.store_key)).strip()
    if not store_key:
        raise ValueError("settings.json store_key must be non-empty")

    settings = Settings(
        merge_tolerance_sec=merge_tolerance_sec,
        seek_threshold_sec=_positive(data, "seek_threshold_sec", defaults.seek_threshold_sec),
        min_segment_sec=min_segment_sec,
        autosave_interval_sec=_positive(data, "autosave_interval_sec", defaults.autosave_interval_sec),
        store_dir=Path(str(data.get("store_dir", defaults.store_dir))).expanduser(),
        store_key=store_key,
        poll_interval_sec=_positive(data, "poll_interval_sec", defaults.poll_interval_sec),
        mpv_exe=str(data.get("mpv_exe", defaults.mpv_exe)),
        debug=bool(data.get("debug", defaults.debug)),
        ipc_trace=bool(data.get("ipc_trace", defaults.ipc_trace)),
    )
    return _anchor_store_dir(settings, repo_root)
