"""Shell configuration."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from pathlib import Path

ENV_PREFIX = "VSHELL_"


@dataclass(frozen=True)
class ShellConfig:
    """Settings resolved once when a shell is composed."""

    default_user: str = "Guest"
    host_name: str = "localhost"
    default_path: str = "/bin:/usr/bin"
    max_alias_depth: int = 10
    max_script_depth: int = 10
    history_size: int = 50
    storage_path: Path | None = None
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ShellConfig":
        """Build a config from ``VSHELL_*`` variables, e.g. ``VSHELL_HOST_NAME``."""
        source = os.environ if environ is None else environ
        overrides: dict[str, object] = {}
        for field in fields(cls):
            raw = source.get(ENV_PREFIX + field.name.upper())
            if raw is None:
                continue
            if field.name in ("max_alias_depth", "max_script_depth", "history_size"):
                try:
                    overrides[field.name] = int(raw)
                except ValueError as exc:
                    raise ValueError(f"{ENV_PREFIX}{field.name.upper()} must be an integer") from exc
            elif field.name == "storage_path":
                overrides[field.name] = Path(raw) if raw else None
            else:
                overrides[field.name] = raw
        return cls(**overrides)  # type: ignore[arg-type]

    def with_overrides(self, **changes: object) -> "ShellConfig":
        """Return a copy with every non-``None`` keyword applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


__all__ = ["ShellConfig", "ENV_PREFIX"]
