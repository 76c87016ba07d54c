# backend/config.py
import os
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Optional, Tuple

POLICY_FALLBACK = "fallback"
POLICY_STRICT = "strict"

DEFAULT_META_FILENAME = "_meta.json"

# Names that only make sense at the top of the published site.
DEFAULT_RESERVED_ROOT_NAMES = (
    "index.html",
    "404.html",
    "main.ts",
    "main.js",
    "main.d.ts",
    "styles.css",
    "netlify.toml",
    "_headers",
    "_redirects",
    "vendor",
    DEFAULT_META_FILENAME,
)

# Dev frontends allowed alongside FRONTEND_ORIGIN.
DEFAULT_CORS_ORIGINS = ("http://localhost:5173", "http://localhost:3000")

# OS housekeeping files, hidden at every level.
HOUSEKEEPING_NAMES = frozenset({".DS_Store", "Thumbs.db", "desktop.ini"})


def _split_names(raw: Optional[str]) -> Optional[FrozenSet[str]]:
    if raw is None:
        return None
    return frozenset(n.strip() for n in raw.split(",") if n.strip())


@dataclass(frozen=True)
class Settings:
    root: Path
    meta_filename: str = DEFAULT_META_FILENAME
    reserved_root_names: FrozenSet[str] = frozenset(DEFAULT_RESERVED_ROOT_NAMES)
    metadata_policy: str = POLICY_FALLBACK
    git_timeout_seconds: float = 5.0
    frontend_origin: str = "http://localhost:5173"
    cors_origins: Tuple[str, ...] = DEFAULT_CORS_ORIGINS
    host: str = "127.0.0.1"
    port: int = 3001
    log_level: str = "INFO"

    @property
    def strict(self) -> bool:
        return self.metadata_policy == POLICY_STRICT


@dataclass(frozen=True)
class GeneratorSettings:
    """The subset of settings the offline generator reads."""

    root: Path
    meta_filename: str = DEFAULT_META_FILENAME
    git_timeout_seconds: float = 5.0


def load_generator_settings(root: Optional[str] = None) -> GeneratorSettings:
    return GeneratorSettings(
        root=Path(root or os.getenv("TREE_ROOT", "public")).resolve(),
        meta_filename=os.getenv("META_FILENAME", DEFAULT_META_FILENAME),
        git_timeout_seconds=float(os.getenv("GIT_TIMEOUT_SECONDS", "5")),
    )


def load_settings(root: Optional[str] = None) -> Settings:
    gen = load_generator_settings(root)
    meta_filename = gen.meta_filename

    reserved = _split_names(os.getenv("RESERVED_ROOT_NAMES"))
    if reserved is None:
        reserved = frozenset(DEFAULT_RESERVED_ROOT_NAMES) | {meta_filename}

    policy = os.getenv("METADATA_POLICY", POLICY_FALLBACK).strip().lower()
    if policy not in (POLICY_FALLBACK, POLICY_STRICT):
        raise ValueError(f"METADATA_POLICY must be '{POLICY_FALLBACK}' or '{POLICY_STRICT}', got {policy!r}")

    frontend_origin = os.getenv("FRONTEND_ORIGIN", "http://localhost:5173")
    extra = _split_names(os.getenv("CORS_ORIGINS"))
    cors_origins = tuple(sorted(extra)) if extra is not None else DEFAULT_CORS_ORIGINS
    if frontend_origin not in cors_origins:
        cors_origins = (frontend_origin,) + cors_origins

    return Settings(
        root=gen.root,
        meta_filename=meta_filename,
        reserved_root_names=reserved,
        metadata_policy=policy,
        git_timeout_seconds=gen.git_timeout_seconds,
        frontend_origin=frontend_origin,
        cors_origins=cors_origins,
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "3001")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
