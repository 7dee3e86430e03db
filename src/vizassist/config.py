"""vizassist configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site, not in this module)
  2. Environment variables  (VIZASSIST_GENERATION_MODEL, VIZASSIST_EMBEDDING_MODEL)
  3. Per-project vizassist.yaml
  4. Global ~/.vizassist/config.yaml  (model defaults only, no API keys)
  5. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
All YAML reads use yaml.safe_load(), never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".vizassist"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "vizassist.yaml"

# Key names that look like credentials are forbidden in global config.
# Does NOT match legitimate keys like max_tokens.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(
    [
        "assistant",
        "embedding",
        "generation",
        "retrieval",
        "chunking",
        "detector",
        "notifier",
    ]
)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class AssistantCfg:
    """Persona shown in the system prompt (vizassist.yaml: assistant:)."""

    name: str = "RWA Assistant"


@dataclass
class EmbeddingCfg:
    """Embedding model configuration (vizassist.yaml: embedding:)."""

    model: str = "openai/text-embedding-ada-002"
    timeout: float = 30.0


@dataclass
class GenerationCfg:
    """Chat completion configuration (vizassist.yaml: generation:)."""

    model: str = "openai/gpt-4o"
    temperature: float = 0.7
    max_tokens: int = 1000
    history_limit: int = 10
    timeout: float = 60.0


@dataclass
class RetrievalCfg:
    """Similarity search configuration (vizassist.yaml: retrieval:)."""

    top_k: int = 3


@dataclass
class ChunkingCfg:
    """Document chunking configuration (vizassist.yaml: chunking:).

    Lengths are in characters, not tokens.
    """

    max_length: int = 1000
    overlap: int = 200


@dataclass
class DetectorCfg:
    """Dashboard context detector configuration (vizassist.yaml: detector:).

    Attributes:
        extension_timeout: Seconds allowed for the extension API to initialise.
        query_timeout: Seconds allowed for each worksheet/parameter query.
        message_timeout: Seconds to wait for a parent-frame data response.
        handshake_timeout: Seconds to wait for a parent-frame status reply.
        sample_rows: Rows of summary data kept per worksheet.
        url_param: Query parameter that may carry a cached context blob.
        storage_key: Local-storage key that may carry a cached context blob.
        source_tag: Value of the ``source`` field on outbound messages.
        trusted_origins: Origins accepted for cross-window messages. ``"*"``
            accepts any origin.
    """

    extension_timeout: float = 5.0
    query_timeout: float = 5.0
    message_timeout: float = 1.5
    handshake_timeout: float = 2.0
    sample_rows: int = 15
    url_param: str = "tableauData"
    storage_key: str = "tableauDashboardData"
    source_tag: str = "rwa_assistant"
    trusted_origins: list[str] = field(default_factory=lambda: ["*"])


@dataclass
class NotifierCfg:
    """Dashboard change debounce configuration (vizassist.yaml: notifier:)."""

    debounce: float = 0.5


@dataclass
class VizAssistConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    assistant: AssistantCfg = field(default_factory=AssistantCfg)
    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    generation: GenerationCfg = field(default_factory=GenerationCfg)
    retrieval: RetrievalCfg = field(default_factory=RetrievalCfg)
    chunking: ChunkingCfg = field(default_factory=ChunkingCfg)
    detector: DetectorCfg = field(default_factory=DetectorCfg)
    notifier: NotifierCfg = field(default_factory=NotifierCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}'; ignored.",
                UserWarning,
                stacklevel=4,
            )


def _validate(cfg: VizAssistConfig) -> None:
    """Raise ConfigError for values the pipeline cannot run with."""
    if cfg.chunking.max_length < 1:
        raise ConfigError(f"chunking.max_length must be >= 1, got {cfg.chunking.max_length}")
    if not 0 <= cfg.chunking.overlap < cfg.chunking.max_length:
        raise ConfigError(
            f"chunking.overlap must be in [0, max_length), got {cfg.chunking.overlap}"
        )
    if cfg.retrieval.top_k < 0:
        raise ConfigError(f"retrieval.top_k must be >= 0, got {cfg.retrieval.top_k}")
    if cfg.detector.sample_rows < 0:
        raise ConfigError(f"detector.sample_rows must be >= 0, got {cfg.detector.sample_rows}")
    timeouts = {
        "detector.extension_timeout": cfg.detector.extension_timeout,
        "detector.query_timeout": cfg.detector.query_timeout,
        "detector.message_timeout": cfg.detector.message_timeout,
        "detector.handshake_timeout": cfg.detector.handshake_timeout,
        "notifier.debounce": cfg.notifier.debounce,
    }
    for name, value in timeouts.items():
        if value <= 0:
            raise ConfigError(f"{name} must be > 0 seconds, got {value}")
    if not cfg.detector.trusted_origins:
        raise ConfigError("detector.trusted_origins must list at least one origin (or '*')")


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> VizAssistConfig:
    """Build a *VizAssistConfig* from a merged raw YAML dict."""
    cfg = VizAssistConfig()

    if "assistant" in data:
        a = data["assistant"] or {}
        cfg.assistant = AssistantCfg(name=str(a.get("name", cfg.assistant.name)))

    if "embedding" in data:
        e = data["embedding"] or {}
        cfg.embedding = EmbeddingCfg(
            model=str(e.get("model", cfg.embedding.model)),
            timeout=float(e.get("timeout", cfg.embedding.timeout)),
        )

    if "generation" in data:
        g = data["generation"] or {}
        cfg.generation = GenerationCfg(
            model=str(g.get("model", cfg.generation.model)),
            temperature=float(g.get("temperature", cfg.generation.temperature)),
            max_tokens=int(g.get("max_tokens", cfg.generation.max_tokens)),
            history_limit=int(g.get("history_limit", cfg.generation.history_limit)),
            timeout=float(g.get("timeout", cfg.generation.timeout)),
        )

    if "retrieval" in data:
        r = data["retrieval"] or {}
        cfg.retrieval = RetrievalCfg(top_k=int(r.get("top_k", cfg.retrieval.top_k)))

    if "chunking" in data:
        c = data["chunking"] or {}
        cfg.chunking = ChunkingCfg(
            max_length=int(c.get("max_length", cfg.chunking.max_length)),
            overlap=int(c.get("overlap", cfg.chunking.overlap)),
        )

    if "detector" in data:
        d = data["detector"] or {}
        base = cfg.detector
        origins = d.get("trusted_origins", base.trusted_origins)
        if isinstance(origins, str):
            origins = [origins]
        cfg.detector = DetectorCfg(
            extension_timeout=float(d.get("extension_timeout", base.extension_timeout)),
            query_timeout=float(d.get("query_timeout", base.query_timeout)),
            message_timeout=float(d.get("message_timeout", base.message_timeout)),
            handshake_timeout=float(d.get("handshake_timeout", base.handshake_timeout)),
            sample_rows=int(d.get("sample_rows", base.sample_rows)),
            url_param=str(d.get("url_param", base.url_param)),
            storage_key=str(d.get("storage_key", base.storage_key)),
            source_tag=str(d.get("source_tag", base.source_tag)),
            trusted_origins=[str(o) for o in origins],
        )

    if "notifier" in data:
        n = data["notifier"] or {}
        cfg.notifier = NotifierCfg(debounce=float(n.get("debounce", cfg.notifier.debounce)))

    return cfg


def _apply_env_overrides(cfg: VizAssistConfig) -> VizAssistConfig:
    """Apply VIZASSIST_* environment variable overrides."""
    if model := os.environ.get("VIZASSIST_GENERATION_MODEL"):
        cfg.generation.model = model
    if model := os.environ.get("VIZASSIST_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> VizAssistConfig:
    """Load and return a merged *VizAssistConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *vizassist.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *VizAssistConfig* with env var overrides applied.

    Raises:
        ConfigError: If global config contains API-key-like fields, or a value
            is out of range (negative top_k, overlap >= max_length, ...).
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    try:
        cfg = _cfg_from_dict(merged)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid config value: {exc}") from exc

    # Layer 3: env var overrides
    cfg = _apply_env_overrides(cfg)

    _validate(cfg)
    return cfg
