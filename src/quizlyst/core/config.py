"""TOML configuration for quizlyst.

The file groups completion providers, quiz generation policy, content limits
and logging. Every key has a default, so running without a config file is
supported; a file only needs the keys it overrides.
"""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping, Optional

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError as exc:  # pragma: no cover - should never happen
    raise RuntimeError("Python 3.11+ required for tomllib support") from exc

from ..errors import ConfigError
from . import workspace as workspace_mod

__all__ = [
    "CONFIG_FILENAME",
    "CONFIG_PATH_ENV",
    "BackendConfig",
    "ProvidersConfig",
    "QuizConfig",
    "ContentConfig",
    "LoggingConfig",
    "QuizlystConfig",
    "resolve_config_path",
    "load_config",
    "default_config",
    "config_template",
    "write_template",
]

CONFIG_FILENAME = "quizlyst.toml"
CONFIG_PATH_ENV = "QUIZLYST_CONFIG"
BACKEND_NAMES = ("openrouter", "cohere")


@dataclass(frozen=True)
class BackendConfig:
    name: str
    model: str
    base_url: str
    api_key_env: str
    temperature: float
    top_p: float


@dataclass(frozen=True)
class ProvidersConfig:
    order: tuple[str, ...]
    timeout_seconds: float
    backends: Mapping[str, BackendConfig]

    def ordered(self) -> tuple[BackendConfig, ...]:
        """Backends in fallback order."""

        return tuple(self.backends[name] for name in self.order)


@dataclass(frozen=True)
class QuizConfig:
    default_difficulty: str
    default_count: int
    batch_threshold: int
    batch_size: int
    max_attempts: int
    acceptance_floor: int
    batch_delay_seconds: float
    change_difficulty_count: int


@dataclass(frozen=True)
class ContentConfig:
    min_chars: int
    max_chars: int


@dataclass(frozen=True)
class LoggingConfig:
    level: str
    verbose: bool


@dataclass(frozen=True)
class QuizlystConfig:
    providers: ProvidersConfig
    quiz: QuizConfig
    content: ContentConfig
    logging: LoggingConfig
    source: Optional[Path] = None


def _merge_dict(
    base: MutableMapping[str, Any],
    override: Mapping[str, Any],
    *,
    path: str = "",
) -> None:
    for key, value in override.items():
        dotted = f"{path}{key}"
        if key not in base:
            raise ConfigError(f"Unknown configuration key '{dotted}'.")
        base_value = base[key]
        if isinstance(base_value, MutableMapping):
            if not isinstance(value, Mapping):
                raise ConfigError(
                    "Expected table for '{0}', found {1}.".format(
                        dotted, type(value).__name__
                    )
                )
            _merge_dict(base_value, value, path=f"{dotted}.")
        else:
            base[key] = value


def _require_positive_int(value: Any, *, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"'{field}' must be a positive integer.")
    return value


def _require_non_negative_number(value: Any, *, field: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"'{field}' must be a number.")
    if value < 0:
        raise ConfigError(f"'{field}' must not be negative.")
    return float(value)


def _require_float_range(
    value: Any, *, field: str, min_value: float, max_value: float
) -> float:
    number = _require_non_negative_number(value, field=field)
    if not (min_value <= number <= max_value):
        raise ConfigError(
            f"'{field}' must be between {min_value} and {max_value}."
        )
    return number


def _require_bool(value: Any, *, field: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"'{field}' must be a boolean.")
    return value


def _require_string(value: Any, *, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"'{field}' must be a non-empty string.")
    return value.strip()


def _build_backend(name: str, section: Mapping[str, Any]) -> BackendConfig:
    prefix = f"providers.{name}"
    return BackendConfig(
        name=name,
        model=_require_string(section.get("model"), field=f"{prefix}.model"),
        base_url=_require_string(
            section.get("base_url"), field=f"{prefix}.base_url"
        ),
        api_key_env=_require_string(
            section.get("api_key_env"), field=f"{prefix}.api_key_env"
        ),
        temperature=_require_float_range(
            section.get("temperature"),
            field=f"{prefix}.temperature",
            min_value=0.0,
            max_value=2.0,
        ),
        top_p=_require_float_range(
            section.get("top_p"),
            field=f"{prefix}.top_p",
            min_value=0.0,
            max_value=1.0,
        ),
    )


def _build_providers(section: Mapping[str, Any]) -> ProvidersConfig:
    raw_order = section.get("order")
    if not isinstance(raw_order, list) or not raw_order:
        raise ConfigError("'providers.order' must be a non-empty list.")
    order: list[str] = []
    for entry in raw_order:
        name = _require_string(entry, field="providers.order[]")
        if name not in BACKEND_NAMES:
            raise ConfigError(
                "Unknown provider '{0}' in providers.order; expected one of "
                "{1}.".format(name, ", ".join(BACKEND_NAMES))
            )
        if name in order:
            raise ConfigError(f"Provider '{name}' listed twice in order.")
        order.append(name)
    timeout = _require_non_negative_number(
        section.get("timeout_seconds"), field="providers.timeout_seconds"
    )
    if timeout <= 0:
        raise ConfigError("'providers.timeout_seconds' must be positive.")
    backends = {name: _build_backend(name, section[name]) for name in order}
    return ProvidersConfig(
        order=tuple(order), timeout_seconds=timeout, backends=backends
    )


def _build_quiz(section: Mapping[str, Any]) -> QuizConfig:
    difficulty = _require_string(
        section.get("default_difficulty"), field="quiz.default_difficulty"
    ).lower()
    if difficulty not in {"easy", "medium", "hard"}:
        raise ConfigError(
            "quiz.default_difficulty must be one of easy, medium, hard."
        )
    ints = {
        key: _require_positive_int(section.get(key), field=f"quiz.{key}")
        for key in (
            "default_count",
            "batch_threshold",
            "batch_size",
            "max_attempts",
            "acceptance_floor",
            "change_difficulty_count",
        )
    }
    delay = _require_non_negative_number(
        section.get("batch_delay_seconds"), field="quiz.batch_delay_seconds"
    )
    return QuizConfig(
        default_difficulty=difficulty,
        batch_delay_seconds=delay,
        **ints,
    )


def _build_content(section: Mapping[str, Any]) -> ContentConfig:
    min_chars = _require_positive_int(
        section.get("min_chars"), field="content.min_chars"
    )
    max_chars = _require_positive_int(
        section.get("max_chars"), field="content.max_chars"
    )
    if max_chars < min_chars:
        raise ConfigError("content.max_chars must be >= content.min_chars.")
    return ContentConfig(min_chars=min_chars, max_chars=max_chars)


def _build_logging(section: Mapping[str, Any]) -> LoggingConfig:
    level = _require_string(
        section.get("level"), field="logging.level"
    ).upper()
    if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ConfigError(
            "logging.level must be one of "
            "DEBUG, INFO, WARNING, ERROR, CRITICAL."
        )
    verbose = _require_bool(section.get("verbose"), field="logging.verbose")
    return LoggingConfig(level=level, verbose=verbose)


def _build_config(
    tree: Mapping[str, Any], *, source: Optional[Path]
) -> QuizlystConfig:
    return QuizlystConfig(
        providers=_build_providers(tree["providers"]),
        quiz=_build_quiz(tree["quiz"]),
        content=_build_content(tree["content"]),
        logging=_build_logging(tree["logging"]),
        source=source,
    )


def _load_toml(path: Path) -> Mapping[str, Any]:
    try:
        with path.open("rb") as fh:
            return tomllib.load(fh)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Failed to parse config TOML: {exc}") from exc


def resolve_config_path(
    *,
    explicit_path: Optional[Path] = None,
    env: Mapping[str, str] | None = None,
    workspace_path: Optional[Path] = None,
) -> Path:
    """Return the config path from CLI, ``QUIZLYST_CONFIG`` or workspace."""

    env_map = os.environ if env is None else env
    if explicit_path is not None:
        return explicit_path.expanduser().resolve()
    env_override = (env_map.get(CONFIG_PATH_ENV) or "").strip()
    if env_override:
        return Path(env_override).expanduser().resolve()
    layout = workspace_mod.ensure_workspace(
        env=env_map, path=workspace_path, create=False
    )
    return layout.path_for("config") / CONFIG_FILENAME


def load_config(
    *,
    explicit_path: Optional[Path] = None,
    env: Mapping[str, str] | None = None,
    workspace_path: Optional[Path] = None,
) -> QuizlystConfig:
    """Load and validate the active config.

    An explicitly requested file must exist; a missing file at the default
    location means "use the defaults".
    """

    path = resolve_config_path(
        explicit_path=explicit_path, env=env, workspace_path=workspace_path
    )
    tree = copy.deepcopy(_DEFAULTS)
    if explicit_path is None and not path.exists():
        return _build_config(tree, source=None)
    data = _load_toml(path)
    _merge_dict(tree, data)
    return _build_config(tree, source=path)


def default_config() -> QuizlystConfig:
    """Return the validated built-in defaults."""

    return _build_config(copy.deepcopy(_DEFAULTS), source=None)


def config_template() -> str:
    """Return the commented TOML template written by ``config init``."""

    return _CONFIG_TEMPLATE.strip() + "\n"


def write_template(
    path: Path, *, overwrite: bool = False, mode: int = 0o600
) -> Path:
    """Write the default template to ``path``."""

    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists() and not overwrite:
        raise ConfigError(f"Config already exists: {path}")
    path.write_text(config_template(), encoding="utf-8")
    try:
        path.chmod(mode)
    except PermissionError:
        pass
    return path


_DEFAULTS: Dict[str, Any] = {
    "providers": {
        "order": ["openrouter", "cohere"],
        "timeout_seconds": 60,
        "openrouter": {
            "model": "deepseek/deepseek-chat-v3-0324:free",
            "base_url": "https://openrouter.ai/api/v1",
            "api_key_env": "API_KEY",
            "temperature": 0.4,
            "top_p": 0.9,
        },
        "cohere": {
            "model": "command-r-plus",
            "base_url": "https://api.cohere.ai/v1/chat",
            "api_key_env": "COHERE_KEY",
            "temperature": 0.4,
            "top_p": 0.9,
        },
    },
    "quiz": {
        "default_difficulty": "medium",
        "default_count": 5,
        "batch_threshold": 20,
        "batch_size": 15,
        "max_attempts": 3,
        "acceptance_floor": 5,
        "batch_delay_seconds": 1.0,
        "change_difficulty_count": 5,
    },
    "content": {
        "min_chars": 50,
        "max_chars": 10000,
    },
    "logging": {
        "level": "INFO",
        "verbose": False,
    },
}


_CONFIG_TEMPLATE = """
# quizlyst configuration

[providers]
# Completion backends, tried in this order until one answers
order = ["openrouter", "cohere"]
# Per-backend request timeout in seconds
timeout_seconds = 60

[providers.openrouter]
model = "deepseek/deepseek-chat-v3-0324:free"
base_url = "https://openrouter.ai/api/v1"
# Environment variable (or .env entry) holding the API key
api_key_env = "API_KEY"
temperature = 0.4
top_p = 0.9

[providers.cohere]
model = "command-r-plus"
base_url = "https://api.cohere.ai/v1/chat"
api_key_env = "COHERE_KEY"
temperature = 0.4
top_p = 0.9

[quiz]
default_difficulty = "medium"
default_count = 5
# Requests above this many questions are generated in sequential batches
batch_threshold = 20
batch_size = 15
# Attempts for single-call generation and the count that ends retrying early
max_attempts = 3
acceptance_floor = 5
# Pause between batches to stay under provider rate limits
batch_delay_seconds = 1.0
change_difficulty_count = 5

[content]
# Reject sources shorter than this; truncate longer ones
min_chars = 50
max_chars = 10000

[logging]
level = "INFO"
verbose = false
"""
