"""Where stackeye keeps its state, and how the context store is read and written.

The store is one YAML file shared by every ``stackeye`` command::

    current_context: acme-corp
    contexts:
      acme-corp:
        api_url: https://api.stackeye.io
        organization_id: org_123
        organization_name: Acme Corp
        api_key: se_...

Its default home is ``$XDG_CONFIG_HOME/stackeye/config.yaml`` on Linux and
the BSDs and ``~/.stackeye/config.yaml`` elsewhere; ``STACKEYE_CONFIG``
points it somewhere else. Crash logs go under :func:`get_data_dir`.

The file holds bearer credentials, so its directory is created ``0o700``
and the file itself is replaced atomically with ``0o600`` permissions
(:func:`_atomic_write`). An interrupted save leaves the previous file
intact.
"""

from __future__ import annotations

import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from stackeye.exceptions import ConfigError, PersistenceError
from stackeye.models import DEFAULT_API_URL, ConfigStore

_APP_NAME = "stackeye"
_CONFIG_FILENAME = "config.yaml"

ENV_CONFIG = "STACKEYE_CONFIG"
ENV_API_URL = "STACKEYE_API_URL"
ENV_CONTEXT = "STACKEYE_CONTEXT"


# --- Directories ---


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(xdg_var: str, xdg_default: str, fallback: str = "") -> Path:
    """Resolve stackeye's directory for one kind of state.

    On XDG platforms this is ``$<xdg_var>/stackeye`` with *xdg_default*
    (relative to the home directory) standing in for an unset variable.
    Elsewhere everything lives under ``~/.stackeye``, in *fallback* if given.
    """
    if _is_xdg_platform():
        root = os.environ.get(xdg_var) or Path.home() / xdg_default
        return Path(root) / _APP_NAME
    base = Path.home() / f".{_APP_NAME}"
    return base / fallback if fallback else base


def get_config_dir() -> Path:
    """Return (and create, owner-only) the directory holding ``config.yaml``."""
    path = _app_dir("XDG_CONFIG_HOME", ".config")
    path.mkdir(mode=0o700, parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return (and create) the directory for crash logs."""
    path = _app_dir("XDG_DATA_HOME", os.path.join(".local", "share"), fallback="data")
    path.mkdir(parents=True, exist_ok=True)
    return path


def config_path() -> Path:
    """Return the context store location, honouring ``$STACKEYE_CONFIG``."""
    override = os.environ.get(ENV_CONFIG)
    if override:
        return Path(override).expanduser()
    return get_config_dir() / _CONFIG_FILENAME


# --- Atomic writes ---


def _atomic_write(path: Path, data: str, mode: int = 0o600) -> None:
    """Replace *path* with *data* in one rename.

    The content goes to a hidden sibling temp file, which gets *mode*
    before any byte is written and is fsynced before ``os.replace``. On
    failure (KeyboardInterrupt included) the temp file is removed and
    *path* keeps its old content.
    """
    path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            os.chmod(tmp_name, mode)
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


# --- Context store ---


def load_store(path: Optional[Path] = None) -> ConfigStore:
    """Load the context store from disk.

    Args:
        path: Explicit file location. Defaults to :func:`config_path`.

    Returns:
        The deserialised :class:`~stackeye.models.ConfigStore`. A missing or
        empty file yields an empty store.

    Raises:
        ConfigError: If the file exists but cannot be read, is not valid
            YAML, or fails validation.
    """
    path = path or config_path()
    if not path.is_file():
        return ConfigStore()
    try:
        text = path.read_text(encoding="utf-8")
        data = yaml.safe_load(text) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Cannot read config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config at {path}: expected a mapping at the top level")

    # Contexts written as bare ``name:`` lines load as None.
    contexts = data.get("contexts") or {}
    if isinstance(contexts, dict):
        data["contexts"] = {name: ctx or {} for name, ctx in contexts.items()}
    if data.get("current_context") is None:
        data["current_context"] = ""

    try:
        return ConfigStore.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def save_store(store: ConfigStore, path: Optional[Path] = None) -> Path:
    """Persist the context store atomically with ``0o600`` permissions.

    Args:
        store: The store to write.
        path: Explicit file location. Defaults to :func:`config_path`.

    Returns:
        The path that was written.

    Raises:
        PersistenceError: If ``current_context`` names a missing context, or
            the file cannot be written.
    """
    path = path or config_path()
    if store.current_context and store.current_context not in store.contexts:
        raise PersistenceError(
            f"Refusing to save config: current context '{store.current_context}' "
            "does not exist"
        )

    data = store.model_dump(mode="json")
    text = yaml.safe_dump(data, default_flow_style=False, sort_keys=False)
    try:
        _atomic_write(path, text)
    except OSError as exc:
        raise PersistenceError(f"Failed to save config to {path}: {exc}") from exc
    return path


# --- Precedence resolution ---


def resolve_api_url(cli_api_url: Optional[str] = None) -> str:
    """Resolve the API URL to log in to.

    Precedence (high to low):
        1. ``--api-url`` CLI flag
        2. ``STACKEYE_API_URL`` environment variable
        3. :data:`~stackeye.models.DEFAULT_API_URL`
    """
    if cli_api_url:
        return cli_api_url.rstrip("/")
    env_value = os.environ.get(ENV_API_URL, "")
    if env_value:
        return env_value.rstrip("/")
    return DEFAULT_API_URL


def resolve_context_name(store: ConfigStore) -> str:
    """Return the context a command should act on.

    ``STACKEYE_CONTEXT`` overrides the store's ``current_context`` without
    modifying the file.
    """
    return os.environ.get(ENV_CONTEXT, "") or store.current_context
