import os
import pathlib
import platform
import tomllib
from dataclasses import dataclass, field, fields, replace

import requests

APP_DIR_NAME = "minesweeper-client"
DEFAULT_API_BASE = "http://localhost:5000"
DEFAULT_TIMEOUT = 10.0


@dataclass(frozen=True)
class Endpoints:
    """Path templates for the remote game engine.

    The two mutation endpoints are configured independently; servers do not
    agree on the toggle-flag route or verb.
    """
    create: str = "/games/minesweeper/preset"
    fetch: str = "/games/minesweeper/{game_id}"
    reveal: str = "/games/minesweeper/{game_id}/reveal"
    reveal_method: str = "PATCH"
    toggle_flag: str = "/games/minesweeper/{game_id}/toggle-flag"
    toggle_flag_method: str = "PATCH"


@dataclass(frozen=True)
class ClientConfig:
    api_base: str = DEFAULT_API_BASE
    timeout: float = DEFAULT_TIMEOUT
    endpoints: Endpoints = field(default_factory=Endpoints)
    storage_path: pathlib.Path | None = None

    def url(self, path: str) -> str:
        return f"{self.api_base.rstrip('/')}/{path.lstrip('/')}"


# Loads the client configuration. This uses environment variables and
# defaults, unless the MINESWEEPER_PROFILE environment variable is set and
# the config file exists, in which case the named profile table is used.
def load_client_config() -> ClientConfig:
    config_file_path = get_config_file_path()
    profile_name = os.getenv("MINESWEEPER_PROFILE")
    if profile_name and config_file_path.is_file():
        with config_file_path.open("rb") as config_file:
            profiles = tomllib.load(config_file)
        profile = profiles.get(profile_name)
        if profile is None:
            raise RuntimeError(f"Profile {profile_name!r} not found in {config_file_path}")
        return config_from_mapping(profile)
    else:
        return config_from_mapping({
            "api_base": os.getenv("MINESWEEPER_API_BASE"),
            "timeout": os.getenv("MINESWEEPER_TIMEOUT"),
            "storage_path": os.getenv("MINESWEEPER_STORAGE_PATH"),
            "endpoints": {
                "reveal": os.getenv("MINESWEEPER_REVEAL_PATH"),
                "reveal_method": os.getenv("MINESWEEPER_REVEAL_METHOD"),
                "toggle_flag": os.getenv("MINESWEEPER_TOGGLE_FLAG_PATH"),
                "toggle_flag_method": os.getenv("MINESWEEPER_TOGGLE_FLAG_METHOD"),
            },
        })


def config_from_mapping(values: dict) -> ClientConfig:
    endpoint_names = {f.name for f in fields(Endpoints)}
    endpoint_values = {
        key: value
        for key, value in (values.get("endpoints") or {}).items()
        if key in endpoint_names and value
    }
    endpoints = replace(Endpoints(), **endpoint_values)
    for name in ("reveal_method", "toggle_flag_method"):
        endpoints = replace(endpoints, **{name: getattr(endpoints, name).upper()})

    storage_path = values.get("storage_path")
    return ClientConfig(
        api_base=values.get("api_base") or DEFAULT_API_BASE,
        timeout=float(values.get("timeout") or DEFAULT_TIMEOUT),
        endpoints=endpoints,
        storage_path=pathlib.Path(storage_path) if storage_path else get_config_dir() / "session.json",
    )


# Returns a requests session that sends and accepts JSON.
def get_http_session() -> requests.Session:
    session = requests.Session()
    session.headers.update({
        "Content-Type": "application/json",
        "Accept": "application/json",
    })
    return session


# Returns the directory holding this client's config and session files,
# based on the current operating system.
def get_config_dir() -> pathlib.Path:
    home = pathlib.Path.home()
    system = platform.system()

    if system == "Darwin":
        config_dir = home / "Library/Application Support" / APP_DIR_NAME
    elif system == "Windows":
        app_data = os.getenv("AppData")
        if app_data is None:
            raise RuntimeError("AppData environment variable not set")
        config_dir = pathlib.Path(app_data) / APP_DIR_NAME
    else:
        xdg_config_home = os.getenv("XDG_CONFIG_HOME")
        if xdg_config_home:
            config_dir = pathlib.Path(xdg_config_home) / APP_DIR_NAME
        else:
            config_dir = home / ".config" / APP_DIR_NAME

    return config_dir


def get_config_file_path() -> pathlib.Path:
    return get_config_dir() / "config.toml"
