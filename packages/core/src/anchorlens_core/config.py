import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "store": "sqlite",  # sqlite | gist | noop
    "store_path": ".anchorlens.db",
    "gist_id": None,
    "review_file": "review/review.json",
    "review_dir": "review",
    "search_window": 10,  # lines probed either side of the recorded line
    "log_level": "WARNING",
}


def _read_config_file(path: Path) -> dict:
    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping, got {type(data).__name__}")
    return data


def _search_window(value) -> int:
    try:
        window = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"search_window must be an integer, got {value!r}")
    if window < 0:
        raise ValueError("search_window must not be negative")
    return window


def load_config(config_path: str = ".anchorlens.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Build the effective settings. Later sources win:
      built-in defaults < the YAML file at config_path < cli_overrides

    A missing file is fine; overrides set to None are skipped.
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.is_file():
        config.update(_read_config_file(path))

    config.update({k: v for k, v in (cli_overrides or {}).items() if v is not None})
    config["search_window"] = _search_window(config["search_window"])
    config["log_level"] = str(config["log_level"]).upper()

    # Only the gist ledger backend needs it.
    config["github_token"] = os.environ.get("GITHUB_TOKEN")

    return config
