# cipherlog/utils.py
from pathlib import Path

import appdirs

APP_NAME = "cipherlog"


def user_data_dir(app_name: str = APP_NAME) -> Path:

    p = Path(appdirs.user_data_dir(app_name))
    p.mkdir(parents=True, exist_ok=True)
    return p


def default_log_path(file_name: str = "Log.txt") -> Path:
    """Per-user log file used when no explicit path is configured."""
    return user_data_dir() / file_name
