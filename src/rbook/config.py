"""Configuration management via .env file."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

BUNDLED_DEFAULT_COVER = Path(__file__).parent / "resources" / "default_cover.png"

DEFAULT_CONVERT_API_URL = (
    "https://api.products.fileformat.app/zh/word-processing/conversion/api/convert"
    "?outputType=HTML"
)
DEFAULT_CONVERT_DOWNLOAD_URL = (
    "https://products.fileformat.app/zh/word-processing/conversion/Download"
)


def _xdg_data_home() -> Path:
    return Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))


def _xdg_config_home() -> Path:
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


@dataclass
class AppConfig:
    # Paths
    data_dir: Path = field(default_factory=lambda: _xdg_data_home() / "rbook")
    default_cover_path: Path = BUNDLED_DEFAULT_COVER

    # Conversion service
    convert_api_url: str = DEFAULT_CONVERT_API_URL
    convert_download_url: str = DEFAULT_CONVERT_DOWNLOAD_URL
    http_timeout: Optional[float] = None  # no timeout

    books_dir: Path = field(init=False)
    config_dir: Path = field(init=False)
    style_path: Path = field(init=False)
    cover_dir: Path = field(init=False)
    log_path: Path = field(init=False)

    def __post_init__(self) -> None:
        self.data_dir = Path(self.data_dir)
        self.default_cover_path = Path(self.default_cover_path)
        self.books_dir = self.data_dir / "books"
        self.config_dir = self.data_dir / "config"
        self.style_path = self.config_dir / "reader_style.json"
        self.cover_dir = self.data_dir / "cover"
        self.log_path = self.data_dir / "rbook.log"

    @property
    def installed_default_cover(self) -> Path:
        return self.cover_dir / "default_cover.png"


def load_config(env_path: Optional[Path] = None) -> AppConfig:
    """Load config from .env file. Searches CWD then config dir."""
    search_paths = [
        env_path,
        Path.cwd() / ".env",
        _xdg_config_home() / "rbook" / ".env",
        Path.home() / ".env",
    ]
    for p in search_paths:
        if p and p.exists():
            load_dotenv(p)
            break

    defaults = AppConfig()
    timeout_env = os.getenv("RBOOK_HTTP_TIMEOUT", "")
    return AppConfig(
        data_dir=Path(os.getenv("RBOOK_DATA_DIR", str(defaults.data_dir))),
        default_cover_path=Path(
            os.getenv("RBOOK_DEFAULT_COVER", str(defaults.default_cover_path))
        ),
        convert_api_url=os.getenv("RBOOK_CONVERT_API_URL", defaults.convert_api_url),
        convert_download_url=os.getenv(
            "RBOOK_CONVERT_DOWNLOAD_URL", defaults.convert_download_url
        ),
        http_timeout=float(timeout_env) if timeout_env else None,
    )
