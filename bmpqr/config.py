# -*- coding: utf-8 -*-
from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from dotenv import find_dotenv, load_dotenv

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _flag(value: Optional[str]) -> bool:
    return (value or "").lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    qr_engine: str = "opencv"
    log_level: str = "WARNING"
    logs_dir: Optional[Path] = None
    honor_top_down: bool = False


def load_settings() -> Settings:
    """Settings from the environment (a local .env is honoured)."""
    load_dotenv(find_dotenv(usecwd=True))
    logs_dir = os.getenv("LOGS_DIR")
    return Settings(
        qr_engine=os.getenv("QR_ENGINE", "opencv").lower(),
        log_level=os.getenv("LOG_LEVEL", "WARNING").upper(),
        logs_dir=Path(logs_dir) if logs_dir else None,
        honor_top_down=_flag(os.getenv("BMP_HONOR_TOP_DOWN")),
    )


def setup_logging(settings: Settings) -> None:
    # stdout carries the results, logs go to stderr (+ optional file)
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if settings.logs_dir is not None:
        settings.logs_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(settings.logs_dir / "bmp-qr.log", encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.WARNING),
        format=LOG_FORMAT,
        handlers=handlers,
    )
