"""Завантаження YAML конфігурацій."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

log = logging.getLogger(__name__)


def load_yaml(path: str | Path) -> dict[str, Any]:
    """Зчитує YAML файл з конфігурацією veto-систем.

    Args:
        path: Шлях до файлу.

    Returns:
        Вміст файлу як словник (порожній для порожнього файлу).

    Raises:
        FileNotFoundError: Якщо файл не знайдено.
        ValueError: Якщо верхній рівень файлу не є мапою.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")
    with p.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config {p.name}: expected a mapping at top level, got {type(data).__name__}")
    log.debug("Loaded config %s (%d top-level keys)", p.name, len(data))
    return data


def as_list(value: Any) -> list[Any]:
    """Normalise an optional YAML scalar/list value to a list."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]
