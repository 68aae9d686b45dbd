import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from labreport.commons.types import Settings

PACKAGE_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_CFG = "configs/settings.yaml"


def resource_path(relative_path: str) -> str:
    """Devuelve la ruta absoluta a un recurso, ya sea ejecutando como .exe o en desarrollo"""
    if hasattr(sys, "_MEIPASS"):
        # Si es un ejecutable generado por PyInstaller
        base_path = sys._MEIPASS
    else:
        base_path = str(PACKAGE_ROOT)

    return os.path.join(base_path, relative_path)


def load_cfg(path: Optional[str] = None) -> Dict[str, Any]:
    config_path = path or os.getenv("LABREPORT_CONFIG") or resource_path(DEFAULT_CFG)
    with open(config_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_settings(cfg: Any = None) -> Settings:
    """Accept a path, an already-loaded dict or None (packaged defaults)."""
    if isinstance(cfg, Settings):
        return cfg
    if cfg is None or isinstance(cfg, str):
        cfg = load_cfg(cfg)
    return Settings.model_validate(cfg)
