"""
Configuration
==============
Environment settings plus the upload route definition read from config.json.

config.json (all keys optional):

    {
      "upload": {
        "method": "POST",
        "path": "/upload",            # string or list of strings
        "paths": ["/a", "/b"],        # alternative to "path"
        "field": "pdf"                # multipart field holding the document
      }
    }

A missing or malformed file never stops the server: we log a warning and
bind POST /upload instead.
"""

import os
import json
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from dotenv import load_dotenv

logger = logging.getLogger("mock_output")

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", ".."))

# Explicitly load from root directory
load_dotenv(dotenv_path=os.path.join(PROJECT_ROOT, ".env"))

CONFIG_PATH = os.environ.get("MOCK_OUTPUT_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))
HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "3000"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

DEFAULT_METHOD = "POST"
DEFAULT_PATH = "/upload"
DEFAULT_FILE_FIELD = "pdf"
SUPPORTED_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS")


@dataclass(frozen=True)
class UploadRouteConfig:
    method: str = DEFAULT_METHOD
    paths: List[str] = field(default_factory=lambda: [DEFAULT_PATH])
    file_field: str = DEFAULT_FILE_FIELD

    def bindings(self) -> List[str]:
        return [f"{self.method} {p}" for p in self.paths]

    def to_json(self) -> dict:
        return {"method": self.method, "paths": list(self.paths)}


def normalize_route_path(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    path = value.strip()
    if not path:
        return None
    return path if path.startswith("/") else "/" + path


def parse_upload_config(raw: Any) -> UploadRouteConfig:
    """
    Build an UploadRouteConfig from a decoded config document.

    Anything unusable falls back field by field: an unknown method becomes
    POST, blank or non-string paths are dropped, and an empty path list
    becomes /upload.
    """
    if not isinstance(raw, dict):
        logger.warning("⚠️ Config root is not an object (using defaults)")
        return UploadRouteConfig()

    upload = raw.get("upload")
    if upload is None:
        return UploadRouteConfig()
    if not isinstance(upload, dict):
        logger.warning("⚠️ 'upload' config is not an object (using defaults)")
        return UploadRouteConfig()

    method = str(upload.get("method") or DEFAULT_METHOD).strip().upper()
    if method not in SUPPORTED_METHODS:
        logger.warning(f"⚠️ Invalid upload method in config: {method!r}; using {DEFAULT_METHOD}")
        method = DEFAULT_METHOD

    candidates = upload.get("paths")
    if candidates is None:
        candidates = upload.get("path")
    if candidates is None:
        candidates = [DEFAULT_PATH]
    elif not isinstance(candidates, list):
        candidates = [candidates]

    paths: List[str] = []
    for candidate in candidates:
        path = normalize_route_path(candidate)
        if path and path not in paths:
            paths.append(path)
    if not paths:
        logger.warning(f"⚠️ No usable upload paths in config; using {DEFAULT_PATH}")
        paths = [DEFAULT_PATH]

    file_field = upload.get("field")
    if not isinstance(file_field, str) or not file_field.strip():
        file_field = DEFAULT_FILE_FIELD

    return UploadRouteConfig(method=method, paths=paths, file_field=file_field.strip())


def load_upload_config(path: Optional[str] = None) -> UploadRouteConfig:
    config_path = path or CONFIG_PATH
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"⚠️ Could not load config from {config_path} (using defaults): {e}")
        return UploadRouteConfig()
    return parse_upload_config(raw)
