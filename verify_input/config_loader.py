"""Two-tier configuration loading: bundled local config + form definitions."""

import hashlib
import logging
import os
import time
import urllib.parse
from importlib.resources import files
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests
import yaml

logger = logging.getLogger(__name__)


class ConfigLoader:
    """Handles two-tier configuration: local config + form definition documents."""

    # Hardcoded cache directory for remote form definitions
    CACHE_DIR = Path.home() / ".cache" / "verify-input"
    FETCH_TIMEOUT = 30

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize config loader.

        Args:
            config_path: Path to a local-config.yaml; defaults to the one
                bundled in the verify_input package

        Raises:
            ValueError: If a form URI scheme is unsupported, a form document
                is not a mapping, or a form name is defined in more than
                one document
            RuntimeError: If a form document cannot be fetched
        """
        if config_path is None:
            config_file = files("verify_input").joinpath("local-config.yaml")
            self.local_config_path = str(config_file)
        else:
            self.local_config_path = str(config_path)

        self.cache_dir = self.CACHE_DIR
        self.local_config = self._load_yaml(self.local_config_path) or {}

        self.forms_config = self._load_forms()
        self.forms_config_loaded_at = time.time()

    def _load_forms(self) -> Dict[str, Any]:
        """Load and merge every document listed in forms_uris."""
        merged: Dict[str, Any] = {}
        for uri in self.get_forms_uris():
            document = self._load_config_from_uri(uri) or {}
            if not isinstance(document, dict):
                raise ValueError(
                    f"Form document {uri} must be a mapping, got {type(document).__name__}"
                )
            forms = document.get("forms") or {}
            if not isinstance(forms, dict):
                raise ValueError(
                    f"'forms' in {uri} must be a mapping, got {type(forms).__name__}"
                )
            for form_name, form_data in forms.items():
                if form_name in merged:
                    raise ValueError(f"Form {form_name} is defined more than once (in {uri})")
                merged[form_name] = form_data
            logger.debug(f"Loaded form definitions from {uri}")
        return {"forms": merged}

    def _load_yaml(self, path: str) -> Dict[str, Any]:
        """Load YAML file from disk."""
        with open(path, encoding="utf-8") as f:
            return yaml.safe_load(f)

    def _load_config_from_uri(self, uri: str) -> Dict[str, Any]:
        """
        Load a YAML document from URI (with caching for remote documents).

        Supports:
        - Relative paths - forms/registration.yaml (relative to local config)
        - file:// - Local filesystem (absolute paths)
        - https:// / http:// - Remote, cached under CACHE_DIR

        Args:
            uri: Document URI or relative path

        Returns:
            Parsed YAML document
        """
        parsed = urllib.parse.urlparse(uri)

        if not parsed.scheme:
            config_dir = os.path.dirname(os.path.abspath(self.local_config_path))
            return self._load_yaml(os.path.join(config_dir, uri))

        if parsed.scheme == "file":
            return self._load_yaml(urllib.parse.unquote(parsed.path))

        elif parsed.scheme in ("http", "https"):
            cache_key = hashlib.sha256(uri.encode()).hexdigest()
            cache_path = self.cache_dir / f"forms_{cache_key}.yaml"

            if cache_path.exists():
                return self._load_yaml(str(cache_path))

            content = self._fetch_uri(uri)
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            cache_path.write_text(content, encoding="utf-8")
            return yaml.safe_load(content)

        else:
            raise ValueError(f"Unsupported URI scheme: {parsed.scheme} in {uri}")

    def _fetch_uri(self, uri: str) -> str:
        """Fetch content from HTTP/HTTPS URI."""
        try:
            response = requests.get(uri, timeout=self.FETCH_TIMEOUT)
            response.raise_for_status()
            return response.text
        except requests.RequestException as e:
            raise RuntimeError(f"Failed to fetch form definitions from {uri}: {e}") from e

    def clear_cache(self) -> None:
        """Remove cached remote form documents."""
        if not self.cache_dir.exists():
            return
        for cached in self.cache_dir.glob("forms_*.yaml"):
            cached.unlink()

    def get_local_config(self) -> Dict[str, Any]:
        """Get local configuration (tier 1)."""
        return self.local_config

    def get_forms_config(self) -> Dict[str, Any]:
        """Get merged form definitions (tier 2)."""
        return self.forms_config

    def get_forms_uris(self) -> List[str]:
        uris = self.local_config.get("forms_uris", [])
        if isinstance(uris, str):
            return [uris]
        return list(uris)

    def get_empty_form_passes(self) -> bool:
        """Whether a pass over zero fields counts as success (default False)."""
        return bool(self.local_config.get("empty_form_passes", False))

    def get_default_feedback(self) -> str:
        """Default feedback sink name: 'log' or 'none'."""
        return self.local_config.get("default_feedback", "log")

    def get_forms_config_age(self) -> Optional[float]:
        """
        Get age of form definitions in seconds since they were loaded.

        Returns:
            Age in seconds, or None if not loaded
        """
        if hasattr(self, "forms_config_loaded_at"):
            return time.time() - self.forms_config_loaded_at
        return None
