"""Persisted list of previously discovered lights.

The cache is an optimisation: a missing, unreadable or corrupt cache file is
treated as "no cache" and write failures are absorbed. Writes go through a
temporary file and ``os.replace`` so a half-written file is never read back.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Sequence

import yaml

from .targets import Target

logger = logging.getLogger(__name__)


class TargetCache:
    """File-backed store for the last known good list of targets."""

    def __init__(self, path: Path):
        """
        Initialize the cache store.

        Args:
            path: Location of the cache file; the parent directory is created on save
        """
        self.path = Path(path)

    def load(self) -> Optional[list[Target]]:
        """Load cached targets, or None if there is no usable cache."""
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
            logger.debug("Ignoring unreadable cache %s: %s", self.path, e)
            return None

        try:
            targets = self._decode(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.debug("Ignoring corrupt cache %s: %s", self.path, e)
            return None

        if not targets:
            return None
        logger.debug("Loaded %d cached target(s) from %s", len(targets), self.path)
        return targets

    def _decode(self, data: Any) -> list[Target]:
        if data is None:
            return []
        if isinstance(data, str):
            # Older single-light caches hold one "address:port" line
            address, _, port = data.strip().rpartition(":")
            if not address:
                raise ValueError(f"expected address:port, got {data!r}")
            return [Target(name=address, address=address, port=int(port))]
        if isinstance(data, dict):
            data = data.get("targets")
        if not isinstance(data, list):
            raise TypeError(f"expected a list of targets, got {type(data).__name__}")
        return [Target.from_dict(entry) for entry in data]

    def save(self, targets: Sequence[Target]) -> None:
        """Persist targets, replacing any previous cache. Failures are ignored."""
        document = {"targets": [target.to_dict() for target in targets]}
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=self.path.parent, prefix=f".{self.path.name}.", delete=False
            ) as f:
                tmp_name = f.name
                yaml.safe_dump(document, f, sort_keys=False, default_flow_style=False)
            os.replace(tmp_name, self.path)
            tmp_name = None
            logger.debug("Saved %d target(s) to %s", len(targets), self.path)
        except (OSError, yaml.YAMLError) as e:
            logger.debug("Could not write cache %s: %s", self.path, e)
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass

    def clear(self) -> None:
        """Delete the cache file if it exists."""
        try:
            self.path.unlink()
            logger.debug("Removed cache %s", self.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.debug("Could not remove cache %s: %s", self.path, e)
