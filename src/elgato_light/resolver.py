"""Turn a user's selection into the list of lights to act on."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional

from .cache import TargetCache
from .discovery import LightDiscovery
from .errors import InvalidAddress, NoMatch, SelectorConflict
from .targets import Target

logger = logging.getLogger(__name__)


class TargetSource(Enum):
    """Where a resolution's targets came from."""
    EXPLICIT = "explicit"
    CACHE = "cache"
    DISCOVERY = "discovery"


@dataclass(frozen=True)
class Resolution:
    """Ordered, non-empty list of targets plus where they came from."""

    targets: tuple[Target, ...]
    source: TargetSource

    def __iter__(self) -> Iterator[Target]:
        return iter(self.targets)

    def __len__(self) -> int:
        return len(self.targets)

    def __getitem__(self, index: int) -> Target:
        return self.targets[index]


def parse_addresses(addresses: str) -> list[Target]:
    """Parse a comma-separated list of IPv4 addresses into targets, in input order.

    Any malformed token fails the whole list.
    """
    targets = []
    for token in addresses.split(","):
        token = token.strip()
        try:
            targets.append(Target.from_address(token))
        except ValueError as e:
            raise InvalidAddress(token) from e
    return targets


def filter_by_name(targets: list[Target], name_filter: str) -> list[Target]:
    """Keep targets whose name contains ``name_filter``, ignoring case."""
    needle = name_filter.casefold()
    return [target for target in targets if needle in target.name.casefold()]


class TargetResolver:
    """Resolves explicit addresses, name filters, the cache and discovery into targets."""

    def __init__(self, cache: TargetCache, discovery: LightDiscovery):
        """
        Initialize the resolver.

        Args:
            cache: Store for the last discovered targets
            discovery: Discovery variant used when the cache is empty
        """
        self.cache = cache
        self.discovery = discovery

    def resolve(
        self,
        addresses: Optional[str] = None,
        name_filter: Optional[str] = None,
        timeout: float = 3.0,
    ) -> Resolution:
        """
        Resolve a selection into targets.

        Args:
            addresses: Comma-separated IPv4 addresses; skips cache and discovery
            name_filter: Case-insensitive substring of the light name
            timeout: Discovery window in seconds, used only on a cache miss

        Returns:
            Resolution with at least one target

        Raises:
            SelectorConflict: Both addresses and a name filter were given
            InvalidAddress: An address token is not IPv4
            DiscoveryError: Discovery failed on a cache miss
            NoMatch: The name filter matched nothing
        """
        if addresses is not None and name_filter is not None:
            raise SelectorConflict()

        if addresses is not None:
            return Resolution(tuple(parse_addresses(addresses)), TargetSource.EXPLICIT)

        candidates = self.cache.load()
        if candidates is not None:
            source = TargetSource.CACHE
            candidates = sorted(candidates, key=lambda t: t.name)
            logger.debug("Using %d cached target(s)", len(candidates))
        else:
            source = TargetSource.DISCOVERY
            candidates = self.discovery.discover(timeout)
            self.cache.save(candidates)

        if name_filter is not None:
            matched = filter_by_name(candidates, name_filter)
            if not matched:
                raise NoMatch(name_filter, [t.name for t in candidates])
            candidates = matched

        return Resolution(tuple(candidates), source)

    def rediscover(self, timeout: float) -> list[Target]:
        """Forget cached targets, discover again and persist the result."""
        self.cache.clear()
        targets = self.discovery.discover(timeout)
        self.cache.save(targets)
        return targets

    def clear_cache(self) -> None:
        """Remove the persisted targets."""
        self.cache.clear()
