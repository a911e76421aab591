"""
Channel registry — channel name -> settings, names unique across transports.
"""

from typing import Iterable, Optional, Sequence

from pinreq.channel import ChannelSettings
from pinreq.errors import DuplicateChannelName, UnknownChannel


class ChannelRegistry:
    def __init__(self) -> None:
        self._channels: dict[str, ChannelSettings] = {}

    @classmethod
    def load(cls, settings: Iterable[ChannelSettings]) -> "ChannelRegistry":
        """Build the registry, refusing the whole config on the first duplicate name."""
        registry = cls()
        for s in settings:
            if s.name in registry._channels:
                raise DuplicateChannelName(s.name)
            registry._channels[s.name] = s
        return registry

    def __contains__(self, name: object) -> bool:
        return name in self._channels

    def __len__(self) -> int:
        return len(self._channels)

    def names(self) -> list[str]:
        return list(self._channels)

    def get(self, name: str) -> ChannelSettings:
        try:
            return self._channels[name]
        except KeyError:
            raise UnknownChannel(name) from None

    def resolve(self, names: Optional[Sequence[str]] = None) -> list[ChannelSettings]:
        """Settings for `names`, or for every channel when `names` is None.

        Every requested name must exist; nothing is returned otherwise. A name
        given more than once is resolved once, at its first position.
        """
        if names is None:
            return list(self._channels.values())
        return [self.get(name) for name in dict.fromkeys(names)]
