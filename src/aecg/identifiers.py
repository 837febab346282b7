"""Default identifier used to fill empty identifier roots."""

import threading


class DefaultIdentifierProvider:
    """Write-once holder of the default identifier root.

    The first non-empty root assigned is kept for the lifetime of the provider;
    later assignments are ignored. A provider is passed explicitly to the
    parse, build and validate entry points, so tests simply create a fresh one.

    Examples:
        >>> provider = DefaultIdentifierProvider()
        >>> provider.assign("2.16.840.1.113883.3.1")
        True
        >>> provider.assign("other")
        False
        >>> provider.root
        '2.16.840.1.113883.3.1'
    """

    def __init__(self, root: str = ""):
        self._lock = threading.Lock()
        self._root = root

    @property
    def root(self) -> str:
        return self._root

    def is_set(self) -> bool:
        return bool(self._root)

    def assign(self, root: str) -> bool:
        """Set the root unless one is already set.

        Returns:
            True if ``root`` became the default.
        """
        if not root:
            return False
        with self._lock:
            if self._root:
                return False
            self._root = root
        return True

    def __repr__(self) -> str:
        return f"DefaultIdentifierProvider(root={self._root!r})"
