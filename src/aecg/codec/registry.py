"""Plugin registries mapping value discriminators to payload classes."""

from collections.abc import Callable
from importlib.metadata import entry_points
from typing import Annotated, Any, ClassVar

from pydantic import PlainValidator

from .._logging import logger
from .payloads import (
    GeneratedQuantityList,
    GeneratedTimestampList,
    OpaqueValue,
    PhysicalQuantity,
    ScaledIntegerList,
    ScaledQuantityList,
    Text,
)

SEQUENCE_VALUES = "aecg.sequence_values"
ANNOTATION_VALUES = "aecg.annotation_values"

_BUILTIN_VALUE_TYPES: dict[str, tuple[type, ...]] = {
    SEQUENCE_VALUES: (GeneratedTimestampList, GeneratedQuantityList, ScaledQuantityList, ScaledIntegerList),
    ANNOTATION_VALUES: (PhysicalQuantity, Text),
}


class ValueTypeRegistry:
    """Registry of payload classes for one ``<value>`` dispatch point.

    There is one registry per entry point group: sequence values and
    annotation values. Built-in payloads are registered first, then further
    payload classes are discovered from the group's entry points. Third-party
    packages can contribute a discriminator in their pyproject.toml:

        [project.entry-points."aecg.sequence_values"]
        SLIST_REAL = "my_package.values:ScaledRealList"

    A payload class must provide an ``xsi_type`` attribute, a ``from_xml``
    classmethod and a ``write_xml`` method.

    Examples:
        # Get the registry for sequence values
        registry = ValueTypeRegistry.get_instance(SEQUENCE_VALUES)

        # List known discriminators
        names = registry.list_types()

        # Look up a payload class
        ScaledQuantityList = registry.get("SLIST_PQ")
    """

    _instances: ClassVar[dict[str, "ValueTypeRegistry"]] = {}

    def __init__(self, group: str):
        """Initialize the registry with built-ins and discover plugins."""
        self.group = group
        self._types: dict[str, type] = {}
        for payload_class in _BUILTIN_VALUE_TYPES.get(group, ()):
            self._types[payload_class.xsi_type] = payload_class
        self._discover_plugins()

    @classmethod
    def get_instance(cls, group: str) -> "ValueTypeRegistry":
        """Get the shared registry of an entry point group."""
        if group not in cls._instances:
            cls._instances[group] = cls(group)
        return cls._instances[group]

    @classmethod
    def reset(cls) -> None:
        """Drop the shared registries.

        The next ``get_instance`` call rebuilds each registry from the built-ins
        and the installed entry points, discarding manual registrations.
        """
        cls._instances.clear()

    def _discover_plugins(self) -> None:
        """Discover and register payload classes via entry points."""
        discovered = []
        for ep in entry_points(group=self.group):
            try:
                payload_class = ep.load()
            except Exception as e:
                logger.warning(f"Failed to load value type plugin '{ep.name}': {e}")
                continue
            if self._types.get(ep.name) is payload_class:
                continue
            if ep.name in self._types:
                logger.warning(f"Ignoring value type plugin '{ep.name}': discriminator is already registered")
                continue
            self._types[ep.name] = payload_class
            discovered.append(ep.name)

        if discovered:
            logger.info(f"Discovered {len(discovered)} value type plugin(s) for {self.group}: {discovered}")

    def register(self, name: str, payload_class: type[Any]) -> None:
        """Manually register a payload class.

        Args:
            name: Discriminator, as found in the ``xsi:type`` attribute
            payload_class: Class decoding and encoding that discriminator

        Raises:
            ValueError: If name is already registered or the class lacks the payload interface
        """
        if name in self._types:
            raise ValueError(
                f"Value type '{name}' is already registered. "
                "Use a different name or unregister the existing one first."
            )

        if not all(hasattr(payload_class, attr) for attr in ("xsi_type", "from_xml", "write_xml")):
            raise ValueError(
                f"Payload class {payload_class} must have an 'xsi_type' attribute, "
                "a 'from_xml' classmethod and a 'write_xml' method."
            )

        self._types[name] = payload_class
        logger.info(f"Registered value type: {name}")

    def unregister(self, name: str) -> None:
        """Unregister a payload class.

        Raises:
            KeyError: If the discriminator is not registered
        """
        if name not in self._types:
            raise KeyError(f"Value type '{name}' is not registered")

        del self._types[name]
        logger.info(f"Unregistered value type: {name}")

    def get(self, name: str) -> type[Any]:
        """Get a payload class by discriminator.

        Raises:
            KeyError: If the discriminator is not registered
        """
        if name not in self._types:
            raise KeyError(f"Value type '{name}' not found. Available value types: {list(self._types.keys())}")
        return self._types[name]

    def list_types(self) -> list[str]:
        """List all registered discriminators."""
        return list(self._types.keys())

    def has_type(self, name: str) -> bool:
        """Check if a discriminator is registered."""
        return name in self._types

    def accepts(self, payload: object) -> bool:
        """Check if ``payload`` is an instance of a registered payload class."""
        return isinstance(payload, tuple(self._types.values()))


def _registered_payload(group: str) -> Callable[[object], object]:
    def check(value: object) -> object:
        if isinstance(value, OpaqueValue) or ValueTypeRegistry.get_instance(group).accepts(value):
            return value
        raise ValueError(f"{type(value).__name__} is not a registered {group} payload")

    return check


# Field types of document values: an opaque value or an instance of any class
# registered for the dispatch point, including plugins.
SequenceValuePayload = Annotated[Any, PlainValidator(_registered_payload(SEQUENCE_VALUES))]
AnnotationValuePayload = Annotated[Any, PlainValidator(_registered_payload(ANNOTATION_VALUES))]
