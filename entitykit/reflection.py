"""
entitykit reflection - Test-only object access.

Python has no enforced visibility, but entities still hide state behind
naming conventions (``_name``, ``__name``) and guard it with read-only
properties, frozen dataclasses or ``__slots__``.  :class:`ObjectAccessor`
is the single place where the harness reaches past those conventions;
nothing else in entitykit touches private members directly.

Name lookup order for a logical member ``name``:

1. ``name``
2. ``_name``
3. ``_<Class>__name`` for every class in the MRO (name-mangled)
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Dict, Iterator, Optional, Sequence

from .faults import NotFoundError

logger = logging.getLogger("entitykit.reflection")

_MISSING = object()


class ObjectAccessor:
    """
    Reflection helper for reading/writing members regardless of visibility.

    Usage::

        accessor = ObjectAccessor()
        accessor.set_field(order, "number", 42)      # writes order._number
        accessor.invoke(order, "recalculate")         # calls order._recalculate()
        accessor.get_field(order, "number")           # 42
    """

    # ------------------------------------------------------------------
    # Name candidates
    # ------------------------------------------------------------------

    def candidates(self, target: Any, name: str) -> Iterator[str]:
        """Yield the attribute names that may hold the logical member *name*."""
        yield name
        if not name.startswith("_"):
            yield f"_{name}"
        bare = name.lstrip("_")
        for cls in type(target).__mro__:
            if cls is object:
                continue
            yield f"_{cls.__name__.lstrip('_')}__{bare}"

    # ------------------------------------------------------------------
    # Methods
    # ------------------------------------------------------------------

    def find_method(self, target: Any, name: str) -> Optional[str]:
        """Return the attribute name of the method for *name*, or ``None``."""
        for attr in self.candidates(target, name):
            static = inspect.getattr_static(type(target), attr, _MISSING)
            if static is _MISSING:
                continue
            if isinstance(static, (staticmethod, classmethod)) or callable(static):
                return attr
        return None

    def has_method(self, target: Any, name: str) -> bool:
        return self.find_method(target, name) is not None

    def get_method(self, target: Any, name: str):
        """Return the bound method *name*; raise :class:`NotFoundError` if absent."""
        attr = self.find_method(target, name)
        if attr is None:
            raise NotFoundError(target, name, "method")
        return getattr(target, attr)

    def invoke(
        self,
        target: Any,
        method_name: str,
        args: Optional[Sequence[Any]] = None,
        kwargs: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Invoke a method regardless of its visibility."""
        method = self.get_method(target, method_name)
        return method(*(args or ()), **(kwargs or {}))

    # ------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------

    def find_field(self, target: Any, name: str, *, writable: bool = False) -> Optional[str]:
        """
        Return the attribute name holding the field *name*, or ``None``.

        With ``writable=True`` read-only properties are skipped so that a
        backing ``_name`` attribute is chosen instead.
        """
        instance_dict = getattr(target, "__dict__", {})
        for attr in self.candidates(target, name):
            if attr in instance_dict:
                return attr
            static = inspect.getattr_static(type(target), attr, _MISSING)
            if static is not _MISSING:
                if isinstance(static, property):
                    if writable and static.fset is None:
                        continue
                    return attr
                if inspect.ismemberdescriptor(static):
                    return attr
                if not callable(static):
                    return attr
                continue
            if self._is_declared(target, attr):
                return attr
        return None

    def has_field(self, target: Any, name: str) -> bool:
        return self.find_field(target, name) is not None

    def get_field(self, target: Any, name: str) -> Any:
        """Read a field regardless of its visibility."""
        attr = self.find_field(target, name)
        if attr is None:
            raise NotFoundError(target, name, "field")
        try:
            return getattr(target, attr)
        except AttributeError:
            raise NotFoundError(target, name, "field value") from None

    def set_field(self, target: Any, name: str, value: Any) -> None:
        """
        Write a field regardless of its visibility.

        Properties with a setter are written through the setter; any other
        field is assigned raw, bypassing ``__setattr__`` overrides such as
        frozen dataclasses.
        """
        attr = self.find_field(target, name, writable=True)
        if attr is None:
            raise NotFoundError(target, name, "field")
        static = inspect.getattr_static(type(target), attr, _MISSING)
        if isinstance(static, property):
            setattr(target, attr, value)
        else:
            object.__setattr__(target, attr, value)
        logger.debug("Set %s.%s (via %s)", type(target).__name__, name, attr)

    # ------------------------------------------------------------------
    # Whole-object state
    # ------------------------------------------------------------------

    def snapshot(self, target: Any) -> Dict[str, Any]:
        """Return a shallow copy of the instance state (``__dict__`` and slots)."""
        state = dict(getattr(target, "__dict__", {}))
        for slot in self._slots(target):
            value = getattr(target, slot, _MISSING)
            if value is not _MISSING:
                state[slot] = value
        return state

    def restore(self, target: Any, state: Dict[str, Any]) -> None:
        """Overwrite the instance state with *state*, dropping extra attributes."""
        instance_dict = getattr(target, "__dict__", None)
        if instance_dict is not None:
            for attr in [a for a in instance_dict if a not in state]:
                del instance_dict[attr]
        for attr, value in state.items():
            object.__setattr__(target, attr, value)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _slots(target: Any) -> Iterator[str]:
        for cls in type(target).__mro__:
            slots = cls.__dict__.get("__slots__", ())
            if isinstance(slots, str):
                slots = (slots,)
            for slot in slots:
                if slot in ("__dict__", "__weakref__"):
                    continue
                if slot.startswith("__") and not slot.endswith("__"):
                    slot = f"_{cls.__name__.lstrip('_')}{slot}"
                yield slot

    @staticmethod
    def _is_declared(target: Any, attr: str) -> bool:
        """True if *attr* is an annotated (declared but unset) field."""
        for cls in type(target).__mro__:
            if cls is object:
                continue
            if attr in inspect.get_annotations(cls):
                return True
        return False


__all__ = ["ObjectAccessor"]
