"""
entitykit faults - Error taxonomy.

Defines:
- Fault base class (structured fault objects)
- FaultDomain (explicit fault domains)
- Severity levels
- Concrete faults for configuration, reflection, persistence,
  security and HTTP simulation problems

Faults signal programming or configuration errors in a test setup and
propagate out of the current test. Broken contracts of the code under
test are reported through plain ``AssertionError`` instead.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


# ============================================================================
# Severity & Domain
# ============================================================================

class Severity(str, Enum):
    """Fault severity levels."""
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"


class FaultDomain:
    """
    Fault domains (taxonomy).

    Identifies the functional area where a fault occurred.
    """

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.value = name
        self.description = description

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"FaultDomain(name='{self.name}')"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, FaultDomain):
            return self.name == other.name
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(self.name)


FaultDomain.CONFIG = FaultDomain("config", "Entity and settings configuration errors")
FaultDomain.REFLECTION = FaultDomain("reflection", "Object access and naming errors")
FaultDomain.PERSISTENCE = FaultDomain("persistence", "Persistence layer errors")
FaultDomain.SECURITY = FaultDomain("security", "Token generation and verification")
FaultDomain.HTTP = FaultDomain("http", "Simulated HTTP requests")


DOMAIN_DEFAULTS = {
    FaultDomain.CONFIG: Severity.FATAL,
    FaultDomain.REFLECTION: Severity.ERROR,
    FaultDomain.PERSISTENCE: Severity.ERROR,
    FaultDomain.SECURITY: Severity.ERROR,
    FaultDomain.HTTP: Severity.ERROR,
}


# ============================================================================
# Fault - Base Class
# ============================================================================

class Fault(Exception):
    """
    Base fault class - structured, typed fault object.

    Attributes:
        code: Stable machine-readable identifier (e.g., "ENTITY_CONFIG_MISSING")
        message: Human-readable summary
        domain: Fault domain (CONFIG, REFLECTION, PERSISTENCE, ...)
        severity: Fault severity
        metadata: Additional context data

    Example:
        ```python
        raise Fault(
            code="ENTITY_CONFIG_MISSING",
            message="No entity configuration for 'Order'",
            domain=FaultDomain.CONFIG,
        )
        ```
    """

    code: Optional[str] = None
    domain: Optional[FaultDomain] = None

    def __init__(
        self,
        code: str | None = None,
        message: str | None = None,
        *,
        domain: FaultDomain | None = None,
        severity: Optional[Severity] = None,
        metadata: Optional[dict[str, Any]] = None,
    ):
        self.code = code if code is not None else type(self).code
        self.message = message
        self.domain = domain if domain is not None else type(self).domain

        if self.code is None or self.message is None or self.domain is None:
            raise TypeError(f"{self.__class__.__name__} missing required code, message, or domain")

        super().__init__(self.message)

        self.severity = severity or DOMAIN_DEFAULTS.get(self.domain, Severity.ERROR)
        self.metadata = metadata or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(code={self.code!r}, "
            f"domain={self.domain.value}, severity={self.severity.value})"
        )


# ============================================================================
# CONFIG Faults
# ============================================================================

class MissingConfigurationError(Fault):
    """No (usable) entity configuration exists for a requested type."""

    code = "ENTITY_CONFIG_MISSING"
    domain = FaultDomain.CONFIG

    def __init__(self, type_id: Any, reason: str = "no entity configuration is defined"):
        super().__init__(
            message=f"Entity type '{type_id}': {reason}",
            metadata={"type": str(type_id), "reason": reason},
        )


class UnknownValueSpecKind(Fault):
    """A ``__type`` tag in a configuration is not recognised."""

    code = "VALUE_SPEC_UNKNOWN"
    domain = FaultDomain.CONFIG

    def __init__(self, kind: Any, location: str = ""):
        where = f" of {location}" if location else ""
        super().__init__(
            message=f"type <{kind}>{where} is unknown",
            metadata={"kind": kind, "location": location},
        )


# ============================================================================
# REFLECTION Faults
# ============================================================================

class NotFoundError(Fault):
    """A method or field does not exist on the target's runtime type."""

    code = "MEMBER_NOT_FOUND"
    domain = FaultDomain.REFLECTION

    def __init__(self, target: Any, name: str, member: str = "member"):
        type_name = type(target).__name__
        super().__init__(
            message=f"{type_name} has no {member} '{name}'",
            metadata={"type": type_name, "name": name, "member": member},
        )


class InvalidKindError(Fault):
    """An unsupported accessor kind (or simple type) was requested."""

    code = "ACCESSOR_KIND_INVALID"
    domain = FaultDomain.REFLECTION

    def __init__(self, kind: Any, allowed: tuple[str, ...] = ()):
        hint = f" (expected one of: {', '.join(allowed)})" if allowed else ""
        super().__init__(
            message=f"Invalid method key: {kind!r}{hint}",
            metadata={"kind": kind, "allowed": list(allowed)},
        )


class PropertyAssignmentError(Fault):
    """A resolved value could not be assigned onto a fixture."""

    code = "PROPERTY_ASSIGNMENT_FAILED"
    domain = FaultDomain.REFLECTION

    def __init__(self, type_name: str, property_name: str, value: Any, reason: str = ""):
        suffix = f": {reason}" if reason else ""
        super().__init__(
            message=f"{type_name}.{property_name} could not be set to {value!r}{suffix}",
            metadata={"type": type_name, "property": property_name, "reason": reason},
        )


class TypeResolutionError(Fault):
    """A type identifier cannot be turned into a class."""

    code = "TYPE_UNRESOLVABLE"
    domain = FaultDomain.REFLECTION

    def __init__(self, path: str, reason: str):
        super().__init__(
            message=f"Cannot resolve class '{path}': {reason}",
            metadata={"path": path, "reason": reason},
        )


# ============================================================================
# PERSISTENCE Faults
# ============================================================================

class UnmanagedEntityError(Fault):
    """Refresh/flush requested on a fixture the factory never persisted."""

    code = "ENTITY_UNMANAGED"
    domain = FaultDomain.PERSISTENCE

    def __init__(self, entity: Any, reason: str = "is not handled by the entity factory"):
        type_name = type(entity).__name__
        super().__init__(
            message=f"The entity of type {type_name} {reason}",
            metadata={"type": type_name},
        )


class UnknownRecordError(Fault):
    """The persistence layer was asked about a record it never saw."""

    code = "RECORD_UNKNOWN"
    domain = FaultDomain.PERSISTENCE

    def __init__(self, record: Any, operation: str):
        type_name = type(record).__name__
        super().__init__(
            message=f"Cannot {operation} record of type {type_name}: it was never added",
            metadata={"type": type_name, "operation": operation},
        )


# ============================================================================
# SECURITY Faults
# ============================================================================

class InvalidTokenError(Fault):
    """A signed token failed verification or could not be decoded."""

    code = "TOKEN_INVALID"
    domain = FaultDomain.SECURITY

    def __init__(self, reason: str):
        super().__init__(message=f"Invalid token: {reason}", metadata={"reason": reason})


# ============================================================================
# HTTP Faults
# ============================================================================

class UnsupportedMethodError(Fault):
    """A simulated request used an HTTP method the helper cannot issue."""

    code = "HTTP_METHOD_UNSUPPORTED"
    domain = FaultDomain.HTTP

    def __init__(self, method: str):
        super().__init__(
            message=f"method {method} is not supported",
            metadata={"method": method},
        )


__all__ = [
    "Severity",
    "FaultDomain",
    "Fault",
    "MissingConfigurationError",
    "UnknownValueSpecKind",
    "NotFoundError",
    "InvalidKindError",
    "PropertyAssignmentError",
    "TypeResolutionError",
    "UnmanagedEntityError",
    "UnknownRecordError",
    "InvalidTokenError",
    "UnsupportedMethodError",
]
