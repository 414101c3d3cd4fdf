"""Capability defaulting and validation for security context constraints."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from .validation import FieldError

# An allowed capability entry that permits every capability.
ALLOW_ALL_CAPABILITIES = "*"


def _child(fld_path: str | None, *names: str) -> str:
    parts = [part for part in (fld_path, *names) if part]
    return ".".join(parts)


@dataclass(frozen=True)
class Capabilities:
    """Capabilities a container adds and drops."""

    add: tuple[str, ...] = ()
    drop: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "add", tuple(self.add))
        object.__setattr__(self, "drop", tuple(self.drop))


@dataclass(frozen=True)
class DefaultCapabilities:
    """Defaults and validates capabilities from configured adds, drops and allowed sets."""

    default_add_capabilities: tuple[str, ...] = field(default=())
    required_drop_capabilities: tuple[str, ...] = field(default=())
    allowed_capabilities: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        for name in (
            "default_add_capabilities",
            "required_drop_capabilities",
            "allowed_capabilities",
        ):
            value: Iterable[str] | None = getattr(self, name)
            object.__setattr__(self, name, tuple(value or ()))

    def generate(self, container_capabilities: Capabilities | None) -> Capabilities | None:
        """Return the capabilities a container should run with.

        The result adds every default capability the container does not drop,
        plus what the container adds, and drops every required capability plus
        what the container drops. The container's own capabilities are returned
        unchanged when nothing needs to be added.
        """
        container_add: set[str] = set()
        container_drop: set[str] = set()
        if container_capabilities is not None:
            container_add = set(container_capabilities.add)
            container_drop = set(container_capabilities.drop)

        default_add = set(self.default_add_capabilities) - container_drop
        combined_add = default_add | container_add
        combined_drop = set(self.required_drop_capabilities) | container_drop

        if len(combined_add) == len(container_add) and len(combined_drop) == len(container_drop):
            return container_capabilities

        return Capabilities(add=sorted(combined_add), drop=sorted(combined_drop))

    def validate(
        self, fld_path: str | None, capabilities: Capabilities | None
    ) -> list[FieldError]:
        """Return the problems with `capabilities` under this strategy (empty if valid)."""
        errors: list[FieldError] = []

        if capabilities is None:
            if not self.default_add_capabilities and not self.required_drop_capabilities:
                return errors
            errors.append(
                FieldError(
                    _child(fld_path, "capabilities"),
                    None,
                    "required capabilities are not set on the securityContext",
                )
            )
            return errors

        allowed_add = set(self.allowed_capabilities)
        if ALLOW_ALL_CAPABILITIES in allowed_add:
            return errors

        default_add = set(self.default_add_capabilities)
        errors.extend(
            FieldError(
                _child(fld_path, "capabilities", "add"), cap, "capability may not be added"
            )
            for cap in capabilities.add
            if cap not in default_add and cap not in allowed_add
        )

        container_drops = set(capabilities.drop)
        errors.extend(
            FieldError(
                _child(fld_path, "capabilities", "drop"),
                list(capabilities.drop),
                f"{required} is required to be dropped but was not found",
            )
            for required in self.required_drop_capabilities
            if required not in container_drops
        )
        return errors