"""Group strategies for security context constraints."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from .validation import FieldError


def _child(fld_path: str | None, *names: str) -> str:
    parts = [part for part in (fld_path, *names) if part]
    return ".".join(parts)


@dataclass(frozen=True)
class IDRange:
    """An inclusive range of ids."""

    min: int
    max: int

    def __contains__(self, value: object) -> bool:
        return isinstance(value, int) and self.min <= value <= self.max


class MustRunAs:
    """Requires groups to fall within the configured ranges."""

    def __init__(self, ranges: Sequence[IDRange], field: str) -> None:
        if not ranges:
            raise ValueError("ranges must be supplied for MustRunAs")
        self.ranges = tuple(ranges)
        self.field = field

    def generate(self, pod: object = None) -> list[int]:
        """Return the first id of the first range."""
        return [self.ranges[0].min]

    def generate_single(self, pod: object = None) -> int:
        """Return the first id of the first range; used for FSGroup."""
        return self.ranges[0].min

    def validate(
        self, fld_path: str | None, pod: object, groups: Sequence[int] | None
    ) -> list[FieldError]:
        """Return the problems with `groups` under this strategy (empty if valid)."""
        groups = list(groups or [])
        path = _child(fld_path, self.field)
        errors: list[FieldError] = []
        if not groups:
            errors.append(
                FieldError(path, groups, "unable to validate empty groups against required ranges")
            )
        errors.extend(
            FieldError(path, groups, f"{group} is not an allowed group")
            for group in groups
            if not self._is_group_valid(group)
        )
        return errors

    def _is_group_valid(self, group: int) -> bool:
        return any(group in rng for rng in self.ranges)


class RunAsAny:
    """Allows any groups and generates none."""

    _generated: tuple[int, ...] = ()

    def generate(self, pod: object = None) -> list[int]:
        """Return the generated groups; this strategy generates none."""
        return list(self._generated)

    def generate_single(self, pod: object = None) -> int | None:
        """Return the single generated group, or None when there is none."""
        return next(iter(self._generated), None)

    def validate(
        self, fld_path: str | None, pod: object, groups: Sequence[int] | None
    ) -> list[FieldError]:
        """Return the problems with `groups`; every group is allowed."""
        groups = list(groups or [])
        return [
            FieldError(fld_path or "", groups, f"{group} is not an allowed group")
            for group in groups
            if not self._allows(group)
        ]

    @staticmethod
    def _allows(group: int) -> bool:
        return True