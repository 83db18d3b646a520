from enum import Enum as PyEnum


def enum_values(enum_cls: type[PyEnum]) -> list[str]:
    """Persist enum values (``"no-show"``) rather than member names (``"no_show"``)."""

    return [member.value for member in enum_cls]
