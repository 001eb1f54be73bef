from typing import Any


class AllowlistError(Exception):
    """Base class for allowlist generation failures."""


class InvalidEntryError(AllowlistError, ValueError):
    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid entry field '{field}' ({value!r}): {reason}")


class EmptyAllowlistError(AllowlistError, ValueError):
    def __init__(self):
        super().__init__("Empty allowlist: at least one entry is required")


class LeafNotFoundError(AllowlistError, KeyError):
    def __init__(self, leaf: bytes):
        self.leaf = leaf
        super().__init__(f"Leaf not found: 0x{leaf.hex()}")

    def __str__(self) -> str:
        # KeyError wraps the message in quotes otherwise
        return self.args[0]


class BundleError(AllowlistError, ValueError):
    """Malformed allowlist input or proof bundle."""
