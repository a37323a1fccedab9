from __future__ import annotations

"""JSON-like value types for event payloads and state files.

Event payloads arrive from GitHub Actions as arbitrary JSON; these aliases
keep that boundary explicit instead of spreading `Any` through the code.
"""

from typing import TypeAlias


JSONScalar: TypeAlias = str | int | float | bool | None
JSONValue: TypeAlias = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]
JSONObject: TypeAlias = dict[str, JSONValue]
