from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence, Union

from abbr_convert.core.tokens import Repeater


TextSource = Union[str, Sequence[str], None]


@dataclass
class ConvertState:
    """Per-call conversion state, threaded through every expansion step.

    - repeaters: snapshots of the repeaters currently being expanded, innermost last
    - inserted: set once text was placed for an implicit repeater; later implicit
                repeaters no longer receive auto-inserted text
    """

    text: TextSource = None
    variables: Optional[Mapping[str, Optional[str]]] = None
    repeaters: list[Repeater] = field(default_factory=list)
    inserted: bool = False

    def text_items(self) -> Optional[list[str]]:
        """Return text as a list when it was given as a sequence, else None."""
        if self.text is None or isinstance(self.text, str):
            return None
        return list(self.text)

    def get_text(self, pos: Optional[int] = None) -> str:
        items = self.text_items()
        if items is not None:
            if pos is None:
                value: Optional[str] = "\n".join(x if x is not None else "" for x in items)
            else:
                value = items[pos] if 0 <= pos < len(items) else None
        else:
            value = self.text  # type: ignore[assignment]

        return value if value is not None else ""

    def get_variable(self, name: str) -> str:
        value = self.variables.get(name) if self.variables else None
        return value if value is not None else name
