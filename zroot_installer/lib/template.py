from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, FrozenSet, Iterable, Mapping, Optional

from ..errors import UnboundPlaceholder

logger = logging.getLogger(__name__)

PLACEHOLDER_RE = re.compile(r"@@([A-Z][A-Z0-9_]*)@@")


@dataclass(frozen=True)
class ScriptTemplate:
    text: str
    name: str = "<string>"
    required: FrozenSet[str] = frozenset()

    @classmethod
    def load(cls, path: Path, required: Iterable[str] = ()) -> "ScriptTemplate":
        return cls(text=path.read_text(encoding="utf-8"), name=path.name, required=frozenset(required))

    def placeholders(self) -> FrozenSet[str]:
        return frozenset(PLACEHOLDER_RE.findall(self.text))


@dataclass(frozen=True)
class RenderedScript:
    """A fully substituted script. Holds secrets; never log it."""

    text: str = field(repr=False)
    bindings: Mapping[str, str] = field(repr=False)
    name: str = "<string>"

    def write(self, path: str) -> Path:
        """Write the script readable and executable by its owner only."""

        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(str(p), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o700)
        try:
            os.fchmod(fd, 0o700)
            os.write(fd, self.text.encode("utf-8"))
        finally:
            os.close(fd)
        return p


def render(
    template: ScriptTemplate,
    bindings: Mapping[str, str],
    *,
    quote: Optional[Callable[[str], str]] = None,
) -> RenderedScript:
    """Substitute every @@NAME@@ token in one pass.

    All tokens in the text plus the template's declared required names must
    be bound, otherwise UnboundPlaceholder. Replacement values are never
    rescanned, so a value that itself contains a token stays literal.
    quote, when given, is applied to each value (e.g. shlex.quote).
    """

    needed = template.placeholders() | template.required
    missing = [name for name in needed if name not in bindings]
    if missing:
        raise UnboundPlaceholder(missing)

    values = {k: str(v) for k, v in bindings.items()}
    fmt = quote or (lambda v: v)
    text = PLACEHOLDER_RE.sub(lambda m: fmt(values[m.group(1)]), template.text)

    logger.info("Rendered %s (%d placeholders bound)", template.name, len(needed))
    return RenderedScript(text=text, bindings=values, name=template.name)
