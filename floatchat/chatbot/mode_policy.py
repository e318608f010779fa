"""
Mode Policy
===========

Decides whether a payload kind may be shown in the active mode, and words the
redirect when it may not. A pure function of (mode, kind).
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .models import Mode, PayloadKind, Response


@dataclass(frozen=True)
class PolicyDecision:
    """Outcome of checking a payload kind against a mode."""
    allowed: bool
    required_mode: Optional[Mode] = None
    redirect_text: Optional[str] = None


# Mode that can display each rich kind
REQUIRED_MODE: Dict[PayloadKind, Mode] = {
    PayloadKind.SERIES: Mode.VISUAL,
    PayloadKind.GEO: Mode.DEEP,
}

PERMITTED_KINDS: Dict[Mode, Tuple[PayloadKind, ...]] = {
    Mode.UNSET: (PayloadKind.TEXT, PayloadKind.SERIES, PayloadKind.GEO),
    Mode.STANDARD: (PayloadKind.TEXT,),
    Mode.VISUAL: (PayloadKind.TEXT, PayloadKind.SERIES),
    Mode.DEEP: (PayloadKind.TEXT, PayloadKind.GEO),
}

REDIRECT_TEMPLATES: Dict[Tuple[Mode, PayloadKind], str] = {
    (Mode.STANDARD, PayloadKind.SERIES): (
        "I found data, but **Standard Query** only allows text. To view the "
        "**graph/chart**, please switch to the **Visual Discovery** mode."
    ),
    (Mode.STANDARD, PayloadKind.GEO): (
        "I found data, but **Standard Query** only allows text. To view the "
        "**map**, please switch to the **Deep Search** mode."
    ),
    (Mode.VISUAL, PayloadKind.GEO): (
        "That's a geospatial question. My **Visual Discovery** mode is optimized "
        "for **charts/graphs**. Please switch to **Deep Search** to view the map."
    ),
    (Mode.DEEP, PayloadKind.SERIES): (
        "I can plot that trend, but **Deep Search** is focused on **geospatial "
        "maps**. Please switch to **Visual Discovery** for the graph."
    ),
}


class ModePolicy:
    """Gates payload kinds by the active mode."""

    def decide(self, mode: Mode, kind: PayloadKind) -> PolicyDecision:
        if kind in PERMITTED_KINDS[mode]:
            return PolicyDecision(allowed=True)

        return PolicyDecision(
            allowed=False,
            required_mode=REQUIRED_MODE[kind],
            redirect_text=REDIRECT_TEMPLATES[(mode, kind)],
        )

    def apply(self, mode: Mode, response: Response) -> Response:
        """Return the response unchanged, or a text redirect if the mode forbids it."""
        decision = self.decide(mode, response.kind)
        if decision.allowed:
            return response
        return Response.text_only(decision.redirect_text, source="policy")
