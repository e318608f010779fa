"""
Ocean Knowledge Repository
==========================

Static, keyword-triggered topics with their payloads. Built once at import and
never mutated; lookup order is priority order.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Optional, Tuple

from .models import (
    GeoPayload, GeoPoint, Mode, Payload, PayloadKind, Response, SeriesPayload
)


@dataclass(frozen=True)
class KnowledgeEntry:
    """A canned topic with its trigger keys and payload."""
    topic: str
    keys: Tuple[str, ...]
    kind: PayloadKind
    text: str
    label: str
    data: Optional[Payload] = None

    def __post_init__(self):
        object.__setattr__(self, "keys", tuple(self.keys))
        for key in self.keys:
            if not key or key != key.lower():
                raise ValueError(f"Trigger key for '{self.topic}' must be non-empty lowercase: {key!r}")
        # Validates kind/data agreement
        self.to_response()

    def to_response(self, source: str = "knowledge") -> Response:
        return Response(kind=self.kind, text=self.text, data=self.data, source=source)


class KnowledgeRepository:
    """Fixed, ordered collection of knowledge entries plus a default entry."""

    def __init__(self, entries: Iterable[KnowledgeEntry], default: KnowledgeEntry):
        if default is None:
            raise ValueError("Knowledge repository needs a default entry")

        self._entries = tuple(entries)
        self._default = default

        topics = [entry.topic for entry in self._entries]
        if len(topics) != len(set(topics)):
            raise ValueError("Knowledge entries must have unique topics")
        for entry in self._entries:
            if not entry.keys:
                raise ValueError(f"Knowledge entry '{entry.topic}' has no trigger keys")

    @property
    def default(self) -> KnowledgeEntry:
        return self._default

    @property
    def entries(self) -> Tuple[KnowledgeEntry, ...]:
        return self._entries

    def lookup(self) -> Iterator[KnowledgeEntry]:
        """Iterate entries in priority order."""
        return iter(self._entries)

    def __iter__(self) -> Iterator[KnowledgeEntry]:
        return self.lookup()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, topic: str) -> Optional[KnowledgeEntry]:
        for entry in self._entries:
            if entry.topic == topic:
                return entry
        return None


# --- Standard Query topics (text) ---

_TEXT_ENTRIES = (
    KnowledgeEntry(
        topic="average_depth",
        keys=("average depth",),
        kind=PayloadKind.TEXT,
        label="Average Ocean Depth",
        text=(
            "The **average depth** is about **3,688 meters**. The deepest point is "
            "the Challenger Deep (Mariana Trench) at nearly 11 km."
        ),
    ),
    KnowledgeEntry(
        topic="thermohaline_circulation",
        keys=("thermohaline circulation",),
        kind=PayloadKind.TEXT,
        label="Thermohaline Circulation",
        text=(
            "**Thermohaline circulation** is the global ocean 'conveyor belt' driven by "
            "differences in **water density**, controlled by **temperature** (thermo) "
            "and **salinity** (haline)."
        ),
    ),
    KnowledgeEntry(
        topic="ocean_glider",
        keys=("ocean glider",),
        kind=PayloadKind.TEXT,
        label="Ocean Gliders",
        text=(
            "An **ocean glider** is an Autonomous Underwater Vehicle (AUV) that moves by "
            "changing its **buoyancy**. It collects long-duration data with very low "
            "power consumption."
        ),
    ),
)

# --- Visual Discovery topics (series) ---

_SERIES_ENTRIES = (
    KnowledgeEntry(
        topic="temperature_trends",
        keys=("temperature trends", "temperature profile"),
        kind=PayloadKind.SERIES,
        label="Temperature Profile (vs. Depth)",
        text=(
            "Analyzing the **temperature profile** near the equator shows strong "
            "**thermal stratification**. Note the rapid temperature drop at the "
            "**thermocline** (50-100m)."
        ),
        data=SeriesPayload(
            title="Temperature Profile (vs. Depth)",
            x_key="depth",
            records=(
                {"depth": 0, "temp": 28.5, "salinity": 35.1},
                {"depth": 25, "temp": 28.2, "salinity": 35.1},
                {"depth": 50, "temp": 26.5, "salinity": 35.2},
                {"depth": 75, "temp": 20.1, "salinity": 35.3},
                {"depth": 100, "temp": 15.8, "salinity": 35.4},
                {"depth": 200, "temp": 10.5, "salinity": 35.5},
                {"depth": 500, "temp": 5.2, "salinity": 35.7},
            ),
        ),
    ),
    KnowledgeEntry(
        topic="oxygen_levels",
        keys=("oxygen levels", "oxygen minimum"),
        kind=PayloadKind.SERIES,
        label="Oxygen Comparison (mL/L vs. Depth)",
        text=(
            "Comparing **oxygen profiles** reveals distinct **Oxygen Minimum Zones "
            "(OMZs)** at mid-depths (300-500m), especially noticeable in Profile B."
        ),
        data=SeriesPayload(
            title="Oxygen Comparison (mL/L vs. Depth)",
            x_key="depth",
            records=(
                {"depth": 0, "profileA": 5.5, "profileB": 5.3, "profileC": 5.6},
                {"depth": 100, "profileA": 3.5, "profileB": 2.1, "profileC": 4.0},
                {"depth": 300, "profileA": 1.8, "profileB": 0.5, "profileC": 2.5},
                {"depth": 500, "profileA": 2.1, "profileB": 0.8, "profileC": 2.8},
                {"depth": 1000, "profileA": 3.2, "profileB": 1.5, "profileC": 3.5},
            ),
        ),
    ),
    KnowledgeEntry(
        topic="temperature_anomalies",
        keys=("temperature anomalies",),
        kind=PayloadKind.SERIES,
        label="Historical SST Anomalies (°C)",
        text=(
            "The historical **Sea Surface Temperature (SST) Anomaly** trend shows "
            "increasing positive anomalies in recent years, peaking significantly in 2024."
        ),
        data=SeriesPayload(
            title="Historical SST Anomalies (°C)",
            x_key="year",
            records=(
                {"year": 2015, "anomaly": 0.6},
                {"year": 2016, "anomaly": 0.8},
                {"year": 2017, "anomaly": 0.4},
                {"year": 2018, "anomaly": 0.1},
                {"year": 2019, "anomaly": 0.3},
                {"year": 2020, "anomaly": 0.5},
                {"year": 2021, "anomaly": 0.2},
                {"year": 2022, "anomaly": 0.45},
                {"year": 2023, "anomaly": 0.7},
                {"year": 2024, "anomaly": 0.9},
            ),
        ),
    ),
)

# --- Deep Search topics (geo) ---

_GEO_ENTRIES = (
    KnowledgeEntry(
        topic="argo_floats",
        keys=("argo floats",),
        kind=PayloadKind.GEO,
        label="Arabian Sea ARGO Deployments",
        text=(
            "Here are the positions of **ARGO floats** in the Arabian Sea, showing "
            "real-time distribution of profiling data collection assets."
        ),
        data=GeoPayload(
            title="Arabian Sea ARGO Deployments",
            points=(
                GeoPoint(lat=15, lon=65, status="Active", name="Float 54001"),
                GeoPoint(lat=12, lon=68, status="Recent", name="Float 54002"),
                GeoPoint(lat=18, lon=62, status="Active", name="Float 54003"),
                GeoPoint(lat=20, lon=66, status="Pending", name="Float 54004"),
                GeoPoint(lat=8, lon=70, status="Active", name="Float 54005"),
            ),
        ),
    ),
    KnowledgeEntry(
        topic="deep_sea_trenches",
        keys=("deep-sea trenches", "deep sea trenches"),
        kind=PayloadKind.GEO,
        label="Major Deep-Sea Trenches (Pacific Region)",
        text=(
            "Mapping major **deep-sea trenches** highlights tectonic subduction zones, "
            "with the **Challenger Deep** (Mariana Trench) marked prominently."
        ),
        data=GeoPayload(
            title="Major Deep-Sea Trenches (Pacific Region)",
            points=(
                GeoPoint(lat=11, lon=142, status="Challenger Deep", name="Mariana Trench",
                         attributes={"depth": 10935}),
                GeoPoint(lat=-20, lon=-68, status="Active Zone", name="Peru-Chile Trench",
                         attributes={"depth": 8065}),
                GeoPoint(lat=40, lon=143, status="Seismic Area", name="Japan Trench",
                         attributes={"depth": 8412}),
            ),
        ),
    ),
    KnowledgeEntry(
        topic="hurricane_paths",
        keys=("hurricane paths", "hurricane tracks"),
        kind=PayloadKind.GEO,
        label="Recent Atlantic Storm Activity",
        text=(
            "This map shows the **last reported positions** of recent Atlantic "
            "hurricanes, illustrating storm tracking and active zones."
        ),
        data=GeoPayload(
            title="Recent Atlantic Storm Activity",
            points=(
                GeoPoint(lat=25, lon=-75, status="Category 3", name="Hurricane Alex"),
                GeoPoint(lat=30, lon=-60, status="Tropical Storm", name="Storm Betty"),
                GeoPoint(lat=18, lon=-85, status="Dissipated", name="Depression Charlie"),
            ),
        ),
    ),
)

DEFAULT_ENTRY = KnowledgeEntry(
    topic="default",
    keys=(),
    kind=PayloadKind.TEXT,
    label="Welcome",
    text=(
        "Welcome to **FloatChat**. Please choose a mode on the sidebar (click "
        "'Change Mode') to begin tailored data queries."
    ),
)

OCEAN_KNOWLEDGE = KnowledgeRepository(
    entries=_TEXT_ENTRIES + _SERIES_ENTRIES + _GEO_ENTRIES,
    default=DEFAULT_ENTRY,
)

MODE_EXAMPLE_QUERIES: Dict[Mode, Tuple[str, ...]] = {
    Mode.STANDARD: (
        "What is the average depth of the world's oceans?",
        "Explain the concept of thermohaline circulation.",
        "What is the function of an ocean glider?",
    ),
    Mode.VISUAL: (
        "Show me temperature trends near the equator.",
        "Compare oxygen levels in Indian Ocean profiles, July 2024.",
        "Plot the historical sea surface temperature anomalies.",
    ),
    Mode.DEEP: (
        "Where are the latest ARGO floats in the Arabian Sea?",
        "Map the locations of major deep-sea trenches.",
        "Show recent hurricane paths in the Atlantic.",
    ),
}
