"""Read-only queries over imported story content."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from storyloom.config import get_logger
from storyloom.importer.names import normalize_name
from storyloom.store.base import RecordStore, Row

logger = get_logger(__name__)

# Tables summarized per story, keyed by the label they are reported under
SUMMARY_TABLES = {
    "characters": "characters",
    "locations": "locations",
    "factions": "factions",
    "objects": "objects",
    "events": "events",
    "relationships": "character_relationships",
    "plotlines": "plotlines",
    "scenes": "scenes",
    "story_questions": "story_questions",
}


def _order(value: Any) -> float:
    return value if isinstance(value, int | float) else float("inf")


class NarrativeQueries:
    """Answers questions about characters, events and their ordering."""

    def __init__(self, store: RecordStore) -> None:
        """Initialize the queries.

        Args:
            store: Record store to read from
        """
        self.store = store

    def _character_ids(self, story_id: str, name: str) -> list[str]:
        key = normalize_name(name)
        if key is None:
            return []
        return [
            row["id"]
            for row in self.store.select("characters", {"story_id": story_id})
            if normalize_name(row.get("name")) == key
        ]

    def _events_by_id(self, story_id: str) -> dict[str, Row]:
        return {
            row["id"]: row
            for row in self.store.select("events", {"story_id": story_id})
        }

    def character_journey(self, story_id: str, character_name: str) -> list[Row]:
        """Events a character takes part in, in the character's own order.

        Ordered by ``character_sequence_number``, then by the event's
        ``sequence_number``. An unknown character has an empty journey.
        """
        character_ids = self._character_ids(story_id, character_name)
        if not character_ids:
            logger.debug("No such character", story_id=story_id, name=character_name)
            return []

        events = self._events_by_id(story_id)
        journey = []
        for character_id in character_ids:
            for link in self.store.select(
                "character_events", {"character_id": character_id}
            ):
                event = events.get(link["event_id"])
                if event is None:
                    continue
                journey.append(
                    {
                        "event_id": event["id"],
                        "title": event.get("title"),
                        "sequence_number": event.get("sequence_number"),
                        "character_sequence_number": link.get(
                            "character_sequence_number"
                        ),
                        "importance": link.get("importance"),
                        "experience_type": link.get("experience_type"),
                        "notes": link.get("notes"),
                    }
                )

        journey.sort(
            key=lambda entry: (
                _order(entry["character_sequence_number"]),
                _order(entry["sequence_number"]),
            )
        )
        return journey

    def shared_events(self, story_id: str, character_names: Iterable[str]) -> list[Row]:
        """Events every one of the named characters takes part in."""
        names = list(character_names)
        if not names:
            return []

        events = self._events_by_id(story_id)
        shared: set[str] | None = None
        for name in names:
            event_ids = {
                link["event_id"]
                for character_id in self._character_ids(story_id, name)
                for link in self.store.select(
                    "character_events", {"character_id": character_id}
                )
                if link["event_id"] in events
            }
            shared = event_ids if shared is None else shared & event_ids
            if not shared:
                return []

        return sorted(
            (events[event_id] for event_id in shared or ()),
            key=lambda event: _order(event.get("sequence_number")),
        )

    def dependency_cycles(self, story_id: str) -> list[list[str]]:
        """Report cycles in a story's event dependency graph.

        Cycles are stored as imported and never rejected; this only makes
        them visible. Each cycle is a list of event titles starting at its
        earliest event id, without repeating the first event at the end.
        """
        events = self._events_by_id(story_id)
        graph: dict[str, list[str]] = {event_id: [] for event_id in events}
        for event_id in events:
            for edge in self.store.select(
                "event_dependencies", {"predecessor_event_id": event_id}
            ):
                if edge["successor_event_id"] in events:
                    graph[event_id].append(edge["successor_event_id"])

        found: dict[tuple[str, ...], list[str]] = {}
        visited: set[str] = set()

        def visit(node: str, path: list[str], on_path: set[str]) -> None:
            visited.add(node)
            path.append(node)
            on_path.add(node)
            for successor in graph[node]:
                if successor in on_path:
                    cycle = path[path.index(successor) :]
                    start = cycle.index(min(cycle))
                    canonical = tuple(cycle[start:] + cycle[:start])
                    found.setdefault(
                        canonical, [events[i].get("title") for i in canonical]
                    )
                elif successor not in visited:
                    visit(successor, path, on_path)
            path.pop()
            on_path.discard(node)

        for event_id in graph:
            if event_id not in visited:
                visit(event_id, [], set())

        if found:
            logger.info(
                "Event dependency cycles found", story_id=story_id, cycles=len(found)
            )
        return list(found.values())

    def story_summary(self, story_id: str) -> dict[str, Any]:
        """The story row and the number of rows per entity table."""
        stories = self.store.select("stories", {"id": story_id})
        return {
            "story": stories[0] if stories else None,
            "counts": {
                label: len(self.store.select(table, {"story_id": story_id}))
                for label, table in SUMMARY_TABLES.items()
            },
        }
