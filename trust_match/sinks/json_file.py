"""JSON file sink for exporting records and audit events."""

import json
import threading
from pathlib import Path
from typing import Any

from trust_match.exceptions import SinkError
from trust_match.sinks.serialization import to_dict


class JsonFileSink:
    """Output batches to ``<entity>.json`` and events to ``<topic>.jsonl``."""

    def __init__(self, output_dir: str | Path, pretty: bool = False) -> None:
        """Initialize JSON file sink.

        Parameters
        ----------
        output_dir : str | Path
            Directory to write JSON files.
        pretty : bool
            Pretty-print JSON batch output.
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.pretty = pretty
        self._counts: dict[str, int] = {}
        self._lock = threading.Lock()

    def send(self, topic: str, record: Any, key: str | None = None) -> None:
        """Append one event to the topic's JSON Lines file."""
        # Use topic name as filename (replace dots with underscores)
        file_path = self.output_dir / (topic.replace(".", "_") + ".jsonl")
        line = json.dumps(to_dict(record), ensure_ascii=False, default=str)

        with self._lock:
            try:
                with open(file_path, "a", encoding="utf-8") as f:
                    f.write(line + "\n")
            except OSError as e:
                raise SinkError(f"Failed to write event to {file_path}: {e}") from e
            self._counts[topic] = self._counts.get(topic, 0) + 1

    def write_batch(self, entity_type: str, records: list[Any]) -> None:
        """Write a batch of records to a JSON file."""
        file_path = self.output_dir / f"{entity_type}.json"

        data = [to_dict(record) for record in records]

        with open(file_path, "w", encoding="utf-8") as f:
            if self.pretty:
                json.dump(data, f, indent=2, ensure_ascii=False, default=str)
            else:
                json.dump(data, f, ensure_ascii=False, default=str)

        self._counts[entity_type] = len(records)

    def close(self) -> None:
        """Print summary."""
        print(f"JSON files written to: {self.output_dir}")
        for entity_type, count in self._counts.items():
            print(f"  {entity_type}: {count} records")
