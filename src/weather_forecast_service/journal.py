"""Append-only JSONL journal of forecast fetches."""

from __future__ import annotations

import json
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

from .codec import encode_response
from .exceptions import JournalError
from .redaction import sanitize_for_logging, sanitize_text
from .weather.models import WeatherFetchResult


def _json_default(value: Any) -> Any:
    """Fallback serializer for non-JSON native values."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC).isoformat()
        return value.astimezone(UTC).isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Path):
        return str(value)
    # Objects with a custom __str__ (e.g. pydantic AnyUrl) are allowed; unknown
    # types are rejected so schema drift surfaces early.
    if hasattr(value, "__str__") and type(value).__str__ is not object.__str__:
        return sanitize_text(str(value))
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class ForecastJournal:
    """Writes session events to a daily JSONL file and raw provider payloads to disk."""

    def __init__(
        self,
        journal_dir: Path,
        raw_payload_dir: Path,
        session_id: str,
        journal_raw_payloads: bool = True,
    ) -> None:
        self.journal_dir = journal_dir
        self.raw_payload_dir = raw_payload_dir
        self.session_id = session_id
        self.journal_raw_payloads = journal_raw_payloads
        try:
            self.journal_dir.mkdir(parents=True, exist_ok=True)
            self.raw_payload_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise JournalError(f"Failed creating journal directories: {exc}") from exc
        self.events_path = self.journal_dir / f"{datetime.now(UTC):%Y%m%d}.jsonl"

    def write_event(self, event_type: str, payload: dict[str, Any], **metadata: Any) -> None:
        """Append one event record; keyword arguments become its metadata."""
        record: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat(),
            "event_type": event_type,
            "session_id": self.session_id,
            "payload": sanitize_for_logging(payload),
            "metadata": sanitize_for_logging(metadata),
        }
        try:
            with self.events_path.open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(record, default=_json_default, ensure_ascii=False))
                fh.write("\n")
        except (OSError, TypeError, ValueError) as exc:
            raise JournalError(f"Failed writing event journal: {exc}") from exc

    def write_raw_snapshot(self, name: str, payload: Any) -> Path:
        """Write a raw provider payload to its own file and return the path."""
        timestamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
        safe_name = "".join(ch if ch.isalnum() or ch in {"-", "_"} else "_" for ch in name)
        output_path = self.raw_payload_dir / f"{timestamp}_{self.session_id}_{safe_name}.json"
        try:
            with output_path.open("w", encoding="utf-8") as fh:
                json.dump(
                    sanitize_for_logging(payload),
                    fh,
                    ensure_ascii=False,
                    indent=2,
                    default=_json_default,
                )
                fh.write("\n")
        except (OSError, TypeError, ValueError) as exc:
            raise JournalError(f"Failed writing raw payload snapshot: {exc}") from exc
        return output_path

    def record_fetch(self, result: WeatherFetchResult) -> dict[str, str | None]:
        """Journal a completed fetch: raw payloads (if enabled) then the encoded response.

        Returns the raw snapshot paths keyed ``geocoding`` and ``forecast``.
        """
        paths: dict[str, str | None] = {"geocoding": None, "forecast": None}
        if self.journal_raw_payloads:
            if result.raw_geocoding_payload is not None:
                paths["geocoding"] = str(
                    self.write_raw_snapshot("open_meteo_geocoding", result.raw_geocoding_payload)
                )
            paths["forecast"] = str(
                self.write_raw_snapshot("open_meteo_forecast", result.raw_forecast_payload)
            )
            self.write_event("forecast_raw_snapshot", payload=paths)

        self.write_event(
            "forecast_response",
            payload=encode_response(result.response),
            source_url=result.source_url,
            latitude=result.latitude,
            longitude=result.longitude,
            retrieval_timestamp=result.retrieval_timestamp,
        )
        return paths
