"""
Legacy Batch File Parser.

Turns a dropped CSV or JSON file into CustomizationEventMessages.

CSV (read with pandas):
    required column: floor_plan_id
    optional columns: event_type (default created), customization_id,
        component_type, position_x, position_y, properties (JSON object
        text), event_id
    prop_<name> columns are folded into properties[<name>]
    empty cells are missing values

JSON shapes:
    [ {...}, ... ]
    {"events": [ ... ]}
    {"customizations": [ ... ]}     legacy export

Bad rows are collected as {row, error} and do not stop the file. A file
that cannot be read at all raises ValidationError.

Rows without an event_id get a deterministic one derived from the file
name and row number, so re-importing the same file after a crash yields
the same ids and the queue drops the duplicates.

Exports:
    BatchFileParser
    ParseResult
"""

import io
import json
import uuid
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional

import pandas as pd
import pydantic

from core.models import DataType, EventSource, EventType
from core.schema.queue import CustomizationEventMessage
from exceptions import ValidationError
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "BatchFileParser")

REQUIRED_COLUMNS = ("floor_plan_id",)
EVENT_FIELDS = (
    "event_id",
    "event_type",
    "floor_plan_id",
    "customization_id",
    "component_type",
    "position_x",
    "position_y",
    "properties",
)
PROPERTY_PREFIX = "prop_"
JSON_CONTAINER_KEYS = ("events", "customizations")


@dataclass
class ParseResult:
    """Events and row errors from one file."""

    source_file: str
    data_type: DataType
    total_rows: int = 0
    events: List[CustomizationEventMessage] = field(default_factory=list)
    row_errors: List[Dict[str, Any]] = field(default_factory=list)
    ignored_columns: List[str] = field(default_factory=list)

    @property
    def rejected_count(self) -> int:
        return len(self.row_errors)

    def error_summary(self, max_errors: int = 20) -> Optional[str]:
        """Short text for the audit record's error_details."""
        if not self.row_errors:
            return None
        lines = [f"row {e['row']}: {e['error']}" for e in self.row_errors[:max_errors]]
        if len(self.row_errors) > max_errors:
            lines.append(f"... {len(self.row_errors) - max_errors} more")
        return "\n".join(lines)


def _format_validation_error(error: pydantic.ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "event"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


def _coerce_property(value: Any) -> Any:
    """CSV cell text to a JSON scalar when it is one ("2.5" -> 2.5), else the text."""
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


class BatchFileParser:
    """
    Parser for legacy batch files.

    Usage:
        parser = BatchFileParser()
        result = parser.parse(content, "incoming/crm/batch.csv", submitted_by="file-drop-watcher")
    """

    @staticmethod
    def detect_data_type(source_file: str) -> DataType:
        """
        Raises:
            ValidationError: Extension is not .csv or .json
        """
        lower = source_file.lower()
        if lower.endswith(".csv"):
            return DataType.CSV
        if lower.endswith(".json"):
            return DataType.JSON
        raise ValidationError(f"Unsupported file type: {source_file}")

    def parse(
        self,
        content: bytes,
        source_file: str,
        submitted_by: str,
        data_type: Optional[DataType] = None
    ) -> ParseResult:
        """
        Parse a whole file.

        Raises:
            ValidationError: File is unreadable or structurally invalid
        """
        data_type = DataType(data_type) if data_type else self.detect_data_type(source_file)
        result = ParseResult(source_file=source_file, data_type=data_type)

        if data_type == DataType.CSV:
            rows = self._read_csv(content, result)
        else:
            rows = self._read_json(content)

        result.total_rows = len(rows)
        for row_number, row in enumerate(rows, start=1):
            try:
                event = self._build_event(row, row_number, source_file, submitted_by)
            except pydantic.ValidationError as e:
                result.row_errors.append({"row": row_number, "error": _format_validation_error(e)})
            except ValueError as e:
                result.row_errors.append({"row": row_number, "error": str(e)})
            else:
                result.events.append(event)

        logger.info(
            f"📄 Parsed {source_file}: {len(result.events)} events, "
            f"{result.rejected_count} rejected of {result.total_rows} rows"
        )
        return result

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    def _read_csv(self, content: bytes, result: ParseResult) -> List[Dict[str, Any]]:
        try:
            df = pd.read_csv(
                io.BytesIO(content),
                dtype=str,
                skipinitialspace=True,
                encoding="utf-8-sig"
            )
        except pd.errors.EmptyDataError as e:
            raise ValidationError(f"CSV file is empty: {result.source_file}") from e
        except (pd.errors.ParserError, UnicodeDecodeError) as e:
            raise ValidationError(f"CSV file could not be parsed: {e}") from e

        df.columns = [str(c).strip() for c in df.columns]
        missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise ValidationError(f"CSV file is missing required columns: {', '.join(missing)}")

        result.ignored_columns = [
            c for c in df.columns if c not in EVENT_FIELDS and not c.startswith(PROPERTY_PREFIX)
        ]
        if result.ignored_columns:
            logger.debug(f"Ignoring columns in {result.source_file}: {result.ignored_columns}")

        rows = []
        for record in df.to_dict(orient="records"):
            rows.append({k: v for k, v in record.items() if not pd.isna(v)})
        return rows

    def _read_json(self, content: bytes) -> List[Any]:
        try:
            data = json.loads(content.decode("utf-8-sig"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ValidationError(f"JSON file could not be parsed: {e}") from e

        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            for key in JSON_CONTAINER_KEYS:
                if isinstance(data.get(key), list):
                    return data[key]
        raise ValidationError(
            "JSON file must be a list of events or an object with an 'events' or 'customizations' list"
        )

    # ------------------------------------------------------------------
    # Row conversion
    # ------------------------------------------------------------------

    def _build_event(
        self,
        row: Any,
        row_number: int,
        source_file: str,
        submitted_by: str
    ) -> CustomizationEventMessage:
        """
        Raises:
            ValueError: Row is not an object or its properties are not an object
            pydantic.ValidationError: Row fails event validation
        """
        if not isinstance(row, dict):
            raise ValueError(f"expected an object, got {type(row).__name__}")

        data = {k: v for k, v in row.items() if k in EVENT_FIELDS and v is not None}

        properties = data.get("properties")
        if isinstance(properties, str):
            try:
                properties = json.loads(properties)
            except json.JSONDecodeError as e:
                raise ValueError(f"properties is not valid JSON: {e}") from e
        if properties is not None and not isinstance(properties, dict):
            raise ValueError("properties must be a JSON object")

        folded = {
            key[len(PROPERTY_PREFIX):]: _coerce_property(value)
            for key, value in row.items()
            if key.startswith(PROPERTY_PREFIX) and value is not None
        }
        if folded:
            properties = {**(properties or {}), **folded}
        if properties is not None:
            data["properties"] = properties

        if isinstance(data.get("event_type"), str):
            data["event_type"] = data["event_type"].strip().lower()
        data.setdefault("event_type", EventType.CREATED)
        data.setdefault("event_id", str(uuid.uuid5(uuid.NAMESPACE_URL, f"{source_file}#{row_number}")))
        data.update(
            source=EventSource.FILE_DROP,
            source_file=source_file,
            submitted_by=submitted_by,
        )
        return CustomizationEventMessage.model_validate(data)
