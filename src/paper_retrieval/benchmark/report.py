"""Writing benchmark reports to disk."""

import dataclasses
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)


def timestamped_filename(base_name: str, extension: str = "json") -> str:
    """``retrieval`` -> ``retrieval-2024-05-01T12-30-00.json`` (UTC)."""
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S")
    return f"{base_name}-{stamp}.{extension}"


def _to_jsonable(data: Any) -> Any:
    if dataclasses.is_dataclass(data) and not isinstance(data, type):
        return dataclasses.asdict(data)
    return data


def save_json_report(
    filename: str, data: Any, output_dir: Optional[Union[str, Path]] = None
) -> Path:
    """Write *data* (dict or dataclass) as indented JSON and return the path."""
    directory = Path(output_dir) if output_dir else Path.cwd()
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / filename

    with path.open("w", encoding="utf-8") as f:
        json.dump(_to_jsonable(data), f, indent=2, default=str)

    logger.info(f"Report saved to {path}")
    return path
