import csv
import io
import json
from typing import Any, Dict, List


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    return value


def records_to_csv(records: List[Dict[str, Any]]) -> str:
    """Render records as CSV with the first record's keys as header.

    Fields holding a comma, a double quote or a line break are quoted and
    inner quotes doubled, so any CSV reader gets the same strings back.
    """
    if not records:
        return ""

    buffer = io.StringIO()
    writer = csv.DictWriter(
        buffer,
        fieldnames=list(records[0].keys()),
        extrasaction="ignore",
        quoting=csv.QUOTE_MINIMAL,
        lineterminator="\n",
    )
    writer.writeheader()
    for record in records:
        writer.writerow({key: _cell(value) for key, value in record.items()})
    return buffer.getvalue()
