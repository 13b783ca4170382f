"""
Type aliases for the table browser.

Provides reusable, descriptive type aliases for values moving between
the database driver, the query layer and the API.
"""

from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Union
from uuid import UUID


# A single cell value: Null | String | Number | Boolean | Timestamp, plus the
# driver types pydantic serializes itself (uuid, bytea, interval, arrays, hstore)
DatabaseValue = Union[
    None, bool, int, float, Decimal, str, datetime, date, time, timedelta, UUID, bytes, List[Any], Dict[str, Any]
]

# A cell as sent by a caller in an insert/update body
CellInput = Union[None, bool, int, float, Decimal, str, datetime, date]

# Insert/update payloads: {column_name: value}
RecordValues = Dict[str, CellInput]

# A result row as returned by the driver, before normalization
RawRow = Dict[str, Any]
