import decimal
from dataclasses import dataclass, field
from typing import Generic, Iterator, Optional

import pandas as pd

from cloudrecords.record import Cursor
from cloudrecords.record.model import T


@dataclass
class Page(Generic[T]):
    """One page of fetched objects plus the cursor for the next page, if any."""

    items: list[T] = field(default_factory=list)
    cursor: Optional[Cursor] = None

    def __iter__(self) -> Iterator[T]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __getitem__(self, index: int) -> T:
        return self.items[index]

    @property
    def has_more(self) -> bool:
        return self.cursor is not None

    def to_frame(self) -> pd.DataFrame:
        """
        Page contents as a pandas DataFrame, one row per object.

        Columns are `record_name` followed by the record fields. Decimal
        columns are converted to float for numeric compatibility.
        """
        rows = []
        for item in self.items:
            record = item.to_record()
            row = {"record_name": record.record_id.record_name if record.record_id else None}
            row.update(record.fields)
            rows.append(row)

        df = pd.DataFrame(rows)
        if df.empty:
            return pd.DataFrame(columns=["record_name"])
        for col in df.columns:
            if df[col].apply(lambda x: isinstance(x, decimal.Decimal)).all():
                df[col] = df[col].astype(float)
        return df
