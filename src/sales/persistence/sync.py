"""Row-mode partitioning of order lines into a minimal write set."""

from dataclasses import dataclass, field

from sales.order.line import OrderLine
from sales.order.status import RowMode


@dataclass
class LineChangeSet:
    created: list[OrderLine] = field(default_factory=list)
    updated: list[OrderLine] = field(default_factory=list)
    deleted_ids: list[int] = field(default_factory=list)

    @classmethod
    def from_lines(cls, lines) -> "LineChangeSet":
        """Partition lines by row mode; untagged lines are left alone.

        A DELETED line without a storage id was never written and is skipped.
        An UPDATED line without one is treated as new.
        """
        changes = cls()
        for line in lines:
            mode = line.row_mode
            if mode == RowMode.DELETED.value:
                if line.record_id is not None:
                    changes.deleted_ids.append(line.record_id)
            elif mode == RowMode.NEW.value or (mode == RowMode.UPDATED.value and line.record_id is None):
                changes.created.append(line)
            elif mode == RowMode.UPDATED.value:
                changes.updated.append(line)
        return changes

    @property
    def is_empty(self) -> bool:
        return not (self.created or self.updated or self.deleted_ids)

    def summary(self) -> dict:
        return {"created": len(self.created), "updated": len(self.updated), "deleted": len(self.deleted_ids)}
