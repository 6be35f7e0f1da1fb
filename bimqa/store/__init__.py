"""Element storage — SQLite table partitioned by model urn."""

from bimqa.store.database import ElementStore, RowFilter

__all__ = ["ElementStore", "RowFilter"]
