# backend/scandms/models/search_index.py
"""FTS5 table holding one row per searchable page.

The rowid is the page id, so an entry is keyed by page. Only ``page_text`` is
tokenized; the other columns are carried along for scoping and display.
"""
from sqlalchemy import DDL, event

from ..database import Base

SEARCH_TABLE = "page_search"

# Column position of page_text, used by snippet()
PAGE_TEXT_COLUMN = 3

create_search_table = DDL(f"""
CREATE VIRTUAL TABLE IF NOT EXISTS {SEARCH_TABLE} USING fts5(
    document_id UNINDEXED,
    project_id UNINDEXED,
    document_title UNINDEXED,
    page_text,
    tokenize = 'unicode61'
)
""")

drop_search_table = DDL(f"DROP TABLE IF EXISTS {SEARCH_TABLE}")

event.listen(Base.metadata, "after_create", create_search_table.execute_if(dialect="sqlite"))
event.listen(Base.metadata, "before_drop", drop_search_table.execute_if(dialect="sqlite"))
