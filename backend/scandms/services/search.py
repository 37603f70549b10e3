# backend/scandms/services/search.py
import re
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List

from sqlalchemy import bindparam, text
from sqlalchemy.orm import Session

from ..errors import AccessDeniedError, SearchQueryError
from ..models import Document, Project, RecordStatus
from ..models.search_index import PAGE_TEXT_COLUMN, SEARCH_TABLE
from ..schemas.search import (
    SearchDocumentResult,
    SearchMatch,
    SearchResponse,
    Suggestion,
    SuggestionResponse,
)
from ..utils.logging import service_logger

_TERM = re.compile(r"\w+", re.UNICODE)

MAX_SUGGESTIONS = 20


@dataclass(frozen=True)
class SearchFilters:
    """Caller scope, supplied by the authentication layer"""
    project_id: int | None = None
    user_id: int | None = None
    user_permissions: FrozenSet[str] = field(default_factory=frozenset)
    accessible_project_ids: FrozenSet[int] = field(default_factory=frozenset)


def build_match_expression(query: str) -> str | None:
    """Quote each word so user input cannot inject FTS5 query syntax"""
    terms = _TERM.findall(query)
    if not terms:
        return None
    return " ".join(f'"{term}"' for term in terms)


class SearchService:
    def __init__(
            self,
            min_query_length: int = 2,
            default_limit: int = 20,
            max_limit: int = 100,
            admin_permission: str = "admin_access"
    ):
        self.min_query_length = min_query_length
        self.default_limit = default_limit
        self.max_limit = max_limit
        self.admin_permission = admin_permission

    def is_admin(self, filters: SearchFilters) -> bool:
        return self.admin_permission in filters.user_permissions

    def _scope(self, filters: SearchFilters) -> List[int] | None:
        """Project ids the caller may see; None means unrestricted.

        Raises AccessDeniedError when a non-admin asks for a project outside
        their set.
        """
        if self.is_admin(filters):
            return None
        allowed = sorted(filters.accessible_project_ids)
        if filters.project_id is not None and allowed and filters.project_id not in allowed:
            raise AccessDeniedError()
        return allowed

    def search(
            self,
            db: Session,
            query: str,
            filters: SearchFilters,
            limit: int | None = None,
            offset: int = 0
    ) -> SearchResponse:
        search_query = (query or "").strip()
        if len(search_query) < self.min_query_length:
            raise SearchQueryError(
                f"Search query must be at least {self.min_query_length} characters long"
            )

        limit = min(max(limit or self.default_limit, 1), self.max_limit)
        offset = max(offset or 0, 0)

        def empty() -> SearchResponse:
            return SearchResponse(
                results=[], total=0, has_more=False,
                query=search_query, limit=limit, offset=offset
            )

        allowed = self._scope(filters)
        if allowed is not None and not allowed:
            return empty()

        match = build_match_expression(search_query)
        if match is None:
            return empty()

        where = [
            f"{SEARCH_TABLE} MATCH :match",
            "d.status = :active",
            "p.status = :active",
            "pr.status = :active",
        ]
        params = {"match": match, "active": RecordStatus.ACTIVE.value}
        expanding = []
        if filters.project_id is not None:
            where.append("d.project_id = :project_id")
            params["project_id"] = filters.project_id
        if allowed is not None:
            where.append("d.project_id IN :project_ids")
            params["project_ids"] = allowed
            expanding.append(bindparam("project_ids", expanding=True))

        from_clause = f"""
            FROM {SEARCH_TABLE} fts
            JOIN pages p ON p.id = fts.rowid
            JOIN documents d ON d.id = p.document_id
            JOIN projects pr ON pr.id = d.project_id
            WHERE {" AND ".join(where)}
        """

        rows_sql = text(f"""
            SELECT
                fts.rowid AS page_id,
                d.id AS document_id,
                d.title AS document_title,
                d.project_id AS project_id,
                pr.name AS project_name,
                p.page_number AS page_number,
                p.file_name AS file_name,
                p.ocr_confidence AS ocr_confidence,
                p.word_count AS word_count,
                snippet({SEARCH_TABLE}, {PAGE_TEXT_COLUMN}, '<mark>', '</mark>', '...', 32) AS snippet,
                -bm25({SEARCH_TABLE}) AS relevance
            {from_clause}
            ORDER BY bm25({SEARCH_TABLE}), fts.rowid
            LIMIT :limit OFFSET :offset
        """)
        count_sql = text(f"SELECT COUNT(*) {from_clause}")
        if expanding:
            rows_sql = rows_sql.bindparams(*expanding)
            count_sql = count_sql.bindparams(*expanding)

        rows = db.execute(rows_sql, {**params, "limit": limit, "offset": offset}).mappings().all()
        total = db.execute(count_sql, params).scalar() or 0

        results = self.group_by_document(rows)
        service_logger.info("Search executed", extra={
            "query": search_query,
            "user_id": filters.user_id,
            "project_id": filters.project_id,
            "page_hits": len(rows),
            "documents": len(results),
            "total": total
        })
        return SearchResponse(
            results=results,
            total=total,
            has_more=offset + len(rows) < total,
            query=search_query,
            limit=limit,
            offset=offset
        )

    @staticmethod
    def group_by_document(rows) -> List[SearchDocumentResult]:
        """Merge page hits into one entry per document, best summed relevance first"""
        grouped: Dict[int, SearchDocumentResult] = {}
        for row in rows:
            entry = grouped.get(row["document_id"])
            if entry is None:
                entry = grouped[row["document_id"]] = SearchDocumentResult(
                    document_id=row["document_id"],
                    title=row["document_title"],
                    project_id=row["project_id"],
                    project_name=row["project_name"],
                )
            relevance = float(row["relevance"] or 0.0)
            entry.matches.append(SearchMatch(
                page_id=row["page_id"],
                page_number=row["page_number"],
                file_name=row["file_name"],
                snippet=row["snippet"] or "",
                relevance=relevance,
                ocr_confidence=row["ocr_confidence"],
                word_count=row["word_count"] or 0,
            ))
            entry.total_relevance += relevance

        return sorted(grouped.values(), key=lambda r: r.total_relevance, reverse=True)

    def suggestions(self, db: Session, query: str, filters: SearchFilters, limit: int = 10) -> SuggestionResponse:
        search_query = (query or "").strip()
        if not search_query:
            return SuggestionResponse(suggestions=[])

        allowed = self._scope(filters)
        if allowed is not None and not allowed:
            return SuggestionResponse(suggestions=[])

        documents = db.query(Document.title) \
            .join(Project, Project.id == Document.project_id) \
            .filter(
                Document.status == RecordStatus.ACTIVE,
                Project.status == RecordStatus.ACTIVE,
                Document.title.ilike(f"%{search_query}%")
            )
        if filters.project_id is not None:
            documents = documents.filter(Document.project_id == filters.project_id)
        if allowed is not None:
            documents = documents.filter(Document.project_id.in_(allowed))

        rows = documents.order_by(Document.updated_at.desc()) \
            .limit(min(max(limit, 1), MAX_SUGGESTIONS)) \
            .all()
        return SuggestionResponse(suggestions=[Suggestion(text=row.title) for row in rows])
