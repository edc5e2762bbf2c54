"""IssuesMixin — issue upsert, label/reaction reconciliation, and issue queries.

All methods access ``self.conn`` via Python's MRO when composed into
``IssueCache``.

Write path: ``store_remote_issue()`` is the unit of work the sync engine
calls once per fetched issue. It upserts the issue row, re-reads the row's id
by (repository_id, number), and only then writes label and reaction rows
against that id, committing all of it together.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from ghoffline.db_base import DBMixinProtocol
from ghoffline.errors import NotFoundError, StoreError
from ghoffline.types.core import REACTION_KINDS, KindFilter, StateFilter

if TYPE_CHECKING:
    from ghoffline.core import Issue, Reaction
    from ghoffline.github import RemoteIssue

logger = logging.getLogger(__name__)

VALID_STATE_FILTERS = frozenset({"open", "closed", "all"})
VALID_KIND_FILTERS = frozenset({"issue", "pr", "all"})
_BATCH_SIZE = 500

_ISSUE_COLUMNS = (
    "i.id, i.repository_id, i.number, i.title, i.body, i.created_at, i.state, "
    "i.is_pull_request, i.author, i.last_synced_at, r.owner AS repo_owner, r.name AS repo_name"
)


class IssuesMixin(DBMixinProtocol):
    """Issue upsert, reconciliation of labels/reactions, and read queries.

    Inherits ``DBMixinProtocol`` for type-safe access to shared attributes.
    Actual implementations provided by ``IssueCache`` at composition time via MRO.
    """

    # -- Sync support --------------------------------------------------------

    def load_sync_index(self, repository_id: int) -> dict[int, str | None]:
        """Map issue number -> last_synced_at for every cached issue of a repository."""
        try:
            rows = self.conn.execute(
                "SELECT number, last_synced_at FROM issues WHERE repository_id = ?",
                (repository_id,),
            ).fetchall()
        except sqlite3.Error as exc:
            msg = f"Failed to read sync state of repository {repository_id}: {exc}"
            raise StoreError(msg) from exc
        return {r["number"]: r["last_synced_at"] for r in rows}

    def store_remote_issue(self, repository_id: int, record: RemoteIssue, synced_at: str) -> int:
        """Upsert one fetched issue with its labels and reactions as a single commit.

        Returns the issue's row id. Raises StoreError (after rolling back) if
        any statement fails.
        """
        try:
            issue_id = self.upsert_issue(repository_id, record, synced_at)
            self.reconcile_labels(issue_id, record.labels)
            self.reconcile_reactions(issue_id, record.reactions)
            self.conn.commit()
        except (sqlite3.Error, OverflowError) as exc:
            self.conn.rollback()
            msg = f"Failed to store issue #{record.number}: {exc}"
            raise StoreError(msg) from exc
        return issue_id

    def upsert_issue(self, repository_id: int, record: RemoteIssue, synced_at: str) -> int:
        """Insert the issue, or overwrite title/body/state/last_synced_at on conflict.

        author, created_at and is_pull_request keep their first recorded
        values. The conflicting insert does not report the existing row's id,
        so the row is looked up again by its natural key. Does not commit.
        """
        self.conn.execute(
            "INSERT INTO issues (repository_id, number, title, body, created_at, state, "
            "is_pull_request, author, last_synced_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(repository_id, number) DO UPDATE SET "
            "title = excluded.title, body = excluded.body, state = excluded.state, "
            "last_synced_at = excluded.last_synced_at",
            (
                repository_id,
                record.number,
                record.title,
                record.body or "",
                record.created_at,
                record.state,
                record.is_pull_request,
                record.author,
                synced_at,
            ),
        )
        row = self.conn.execute(
            "SELECT id FROM issues WHERE repository_id = ? AND number = ?",
            (repository_id, record.number),
        ).fetchone()
        if row is None:
            msg = f"Issue #{record.number} missing right after upsert"
            raise StoreError(msg)
        issue_id: int = row["id"]
        return issue_id

    def reconcile_labels(self, issue_id: int, names: Iterable[str]) -> int:
        """Attach labels to an issue, creating global label rows as needed.

        Associations are only ever added. A label whose row cannot be
        resolved after the insert is skipped. Returns the number of new
        associations. Does not commit.
        """
        created = 0
        for name in dict.fromkeys(names):
            self.conn.execute("INSERT OR IGNORE INTO labels (name) VALUES (?)", (name,))
            row = self.conn.execute("SELECT id FROM labels WHERE name = ?", (name,)).fetchone()
            if row is None:
                logger.debug("Label %r vanished after insert; skipping association", name)
                continue
            try:
                cursor = self.conn.execute(
                    "INSERT OR IGNORE INTO issue_labels (issue_id, label_id) VALUES (?, ?)",
                    (issue_id, row["id"]),
                )
            except sqlite3.IntegrityError as exc:
                logger.debug("Skipping label %r on issue %d: %s", name, issue_id, exc)
                continue
            created += max(cursor.rowcount, 0)
        return created

    def reconcile_reactions(self, issue_id: int, reactions: Mapping[str, int]) -> int:
        """Write the nonzero reaction tallies of an issue, overwriting earlier counts.

        Zero or missing counts are not written and do not clear an existing
        tally. Unknown reaction kinds are ignored. Returns the number of
        tallies written. Does not commit.
        """
        written = 0
        for kind in REACTION_KINDS:
            count = reactions.get(kind)
            if not count or count <= 0:
                continue
            self.conn.execute(
                "INSERT INTO issue_reactions (issue_id, reaction_type, count) VALUES (?, ?, ?) "
                "ON CONFLICT(issue_id, reaction_type) DO UPDATE SET count = excluded.count",
                (issue_id, kind, count),
            )
            written += 1
        return written

    # -- Queries -------------------------------------------------------------

    def list_issues(
        self,
        *,
        repository_id: int | None = None,
        state: StateFilter = "open",
        kind: KindFilter = "issue",
    ) -> list[Issue]:
        """List cached issues of tracked repositories.

        Ordered by repository (owner, name) then issue number, newest first.
        """
        if state not in VALID_STATE_FILTERS:
            msg = f"Invalid state filter '{state}'. Valid: {', '.join(sorted(VALID_STATE_FILTERS))}"
            raise ValueError(msg)
        if kind not in VALID_KIND_FILTERS:
            msg = f"Invalid type filter '{kind}'. Valid: {', '.join(sorted(VALID_KIND_FILTERS))}"
            raise ValueError(msg)

        conditions: list[str] = []
        params: list[Any] = []
        if repository_id is not None:
            conditions.append("i.repository_id = ?")
            params.append(repository_id)
        if state != "all":
            conditions.append("i.state = ?")
            params.append(state)
        if kind == "issue":
            conditions.append("i.is_pull_request = 0")
        elif kind == "pr":
            conditions.append("i.is_pull_request = 1")

        where = f" WHERE {' AND '.join(conditions)}" if conditions else ""
        try:
            rows = self.conn.execute(
                f"SELECT {_ISSUE_COLUMNS} FROM issues i "
                f"JOIN repositories r ON r.id = i.repository_id{where} "
                f"ORDER BY r.owner ASC, r.name ASC, i.number DESC",
                params,
            ).fetchall()
            return self._build_issues_batch(rows)
        except sqlite3.Error as exc:
            msg = f"Failed to list issues: {exc}"
            raise StoreError(msg) from exc

    def get_issue(
        self,
        number: int,
        *,
        repository_id: int | None = None,
        pull_request: bool | None = None,
    ) -> Issue:
        """Fetch one issue by number with its repository, labels and reactions.

        Without *repository_id* the first tracked repository (by owner, name)
        holding that number wins. *pull_request* restricts the lookup to pull
        requests (True) or plain issues (False).
        """
        conditions = ["i.number = ?"]
        params: list[Any] = [number]
        if repository_id is not None:
            conditions.append("i.repository_id = ?")
            params.append(repository_id)
        if pull_request is not None:
            conditions.append("i.is_pull_request = ?")
            params.append(1 if pull_request else 0)
        try:
            row = self.conn.execute(
                f"SELECT {_ISSUE_COLUMNS} FROM issues i "
                f"JOIN repositories r ON r.id = i.repository_id "
                f"WHERE {' AND '.join(conditions)} "
                f"ORDER BY r.owner ASC, r.name ASC LIMIT 1",
                params,
            ).fetchone()
            issues = self._build_issues_batch([row]) if row is not None else []
        except sqlite3.Error as exc:
            msg = f"Failed to read issue #{number}: {exc}"
            raise StoreError(msg) from exc
        if not issues:
            noun = "Pull request" if pull_request else "Issue"
            msg = f"{noun} #{number} not found"
            raise NotFoundError(msg)
        return issues[0]

    def get_labels(self, issue_id: int) -> list[str]:
        try:
            rows = self.conn.execute(
                "SELECT l.name FROM issue_labels il JOIN labels l ON l.id = il.label_id WHERE il.issue_id = ? ORDER BY il.id",
                (issue_id,),
            ).fetchall()
        except sqlite3.Error as exc:
            msg = f"Failed to read labels of issue {issue_id}: {exc}"
            raise StoreError(msg) from exc
        return [r["name"] for r in rows]

    def get_reactions(self, issue_id: int) -> list[Reaction]:
        from ghoffline.core import Reaction

        try:
            rows = self.conn.execute(
                "SELECT reaction_type, count FROM issue_reactions WHERE issue_id = ? ORDER BY reaction_type ASC",
                (issue_id,),
            ).fetchall()
        except sqlite3.Error as exc:
            msg = f"Failed to read reactions of issue {issue_id}: {exc}"
            raise StoreError(msg) from exc
        return [Reaction(reaction_type=r["reaction_type"], count=r["count"]) for r in rows]

    def _build_issues_batch(self, rows: list[sqlite3.Row]) -> list[Issue]:
        """Build Issues from joined rows with batched label/reaction queries (no N+1)."""
        from ghoffline.core import Issue, Reaction, Repository

        if not rows:
            return []

        issue_ids = [r["id"] for r in rows]
        labels_by_id: dict[int, list[str]] = {iid: [] for iid in issue_ids}
        reactions_by_id: dict[int, list[Reaction]] = {iid: [] for iid in issue_ids}

        # Chunked to stay under SQLite's bound-parameter limit.
        for start in range(0, len(issue_ids), _BATCH_SIZE):
            chunk = issue_ids[start : start + _BATCH_SIZE]
            placeholders = ",".join("?" * len(chunk))
            for r in self.conn.execute(
                f"SELECT il.issue_id, l.name FROM issue_labels il JOIN labels l ON l.id = il.label_id "
                f"WHERE il.issue_id IN ({placeholders}) ORDER BY il.id",
                chunk,
            ).fetchall():
                labels_by_id[r["issue_id"]].append(r["name"])
            for r in self.conn.execute(
                f"SELECT issue_id, reaction_type, count FROM issue_reactions "
                f"WHERE issue_id IN ({placeholders}) ORDER BY reaction_type ASC",
                chunk,
            ).fetchall():
                reactions_by_id[r["issue_id"]].append(Reaction(reaction_type=r["reaction_type"], count=r["count"]))

        return [
            Issue(
                id=row["id"],
                repository_id=row["repository_id"],
                number=row["number"],
                title=row["title"],
                body=row["body"] or "",
                created_at=row["created_at"],
                state=row["state"],
                is_pull_request=bool(row["is_pull_request"]),
                author=row["author"],
                last_synced_at=row["last_synced_at"],
                repository=Repository(id=row["repository_id"], owner=row["repo_owner"], name=row["repo_name"]),
                labels=labels_by_id.get(row["id"], []),
                reactions=reactions_by_id.get(row["id"], []),
            )
            for row in rows
        ]
