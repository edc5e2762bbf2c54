"""Database schema definitions for the gh-offline cache.

Contains the canonical SQL schema, the legacy V1 schema written by earlier
releases (kept for migration tests), and the current schema version constant.
"""

from __future__ import annotations

SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS repositories (
    id     INTEGER PRIMARY KEY AUTOINCREMENT,
    owner  TEXT NOT NULL,
    name   TEXT NOT NULL,
    UNIQUE(owner, name)
);

CREATE TABLE IF NOT EXISTS issues (
    id               INTEGER PRIMARY KEY,
    repository_id    INTEGER NOT NULL,
    number           INTEGER NOT NULL,
    title            TEXT NOT NULL,
    body             TEXT NOT NULL DEFAULT '',
    created_at       TEXT NOT NULL,
    state            TEXT NOT NULL,
    is_pull_request  BOOLEAN NOT NULL DEFAULT 0,
    author           TEXT,
    last_synced_at   TEXT,
    UNIQUE(repository_id, number)
);

CREATE INDEX IF NOT EXISTS idx_issues_repo_state ON issues(repository_id, state, is_pull_request);
CREATE INDEX IF NOT EXISTS idx_issues_number ON issues(number);

CREATE TABLE IF NOT EXISTS labels (
    id    INTEGER PRIMARY KEY,
    name  TEXT NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS issue_labels (
    id        INTEGER PRIMARY KEY,
    issue_id  INTEGER NOT NULL REFERENCES issues(id),
    label_id  INTEGER NOT NULL REFERENCES labels(id),
    UNIQUE(issue_id, label_id)
);

CREATE INDEX IF NOT EXISTS idx_issue_labels_label ON issue_labels(label_id);

CREATE TABLE IF NOT EXISTS issue_reactions (
    id             INTEGER PRIMARY KEY,
    issue_id       INTEGER NOT NULL REFERENCES issues(id),
    reaction_type  TEXT NOT NULL,
    count          INTEGER NOT NULL,
    UNIQUE(issue_id, reaction_type),
    CHECK (reaction_type IN ('+1', '-1', 'laugh', 'hooray', 'confused', 'heart', 'rocket', 'eyes'))
);
"""

# V1 schema: the unversioned layout written before author/last_synced_at were
# tracked and while repositories still keyed on a ``user`` column.
SCHEMA_V1_SQL = """\
CREATE TABLE IF NOT EXISTS repositories (
    id    INTEGER PRIMARY KEY,
    user  TEXT NOT NULL,
    name  TEXT NOT NULL,
    UNIQUE(user, name)
);

CREATE TABLE IF NOT EXISTS issues (
    id             INTEGER PRIMARY KEY,
    repository_id  INTEGER NOT NULL,
    number         INTEGER NOT NULL,
    title          TEXT NOT NULL,
    body           TEXT NOT NULL,
    created_at     TEXT NOT NULL,
    state          TEXT NOT NULL,
    UNIQUE(repository_id, number)
);
"""

CURRENT_SCHEMA_VERSION = 2
