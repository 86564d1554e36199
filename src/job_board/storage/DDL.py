_DDL = """
CREATE TABLE IF NOT EXISTS jobs (
    id              TEXT PRIMARY KEY,
    job_id          TEXT,
    title           TEXT NOT NULL,
    company         TEXT,
    company_url     TEXT,
    company_logo    TEXT,
    country         TEXT,
    state           TEXT,
    location        TEXT,
    description     TEXT,
    url             TEXT,
    salary          TEXT,
    job_type        TEXT,
    employment_type TEXT,
    is_remote       INTEGER NOT NULL DEFAULT 0,
    source          TEXT NOT NULL,
    raw_data        TEXT,
    posted_at       TEXT,
    date_gotten     TEXT NOT NULL,
    exp_date        TEXT,
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_jobs_natural_key
    ON jobs (lower(title), lower(company), substr(posted_at, 1, 7));

CREATE TABLE IF NOT EXISTS company_details (
    id           TEXT PRIMARY KEY,
    company_id   TEXT NOT NULL,
    name         TEXT,
    domain       TEXT,
    description  TEXT,
    logo_url     TEXT,
    icon_url     TEXT,
    accent_color TEXT,
    industry     TEXT,
    links        TEXT,
    raw_data     TEXT,
    created_at   TEXT NOT NULL,
    updated_at   TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_company_details_company_id
    ON company_details (company_id, updated_at);

CREATE TABLE IF NOT EXISTS job_schedule_info (
    api_name       TEXT PRIMARY KEY,
    last_run_time  TEXT,
    next_run_time  TEXT,
    interval_hours INTEGER NOT NULL,
    status         TEXT NOT NULL,
    last_run_count INTEGER NOT NULL DEFAULT 0,
    last_error_msg TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS job_sync_logs (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    api_name      TEXT NOT NULL,
    sync_time     TEXT NOT NULL,
    job_count     INTEGER NOT NULL DEFAULT 0,
    status        TEXT NOT NULL,
    error_message TEXT NOT NULL DEFAULT ''
);
"""
