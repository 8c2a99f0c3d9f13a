from __future__ import annotations

CREATE_ACTIONS_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS actions (
  ts_ms BIGINT,
  action TEXT,
  changed BOOLEAN,
  feature_count INTEGER,
  loaded_count INTEGER,
  deleted_count INTEGER,
  status TEXT,
  duration_ms DOUBLE,
  payload_json TEXT
);
"""

SUMMARY_SQL_TEMPLATE = """
SELECT
  action,
  COUNT(*) AS n,
  AVG(CASE WHEN changed THEN 1 ELSE 0 END) AS changed_rate,
  AVG(duration_ms) AS avg_ms,
  quantile_cont(duration_ms, 0.95) AS p95_ms,
  MAX(ts_ms) AS last_ts_ms
FROM actions
{where_sql}
GROUP BY action
ORDER BY action
"""

RECENT_SQL = """
SELECT ts_ms, action, changed, status, duration_ms, payload_json
FROM actions
ORDER BY ts_ms DESC
LIMIT ?
"""

INSERT_ACTIONS_SQL = """
INSERT INTO actions
  (ts_ms, action, changed, feature_count, loaded_count, deleted_count, status, duration_ms, payload_json)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
"""
