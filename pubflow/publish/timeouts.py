from __future__ import annotations

# GH / API operations
GH_TIMEOUT_SECONDS = 60.0

# Idempotent GH read retry policy
GH_READ_RETRY_ATTEMPTS = 3
GH_READ_RETRY_DELAY_SECONDS = 1.0

# Workflow run polling after a push or a release
WORKFLOW_POLL_INTERVAL_SECONDS = 2.0
WORKFLOW_START_MAX_POLLS = 10

# npm registry reindex delay before dependents can install a new version
NPM_REINDEX_WAIT_SECONDS = 10.0

# npm queries (view)
NPM_VIEW_TIMEOUT_SECONDS = 60.0
