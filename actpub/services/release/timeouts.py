from __future__ import annotations

# gh api calls
GH_TIMEOUT_SECONDS = 60.0

# Tree and blob uploads carry artifact content.
GH_UPLOAD_TIMEOUT_SECONDS = 5 * 60.0

# Idempotent GH read retry policy
GH_READ_RETRY_ATTEMPTS = 3
GH_READ_RETRY_DELAY_SECONDS = 1.0
