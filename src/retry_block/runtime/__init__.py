"""Runtime - Retry loops, delay sequences and persistent retries."""
