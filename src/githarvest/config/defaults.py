"""Starter .githarvest.toml template."""

DEFAULT_TOML = """\
# GitHarvest Configuration
version = "1.0"

[log]
max_count = 50            # commits listed when no --max-count is given

[diff]
context_lines = 3
ignore_whitespace = true  # pass -b to git diff
# diff_filter = "ACMR"    # git --diff-filter status letters
lookahead = 5             # reconstruction lookahead window
merge_distance = 3        # merge changed lines this close into one hunk
large_change_ratio = 0.1  # above this share of changed lines, emit a full-file hunk
large_change_min_lines = 20

[process]
max_concurrency = 6       # simultaneous git processes
timeout = 0               # seconds per git call, 0 = none
max_retries = 2
initial_delay = 0.5
backoff_factor = 1.5

[logging]
level = "INFO"            # DEBUG | INFO | WARNING | ERROR
format = "console"        # console | json
"""
