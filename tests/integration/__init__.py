"""
Integration tests for selfretry.

Self-retrying functions driven end to end:
- Call-site identity across retries and recursion depths
- Overload resolution through the call stack
- Bounded attempts, argument changes and handler failures
- Per-thread isolation
"""
